from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from workshop_ledger.core.api_docs import error_responses
from workshop_ledger.core.deps import get_db
from workshop_ledger.core.security_current import get_current_user
from workshop_ledger.models.setting import Setting
from workshop_ledger.models.user import User
from workshop_ledger.schemas.setting import SettingIn, SettingOut
from workshop_ledger.services.audit_service import log_audit_event
from workshop_ledger.services.settings_service import get_setting, upsert_setting

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get(
    "",
    response_model=list[SettingOut],
    summary="List settings",
    responses=error_responses(401, 500),
)
def list_settings(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    rows = db.execute(select(Setting).order_by(Setting.key.asc())).scalars().all()
    return [SettingOut(id=row.id, key=row.key, value=row.value) for row in rows]


@router.get(
    "/{key}",
    response_model=SettingOut,
    summary="Get setting by key",
    responses=error_responses(401, 404, 500),
)
def read_setting(
    key: str,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    setting = get_setting(db, key)
    if not setting:
        raise HTTPException(status_code=404, detail="Setting not found")
    return SettingOut(id=setting.id, key=setting.key, value=setting.value)


@router.post(
    "",
    response_model=SettingOut,
    summary="Create or update a setting",
    description="Non-string values are stored as JSON text.",
    responses=error_responses(400, 401, 422, 500),
)
def save_setting(
    payload: SettingIn,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    key = payload.key.strip()
    if not key:
        raise HTTPException(status_code=400, detail="Key is required")
    if "value" not in payload.model_fields_set or payload.value is None:
        raise HTTPException(status_code=400, detail="Value is required")

    setting, created = upsert_setting(db, key=key, value=payload.value)
    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="setting.create" if created else "setting.update",
        target_type="setting",
        target_id=setting.id,
        metadata_json={"key": setting.key, "value": setting.value},
    )
    db.commit()
    return SettingOut(id=setting.id, key=setting.key, value=setting.value)
