from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workshop_ledger.core.api_docs import error_responses
from workshop_ledger.core.deps import get_db
from workshop_ledger.core.security import hash_password
from workshop_ledger.core.security_current import get_current_user
from workshop_ledger.models.user import User
from workshop_ledger.routers.auth import email_taken, username_taken
from workshop_ledger.schemas.auth import UserOut, UserUpdateIn
from workshop_ledger.schemas.common import pagination_meta
from workshop_ledger.schemas.user import UserListOut
from workshop_ledger.services.audit_service import log_audit_event

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "",
    response_model=UserListOut,
    summary="List users",
    responses=error_responses(401, 422, 500),
)
def list_users(
    limit: int = Query(default=50, ge=1, le=200, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    total = int(db.execute(select(func.count(User.id))).scalar_one())
    rows = db.execute(
        select(User).order_by(User.id.asc()).offset(offset).limit(limit)
    ).scalars().all()
    items = [UserOut.model_validate(row) for row in rows]
    return UserListOut(
        items=items,
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.patch(
    "/{user_id}",
    response_model=UserOut,
    summary="Update own profile",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def update_user(
    user_id: int,
    payload: UserUpdateIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if user_id != current_user.id:
        raise HTTPException(status_code=403, detail="You can only update your own profile")

    user = db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    changed: list[str] = []
    if payload.username is not None and payload.username != user.username:
        if username_taken(db, payload.username, exclude_user_id=user.id):
            raise HTTPException(status_code=400, detail="Username already exists")
        user.username = payload.username
        changed.append("username")
    if payload.email is not None and payload.email.lower() != user.email:
        if email_taken(db, payload.email, exclude_user_id=user.id):
            raise HTTPException(status_code=400, detail="Email already exists")
        user.email = payload.email.lower()
        changed.append("email")
    if payload.password is not None:
        user.hashed_password = hash_password(payload.password)
        changed.append("password")
    if "name" in payload.model_fields_set:
        user.name = payload.name
        changed.append("name")
    if "profile_picture" in payload.model_fields_set:
        user.profile_picture = payload.profile_picture
        changed.append("profile_picture")

    if changed:
        log_audit_event(
            db,
            actor_user_id=current_user.id,
            action="user.update",
            target_type="user",
            target_id=user.id,
            metadata_json={"fields": changed},
        )
    db.commit()
    db.refresh(user)
    return UserOut.model_validate(user)
