import json
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from workshop_ledger.models.setting import Setting


def get_setting(db: Session, key: str) -> Setting | None:
    return db.execute(select(Setting).where(Setting.key == key)).scalar_one_or_none()


def serialize_setting_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def upsert_setting(db: Session, *, key: str, value: Any) -> tuple[Setting, bool]:
    """Create or overwrite ``key``; returns the row and whether it was created."""
    stored = serialize_setting_value(value)
    setting = get_setting(db, key)
    if setting:
        setting.value = stored
        db.flush()
        return setting, False
    setting = Setting(key=key, value=stored)
    db.add(setting)
    db.flush()
    return setting, True
