from datetime import date, datetime
from typing import Any

from pydantic import BaseModel

from workshop_ledger.schemas.common import PaginationMeta


class AuditLogOut(BaseModel):
    id: int
    actor_user_id: int
    action: str
    target_type: str
    target_id: int | None = None
    metadata_json: dict[str, Any] | None = None
    created_at: datetime


class AuditLogListOut(BaseModel):
    items: list[AuditLogOut]
    pagination: PaginationMeta
    start_date: date | None = None
    end_date: date | None = None
