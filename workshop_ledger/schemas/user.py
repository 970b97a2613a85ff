from pydantic import BaseModel

from workshop_ledger.schemas.auth import UserOut
from workshop_ledger.schemas.common import PaginationMeta


class UserListOut(BaseModel):
    items: list[UserOut]
    pagination: PaginationMeta
