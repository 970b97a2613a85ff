from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from workshop_ledger.schemas.common import PaginationMeta


class CashflowCreate(BaseModel):
    type: Literal["income", "expense"]
    amount: Decimal = Field(ge=0)
    category: str = Field(max_length=100)
    description: str = Field(max_length=255)
    date: Optional[datetime] = Field(
        default=None,
        description="ISO date or datetime; defaults to now",
    )

    @field_validator("category", "description")
    @classmethod
    def validate_text(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("field is required")
        return cleaned

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "type": "expense",
                "amount": 120.5,
                "category": "Materials",
                "description": "Walnut boards",
                "date": "2026-10-19",
            }
        }
    )


class CashflowOut(BaseModel):
    id: int
    type: str
    amount: float
    category: str
    description: str
    date: datetime
    created_by: Optional[int] = None


class CashflowListOut(BaseModel):
    pagination: PaginationMeta
    start_date: date | None = None
    end_date: date | None = None
    items: list[CashflowOut]
