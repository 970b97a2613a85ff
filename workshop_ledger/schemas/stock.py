from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from workshop_ledger.schemas.common import PaginationMeta


def _clean_required(value: str, field: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{field} is required")
    return cleaned


class StockMovementCreate(BaseModel):
    product_id: int
    type: Literal["add", "subtract"]
    quantity: int = Field(ge=1)
    reason: str = Field(max_length=100)
    note: str = Field(default="", max_length=500)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, value: str) -> str:
        return _clean_required(value, "reason")

    @field_validator("note")
    @classmethod
    def normalize_note(cls, value: Optional[str]) -> str:
        return (value or "").strip()

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": 1,
                "type": "subtract",
                "quantity": 2,
                "reason": "Sale",
                "note": "Walk-in customer",
            }
        }
    )


class StockMovementOut(BaseModel):
    id: int
    product_id: int
    type: str
    quantity: int
    reason: str
    note: str
    date: datetime
    created_by: Optional[int] = None
    product_stock: int = Field(description="Product aggregate stock after the movement")


class StockMovementListOut(BaseModel):
    items: list[StockMovementOut]
    pagination: PaginationMeta


class ProductStockCreate(BaseModel):
    product_id: int
    color: str = Field(max_length=50)
    quantity: int = Field(ge=1)
    workshop: str = Field(max_length=100)

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: str) -> str:
        return _clean_required(value, "color")

    @field_validator("workshop")
    @classmethod
    def validate_workshop(cls, value: str) -> str:
        return _clean_required(value, "workshop")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": 1,
                "color": "Walnut",
                "quantity": 3,
                "workshop": "North shed",
            }
        }
    )


class ProductStockUpdate(BaseModel):
    # Accepted only so the ledger can refuse it with a clear message.
    product_id: Optional[int] = None
    color: Optional[str] = Field(default=None, max_length=50)
    quantity: Optional[int] = Field(default=None, ge=1)
    workshop: Optional[str] = Field(default=None, max_length=100)

    @field_validator("color")
    @classmethod
    def validate_color(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _clean_required(value, "color")

    @field_validator("workshop")
    @classmethod
    def validate_workshop(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _clean_required(value, "workshop")

    @model_validator(mode="after")
    def validate_has_update(self) -> "ProductStockUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

    def changes(self) -> dict:
        return self.model_dump(include=self.model_fields_set)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "quantity": 5,
                "workshop": "South shed",
            }
        }
    )


class ProductStockOut(BaseModel):
    id: int
    product_id: int
    color: str
    quantity: int
    workshop: str
    created_by: Optional[int] = None
    product_stock: int = Field(description="Product aggregate stock after the change")


class ProductStockListOut(BaseModel):
    items: list[ProductStockOut]
    pagination: PaginationMeta


class StockAuditRowOut(BaseModel):
    product_id: int
    product_name: str
    stored_stock: int
    expected_stock: int
    drift: int


class StockAuditOut(BaseModel):
    checked_products: int
    drifted_products: int
    items: list[StockAuditRowOut]


class StockRepairOut(BaseModel):
    product_id: int
    stock_before: int
    stock_after: int
    repaired: bool
