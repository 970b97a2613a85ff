from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from workshop_ledger.schemas.auth import clean_optional_url
from workshop_ledger.schemas.common import PaginationMeta


def _clean_required(value: str, field: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{field} is required")
    return cleaned


class ProductCreate(BaseModel):
    name: str
    category: str
    estimated_price: Decimal = Field(ge=0)
    stock: int = Field(default=0, ge=0, description="Opening stock, recorded as an 'add' movement")
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _clean_required(value, "name")

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: str) -> str:
        return _clean_required(value, "category")

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, value: Optional[str]) -> Optional[str]:
        return clean_optional_url(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Oak dining table",
                "category": "Tables",
                "estimated_price": 450.0,
                "stock": 10,
                "image_url": "",
            }
        }
    )


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    estimated_price: Decimal | None = Field(default=None, ge=0)
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _clean_required(value, "name")

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return _clean_required(value, "category")

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, value: Optional[str]) -> Optional[str]:
        return clean_optional_url(value)

    @model_validator(mode="after")
    def validate_has_update(self) -> "ProductUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

    # Stock is only changed through stock movements and location stock.
    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "estimated_price": 480.0,
                "image_url": "https://example.com/oak-table.jpg",
            }
        },
    )


class ProductOut(BaseModel):
    id: int
    name: str
    category: str
    estimated_price: float
    stock: int
    image_url: Optional[str] = None
    created_by: Optional[int] = None
    modified_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ProductListOut(BaseModel):
    items: list[ProductOut]
    pagination: PaginationMeta
