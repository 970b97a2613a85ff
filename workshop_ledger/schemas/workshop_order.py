from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workshop_ledger.schemas.common import PaginationMeta


class WorkshopOrderCreate(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)
    total_order_value: Decimal = Field(ge=0)
    material_cost: Decimal = Field(default=Decimal("0"), ge=0)
    wood_cost: Decimal = Field(default=Decimal("0"), ge=0)
    other_costs: Decimal = Field(default=Decimal("0"), ge=0)
    date: Optional[datetime] = None
    notes: str = Field(default="", max_length=1000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": 1,
                "quantity": 4,
                "total_order_value": 1800.0,
                "material_cost": 300.0,
                "wood_cost": 550.0,
                "other_costs": 75.0,
                "notes": "Hotel lobby benches",
            }
        }
    )


class WorkshopOrderUpdate(BaseModel):
    product_id: Optional[int] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    total_order_value: Decimal | None = Field(default=None, ge=0)
    material_cost: Decimal | None = Field(default=None, ge=0)
    wood_cost: Decimal | None = Field(default=None, ge=0)
    other_costs: Decimal | None = Field(default=None, ge=0)
    date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def validate_has_update(self) -> "WorkshopOrderUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "wood_cost": 600.0,
                "notes": "Switched to kiln-dried oak",
            }
        }
    )


class WorkshopOrderOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    total_order_value: float
    material_cost: float
    wood_cost: float
    other_costs: float
    total_cost: float
    profit: float
    date: datetime
    notes: str
    created_by: Optional[int] = None


class WorkshopOrderListOut(BaseModel):
    items: list[WorkshopOrderOut]
    pagination: PaginationMeta
