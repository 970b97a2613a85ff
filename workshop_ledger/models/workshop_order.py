from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workshop_ledger.db.base import Base

if TYPE_CHECKING:
    from workshop_ledger.models.product import Product


class WorkshopOrder(Base):
    __tablename__ = "workshop_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_order_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    material_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0, server_default="0")
    wood_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0, server_default="0")
    other_costs: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0, server_default="0")
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    notes: Mapped[str] = mapped_column(String(1000), nullable=False, default="", server_default="")
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    product: Mapped["Product"] = relationship(back_populates="workshop_orders")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_workshop_orders_quantity_positive"),
        Index("ix_workshop_orders_date", "date"),
    )
