from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workshop_ledger.db.base import Base

if TYPE_CHECKING:
    from workshop_ledger.models.product import Product

MOVEMENT_TYPES = ("add", "subtract")


class StockMovement(Base):
    """
    Append-only log of stock changes. Quantity is always positive; the sign lives in `type`.
    """
    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # "add" | "subtract"
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)
    note: Mapped[str] = mapped_column(String(500), nullable=False, default="", server_default="")
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    product: Mapped["Product"] = relationship(back_populates="stock_movements")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        CheckConstraint("type IN ('add', 'subtract')", name="ck_stock_movements_type"),
        Index("ix_stock_movements_product_date", "product_id", "date"),
    )


class ProductStock(Base):
    """
    Stock held for a product in one color at one workshop. Counts toward Product.stock.
    """
    __tablename__ = "product_stock"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    color: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    workshop: Mapped[str] = mapped_column(String(100), nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    product: Mapped["Product"] = relationship(back_populates="stock_entries")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_product_stock_quantity_positive"),
    )
