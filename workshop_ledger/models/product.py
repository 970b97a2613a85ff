from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workshop_ledger.db.base import Base

if TYPE_CHECKING:
    from workshop_ledger.models.inventory import ProductStock, StockMovement
    from workshop_ledger.models.workshop_order import WorkshopOrder


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    estimated_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    # Cached aggregate; only the stock ledger service writes it.
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    modified_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    stock_movements: Mapped[list["StockMovement"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
    )
    stock_entries: Mapped[list["ProductStock"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
    )
    workshop_orders: Mapped[list["WorkshopOrder"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("estimated_price >= 0", name="ck_products_estimated_price_non_negative"),
        Index("ix_products_category", "category"),
    )
