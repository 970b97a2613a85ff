from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from workshop_ledger.db.base import Base

CASHFLOW_TYPES = ("income", "expense")


class Cashflow(Base):
    __tablename__ = "cashflows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # "income" | "expense"
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)  # Sales, Materials, Labor...
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_cashflows_amount_non_negative"),
        CheckConstraint("type IN ('income', 'expense')", name="ck_cashflows_type"),
        Index("ix_cashflows_type_date", "type", "date"),
    )
