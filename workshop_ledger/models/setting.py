from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from workshop_ledger.db.base import Base

INITIAL_CAPITAL_KEY = "initial_capital"


class Setting(Base):
    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)
