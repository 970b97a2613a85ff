from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workshop_ledger.core.money import ZERO_MONEY, parse_money, to_money
from workshop_ledger.models.cashflow import Cashflow
from workshop_ledger.models.product import Product
from workshop_ledger.models.setting import INITIAL_CAPITAL_KEY
from workshop_ledger.services.settings_service import get_setting


def _cashflow_total(db: Session, cashflow_type: str) -> Decimal:
    total = db.execute(
        select(func.coalesce(func.sum(Cashflow.amount), 0)).where(Cashflow.type == cashflow_type)
    ).scalar_one()
    return to_money(total or ZERO_MONEY)


def get_stats(db: Session, *, low_stock_threshold: int) -> dict:
    total_products, total_stock, total_stock_value = db.execute(
        select(
            func.count(Product.id),
            func.coalesce(func.sum(Product.stock), 0),
            func.coalesce(func.sum(Product.estimated_price * Product.stock), 0),
        )
    ).one()
    low_stock_count = db.execute(
        select(func.count(Product.id)).where(Product.stock < low_stock_threshold)
    ).scalar_one()

    total_income = _cashflow_total(db, "income")
    total_expense = _cashflow_total(db, "expense")
    net_balance = total_income - total_expense

    # Missing or unparsable capital counts as zero.
    capital_setting = get_setting(db, INITIAL_CAPITAL_KEY)
    initial_capital = parse_money(capital_setting.value if capital_setting else None)

    return {
        "total_products": int(total_products),
        "total_stock": int(total_stock),
        "total_stock_value": float(to_money(total_stock_value or ZERO_MONEY)),
        "low_stock_count": int(low_stock_count),
        "low_stock_threshold": low_stock_threshold,
        "total_income": float(total_income),
        "total_expense": float(total_expense),
        "net_balance": float(to_money(net_balance)),
        "initial_capital": float(initial_capital),
        "current_capital": float(to_money(initial_capital + net_balance)),
    }
