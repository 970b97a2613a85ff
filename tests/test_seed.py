import pytest
from sqlalchemy import func, select

from workshop_ledger.models.cashflow import Cashflow
from workshop_ledger.models.inventory import StockMovement
from workshop_ledger.models.product import Product
from workshop_ledger.models.setting import INITIAL_CAPITAL_KEY
from workshop_ledger.seed import DEMO_PRODUCTS, SeedError, seed_demo_data
from workshop_ledger.services.settings_service import get_setting
from workshop_ledger.services.stock_ledger_service import audit_stock


def test_seed_builds_a_consistent_demo_catalogue(db_session):
    db = db_session

    counts = seed_demo_data(db, username="owner", email="Owner@Example.com", password="secret123")
    assert counts == {"products": 5, "movements": 7, "cashflows": 6}

    products = db.execute(select(Product).order_by(Product.id)).scalars().all()
    assert [product.name for product in products] == [name for name, _, _, _ in DEMO_PRODUCTS]
    assert [product.stock for product in products] == [17, 6, 20, 6, 3]
    assert all(row.consistent for row in audit_stock(db))

    assert db.execute(select(func.count(StockMovement.id))).scalar_one() == 7
    assert db.execute(select(func.count(Cashflow.id))).scalar_one() == 6
    assert get_setting(db, INITIAL_CAPITAL_KEY).value == "5000"


def test_seed_refuses_a_database_with_products(db_session):
    db = db_session
    seed_demo_data(db, username="owner", email="owner@example.com", password="secret123")

    with pytest.raises(SeedError):
        seed_demo_data(db, username="owner", email="owner@example.com", password="secret123")
    assert db.execute(select(func.count(Product.id))).scalar_one() == len(DEMO_PRODUCTS)
