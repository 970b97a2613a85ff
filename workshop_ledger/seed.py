"""Load a demo catalogue into an empty database.

    python -m workshop_ledger.seed --password <owner password>

Products are created with their opening stock logged through the ledger, so a
fresh ``GET /stock-audit`` reports no drift.
"""
import argparse
import logging
import sys
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workshop_ledger.core.money import to_money
from workshop_ledger.core.observability import log_event, seed_logger, setup_observability
from workshop_ledger.core.security import hash_password
from workshop_ledger.db.session import SessionLocal
from workshop_ledger.models.cashflow import Cashflow
from workshop_ledger.models.product import Product
from workshop_ledger.models.setting import INITIAL_CAPITAL_KEY
from workshop_ledger.models.user import User
from workshop_ledger.services.settings_service import upsert_setting
from workshop_ledger.services.stock_ledger_service import apply_stock_movement, record_initial_stock

DEMO_PRODUCTS = (
    ("Oak dining table", "Tables", "450.00", 12),
    ("Walnut coffee table", "Tables", "320.50", 8),
    ("Pine bookshelf", "Storage", "189.75", 20),
    ("Ash rocking chair", "Chairs", "240.00", 6),
    ("Cedar garden bench", "Benches", "130.30", 3),
)

DEMO_CASHFLOWS = (
    ("income", "450", "Sales", "Oak dining table sale", datetime(2025, 11, 3, tzinfo=timezone.utc)),
    ("expense", "850", "Materials", "Hardwood boards", datetime(2025, 11, 3, tzinfo=timezone.utc)),
    ("income", "320", "Sales", "Walnut coffee table sale", datetime(2025, 11, 2, tzinfo=timezone.utc)),
    ("expense", "125", "Utilities", "Workshop electricity", datetime(2025, 11, 2, tzinfo=timezone.utc)),
    ("income", "1200", "Sales", "Bulk order, 5 bookshelves", datetime(2025, 11, 1, tzinfo=timezone.utc)),
    ("expense", "450", "Labor", "Wages, week 44", datetime(2025, 11, 1, tzinfo=timezone.utc)),
)

DEMO_INITIAL_CAPITAL = "5000"


class SeedError(ValueError):
    pass


def seed_demo_data(db: Session, *, username: str, email: str, password: str) -> dict[str, int]:
    """Create the owner account, products, movements, cashflows and capital.

    Refuses to touch a database that already holds products. Commits on success.
    """
    if int(db.execute(select(func.count(Product.id))).scalar_one()) > 0:
        raise SeedError("Database already has products; refusing to seed")

    owner = db.execute(select(User).where(func.lower(User.username) == username.lower())).scalar_one_or_none()
    if owner is None:
        owner = User(
            username=username,
            email=email.lower(),
            hashed_password=hash_password(password),
            name="Workshop owner",
        )
        db.add(owner)
        db.flush()

    products: list[Product] = []
    for name, category, price, stock in DEMO_PRODUCTS:
        product = Product(
            name=name,
            category=category,
            estimated_price=to_money(price),
            stock=stock,
            created_by=owner.id,
            modified_by=owner.id,
        )
        db.add(product)
        db.flush()
        record_initial_stock(db, product=product, quantity=stock, actor_user_id=owner.id)
        products.append(product)

    apply_stock_movement(
        db,
        product_id=products[0].id,
        movement_type="add",
        quantity=5,
        reason="Restock",
        note="Monthly restock",
        actor_user_id=owner.id,
    )
    apply_stock_movement(
        db,
        product_id=products[1].id,
        movement_type="subtract",
        quantity=2,
        reason="Sale",
        note="Sold to a walk-in customer",
        actor_user_id=owner.id,
    )

    for flow_type, amount, category, description, date in DEMO_CASHFLOWS:
        db.add(
            Cashflow(
                type=flow_type,
                amount=to_money(amount),
                category=category,
                description=description,
                date=date,
                created_by=owner.id,
            )
        )

    upsert_setting(db, key=INITIAL_CAPITAL_KEY, value=DEMO_INITIAL_CAPITAL)
    db.commit()

    counts = {
        "products": len(products),
        "movements": len(products) + 2,
        "cashflows": len(DEMO_CASHFLOWS),
    }
    log_event(seed_logger, logging.INFO, "seed.completed", owner_user_id=owner.id, **counts)
    return counts


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the database with demo workshop data.")
    parser.add_argument("--username", default="owner")
    parser.add_argument("--email", default="owner@example.com")
    parser.add_argument("--password", required=True, help="Password for the owner account")
    args = parser.parse_args(argv)

    setup_observability()
    with SessionLocal() as db:
        try:
            seed_demo_data(db, username=args.username, email=args.email, password=args.password)
        except SeedError as exc:
            db.rollback()
            log_event(seed_logger, logging.ERROR, "seed.refused", reason=str(exc))
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
