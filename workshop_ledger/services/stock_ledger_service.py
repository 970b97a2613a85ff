"""Every write to ``Product.stock`` goes through this module.

Each operation reads the product row under ``SELECT ... FOR UPDATE``, checks the
candidate total, then writes the detail row and the aggregate in the caller's
session. Nothing here commits: the router commits once, so the detail row and
the aggregate land together or not at all. The ``stock.staged`` log line is
written at flush time and marks a change that only lands if the caller commits.

Invariant kept by every operation::

    product.stock == sum(add movements) - sum(subtract movements)
                     + sum(location stock quantities)
"""
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from workshop_ledger.core.observability import ledger_logger, log_event
from workshop_ledger.models.inventory import MOVEMENT_TYPES, ProductStock, StockMovement
from workshop_ledger.models.product import Product

INITIAL_STOCK_REASON = "Initial stock"
LOCATION_STOCK_FIELDS = ("color", "quantity", "workshop")


class StockLedgerError(ValueError):
    pass


class NotFoundError(StockLedgerError):
    pass


class InsufficientStockError(StockLedgerError):
    pass


class InvalidRequestError(StockLedgerError):
    pass


@dataclass(frozen=True)
class StockDrift:
    product_id: int
    product_name: str
    stored_stock: int
    expected_stock: int

    @property
    def drift(self) -> int:
        return self.stored_stock - self.expected_stock

    @property
    def consistent(self) -> bool:
        return self.drift == 0


def movement_delta(movement_type: str, quantity: int) -> int:
    if movement_type not in MOVEMENT_TYPES:
        raise InvalidRequestError(f"Unsupported movement type '{movement_type}'")
    return quantity if movement_type == "add" else -quantity


def _require_positive_quantity(quantity: int) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidRequestError("quantity must be a positive integer")


def _lock_product(db: Session, product_id: int) -> Product:
    product = db.execute(
        select(Product)
        .where(Product.id == product_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found")
    return product


def _get_entry(db: Session, entry_id: int) -> ProductStock:
    entry = db.execute(
        select(ProductStock).where(ProductStock.id == entry_id)
    ).scalar_one_or_none()
    if not entry:
        raise NotFoundError("Product stock not found")
    return entry


def _lock_entry(db: Session, entry_id: int) -> tuple[ProductStock, Product]:
    """Lock the owning product, then re-read the entry under that lock.

    The first read only finds the product. Another request may have changed or
    removed the entry before the lock was granted.
    """
    product = _lock_product(db, _get_entry(db, entry_id).product_id)
    entry = db.execute(
        select(ProductStock)
        .where(ProductStock.id == entry_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if not entry:
        raise NotFoundError("Product stock not found")
    return entry, product


def _candidate_stock(product: Product, delta: int, *, operation: str) -> int:
    candidate = product.stock + delta
    if candidate < 0:
        log_event(
            ledger_logger,
            logging.WARNING,
            "stock.rejected",
            operation=operation,
            product_id=product.id,
            stock=product.stock,
            delta=delta,
        )
        raise InsufficientStockError("Insufficient stock")
    return candidate


def _set_stock(product: Product, candidate: int, *, actor_user_id: int | None, operation: str) -> None:
    previous = product.stock
    product.stock = candidate
    product.modified_by = actor_user_id
    log_event(
        ledger_logger,
        logging.INFO,
        "stock.staged",
        operation=operation,
        product_id=product.id,
        stock_before=previous,
        stock_after=candidate,
        actor_user_id=actor_user_id,
    )


def apply_stock_movement(
    db: Session,
    *,
    product_id: int,
    movement_type: str,
    quantity: int,
    reason: str,
    note: str = "",
    actor_user_id: int | None,
) -> StockMovement:
    _require_positive_quantity(quantity)
    delta = movement_delta(movement_type, quantity)
    product = _lock_product(db, product_id)
    candidate = _candidate_stock(product, delta, operation="movement")

    movement = StockMovement(
        product_id=product.id,
        type=movement_type,
        quantity=quantity,
        reason=reason,
        note=note or "",
        created_by=actor_user_id,
    )
    db.add(movement)
    _set_stock(product, candidate, actor_user_id=actor_user_id, operation="movement")
    db.flush()
    return movement


def record_initial_stock(
    db: Session,
    *,
    product: Product,
    quantity: int,
    actor_user_id: int | None,
) -> StockMovement | None:
    """Log a freshly created product's opening stock as an ``add`` movement.

    The product must already be flushed with ``stock == quantity``; the aggregate
    is left as is and only the detail row is written.
    """
    if quantity <= 0:
        return None
    movement = StockMovement(
        product_id=product.id,
        type="add",
        quantity=quantity,
        reason=INITIAL_STOCK_REASON,
        note="",
        created_by=actor_user_id,
    )
    db.add(movement)
    db.flush()
    return movement


def create_location_stock(
    db: Session,
    *,
    product_id: int,
    quantity: int,
    color: str,
    workshop: str,
    actor_user_id: int | None,
) -> ProductStock:
    _require_positive_quantity(quantity)
    product = _lock_product(db, product_id)
    candidate = _candidate_stock(product, quantity, operation="location.create")

    entry = ProductStock(
        product_id=product.id,
        color=color,
        quantity=quantity,
        workshop=workshop,
        created_by=actor_user_id,
    )
    db.add(entry)
    _set_stock(product, candidate, actor_user_id=actor_user_id, operation="location.create")
    db.flush()
    return entry


def update_location_stock(
    db: Session,
    *,
    entry_id: int,
    changes: dict[str, Any],
    actor_user_id: int | None,
) -> ProductStock:
    # An entry never moves between products, whatever else the request carries.
    if "product_id" in changes:
        raise InvalidRequestError("Cannot change product ID of a stock entry")
    unknown = set(changes) - set(LOCATION_STOCK_FIELDS)
    if unknown:
        raise InvalidRequestError(f"Unsupported fields: {', '.join(sorted(unknown))}")

    entry, product = _lock_entry(db, entry_id)

    new_quantity = changes.get("quantity")
    if new_quantity is not None and new_quantity != entry.quantity:
        _require_positive_quantity(new_quantity)
        candidate = _candidate_stock(product, new_quantity - entry.quantity, operation="location.update")
        entry.quantity = new_quantity
        _set_stock(product, candidate, actor_user_id=actor_user_id, operation="location.update")

    if changes.get("color") is not None:
        entry.color = changes["color"]
    if changes.get("workshop") is not None:
        entry.workshop = changes["workshop"]

    db.flush()
    return entry


def delete_location_stock(
    db: Session,
    *,
    entry_id: int,
    actor_user_id: int | None,
) -> ProductStock:
    entry, product = _lock_entry(db, entry_id)
    # Only reachable when stock already drifted below the entry's own quantity.
    candidate = _candidate_stock(product, -entry.quantity, operation="location.delete")

    db.delete(entry)
    _set_stock(product, candidate, actor_user_id=actor_user_id, operation="location.delete")
    db.flush()
    return entry


def _expected_stock_stmt(product_id: int | None = None):
    movement_net = (
        select(
            StockMovement.product_id.label("product_id"),
            func.sum(
                case(
                    (StockMovement.type == "add", StockMovement.quantity),
                    else_=-StockMovement.quantity,
                )
            ).label("net"),
        )
        .group_by(StockMovement.product_id)
        .subquery()
    )
    location_total = (
        select(
            ProductStock.product_id.label("product_id"),
            func.sum(ProductStock.quantity).label("total"),
        )
        .group_by(ProductStock.product_id)
        .subquery()
    )
    expected = func.coalesce(movement_net.c.net, 0) + func.coalesce(location_total.c.total, 0)
    stmt = (
        select(Product.id, Product.name, Product.stock, expected.label("expected"))
        .outerjoin(movement_net, movement_net.c.product_id == Product.id)
        .outerjoin(location_total, location_total.c.product_id == Product.id)
        .order_by(Product.id.asc())
    )
    if product_id is not None:
        stmt = stmt.where(Product.id == product_id)
    return stmt


def compute_expected_stock(db: Session, product_id: int) -> int:
    row = db.execute(_expected_stock_stmt(product_id)).first()
    if row is None:
        raise NotFoundError("Product not found")
    return int(row.expected)


def audit_stock(
    db: Session,
    *,
    product_id: int | None = None,
) -> list[StockDrift]:
    """One row per product, consistent ones included; filter on ``consistent``."""
    rows = db.execute(_expected_stock_stmt(product_id)).all()
    if product_id is not None and not rows:
        raise NotFoundError("Product not found")

    return [
        StockDrift(
            product_id=row.id,
            product_name=row.name,
            stored_stock=int(row.stock),
            expected_stock=int(row.expected),
        )
        for row in rows
    ]


def repair_stock(db: Session, *, product_id: int, actor_user_id: int | None) -> StockDrift:
    """Overwrite the cached aggregate with the value rebuilt from detail rows."""
    product = _lock_product(db, product_id)
    expected = compute_expected_stock(db, product_id)
    result = StockDrift(
        product_id=product.id,
        product_name=product.name,
        stored_stock=product.stock,
        expected_stock=expected,
    )
    if result.consistent:
        return result
    if expected < 0:
        raise InvalidRequestError("Ledger nets to negative stock; manual review required")

    _set_stock(product, expected, actor_user_id=actor_user_id, operation="repair")
    db.flush()
    return result
