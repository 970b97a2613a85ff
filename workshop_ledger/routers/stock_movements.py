from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workshop_ledger.core.api_docs import error_responses, ledger_http_error
from workshop_ledger.core.deps import get_db
from workshop_ledger.core.security_current import get_current_user
from workshop_ledger.models.inventory import StockMovement
from workshop_ledger.models.product import Product
from workshop_ledger.models.user import User
from workshop_ledger.routers.products import get_product_or_404
from workshop_ledger.schemas.common import pagination_meta
from workshop_ledger.schemas.stock import StockMovementCreate, StockMovementListOut, StockMovementOut
from workshop_ledger.services.audit_service import log_audit_event
from workshop_ledger.services.stock_ledger_service import StockLedgerError, apply_stock_movement

router = APIRouter(prefix="/stock-movements", tags=["stock"])


def movement_out(movement: StockMovement, product_stock: int) -> StockMovementOut:
    return StockMovementOut(
        id=movement.id,
        product_id=movement.product_id,
        type=movement.type,
        quantity=movement.quantity,
        reason=movement.reason,
        note=movement.note,
        date=movement.date,
        created_by=movement.created_by,
        product_stock=product_stock,
    )


@router.get(
    "",
    response_model=StockMovementListOut,
    summary="List stock movements",
    description="Newest first. Filter by product with `product_id`.",
    responses=error_responses(401, 404, 422, 500),
)
def list_stock_movements(
    product_id: int | None = Query(default=None, description="Optional product filter"),
    limit: int = Query(default=50, ge=1, le=200, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    if product_id is not None:
        get_product_or_404(db, product_id)

    count_stmt = select(func.count(StockMovement.id))
    stmt = select(StockMovement, Product.stock).join(Product, Product.id == StockMovement.product_id)
    if product_id is not None:
        count_stmt = count_stmt.where(StockMovement.product_id == product_id)
        stmt = stmt.where(StockMovement.product_id == product_id)

    total = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(
        stmt.order_by(StockMovement.date.desc(), StockMovement.id.desc()).offset(offset).limit(limit)
    ).all()
    items = [movement_out(movement, stock) for movement, stock in rows]
    return StockMovementListOut(
        items=items,
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.post(
    "",
    response_model=StockMovementOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record a stock movement",
    description="Adds to or subtracts from the product stock. A subtract that would go below zero is rejected.",
    responses=error_responses(400, 401, 404, 422, 500),
)
def create_stock_movement(
    payload: StockMovementCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    try:
        movement = apply_stock_movement(
            db,
            product_id=payload.product_id,
            movement_type=payload.type,
            quantity=payload.quantity,
            reason=payload.reason,
            note=payload.note,
            actor_user_id=actor.id,
        )
    except StockLedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc) from exc

    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="stock_movement.create",
        target_type="stock_movement",
        target_id=movement.id,
        metadata_json={
            "product_id": movement.product_id,
            "type": movement.type,
            "quantity": movement.quantity,
            "reason": movement.reason,
            "stock_after": movement.product.stock,
        },
    )
    db.commit()
    db.refresh(movement)
    return movement_out(movement, movement.product.stock)
