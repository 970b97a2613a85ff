from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workshop_ledger.core.api_docs import error_responses, ledger_http_error
from workshop_ledger.core.deps import get_db
from workshop_ledger.core.security_current import get_current_user
from workshop_ledger.models.inventory import ProductStock
from workshop_ledger.models.product import Product
from workshop_ledger.models.user import User
from workshop_ledger.routers.products import get_product_or_404
from workshop_ledger.schemas.common import pagination_meta
from workshop_ledger.schemas.stock import (
    ProductStockCreate,
    ProductStockListOut,
    ProductStockOut,
    ProductStockUpdate,
)
from workshop_ledger.services.audit_service import log_audit_event
from workshop_ledger.services.stock_ledger_service import (
    StockLedgerError,
    create_location_stock,
    delete_location_stock,
    update_location_stock,
)

router = APIRouter(prefix="/product-stock", tags=["stock"])


def entry_out(entry: ProductStock, product_stock: int) -> ProductStockOut:
    return ProductStockOut(
        id=entry.id,
        product_id=entry.product_id,
        color=entry.color,
        quantity=entry.quantity,
        workshop=entry.workshop,
        created_by=entry.created_by,
        product_stock=product_stock,
    )


@router.get(
    "",
    response_model=ProductStockListOut,
    summary="List location stock entries",
    responses=error_responses(401, 404, 422, 500),
)
def list_product_stock(
    product_id: int | None = Query(default=None, description="Optional product filter"),
    limit: int = Query(default=50, ge=1, le=200, description="Page size"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    if product_id is not None:
        get_product_or_404(db, product_id)

    count_stmt = select(func.count(ProductStock.id))
    stmt = select(ProductStock, Product.stock).join(Product, Product.id == ProductStock.product_id)
    if product_id is not None:
        count_stmt = count_stmt.where(ProductStock.product_id == product_id)
        stmt = stmt.where(ProductStock.product_id == product_id)

    total = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(stmt.order_by(ProductStock.id.asc()).offset(offset).limit(limit)).all()
    items = [entry_out(entry, stock) for entry, stock in rows]
    return ProductStockListOut(
        items=items,
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.get(
    "/{entry_id}",
    response_model=ProductStockOut,
    summary="Get location stock entry",
    responses=error_responses(401, 404, 422, 500),
)
def get_product_stock(
    entry_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    row = db.execute(
        select(ProductStock, Product.stock)
        .join(Product, Product.id == ProductStock.product_id)
        .where(ProductStock.id == entry_id)
    ).first()
    if not row:
        raise HTTPException(status_code=404, detail="Product stock not found")
    entry, stock = row
    return entry_out(entry, stock)


@router.post(
    "",
    response_model=ProductStockOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add location stock",
    description="Creates a color/workshop entry and adds its quantity to the product stock.",
    responses=error_responses(400, 401, 404, 422, 500),
)
def create_product_stock(
    payload: ProductStockCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    try:
        entry = create_location_stock(
            db,
            product_id=payload.product_id,
            quantity=payload.quantity,
            color=payload.color,
            workshop=payload.workshop,
            actor_user_id=actor.id,
        )
    except StockLedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc) from exc

    stock_after = entry.product.stock
    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="product_stock.create",
        target_type="product_stock",
        target_id=entry.id,
        metadata_json={
            "product_id": entry.product_id,
            "color": entry.color,
            "workshop": entry.workshop,
            "quantity": entry.quantity,
            "stock_after": stock_after,
        },
    )
    db.commit()
    return entry_out(entry, stock_after)


@router.patch(
    "/{entry_id}",
    response_model=ProductStockOut,
    summary="Update location stock",
    description=(
        "Changing the quantity moves the product stock by the difference. "
        "An entry cannot be moved to another product."
    ),
    responses=error_responses(400, 401, 404, 422, 500),
)
def update_product_stock(
    entry_id: int,
    payload: ProductStockUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    changes = payload.changes()
    try:
        entry = update_location_stock(
            db,
            entry_id=entry_id,
            changes=changes,
            actor_user_id=actor.id,
        )
    except StockLedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc) from exc

    stock_after = entry.product.stock
    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="product_stock.update",
        target_type="product_stock",
        target_id=entry.id,
        metadata_json={
            "product_id": entry.product_id,
            "changes": changes,
            "stock_after": stock_after,
        },
    )
    db.commit()
    return entry_out(entry, stock_after)


@router.delete(
    "/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete location stock",
    description="Removes the entry and subtracts its quantity from the product stock.",
    responses=error_responses(400, 401, 404, 422, 500),
)
def delete_product_stock(
    entry_id: int,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    try:
        entry = delete_location_stock(db, entry_id=entry_id, actor_user_id=actor.id)
    except StockLedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc) from exc

    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="product_stock.delete",
        target_type="product_stock",
        target_id=entry_id,
        metadata_json={
            "product_id": entry.product_id,
            "color": entry.color,
            "workshop": entry.workshop,
            "quantity": entry.quantity,
        },
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
