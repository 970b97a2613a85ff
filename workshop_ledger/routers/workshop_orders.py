from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workshop_ledger.core.api_docs import error_responses
from workshop_ledger.core.deps import get_db
from workshop_ledger.core.money import money_out, to_money
from workshop_ledger.core.security_current import get_current_user
from workshop_ledger.models.product import Product
from workshop_ledger.models.user import User
from workshop_ledger.models.workshop_order import WorkshopOrder
from workshop_ledger.routers.products import get_product_or_404
from workshop_ledger.schemas.common import pagination_meta
from workshop_ledger.schemas.workshop_order import (
    WorkshopOrderCreate,
    WorkshopOrderListOut,
    WorkshopOrderOut,
    WorkshopOrderUpdate,
)
from workshop_ledger.services.audit_service import log_audit_event

router = APIRouter(prefix="/workshop-orders", tags=["workshop orders"])
MONEY_FIELDS = ("total_order_value", "material_cost", "wood_cost", "other_costs")


def order_out(order: WorkshopOrder, product_name: str) -> WorkshopOrderOut:
    total_cost = to_money(order.material_cost) + to_money(order.wood_cost) + to_money(order.other_costs)
    return WorkshopOrderOut(
        id=order.id,
        product_id=order.product_id,
        product_name=product_name,
        quantity=order.quantity,
        total_order_value=money_out(order.total_order_value),
        material_cost=money_out(order.material_cost),
        wood_cost=money_out(order.wood_cost),
        other_costs=money_out(order.other_costs),
        total_cost=money_out(total_cost),
        profit=money_out(to_money(order.total_order_value) - total_cost),
        date=order.date,
        notes=order.notes,
        created_by=order.created_by,
    )


def _get_order_or_404(db: Session, order_id: int) -> WorkshopOrder:
    order = db.execute(select(WorkshopOrder).where(WorkshopOrder.id == order_id)).scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Workshop order not found")
    return order


@router.get(
    "",
    response_model=WorkshopOrderListOut,
    summary="List workshop orders",
    description="Newest first, with derived total cost and profit.",
    responses=error_responses(401, 404, 422, 500),
)
def list_workshop_orders(
    product_id: int | None = Query(default=None, description="Optional product filter"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    if product_id is not None:
        get_product_or_404(db, product_id)

    count_stmt = select(func.count(WorkshopOrder.id))
    stmt = select(WorkshopOrder, Product.name).join(Product, Product.id == WorkshopOrder.product_id)
    if product_id is not None:
        count_stmt = count_stmt.where(WorkshopOrder.product_id == product_id)
        stmt = stmt.where(WorkshopOrder.product_id == product_id)

    total = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(
        stmt.order_by(WorkshopOrder.date.desc(), WorkshopOrder.id.desc()).offset(offset).limit(limit)
    ).all()
    items = [order_out(order, name) for order, name in rows]
    return WorkshopOrderListOut(
        items=items,
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(items)),
    )


@router.post(
    "",
    response_model=WorkshopOrderOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create workshop order",
    responses=error_responses(401, 404, 422, 500),
)
def create_workshop_order(
    payload: WorkshopOrderCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    product = get_product_or_404(db, payload.product_id)
    order = WorkshopOrder(
        product_id=product.id,
        quantity=payload.quantity,
        total_order_value=to_money(payload.total_order_value),
        material_cost=to_money(payload.material_cost),
        wood_cost=to_money(payload.wood_cost),
        other_costs=to_money(payload.other_costs),
        date=payload.date or datetime.now(timezone.utc),
        notes=payload.notes.strip(),
        created_by=actor.id,
    )
    db.add(order)
    db.flush()
    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="workshop_order.create",
        target_type="workshop_order",
        target_id=order.id,
        metadata_json={
            "product_id": order.product_id,
            "quantity": order.quantity,
            "total_order_value": float(order.total_order_value),
        },
    )
    db.commit()
    db.refresh(order)
    return order_out(order, product.name)


@router.patch(
    "/{order_id}",
    response_model=WorkshopOrderOut,
    summary="Update workshop order",
    responses=error_responses(401, 404, 422, 500),
)
def update_workshop_order(
    order_id: int,
    payload: WorkshopOrderUpdate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    order = _get_order_or_404(db, order_id)

    changed: dict[str, object] = {}
    if payload.product_id is not None and payload.product_id != order.product_id:
        order.product_id = get_product_or_404(db, payload.product_id).id
        changed["product_id"] = order.product_id
    if payload.quantity is not None:
        order.quantity = payload.quantity
        changed["quantity"] = payload.quantity
    for field in MONEY_FIELDS:
        value = getattr(payload, field)
        if value is not None:
            setattr(order, field, to_money(value))
            changed[field] = float(to_money(value))
    if payload.date is not None:
        order.date = payload.date
        changed["date"] = payload.date.isoformat()
    if payload.notes is not None:
        order.notes = payload.notes.strip()
        changed["notes"] = order.notes

    if changed:
        log_audit_event(
            db,
            actor_user_id=actor.id,
            action="workshop_order.update",
            target_type="workshop_order",
            target_id=order.id,
            metadata_json=changed,
        )
    db.commit()
    db.refresh(order)
    product = get_product_or_404(db, order.product_id)
    return order_out(order, product.name)


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete workshop order",
    responses=error_responses(401, 404, 422, 500),
)
def delete_workshop_order(
    order_id: int,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    order = _get_order_or_404(db, order_id)
    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="workshop_order.delete",
        target_type="workshop_order",
        target_id=order.id,
        metadata_json={"product_id": order.product_id, "quantity": order.quantity},
    )
    db.delete(order)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
