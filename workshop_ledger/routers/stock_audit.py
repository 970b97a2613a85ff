from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from workshop_ledger.core.api_docs import error_responses, ledger_http_error
from workshop_ledger.core.deps import get_db
from workshop_ledger.core.security_current import get_current_user
from workshop_ledger.models.user import User
from workshop_ledger.schemas.stock import StockAuditOut, StockAuditRowOut, StockRepairOut
from workshop_ledger.services.audit_service import log_audit_event
from workshop_ledger.services.stock_ledger_service import StockLedgerError, audit_stock, repair_stock

router = APIRouter(prefix="/stock-audit", tags=["stock"])


@router.get(
    "",
    response_model=StockAuditOut,
    summary="Reconcile product stock",
    description=(
        "Compares each product's stored stock with the value rebuilt from its movements "
        "and location entries. Only drifted products are listed unless `include_consistent` is set."
    ),
    responses=error_responses(401, 404, 422, 500),
)
def get_stock_audit(
    product_id: int | None = Query(default=None, description="Restrict the report to one product"),
    include_consistent: bool = Query(default=False),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    try:
        report = audit_stock(db, product_id=product_id)
    except StockLedgerError as exc:
        raise ledger_http_error(exc) from exc

    drifted = [row for row in report if not row.consistent]
    listed = report if include_consistent else drifted
    return StockAuditOut(
        checked_products=len(report),
        drifted_products=len(drifted),
        items=[
            StockAuditRowOut(
                product_id=row.product_id,
                product_name=row.product_name,
                stored_stock=row.stored_stock,
                expected_stock=row.expected_stock,
                drift=row.drift,
            )
            for row in listed
        ],
    )


@router.post(
    "/{product_id}/repair",
    response_model=StockRepairOut,
    summary="Repair drifted product stock",
    description="Sets the stored stock to the rebuilt value. No-op when the product is consistent.",
    responses=error_responses(400, 401, 404, 422, 500),
)
def repair_product_stock(
    product_id: int,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    try:
        result = repair_stock(db, product_id=product_id, actor_user_id=actor.id)
    except StockLedgerError as exc:
        db.rollback()
        raise ledger_http_error(exc) from exc

    if not result.consistent:
        log_audit_event(
            db,
            actor_user_id=actor.id,
            action="stock.repair",
            target_type="product",
            target_id=product_id,
            metadata_json={
                "stock_before": result.stored_stock,
                "stock_after": result.expected_stock,
            },
        )
        db.commit()
    return StockRepairOut(
        product_id=product_id,
        stock_before=result.stored_stock,
        stock_after=result.expected_stock,
        repaired=not result.consistent,
    )
