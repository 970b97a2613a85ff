from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from workshop_ledger.core.api_docs import error_responses
from workshop_ledger.core.deps import get_db
from workshop_ledger.core.money import money_out, to_money
from workshop_ledger.core.security_current import get_current_user
from workshop_ledger.models.cashflow import Cashflow
from workshop_ledger.models.user import User
from workshop_ledger.schemas.cashflow import CashflowCreate, CashflowListOut, CashflowOut
from workshop_ledger.schemas.common import pagination_meta
from workshop_ledger.services.audit_service import log_audit_event

router = APIRouter(prefix="/cashflows", tags=["cashflows"])


def cashflow_out(row: Cashflow) -> CashflowOut:
    return CashflowOut(
        id=row.id,
        type=row.type,
        amount=money_out(row.amount),
        category=row.category,
        description=row.description,
        date=row.date,
        created_by=row.created_by,
    )


@router.get(
    "",
    response_model=CashflowListOut,
    summary="List cash transactions",
    description="Newest first, optionally filtered by type and an inclusive date range.",
    responses=error_responses(400, 401, 422, 500),
)
def list_cashflows(
    type: str | None = Query(default=None, pattern="^(income|expense)$"),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date cannot be before start_date")

    count_stmt = select(func.count(Cashflow.id))
    data_stmt = select(Cashflow)
    if type:
        count_stmt = count_stmt.where(Cashflow.type == type)
        data_stmt = data_stmt.where(Cashflow.type == type)
    if start_date:
        count_stmt = count_stmt.where(func.date(Cashflow.date) >= start_date)
        data_stmt = data_stmt.where(func.date(Cashflow.date) >= start_date)
    if end_date:
        count_stmt = count_stmt.where(func.date(Cashflow.date) <= end_date)
        data_stmt = data_stmt.where(func.date(Cashflow.date) <= end_date)

    total = int(db.execute(count_stmt).scalar_one())
    rows = db.execute(
        data_stmt.order_by(Cashflow.date.desc(), Cashflow.id.desc()).offset(offset).limit(limit)
    ).scalars().all()
    items = [cashflow_out(row) for row in rows]
    return CashflowListOut(
        pagination=pagination_meta(total=total, limit=limit, offset=offset, count=len(items)),
        start_date=start_date,
        end_date=end_date,
        items=items,
    )


@router.post(
    "",
    response_model=CashflowOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record income or expense",
    responses=error_responses(400, 401, 422, 500),
)
def create_cashflow(
    payload: CashflowCreate,
    db: Session = Depends(get_db),
    actor: User = Depends(get_current_user),
):
    row = Cashflow(
        type=payload.type,
        amount=to_money(payload.amount),
        category=payload.category,
        description=payload.description,
        date=payload.date or datetime.now(timezone.utc),
        created_by=actor.id,
    )
    db.add(row)
    db.flush()
    log_audit_event(
        db,
        actor_user_id=actor.id,
        action="cashflow.create",
        target_type="cashflow",
        target_id=row.id,
        metadata_json={
            "type": row.type,
            "amount": float(row.amount),
            "category": row.category,
        },
    )
    db.commit()
    db.refresh(row)
    return cashflow_out(row)
