from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from workshop_ledger.core.api_docs import error_responses
from workshop_ledger.core.config import settings
from workshop_ledger.core.deps import get_db
from workshop_ledger.core.security_current import get_current_user
from workshop_ledger.models.user import User
from workshop_ledger.schemas.dashboard import DashboardStatsOut
from workshop_ledger.services.dashboard_service import get_stats

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get(
    "/stats",
    response_model=DashboardStatsOut,
    summary="Dashboard stats",
    description=(
        "Catalogue and cash totals. Current capital is the `initial_capital` setting "
        "plus income minus expenses."
    ),
    responses={
        200: {
            "description": "Dashboard stats",
            "content": {
                "application/json": {
                    "example": {
                        "total_products": 3,
                        "total_stock": 25,
                        "total_stock_value": 5400.0,
                        "low_stock_count": 1,
                        "low_stock_threshold": 10,
                        "total_income": 2500.0,
                        "total_expense": 900.0,
                        "net_balance": 1600.0,
                        "initial_capital": 5000.0,
                        "current_capital": 6600.0,
                    }
                }
            },
        },
        **error_responses(401, 500),
    },
)
def dashboard_stats(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    return DashboardStatsOut(**get_stats(db, low_stock_threshold=settings.low_stock_threshold))
