from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from restopos.db.session import get_db
from restopos.schemas.report import DashboardRead
from restopos.services import reports as report_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("", response_model=DashboardRead)
@router.get("/", response_model=DashboardRead)
def dashboard(db: Session = Depends(get_db)):
    """
    Today's paid revenue and count, open orders, the payment method split,
    revenue for the last 7 days (oldest first) and the 5 best sellers of the
    last 30 days, plus the 5 most recent paid orders.
    """
    return report_service.dashboard(db)
