from fastapi import APIRouter, Depends, Query
from typing import Optional
from sqlalchemy.orm import Session

from restopos.core.config import settings
from restopos.core.timezone_utils import parse_date, today_local
from restopos.db.session import get_db
from restopos.schemas.report import HistoryPage
from restopos.services import reports as report_service

router = APIRouter(prefix="/history", tags=["History"])


@router.get("", response_model=HistoryPage)
@router.get("/", response_model=HistoryPage)
def history(
    date: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    """Paid orders for one local day (default today), newest first."""
    day = parse_date(date, default=today_local())
    return report_service.history(db, day, search=search, page=page, per_page=settings.HISTORY_PAGE_SIZE)
