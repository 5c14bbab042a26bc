from fastapi import APIRouter, Depends
from fastapi.responses import Response
from typing import Optional
from sqlalchemy.orm import Session

from restopos.core.timezone_utils import month_bounds, parse_date, today_local
from restopos.db.session import get_db
from restopos.schemas.report import ReportRead
from restopos.services import reports as report_service
from restopos.services.exports import TransactionExportService, export_filename

router = APIRouter(prefix="/reports", tags=["Reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def resolve_range(start_date: Optional[str], end_date: Optional[str]):
    """Inclusive local-day range; each missing bound defaults to the current month."""
    first, last = month_bounds(today_local())
    start = parse_date(start_date, default=first)
    end = parse_date(end_date, default=last)
    if end < start:
        start, end = end, start
    return start, end


def _download(content: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("", response_model=ReportRead)
@router.get("/", response_model=ReportRead)
def report_index(start_date: Optional[str] = None, end_date: Optional[str] = None, db: Session = Depends(get_db)):
    start, end = resolve_range(start_date, end_date)
    return report_service.report_summary(db, start, end)


@router.get("/export-pdf")
def export_pdf(start_date: Optional[str] = None, end_date: Optional[str] = None, db: Session = Depends(get_db)):
    start, end = resolve_range(start_date, end_date)
    rows = report_service.transactions_in_range(db, start, end, paid_only=True)
    content = TransactionExportService.export_to_pdf(rows, start, end)
    return _download(content, "application/pdf", export_filename(start, end, "pdf"))


@router.get("/export-excel")
def export_excel(start_date: Optional[str] = None, end_date: Optional[str] = None, db: Session = Depends(get_db)):
    start, end = resolve_range(start_date, end_date)
    # the spreadsheet lists every order in the period with its status
    rows = report_service.transactions_in_range(db, start, end, paid_only=False)
    content = TransactionExportService.export_to_xlsx(rows)
    return _download(content, XLSX_MEDIA_TYPE, export_filename(start, end, "xlsx"))
