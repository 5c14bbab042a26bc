"""
Report export service.

Builds the downloadable transaction reports: a PDF listing of paid orders
(reportlab) and an Excel sheet of every order in the period (openpyxl).
"""
import io
import logging
from datetime import date
from typing import List
from xml.sax.saxutils import escape

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from restopos.core.config import settings
from restopos.core.timezone_utils import to_local
from restopos.models.transaction import Transaction

logger = logging.getLogger(__name__)

EXCEL_HEADINGS = [
    'ID Transaksi',
    'Tanggal',
    'Jam',
    'Kasir',
    'Customer',
    'Metode Pembayaran',
    'Total (Rp)',
    'Status',
]


def format_rupiah(amount) -> str:
    """16000 -> 'Rp 16.000' (Indonesian thousands separator)."""
    return "Rp " + f"{int(amount or 0):,}".replace(",", ".")


def export_filename(start: date, end: date, ext: str) -> str:
    return f"laporan_{start:%Y%m%d}_{end:%Y%m%d}.{ext}"


def _value(enum_or_str) -> str:
    if enum_or_str is None:
        return ''
    return enum_or_str.value if hasattr(enum_or_str, 'value') else str(enum_or_str)


def _cashier(tx: Transaction) -> str:
    return tx.user.name if tx.user is not None else 'Unknown'


class TransactionExportService:
    """Renders transaction lists to downloadable files."""

    @classmethod
    def excel_row(cls, tx: Transaction) -> list:
        local = to_local(tx.created_at)
        return [
            f"#{tx.id}",
            local.strftime('%d/%m/%Y') if local else '',
            local.strftime('%H:%M') if local else '',
            _cashier(tx),
            tx.customer_name or '-',
            _value(tx.payment_method).upper(),
            int(tx.total_amount or 0),
            _value(tx.status) or 'paid',
        ]

    @classmethod
    def export_to_xlsx(cls, transactions: List[Transaction]) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = "Laporan"

        ws.append(EXCEL_HEADINGS)
        for cell in ws[1]:
            cell.font = Font(bold=True)
        for tx in transactions:
            ws.append(cls.excel_row(tx))

        # Auto-adjust column widths
        for column in ws.columns:
            column_letter = get_column_letter(column[0].column)
            max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
            ws.column_dimensions[column_letter].width = min(max_length + 2, 50)

        output = io.BytesIO()
        try:
            wb.save(output)
            return output.getvalue()
        except Exception as e:
            logger.error(f"Excel export failed: {e}")
            raise
        finally:
            output.close()

    @classmethod
    def export_to_pdf(cls, transactions: List[Transaction], start: date, end: date) -> bytes:
        output = io.BytesIO()
        doc = SimpleDocTemplate(
            output,
            pagesize=landscape(A4),
            leftMargin=0.5 * inch,
            rightMargin=0.5 * inch,
            topMargin=0.5 * inch,
            bottomMargin=0.5 * inch,
        )
        styles = getSampleStyleSheet()
        styles.add(
            ParagraphStyle(
                name="ReportTitle",
                parent=styles["Title"],
                alignment=TA_CENTER,
                fontSize=16,
                spaceAfter=6,
            )
        )
        cell_style = ParagraphStyle(name="Cell", parent=styles["Normal"], fontSize=8, leading=10)

        story = [
            Paragraph(f"Laporan Transaksi - {settings.STORE_NAME}", styles["ReportTitle"]),
            Paragraph(f"Periode: {start:%d %b %Y} - {end:%d %b %Y}", styles["Normal"]),
            Spacer(1, 0.2 * inch),
        ]

        rows = [['No', 'Waktu', 'Kasir', 'Customer', 'Item', 'Metode', 'Total']]
        for idx, tx in enumerate(transactions, start=1):
            local = to_local(tx.created_at)
            items = escape(", ".join(f"{it.menu_name} x{it.quantity}" for it in tx.active_items))
            rows.append([
                str(idx),
                local.strftime('%d/%m/%Y %H:%M') if local else '',
                _cashier(tx),
                tx.customer_name or '-',
                Paragraph(items, cell_style),
                _value(tx.payment_method).upper(),
                format_rupiah(tx.total_amount),
            ])
        grand_total = sum(int(tx.total_amount or 0) for tx in transactions)
        rows.append(['', '', '', '', '', 'TOTAL', format_rupiah(grand_total)])

        table = Table(rows, repeatRows=1, colWidths=[0.4 * inch, 1.2 * inch, 1.2 * inch, 1.5 * inch, 3.6 * inch, 0.9 * inch, 1.2 * inch])
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#09090b")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 8),
            ("GRID", (0, 0), (-1, -2), 0.5, colors.HexColor("#dddddd")),
            ("ALIGN", (-1, 0), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ("LINEABOVE", (0, -1), (-1, -1), 1, colors.black),
        ]
        if transactions:
            style.append(("ROWBACKGROUNDS", (0, 1), (-1, -2), [colors.white, colors.HexColor("#f9f9f9")]))
        table.setStyle(TableStyle(style))
        story.append(table)

        try:
            doc.build(story)
            return output.getvalue()
        except Exception as e:
            logger.error(f"PDF export failed: {e}")
            raise
        finally:
            output.close()
