"""Receipt projections handed to the printer/kitchen collaborator.

These functions only read the order; printing and status changes happen
elsewhere.
"""
from typing import Iterable, Optional

from restopos.core.config import settings
from restopos.core.timezone_utils import to_local, utc_now
from restopos.models.transaction import Transaction
from restopos.models.transaction_item import TransactionItem
from restopos.schemas.receipt import PrintJob, ReceiptLine
from restopos.services.orders import PaymentResult, PosContext

KITCHEN_TITLE = 'PESANAN DAPUR'
CUSTOMER_TITLE = 'STRUK PEMBAYARAN'
VOID_TITLE = 'VOID / BATAL'
ADD_ON_SUBTITLE = '** TAMBAHAN **'
VOID_LINE_STATUS = 'DIBATALKAN'


def _stamp() -> str:
    return to_local(utc_now()).strftime('%d/%m/%Y %H:%M')


def _line(item: TransactionItem) -> ReceiptLine:
    return ReceiptLine(name=item.menu_name, qty=item.quantity, price=item.price, subtotal=item.subtotal)


def _header(order: Transaction, ctx: Optional[PosContext]) -> dict:
    ctx = ctx or PosContext.for_order(order)
    return {
        'store_name': settings.STORE_NAME,
        'date': _stamp(),
        'cashier': ctx.cashier_name,
        'customer_name': order.customer_name,
        'order_number': order.order_number,
    }


def kitchen_ticket(
    order: Transaction,
    items: Iterable[TransactionItem],
    ctx: Optional[PosContext] = None,
    add_on: bool = False,
) -> PrintJob:
    """Ticket for the kitchen listing only the lines not printed yet."""
    lines = [_line(it) for it in items if not it.is_printed and it.status == 'active']
    return PrintJob(
        type='kitchen',
        title=KITCHEN_TITLE,
        subtitle=ADD_ON_SUBTITLE if add_on else None,
        items=lines,
        total=order.total_amount,
        **_header(order, ctx),
    )


def customer_receipt(payment: PaymentResult, ctx: Optional[PosContext] = None) -> PrintJob:
    order = payment.order
    return PrintJob(
        type='customer',
        title=CUSTOMER_TITLE,
        items=[_line(it) for it in order.active_items],
        total=order.total_amount,
        payment_method=payment.payment_method.value,
        cash_received=payment.cash_received,
        change=payment.change if payment.cash_received is not None else None,
        **_header(order, ctx),
    )


def void_ticket(order: Transaction, item: TransactionItem, ctx: Optional[PosContext] = None) -> PrintJob:
    return PrintJob(
        type='void',
        title=VOID_TITLE,
        items=[ReceiptLine(name=item.menu_name, qty=item.quantity, status=VOID_LINE_STATUS)],
        **_header(order, ctx),
    )
