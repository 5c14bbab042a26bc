"""Order lifecycle: the only code that changes an order's items or status.

Every public operation works on ids, runs as one unit of work on the given
session and leaves `Transaction.total_amount` equal to the sum of the active
items' subtotals. Failures raise restopos.core.errors exceptions after the
whole unit has been rolled back.
"""
from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from restopos.core.errors import ConflictError, NotFoundError, ValidationError
from restopos.core.timezone_utils import to_utc_naive, utc_now
from restopos.db.session import unit_of_work
from restopos.models.menu import Menu
from restopos.models.transaction import PaymentMethod, Transaction, TransactionStatus
from restopos.models.transaction_item import ItemStatus, TransactionItem
from restopos.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_CASHIER_NAME = 'Kasir'

# column limits: String(255) names, signed 32-bit INTEGER ids
MAX_NAME_LENGTH = 255
MAX_ID = 2_147_483_647
MAX_QUANTITY = 9_999


@dataclass
class PosContext:
    """Who is operating the register for the current request."""

    cashier_id: Optional[int] = None
    cashier_name: str = DEFAULT_CASHIER_NAME

    @classmethod
    def for_cashier(cls, db: Session, cashier_id: Optional[int]) -> 'PosContext':
        if cashier_id is None:
            return cls()
        user = db.get(User, cashier_id)
        if user is None:
            raise ValidationError(f"Cashier {cashier_id} does not exist")
        return cls(cashier_id=user.id, cashier_name=user.name)

    @classmethod
    def for_order(cls, order: Transaction) -> 'PosContext':
        user = order.user
        if user is None:
            return cls(cashier_id=order.user_id)
        return cls(cashier_id=user.id, cashier_name=user.name)


@dataclass
class OrderLine:
    menu_id: int
    quantity: int


@dataclass
class ItemsResult:
    order: Transaction
    added: List[TransactionItem] = field(default_factory=list)


@dataclass
class PaymentResult:
    order: Transaction
    payment_method: PaymentMethod
    cash_received: Optional[int] = None
    change: Optional[int] = None


@dataclass
class VoidResult:
    order: Transaction
    item: TransactionItem


def _as_lines(items: Iterable) -> List[OrderLine]:
    lines = []
    for it in items or []:
        # accept pydantic payloads, dataclasses and plain dicts alike
        if isinstance(it, dict):
            menu_id, qty = it.get('menu_id'), it.get('quantity')
        else:
            menu_id, qty = getattr(it, 'menu_id', None), getattr(it, 'quantity', None)
        if menu_id is None:
            raise ValidationError("Every item needs a menu_id")
        try:
            menu_id, qty = int(menu_id), int(qty)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid menu or quantity for menu {menu_id}")
        if not 1 <= menu_id <= MAX_ID:
            raise ValidationError(f"Menu {menu_id} does not exist")
        if not 1 <= qty <= MAX_QUANTITY:
            raise ValidationError(f"Quantity for menu {menu_id} must be between 1 and {MAX_QUANTITY}")
        lines.append(OrderLine(menu_id=menu_id, quantity=qty))
    if not lines:
        raise ValidationError("An order needs at least one item")
    return lines


def _resolve_menus(db: Session, lines: List[OrderLine]) -> dict:
    ids = {ln.menu_id for ln in lines}
    menus = {m.id: m for m in db.query(Menu).filter(Menu.id.in_(ids)).all()}
    for menu_id in sorted(ids):
        menu = menus.get(menu_id)
        if menu is None:
            raise ValidationError(f"Menu {menu_id} does not exist")
        if not menu.is_available:
            raise ValidationError(f"Menu {menu.name} is not available")
    return menus


def _append_lines(order: Transaction, lines: List[OrderLine], menus: dict) -> List[TransactionItem]:
    added = []
    for ln in lines:
        menu = menus[ln.menu_id]
        item = TransactionItem(
            menu_id=menu.id,
            quantity=ln.quantity,
            price=int(menu.price),
            status=ItemStatus.active,
            is_printed=False,
        )
        order.items.append(item)
        added.append(item)
    return added


def _lock_order(db: Session, order_id: int) -> Transaction:
    """Load an order with a row lock so racing writers serialize on it."""
    order = (
        db.query(Transaction)
        .filter(Transaction.id == order_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def _ensure_open(order: Transaction, action: str = 'modified'):
    if order.status == TransactionStatus.paid:
        raise ConflictError(f"Order already closed: it is already paid and cannot be {action}")
    if order.status == TransactionStatus.cancelled:
        raise ConflictError(f"Order already closed: it is already cancelled and cannot be {action}")


def get_order(db: Session, order_id: int) -> Transaction:
    order = db.get(Transaction, order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def find_by_uuid(db: Session, uuid: Optional[str]) -> Optional[Transaction]:
    """The order a register already created under this client uuid, if any."""
    if not uuid:
        return None
    return db.query(Transaction).filter(Transaction.uuid == uuid).first()


def create_order(
    db: Session,
    customer_name: str,
    items: Iterable,
    ctx: Optional[PosContext] = None,
    uuid: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> ItemsResult:
    """Open a new unpaid order with its first items."""
    ctx = ctx or PosContext()
    name = (customer_name or '').strip()
    if not name:
        raise ValidationError("Customer name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Customer name is longer than {MAX_NAME_LENGTH} characters")
    lines = _as_lines(items)
    with unit_of_work(db):
        menus = _resolve_menus(db, lines)
        if uuid and db.query(Transaction.id).filter(Transaction.uuid == uuid).first():
            raise ConflictError(f"Order {uuid} already exists")
        order = Transaction(
            customer_name=name,
            user_id=ctx.cashier_id,
            status=TransactionStatus.unpaid,
            total_amount=0,
            created_at=to_utc_naive(created_at) or utc_now(),
        )
        if uuid:
            order.uuid = uuid
        db.add(order)
        added = _append_lines(order, lines, menus)
        try:
            db.flush()
        except IntegrityError:
            if not uuid:
                raise
            # lost a race with a retry of the same register order
            raise ConflictError(f"Order {uuid} already exists")
        order.recalculate_total()
    logger.info("order %s created for %r: %d item(s), total=%s", order.id, name, len(added), order.total_amount)
    return ItemsResult(order=order, added=added)


def add_items(db: Session, order_id: int, items: Iterable) -> ItemsResult:
    """Append add-on items to an unpaid order."""
    lines = _as_lines(items)
    with unit_of_work(db):
        order = _lock_order(db, order_id)
        _ensure_open(order)
        menus = _resolve_menus(db, lines)
        added = _append_lines(order, lines, menus)
        db.flush()
        order.recalculate_total()
    logger.info("order %s add-on: %d item(s), total=%s", order.id, len(added), order.total_amount)
    return ItemsResult(order=order, added=added)


def _load_item(db: Session, item_id: int) -> TransactionItem:
    item = db.get(TransactionItem, item_id)
    if item is None:
        raise NotFoundError(f"Item {item_id} not found")
    return item


def _void(order: Transaction, item: TransactionItem):
    if item.status == ItemStatus.void:
        raise ConflictError(f"Item {item.menu_name} was already voided")
    if order.status == TransactionStatus.paid:
        raise ConflictError("Cannot void an item on an order that is already paid")
    if order.status == TransactionStatus.cancelled:
        raise ConflictError("Cannot void an item on an order that is already cancelled")
    item.status = ItemStatus.void


def void_item(db: Session, item_id: int) -> VoidResult:
    """Void one active line of an unpaid order."""
    with unit_of_work(db):
        item = _load_item(db, item_id)
        order = _lock_order(db, item.transaction_id)
        db.refresh(item)
        _void(order, item)
        db.flush()
        order.recalculate_total()
    logger.info("order %s: item %s voided, total=%s", order.id, item.id, order.total_amount)
    return VoidResult(order=order, item=item)


def batch_void(db: Session, item_ids: Iterable[int]) -> List[VoidResult]:
    """Void several lines at once; any failure leaves every line untouched."""
    ids = list(dict.fromkeys(int(i) for i in item_ids or []))
    if not ids:
        raise ValidationError("No items selected")
    results = []
    with unit_of_work(db):
        items = [_load_item(db, item_id) for item_id in ids]
        orders = {}
        for order_id in sorted({it.transaction_id for it in items}):
            orders[order_id] = _lock_order(db, order_id)
        for item in items:
            db.refresh(item)
            _void(orders[item.transaction_id], item)
            results.append(VoidResult(order=orders[item.transaction_id], item=item))
        db.flush()
        for order in orders.values():
            order.recalculate_total()
    logger.info("batch void: %d item(s) across %d order(s)", len(ids), len(orders))
    return results


def recalculate_total(db: Session, order_id: int) -> int:
    with unit_of_work(db):
        order = _lock_order(db, order_id)
        total = order.recalculate_total()
    return total


def pay(db: Session, order_id: int, method, cash_received: Optional[int] = None) -> PaymentResult:
    """Close an unpaid order as paid.

    For cash with a tendered amount the change is computed and returned; it
    is never stored.
    """
    try:
        method = PaymentMethod(method)
    except ValueError:
        raise ValidationError(f"Unknown payment method {method!r}")
    change = None
    with unit_of_work(db):
        order = _lock_order(db, order_id)
        _ensure_open(order, action='paid')
        if method == PaymentMethod.cash:
            if cash_received is not None:
                cash_received = int(cash_received)
                if cash_received < int(order.total_amount):
                    raise ValidationError("Cash received is less than the order total")
                change = cash_received - int(order.total_amount)
            else:
                change = 0
        else:
            cash_received = None
        order.status = TransactionStatus.paid
        order.payment_method = method
        order.paid_at = utc_now()
        for item in order.items:
            item.is_printed = True
    logger.info("order %s paid by %s: total=%s change=%s", order.id, method.value, order.total_amount, change)
    return PaymentResult(order=order, payment_method=method, cash_received=cash_received, change=change)


def cancel(db: Session, order_id: int) -> Transaction:
    with unit_of_work(db):
        order = _lock_order(db, order_id)
        _ensure_open(order, action='cancelled')
        order.status = TransactionStatus.cancelled
    logger.info("order %s cancelled", order.id)
    return order


def mark_printed(db: Session, items: Iterable[TransactionItem]) -> None:
    """Flag lines as sent to the kitchen once their ticket went out."""
    with unit_of_work(db):
        for item in items:
            item.is_printed = True
