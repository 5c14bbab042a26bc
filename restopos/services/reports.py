"""Read-only aggregation over orders: dashboard, reports, history."""
from datetime import date, timedelta
import math
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from restopos.core.timezone_utils import local_day_range_to_utc, local_range_to_utc, to_local, today_local
from restopos.models.menu import Menu
from restopos.models.transaction import PaymentMethod, Transaction, TransactionStatus
from restopos.models.transaction_item import ItemStatus, TransactionItem


def _paid_between(db: Session, start_utc, end_utc):
    return db.query(Transaction).filter(
        Transaction.status == TransactionStatus.paid,
        Transaction.created_at >= start_utc,
        Transaction.created_at < end_utc,
    )


def _revenue(q) -> int:
    total = q.with_entities(func.coalesce(func.sum(Transaction.total_amount), 0)).scalar()
    return int(total or 0)


def _method_key(method) -> str:
    if method is None:
        return 'unknown'
    return method.value if hasattr(method, 'value') else str(method)


def _method_breakdown(db: Session, start_utc, end_utc):
    rows = (
        _paid_between(db, start_utc, end_utc)
        .with_entities(
            Transaction.payment_method,
            func.count(Transaction.id),
            func.coalesce(func.sum(Transaction.total_amount), 0),
        )
        .group_by(Transaction.payment_method)
        .all()
    )
    return [(_method_key(method), int(count or 0), int(total or 0)) for method, count, total in rows]


def _menu_sales(db: Session, start_utc, end_utc, descending: bool = True, limit: int = 5):
    total_qty = func.sum(TransactionItem.quantity)
    q = (
        db.query(Menu.name, total_qty.label('total_qty'), func.sum(TransactionItem.subtotal).label('total_revenue'))
        .join(TransactionItem, TransactionItem.menu_id == Menu.id)
        .join(Transaction, TransactionItem.transaction_id == Transaction.id)
        .filter(
            Transaction.status == TransactionStatus.paid,
            TransactionItem.status == ItemStatus.active,
            Transaction.created_at >= start_utc,
            Transaction.created_at < end_utc,
        )
        .group_by(Menu.id, Menu.name)
        .order_by(total_qty.desc() if descending else total_qty.asc(), Menu.name.asc())
        .limit(limit)
    )
    return [(name, int(qty or 0), int(revenue or 0)) for name, qty, revenue in q.all()]


def today_orders(db: Session, status: TransactionStatus, day: Optional[date] = None):
    start_utc, end_utc = local_day_range_to_utc(day or today_local())
    return (
        db.query(Transaction)
        .filter(
            Transaction.status == status,
            Transaction.created_at >= start_utc,
            Transaction.created_at < end_utc,
        )
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )


def dashboard(db: Session, day: Optional[date] = None) -> dict:
    """Today's figures, a 7-day revenue chart and the 30-day best sellers."""
    day = day or today_local()
    start_utc, end_utc = local_day_range_to_utc(day)
    today_q = _paid_between(db, start_utc, end_utc)

    methods = {m.value: {'count': 0, 'total': 0} for m in PaymentMethod}
    for key, count, total in _method_breakdown(db, start_utc, end_utc):
        methods[key] = {'count': count, 'total': total}

    labels, data = [], []
    for offset in range(6, -1, -1):
        d = day - timedelta(days=offset)
        d_start, d_end = local_day_range_to_utc(d)
        labels.append(d.strftime('%a'))
        data.append(_revenue(_paid_between(db, d_start, d_end)))

    top_start, _ = local_day_range_to_utc(day - timedelta(days=30))
    top_items = [
        {'name': name, 'total_qty': qty, 'total_revenue': revenue}
        for name, qty, revenue in _menu_sales(db, top_start, end_utc)
    ]

    recent = (
        db.query(Transaction)
        .filter(Transaction.status == TransactionStatus.paid)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(5)
        .all()
    )

    return {
        'stats': {
            'today_revenue': _revenue(today_q),
            'today_count': today_q.count(),
            'active_orders': len(today_orders(db, TransactionStatus.unpaid, day)),
            'payment_methods': methods,
        },
        'chart': {'labels': labels, 'data': data},
        'top_items': top_items,
        'recent_transactions': recent,
    }


def report_summary(db: Session, start_day: date, end_day: date) -> dict:
    """Hourly trend, payment split, best/worst sellers and totals for a range."""
    start_utc, end_utc = local_range_to_utc(start_day, end_day)
    paid_q = _paid_between(db, start_utc, end_utc)

    # bucket by local hour in Python; HOUR() differs across SQL dialects
    hourly = [0] * 24
    for (created_at,) in paid_q.with_entities(Transaction.created_at).all():
        local = to_local(created_at)
        if local is not None:
            hourly[local.hour] += 1

    count = paid_q.count()
    revenue = _revenue(paid_q)

    return {
        'hourlyTrend': [{'hour': f"{h:02d}:00", 'count': hourly[h]} for h in range(24)],
        'paymentMethods': [
            {'method': key, 'count': c, 'total': t}
            for key, c, t in _method_breakdown(db, start_utc, end_utc)
        ],
        'topMenus': [{'name': n, 'total_sold': q} for n, q, _ in _menu_sales(db, start_utc, end_utc)],
        'bottomMenus': [
            {'name': n, 'total_sold': q}
            for n, q, _ in _menu_sales(db, start_utc, end_utc, descending=False)
        ],
        'summary': {
            'total_transactions': count,
            'total_revenue': revenue,
            'average_order': (revenue / count) if count else 0.0,
        },
        'filters': {'start_date': start_day, 'end_date': end_day},
    }


def history(db: Session, day: date, search: Optional[str] = None, page: int = 1, per_page: int = 15) -> dict:
    """Paid orders of one local day, newest first, paginated."""
    start_utc, end_utc = local_day_range_to_utc(day)
    q = _paid_between(db, start_utc, end_utc)
    if search:
        q = q.filter(func.lower(Transaction.customer_name).like(f"%{search.lower()}%"))
    total = q.count()
    page = max(int(page or 1), 1)
    rows = (
        q.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return {
        'data': rows,
        'current_page': page,
        'per_page': per_page,
        'total': total,
        'last_page': max(math.ceil(total / per_page), 1),
        'filters': {'date': day, 'search': search or None},
    }


def transactions_in_range(db: Session, start_day: date, end_day: date, paid_only: bool = True):
    start_utc, end_utc = local_range_to_utc(start_day, end_day)
    q = db.query(Transaction).filter(Transaction.created_at >= start_utc, Transaction.created_at < end_utc)
    if paid_only:
        q = q.filter(Transaction.status == TransactionStatus.paid)
    return q.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()
