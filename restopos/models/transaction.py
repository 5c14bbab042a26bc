import enum
import uuid

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from restopos.core.timezone_utils import utc_now
from restopos.db.session import Base


class TransactionStatus(str, enum.Enum):
    unpaid = "unpaid"
    paid = "paid"
    cancelled = "cancelled"


class PaymentMethod(str, enum.Enum):
    cash = "cash"
    qris = "qris"
    transfer = "transfer"


def _new_uuid() -> str:
    return str(uuid.uuid4())


class Transaction(Base):
    """One customer order.

    `total_amount` is derived: it always equals the sum of the active items'
    subtotals once a unit of work commits. Only restopos.services.orders
    writes it, through `recalculate_total`.
    """

    __tablename__ = 'transactions'
    __table_args__ = (
        Index('ix_transactions_status_created_at', 'status', 'created_at'),
    )

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_new_uuid)
    # cashier who took the order; kept nullable so deleting a user keeps history
    user_id = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    customer_name = Column(String(255), nullable=False, index=True)
    total_amount = Column(Integer, nullable=False, default=0)
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    status = Column(Enum(TransactionStatus), nullable=False, default=TransactionStatus.unpaid)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    items = relationship(
        'TransactionItem',
        back_populates='transaction',
        cascade='all, delete-orphan',
        lazy='selectin',
        order_by='TransactionItem.id',
    )
    user = relationship('User', viewonly=True)

    @property
    def active_items(self):
        return [it for it in self.items if it.status == 'active']

    @property
    def unprinted_items(self):
        return [it for it in self.active_items if not it.is_printed]

    @property
    def order_number(self) -> str:
        return self.uuid[:8] if self.uuid else str(self.id)

    def recalculate_total(self) -> int:
        """Recompute total_amount from active items; idempotent."""
        self.total_amount = sum(int(it.subtotal) for it in self.active_items)
        return self.total_amount
