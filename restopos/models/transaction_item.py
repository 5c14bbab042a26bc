import enum

from sqlalchemy import Column, Integer, Boolean, DateTime, Enum, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship, validates
from restopos.core.timezone_utils import utc_now
from restopos.db.session import Base


class ItemStatus(str, enum.Enum):
    active = "active"
    void = "void"


class TransactionItem(Base):
    __tablename__ = 'transaction_items'
    __table_args__ = (
        Index('ix_transaction_items_transaction_printed', 'transaction_id', 'is_printed'),
        CheckConstraint('quantity >= 1', name='ck_transaction_items_quantity'),
        CheckConstraint('price >= 0', name='ck_transaction_items_price'),
    )

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey('transactions.id', ondelete='CASCADE'), nullable=False)
    menu_id = Column(Integer, ForeignKey('menus.id', ondelete='SET NULL'), nullable=True)
    quantity = Column(Integer, nullable=False)
    # snapshot of the menu price when the line was added
    price = Column(Integer, nullable=False)
    # always quantity * price; written only by _sync_subtotal
    subtotal = Column(Integer, nullable=False, default=0)
    status = Column(Enum(ItemStatus), nullable=False, default=ItemStatus.active)
    # whether the line already went out on a kitchen ticket
    is_printed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utc_now)

    transaction = relationship('Transaction', back_populates='items')
    menu = relationship('Menu', lazy='joined', viewonly=True)

    @validates('quantity', 'price')
    def _sync_subtotal(self, key, value):
        value = int(value)
        quantity = value if key == 'quantity' else self.quantity
        price = value if key == 'price' else self.price
        if quantity is not None and price is not None:
            self.subtotal = int(quantity) * int(price)
        return value

    @property
    def menu_name(self) -> str:
        return self.menu.name if self.menu is not None else 'Item'
