"""
Order lifecycle tests.

Exercise restopos.services.orders directly against the test database: the
total invariant, state transitions, cash handling and rollback behaviour.
"""
import pytest

from restopos.core.errors import ConflictError, NotFoundError, ValidationError
from restopos.models.transaction import PaymentMethod, Transaction, TransactionStatus
from restopos.models.transaction_item import ItemStatus, TransactionItem
from restopos.services import orders as order_service
from restopos.services import users as user_service


def _active_sum(order):
    return sum(it.subtotal for it in order.items if it.status == ItemStatus.active)


def _reload(db, order_id):
    db.expire_all()
    return order_service.get_order(db, order_id)


class TestScenarios:
    """The Budi walkthrough: create, add-on, void, pay, cancel after pay."""

    def test_full_walkthrough(self, db, menus):
        a, b = menus["A"], menus["B"]

        # A: create
        result = order_service.create_order(db, "Budi", [{"menu_id": a.id, "quantity": 2}])
        order = result.order
        assert order.total_amount == 32000
        assert order.status == TransactionStatus.unpaid
        assert len(order.active_items) == 1
        assert order.active_items[0].subtotal == 32000

        # B: add-on
        added = order_service.add_items(db, order.id, [{"menu_id": b.id, "quantity": 1}])
        assert added.order.total_amount == 40000
        assert len(added.order.active_items) == 2
        item_b = added.added[0]

        # C: void the add-on
        voided = order_service.void_item(db, item_b.id)
        assert voided.order.total_amount == 32000
        assert voided.item.status == ItemStatus.void
        assert len(voided.order.active_items) == 1

        # D: pay cash
        payment = order_service.pay(db, order.id, "cash", 40000)
        assert payment.order.status == TransactionStatus.paid
        assert payment.change == 8000
        assert all(it.is_printed for it in payment.order.items)

        # E: cancel after pay
        with pytest.raises(ConflictError):
            order_service.cancel(db, order.id)
        order = _reload(db, order.id)
        assert order.status == TransactionStatus.paid
        assert order.total_amount == 32000


class TestTotalInvariant:
    def test_total_matches_active_items_after_each_step(self, db, menus):
        a, b = menus["A"], menus["B"]
        order = order_service.create_order(
            db, "Sari", [{"menu_id": a.id, "quantity": 1}, {"menu_id": b.id, "quantity": 3}]
        ).order
        assert order.total_amount == _active_sum(order) == 40000

        order = order_service.add_items(db, order.id, [{"menu_id": a.id, "quantity": 2}]).order
        assert _reload(db, order.id).total_amount == _active_sum(order) == 72000

        first = order.items[0]
        order = order_service.void_item(db, first.id).order
        stored = _reload(db, order.id)
        assert stored.total_amount == _active_sum(stored) == 56000

    def test_subtotal_follows_quantity_and_price(self):
        item = TransactionItem(quantity=2, price=16000)
        assert item.subtotal == 32000
        item.quantity = 3
        assert item.subtotal == 48000
        item.price = 1000
        assert item.subtotal == 3000

    def test_recalculate_is_idempotent(self, db, menus):
        order = order_service.create_order(db, "Rina", [{"menu_id": menus["A"].id, "quantity": 2}]).order
        first = order_service.recalculate_total(db, order.id)
        second = order_service.recalculate_total(db, order.id)
        assert first == second == 32000

    def test_price_snapshot_survives_menu_price_change(self, db, menus):
        a = menus["A"]
        order = order_service.create_order(db, "Dewi", [{"menu_id": a.id, "quantity": 1}]).order

        a.price = 20000
        db.commit()

        order = order_service.add_items(db, order.id, [{"menu_id": a.id, "quantity": 1}]).order
        prices = [it.price for it in order.items]
        assert prices == [16000, 20000]
        assert order.total_amount == 36000


class TestCreateValidation:
    def test_empty_items_rejected(self, db, menus):
        with pytest.raises(ValidationError):
            order_service.create_order(db, "Budi", [])

    def test_blank_customer_rejected(self, db, menus):
        with pytest.raises(ValidationError):
            order_service.create_order(db, "   ", [{"menu_id": menus["A"].id, "quantity": 1}])

    def test_zero_quantity_rejected(self, db, menus):
        with pytest.raises(ValidationError):
            order_service.create_order(db, "Budi", [{"menu_id": menus["A"].id, "quantity": 0}])

    def test_unknown_menu_rolls_back_everything(self, db, menus):
        with pytest.raises(ValidationError):
            order_service.create_order(
                db, "Budi", [{"menu_id": menus["A"].id, "quantity": 1}, {"menu_id": 9999, "quantity": 1}]
            )
        assert db.query(Transaction).count() == 0
        assert db.query(TransactionItem).count() == 0

    def test_unavailable_menu_rejected(self, db, menus):
        with pytest.raises(ValidationError):
            order_service.create_order(db, "Budi", [{"menu_id": menus["C"].id, "quantity": 1}])
        assert db.query(Transaction).count() == 0

    def test_duplicate_uuid_conflicts(self, db, menus):
        line = [{"menu_id": menus["A"].id, "quantity": 1}]
        order_service.create_order(db, "Budi", line, uuid="11111111-2222-3333-4444-555555555555")
        with pytest.raises(ConflictError):
            order_service.create_order(db, "Budi", line, uuid="11111111-2222-3333-4444-555555555555")
        assert db.query(Transaction).count() == 1

    def test_cashier_is_attributed(self, db, menus):
        cashier = user_service.create_user(db, "Kasir Palur", "kasir@palur.com", "password", "cashier")
        ctx = order_service.PosContext.for_cashier(db, cashier.id)
        order = order_service.create_order(db, "Budi", [{"menu_id": menus["A"].id, "quantity": 1}], ctx=ctx).order
        assert order.user_id == cashier.id
        assert order_service.PosContext.for_order(_reload(db, order.id)).cashier_name == "Kasir Palur"

    def test_unknown_cashier_rejected(self, db):
        with pytest.raises(ValidationError):
            order_service.PosContext.for_cashier(db, 4242)

    def test_overlong_customer_rejected(self, db, menus):
        with pytest.raises(ValidationError, match="255"):
            order_service.create_order(db, "x" * 256, [{"menu_id": menus["A"].id, "quantity": 1}])

    @pytest.mark.parametrize("menu_id, qty", [(2 ** 70, 1), (-1, 1), (1, 10_000)])
    def test_out_of_range_lines_rejected(self, db, menus, menu_id, qty):
        with pytest.raises(ValidationError):
            order_service.create_order(db, "Budi", [{"menu_id": menu_id, "quantity": qty}])
        assert db.query(Transaction).count() == 0

    def test_find_by_uuid(self, db, menus):
        order = order_service.create_order(
            db, "Budi", [{"menu_id": menus["A"].id, "quantity": 1}], uuid="11111111-2222-3333-4444-555555555555"
        ).order
        assert order_service.find_by_uuid(db, "11111111-2222-3333-4444-555555555555").id == order.id
        assert order_service.find_by_uuid(db, "missing") is None
        assert order_service.find_by_uuid(db, None) is None


class TestClosedOrders:
    """Paid and cancelled orders reject every mutation and stay unchanged."""

    @pytest.fixture
    def paid_order(self, db, menus):
        order = order_service.create_order(db, "Budi", [{"menu_id": menus["A"].id, "quantity": 2}]).order
        order_service.pay(db, order.id, "qris")
        return order

    @pytest.fixture
    def cancelled_order(self, db, menus):
        order = order_service.create_order(db, "Budi", [{"menu_id": menus["A"].id, "quantity": 2}]).order
        order_service.cancel(db, order.id)
        return order

    @pytest.mark.parametrize("which", ["paid_order", "cancelled_order"])
    def test_mutations_rejected(self, request, db, menus, which):
        order = request.getfixturevalue(which)
        before = _reload(db, order.id)
        status, total = before.status, before.total_amount
        item_id = before.items[0].id

        with pytest.raises(ConflictError):
            order_service.add_items(db, order.id, [{"menu_id": menus["B"].id, "quantity": 1}])
        with pytest.raises(ConflictError):
            order_service.void_item(db, item_id)
        with pytest.raises(ConflictError):
            order_service.pay(db, order.id, "cash", 100000)
        with pytest.raises(ConflictError):
            order_service.cancel(db, order.id)

        after = _reload(db, order.id)
        assert after.status == status
        assert after.total_amount == total
        assert len(after.items) == 1

    def test_messages_name_the_closing_state(self, db, paid_order, cancelled_order):
        with pytest.raises(ConflictError, match="already paid"):
            order_service.cancel(db, paid_order.id)
        with pytest.raises(ConflictError, match="already cancelled"):
            order_service.cancel(db, cancelled_order.id)


class TestPayment:
    def test_change_is_tendered_minus_total(self, db, menus):
        order = order_service.create_order(db, "Budi", [{"menu_id": menus["A"].id, "quantity": 2}]).order
        payment = order_service.pay(db, order.id, PaymentMethod.cash, 50000)
        assert payment.change == 18000
        assert payment.cash_received == 50000
        stored = _reload(db, order.id)
        assert stored.payment_method == PaymentMethod.cash
        assert stored.paid_at is not None

    def test_insufficient_cash_leaves_order_unpaid(self, db, menus):
        order = order_service.create_order(db, "Budi", [{"menu_id": menus["A"].id, "quantity": 2}]).order
        with pytest.raises(ValidationError):
            order_service.pay(db, order.id, "cash", 30000)
        stored = _reload(db, order.id)
        assert stored.status == TransactionStatus.unpaid
        assert stored.payment_method is None
        assert stored.paid_at is None

    def test_cash_without_tender_gives_zero_change(self, db, menus):
        order = order_service.create_order(db, "Budi", [{"menu_id": menus["A"].id, "quantity": 1}]).order
        payment = order_service.pay(db, order.id, "cash")
        assert payment.change == 0
        assert payment.cash_received is None

    def test_non_cash_ignores_tender(self, db, menus):
        order = order_service.create_order(db, "Budi", [{"menu_id": menus["A"].id, "quantity": 1}]).order
        payment = order_service.pay(db, order.id, "transfer", 1000)
        assert payment.cash_received is None
        assert payment.change is None

    def test_unknown_method_rejected(self, db, menus):
        order = order_service.create_order(db, "Budi", [{"menu_id": menus["A"].id, "quantity": 1}]).order
        with pytest.raises(ValidationError):
            order_service.pay(db, order.id, "bitcoin")
        assert _reload(db, order.id).status == TransactionStatus.unpaid

    def test_missing_order(self, db):
        with pytest.raises(NotFoundError):
            order_service.pay(db, 12345, "cash")


class TestVoid:
    def test_double_void_conflicts(self, db, menus):
        order = order_service.create_order(db, "Budi", [{"menu_id": menus["A"].id, "quantity": 1}]).order
        item_id = order.items[0].id
        order_service.void_item(db, item_id)
        with pytest.raises(ConflictError, match="already voided"):
            order_service.void_item(db, item_id)

    def test_void_missing_item(self, db):
        with pytest.raises(NotFoundError):
            order_service.void_item(db, 777)

    def test_batch_void_across_orders(self, db, menus):
        a, b = menus["A"], menus["B"]
        first = order_service.create_order(db, "Budi", [{"menu_id": a.id, "quantity": 1}, {"menu_id": b.id, "quantity": 1}]).order
        second = order_service.create_order(db, "Sari", [{"menu_id": b.id, "quantity": 2}]).order

        results = order_service.batch_void(db, [first.items[1].id, second.items[0].id])
        assert len(results) == 2
        assert _reload(db, first.id).total_amount == 16000
        assert _reload(db, second.id).total_amount == 0

    def test_batch_void_is_all_or_nothing(self, db, menus):
        a, b = menus["A"], menus["B"]
        order = order_service.create_order(db, "Budi", [{"menu_id": a.id, "quantity": 1}, {"menu_id": b.id, "quantity": 1}]).order
        keep_id, gone_id = order.items[0].id, order.items[1].id
        order_service.void_item(db, gone_id)

        with pytest.raises(ConflictError):
            order_service.batch_void(db, [keep_id, gone_id])

        stored = _reload(db, order.id)
        assert db.get(TransactionItem, keep_id).status == ItemStatus.active
        assert stored.total_amount == 16000

    def test_batch_void_requires_ids(self, db):
        with pytest.raises(ValidationError):
            order_service.batch_void(db, [])
