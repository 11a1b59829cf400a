"""
Order ledger tests: adding, editing in place, diff-and-apply edits, and
kitchen/bar status progress.
"""
import pytest
from decimal import Decimal

from core_backend.exceptions import InvalidQuantity, StateError, ValidationError
from orders.models import OrderStatus, SessionOrderItem
from orders.services import CartLine, OrderLedgerService
from tables.services import SessionService


def _cart_from(order):
    return [CartLine.from_item(item) for item in order.items.order_by('created_at')]


@pytest.mark.django_db
class TestCreateOrder:
    def test_order_numbers_are_sequential_per_session(self, session):
        first = OrderLedgerService.create_order(session, [{'item_name': 'Kopi', 'quantity': 1, 'unit_price': '20000'}])
        second = OrderLedgerService.create_order(session, [{'item_name': 'Teh', 'quantity': 1, 'unit_price': '10000'}])

        assert (first.order_number, second.order_number) == (1, 2)

    def test_empty_order_rejected(self, session):
        with pytest.raises(ValidationError) as exc_info:
            OrderLedgerService.create_order(session, [])
        assert exc_info.value.code == 'EmptyOrder'

    def test_zero_quantity_rejected(self, session):
        with pytest.raises(InvalidQuantity):
            OrderLedgerService.create_order(session, [{'item_name': 'Kopi', 'quantity': 0, 'unit_price': '20000'}])

    def test_locked_session_rejects_orders(self, session):
        session.status = session.SessionStatus.CLOSED
        session.save()

        with pytest.raises(StateError) as exc_info:
            OrderLedgerService.create_order(session, [{'item_name': 'Kopi', 'quantity': 1, 'unit_price': '20000'}])
        assert exc_info.value.code == 'SessionLocked'


@pytest.mark.django_db
class TestItemEdits:
    def test_add_items_returns_order_items(self, order):
        items = OrderLedgerService.add_items(order, [{'item_name': 'Kerupuk', 'quantity': 3, 'unit_price': '5000'}])
        assert len(items) == 3
        assert items[-1].item_name == 'Kerupuk'

    def test_update_quantity_in_place(self, order):
        item = order.items.get(item_name='Es Teh')
        OrderLedgerService.update_item_quantity(item, 4)

        item.refresh_from_db()
        assert item.quantity == 4
        assert item.line_total == Decimal('60000')

    @pytest.mark.parametrize('quantity', [0, -1, '0', 'abc', 1.5])
    def test_quantity_below_one_is_invalid(self, order, quantity):
        item = order.items.first()
        with pytest.raises(InvalidQuantity) as exc_info:
            OrderLedgerService.update_item_quantity(item, quantity)
        assert exc_info.value.code == 'InvalidQuantity'

    def test_item_past_pending_is_locked(self, order):
        item = order.items.get(item_name='Nasi Goreng')
        OrderLedgerService.update_item_status(item, OrderStatus.PREPARING)

        with pytest.raises(StateError) as exc_info:
            OrderLedgerService.update_item_quantity(item, 3)
        assert exc_info.value.code == 'ItemLocked'

    def test_delete_is_a_soft_cancel(self, order, session):
        item = order.items.get(item_name='Es Teh')
        OrderLedgerService.delete_item(item)

        item.refresh_from_db()
        assert item.status == OrderStatus.CANCELLED
        assert SessionOrderItem.objects.filter(pk=item.pk).exists()
        assert [i.item_name for i in SessionService.billable_items(session)] == ['Nasi Goreng']

    def test_served_item_cannot_be_deleted(self, order):
        item = order.items.get(item_name='Es Teh')
        OrderLedgerService.update_item_status(item, OrderStatus.SERVED)

        with pytest.raises(StateError) as exc_info:
            OrderLedgerService.delete_item(item)
        assert exc_info.value.code == 'ItemLocked'


@pytest.mark.django_db
class TestItemStatus:
    def test_serving_stamps_served_at(self, order):
        item = order.items.first()
        OrderLedgerService.update_item_status(item, OrderStatus.SERVED)

        item.refresh_from_db()
        assert item.served_at is not None

    def test_order_follows_when_all_items_served(self, order):
        for item in order.items.all():
            OrderLedgerService.update_item_status(item, OrderStatus.SERVED)

        order.refresh_from_db()
        assert order.status == OrderStatus.SERVED

    def test_served_cannot_go_back(self, order):
        item = order.items.first()
        OrderLedgerService.update_item_status(item, OrderStatus.SERVED)

        with pytest.raises(StateError) as exc_info:
            OrderLedgerService.update_item_status(item, OrderStatus.PREPARING)
        assert exc_info.value.code == 'InvalidTransition'

    def test_cancel_order_cancels_items(self, order):
        OrderLedgerService.cancel_order(order)

        assert set(order.items.values_list('status', flat=True)) == {OrderStatus.CANCELLED}

    def test_cancel_order_with_served_items_refused(self, order):
        OrderLedgerService.update_item_status(order.items.first(), OrderStatus.SERVED)

        with pytest.raises(StateError) as exc_info:
            OrderLedgerService.cancel_order(order)
        assert exc_info.value.code == 'ItemLocked'


@pytest.mark.django_db
class TestReconcileEdit:
    def test_unchanged_cart_is_a_no_op(self, order):
        """Reconciling an order against its own items produces no operations."""
        before = {item.pk: item.updated_at for item in order.items.all()}

        plan = OrderLedgerService.reconcile_edit(order, _cart_from(order))

        assert plan.is_empty
        assert plan.operation_count == 0
        assert {item.pk: item.updated_at for item in order.items.all()} == before

    def test_plan_has_minimal_operations(self, order):
        nasi, teh = order.items.get(item_name='Nasi Goreng'), order.items.get(item_name='Es Teh')
        desired = [
            {'existing_item_id': str(nasi.id), 'item_name': 'Nasi Goreng', 'quantity': 3, 'unit_price': '35000'},
            {'item_name': 'Kerupuk', 'quantity': 1, 'unit_price': '5000'},
        ]

        plan = OrderLedgerService.reconcile_edit(order, desired)

        assert plan.deletes == [str(teh.id)]
        assert plan.updates == [(str(nasi.id), 3)]
        assert [line.item_name for line in plan.creates] == ['Kerupuk']

        teh.refresh_from_db()
        nasi.refresh_from_db()
        assert teh.status == OrderStatus.CANCELLED
        assert nasi.quantity == 3

    def test_second_run_with_same_cart_does_nothing(self, order):
        nasi = order.items.get(item_name='Nasi Goreng')
        desired = [{'existing_item_id': str(nasi.id), 'item_name': 'Nasi Goreng', 'quantity': 1, 'unit_price': '35000'}]

        OrderLedgerService.reconcile_edit(order, desired)
        plan = OrderLedgerService.reconcile_edit(order, desired)

        assert plan.is_empty

    def test_unknown_item_rejected_before_any_write(self, order):
        desired = _cart_from(order) + [
            {'existing_item_id': '00000000-0000-0000-0000-000000000000', 'item_name': 'X', 'quantity': 1,
             'unit_price': '1'},
        ]

        with pytest.raises(ValidationError) as exc_info:
            OrderLedgerService.reconcile_edit(order, desired)
        assert exc_info.value.code == 'UnknownItem'

    def test_removing_served_item_fails_atomically(self, order):
        nasi, teh = order.items.get(item_name='Nasi Goreng'), order.items.get(item_name='Es Teh')
        OrderLedgerService.update_item_status(teh, OrderStatus.SERVED)
        desired = [{'existing_item_id': str(nasi.id), 'item_name': 'Nasi Goreng', 'quantity': 5, 'unit_price': '35000'}]

        with pytest.raises(StateError):
            OrderLedgerService.reconcile_edit(order, desired)

        nasi.refresh_from_db()
        assert nasi.quantity == 2

    def test_invalid_quantity_in_cart(self, order):
        nasi = order.items.get(item_name='Nasi Goreng')
        desired = [{'existing_item_id': str(nasi.id), 'item_name': 'Nasi Goreng', 'quantity': 0, 'unit_price': '35000'}]

        with pytest.raises(InvalidQuantity):
            OrderLedgerService.reconcile_edit(order, desired)
