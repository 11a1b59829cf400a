"""
Reload-on-notify subscriptions: every committed write to a session reloads
the whole session for its subscribers.
"""
import pytest
from unittest.mock import Mock

from core_backend.exceptions import NotFoundError
from orders.services import OrderLedgerService
from payments.services import InvoiceService
from tables import subscriptions
from tables.models import TableSession
from tables.services import SessionService

KERUPUK = {'item_name': 'Kerupuk', 'quantity': 1, 'unit_price': '5000'}


@pytest.mark.django_db
class TestSessionSubscriptions:
    def test_order_write_reloads_full_session(self, session, django_capture_on_commit_callbacks):
        seen = []
        subscriptions.subscribe(session.id, seen.append)

        with django_capture_on_commit_callbacks(execute=True):
            OrderLedgerService.create_order(session, [KERUPUK])

        assert seen
        latest = seen[-1]
        assert isinstance(latest, TableSession)
        orders = list(latest.orders.all())
        assert len(orders) == 1
        assert [item.item_name for item in orders[0].items.all()] == ['Kerupuk']

    def test_nothing_is_dispatched_before_commit(self, session, django_capture_on_commit_callbacks):
        callback = Mock()
        subscriptions.subscribe(session.id, callback)

        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            OrderLedgerService.create_order(session, [KERUPUK])

        assert callbacks
        callback.assert_not_called()

    def test_invoice_generation_notifies(self, billed_session, django_capture_on_commit_callbacks):
        seen = []
        subscriptions.subscribe(billed_session.id, seen.append)

        with django_capture_on_commit_callbacks(execute=True):
            InvoiceService.generate_invoice(billed_session)

        assert seen[-1].status == TableSession.SessionStatus.BILLING
        assert len(seen[-1].invoices.all()) == 1

    def test_other_sessions_are_not_reloaded(self, session, venue_id, django_capture_on_commit_callbacks):
        other = SessionService.open_session(venue_id=venue_id, guest_name='Other').value
        callback = Mock()
        subscriptions.subscribe(other.id, callback)

        with django_capture_on_commit_callbacks(execute=True):
            OrderLedgerService.create_order(session, [KERUPUK])

        callback.assert_not_called()

    def test_closed_subscription_stops_receiving(self, session):
        callback = Mock()
        subscription = subscriptions.subscribe(session.id, callback)
        subscription.close()

        assert subscriptions.dispatch(session.id, 'test') == 0
        callback.assert_not_called()

    def test_failing_subscriber_does_not_affect_others(self, session):
        healthy = Mock()
        subscriptions.subscribe(session.id, Mock(side_effect=RuntimeError('render failed')))
        subscriptions.subscribe(session.id, healthy)

        assert subscriptions.dispatch(session.id, 'test') == 1
        healthy.assert_called_once()

    def test_missing_session_is_skipped(self, session):
        callback = Mock()
        loader = Mock(side_effect=NotFoundError('SessionNotFound', 'gone'))
        subscription = subscriptions.subscribe(session.id, callback, loader=loader)

        assert subscription.reload() is None
        callback.assert_not_called()
