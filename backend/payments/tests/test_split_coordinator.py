"""
Split coordinator tests: split payment and split invoice lifecycles driven
through one BillingContext.
"""
import pytest
from decimal import Decimal

from core_backend.exceptions import ConflictError, StateError, ValidationError
from customers.services import SplitGuest
from orders.services import OrderLedgerService
from payments.models import SessionInvoice
from payments.services import BillingContext, BillingMode, InvoiceService, PaymentService, SplitCoordinator
from tables.models import TableSession


@pytest.fixture
def fifty_thousand_invoice(session):
    """Invoice for exactly 50,000 (no tax or service charge)"""
    OrderLedgerService.create_order(session, [{'item_name': 'Paket Berdua', 'quantity': 1, 'unit_price': '50000'}])
    return InvoiceService.generate_invoice(session, tax_rate=0, service_charge_rate=0)


@pytest.fixture
def coordinator(session):
    return SplitCoordinator(BillingContext(session_id=str(session.id)))


AYU = SplitGuest(name='Ayu', phone='081211112222', email='ayu@example.com')
BUDI = SplitGuest(name='Budi', phone='081233334444', email='budi@example.com')
CITRA = SplitGuest(name='Citra', phone='081255556666', email='citra@example.com')


@pytest.mark.django_db
class TestSplitPayment:
    def test_two_payers(self, coordinator, fifty_thousand_invoice):
        """Scenario: two payers share 50,000; each pays 25,000."""
        ctx = coordinator.context
        coordinator.start_split_payment(fifty_thousand_invoice, 2)
        assert coordinator.suggested_amount() == Decimal('25000')

        coordinator.submit_payment('cash', Decimal('25000'))
        invoice = SessionInvoice.objects.get(pk=fifty_thousand_invoice.pk)
        assert invoice.status == SessionInvoice.InvoiceStatus.PARTIALLY_PAID
        assert ctx.reopen_payment_flow
        assert ctx.current_payer_number == 2

        coordinator.submit_payment('card', Decimal('25000'))
        invoice.refresh_from_db()
        assert invoice.amount_paid == Decimal('50000')
        assert invoice.status == SessionInvoice.InvoiceStatus.PAID
        assert ctx.mode == BillingMode.NONE
        assert not ctx.reopen_payment_flow

    def test_suggested_amount_rounds_up_and_last_payer_gets_rest(self, coordinator, fifty_thousand_invoice):
        coordinator.start_split_payment(fifty_thousand_invoice, 3)
        assert coordinator.suggested_amount() == Decimal('16667')

        coordinator.submit_payment('cash', Decimal('16667'))
        coordinator.submit_payment('cash', coordinator.suggested_amount())
        assert coordinator.suggested_amount() == Decimal('16666')

    def test_mode_resets_when_invoice_paid_early(self, coordinator, fifty_thousand_invoice):
        coordinator.start_split_payment(fifty_thousand_invoice, 3)

        coordinator.submit_payment('cash', Decimal('50000'))

        assert coordinator.context.mode == BillingMode.NONE

    def test_mode_resets_after_last_payer_even_if_unpaid(self, coordinator, fifty_thousand_invoice):
        coordinator.start_split_payment(fifty_thousand_invoice, 2)
        coordinator.submit_payment('cash', Decimal('10000'))
        coordinator.submit_payment('cash', Decimal('10000'))

        assert coordinator.context.mode == BillingMode.NONE
        fifty_thousand_invoice.refresh_from_db()
        assert fifty_thousand_invoice.status == SessionInvoice.InvoiceStatus.PARTIALLY_PAID

    def test_no_reentry_while_payment_in_flight(self, coordinator, fifty_thousand_invoice):
        coordinator.start_split_payment(fifty_thousand_invoice, 2)
        coordinator.context.payment_in_flight = True

        with pytest.raises(StateError) as exc_info:
            coordinator.submit_payment('cash', Decimal('25000'))
        assert exc_info.value.code == 'PaymentInFlight'
        assert fifty_thousand_invoice.payments.count() == 0

    def test_failed_payment_clears_in_flight_and_keeps_payer(self, coordinator, fifty_thousand_invoice):
        coordinator.start_split_payment(fifty_thousand_invoice, 2)

        with pytest.raises(ValidationError):
            coordinator.submit_payment('cash', Decimal('60000'))

        assert not coordinator.context.payment_in_flight
        assert coordinator.context.current_payer_number == 1

    def test_pay_in_full_leaves_split_payment(self, coordinator, fifty_thousand_invoice):
        coordinator.start_split_payment(fifty_thousand_invoice, 2)
        coordinator.submit_payment('cash', Decimal('20000'))

        coordinator.pay_in_full('card')

        fifty_thousand_invoice.refresh_from_db()
        assert fifty_thousand_invoice.status == SessionInvoice.InvoiceStatus.PAID
        assert coordinator.context.mode == BillingMode.NONE

    def test_split_needs_two_payers(self, coordinator, fifty_thousand_invoice):
        with pytest.raises(ValidationError):
            coordinator.start_split_payment(fifty_thousand_invoice, 1)


@pytest.mark.django_db
class TestGuestAssignment:
    def test_assign_and_find_open_slot(self, coordinator):
        coordinator.start_split_invoice(3)
        coordinator.assign_guest(0, AYU)
        coordinator.assign_guest(2, CITRA)

        assert coordinator.next_open_slot() == 1

        coordinator.unassign_guest(0)
        assert coordinator.next_open_slot() == 0

    def test_same_guest_twice_rejected(self, coordinator):
        coordinator.start_split_invoice(2)
        coordinator.assign_guest(0, AYU)

        with pytest.raises(ConflictError) as exc_info:
            coordinator.assign_guest(1, SplitGuest(name='Ayu L', email='ayu@example.com'))
        assert exc_info.value.code == 'GuestAlreadyAssigned'

    def test_invalid_slot(self, coordinator):
        coordinator.start_split_invoice(2)
        with pytest.raises(ValidationError):
            coordinator.assign_guest(5, AYU)

    def test_growing_keeps_assignments(self, coordinator):
        coordinator.start_split_invoice(2)
        coordinator.assign_guest(0, AYU)

        slots = coordinator.resize_split(4)

        assert slots == [AYU, None, None, None]

    def test_shrinking_over_assigned_slots_refused(self, coordinator):
        coordinator.start_split_invoice(3)
        coordinator.assign_guest(0, AYU)
        coordinator.assign_guest(2, CITRA)

        with pytest.raises(ConflictError) as exc_info:
            coordinator.resize_split(2)
        assert exc_info.value.code == 'AssignmentsWouldBeDropped'
        assert coordinator.context.guest_slots == [AYU, None, CITRA]

    def test_shrinking_with_truncate(self, coordinator):
        coordinator.start_split_invoice(3)
        coordinator.assign_guest(0, AYU)
        coordinator.assign_guest(2, CITRA)

        assert coordinator.resize_split(2, truncate=True) == [AYU, None]
        assert coordinator.context.split_payers_count == 2

    def test_shrinking_empty_slots_needs_no_truncate(self, coordinator):
        coordinator.start_split_invoice(3)
        coordinator.assign_guest(0, AYU)

        assert coordinator.resize_split(2) == [AYU, None]


@pytest.mark.django_db
class TestSplitInvoice:
    def test_generation_blocked_until_all_slots_filled(self, coordinator, billed_session):
        coordinator.start_split_invoice(3)
        coordinator.assign_guest(0, AYU)
        coordinator.assign_guest(1, BUDI)

        with pytest.raises(ValidationError) as exc_info:
            coordinator.generate_split_invoices(billed_session)
        assert exc_info.value.code == 'IncompleteAssignment'
        assert billed_session.invoices.count() == 0

    def test_selection_advances_to_next_unpaid(self, coordinator, billed_session):
        coordinator.start_split_invoice(3)
        for slot, guest in enumerate([AYU, BUDI, CITRA]):
            coordinator.assign_guest(slot, guest)

        invoices = coordinator.generate_split_invoices(billed_session, tax_rate=0, service_charge_rate=0)
        assert [inv.total_amount for inv in invoices] == [Decimal('33334'), Decimal('33333'), Decimal('33333')]
        assert coordinator.selected_invoice().pk == invoices[0].pk

        coordinator.submit_payment('cash', Decimal('33334'))
        assert coordinator.context.selected_invoice_index == 1

        coordinator.submit_payment('card', Decimal('10000'))
        assert coordinator.context.selected_invoice_index == 1

        coordinator.select_invoice(2)
        coordinator.submit_payment('qris', Decimal('33333'))
        assert coordinator.context.selected_invoice_index == 1

        coordinator.submit_payment('card', Decimal('23333'))
        billed_session.refresh_from_db()
        assert billed_session.status == TableSession.SessionStatus.PAID

    def test_use_invoices_after_reload(self, coordinator, billed_session, split_guests):
        invoices = InvoiceService.generate_split_invoices(billed_session, 3, split_guests)
        PaymentService.process_payment(invoices[0], 'cash', invoices[0].total_amount)

        coordinator.use_invoices(invoices)

        assert coordinator.context.mode == BillingMode.SPLIT_INVOICE
        assert coordinator.selected_invoice().pk == invoices[1].pk

    def test_invalid_selection(self, coordinator, billed_session, split_guests):
        coordinator.use_invoices(InvoiceService.generate_split_invoices(billed_session, 3, split_guests))
        with pytest.raises(ValidationError):
            coordinator.select_invoice(3)
