"""
Table session lifecycle.

    (unopened) -> open -> billing -> paid -> closed

Items and orders can only change while a session is open or billing. The
first invoice moves it to billing; once every active invoice is paid the
session is observed as paid, and only a paid session can be closed.
"""

from decimal import Decimal
from typing import List, Optional

from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone
import logging

from core_backend.exceptions import (
    InvalidTransition,
    NotFoundError,
    StateError,
    ValidationError,
    upstream_guard,
)
from core_backend.infrastructure import notifications
from core_backend.results import ServiceResult, run_best_effort
from customers.models import Booking
from orders.models import OrderStatus, SessionOrder, SessionOrderItem
from payments.models import SessionInvoice
from payments.money import format_money
from .models import Table, TableSession

logger = logging.getLogger(__name__)

Status = TableSession.SessionStatus


class SessionService:
    """
    Session service with formal state transition management.
    """

    VALID_TRANSITIONS = {
        Status.OPEN: [Status.BILLING],
        Status.BILLING: [Status.PAID],
        Status.PAID: [Status.CLOSED, Status.BILLING],
        Status.CLOSED: [],  # Terminal state
    }

    @staticmethod
    def _transition(session: TableSession, target: str, **extra_fields) -> TableSession:
        """
        Moves a session to a new status after validating the transition.

        Raises:
            InvalidTransition: If the move is not allowed from the current status
        """
        if target not in SessionService.VALID_TRANSITIONS.get(session.status, []):
            raise InvalidTransition("session", session.status, target)

        old_status = session.status
        session.status = target
        for name, value in extra_fields.items():
            setattr(session, name, value)
        session.save(update_fields=["status", "updated_at", *extra_fields.keys()])

        logger.info(f"TableSession {session.id}: Status transition {old_status} -> {target}")
        return session

    # --- Opening -------------------------------------------------------

    @staticmethod
    def open_session(
        venue_id,
        guest_count: int = 1,
        guest_name: Optional[str] = None,
        table: Optional[Table] = None,
        booking: Optional[Booking] = None,
        package_purchase_ref: Optional[str] = None,
        notes: str = "",
        opened_by=None,
    ) -> ServiceResult:
        """
        Seats a party. The session row is the primary outcome; marking the table
        occupied and checking the booking in are advisory and never block it.

        Raises:
            ValidationError: MissingGuest when neither a guest name nor a booking
                with a guest name is supplied; InvalidGuestCount when < 1
        """
        name = (guest_name or "").strip()
        if not name and booking is not None:
            name = (booking.guest_name or "").strip()
        if not name:
            raise ValidationError("MissingGuest", "A guest name or a booking is required to open a session")

        try:
            guest_count = int(guest_count)
        except (TypeError, ValueError):
            guest_count = 0
        if guest_count < 1:
            raise ValidationError("InvalidGuestCount", "Guest count must be at least 1")

        with upstream_guard("Opening the table session"):
            with transaction.atomic():
                session = TableSession.objects.create(
                    venue_id=venue_id,
                    table=table,
                    booking=booking,
                    package_purchase_ref=package_purchase_ref or None,
                    guest_count=guest_count,
                    guest_name=name,
                    notes=notes or "",
                    status=Status.OPEN,
                    opened_by=opened_by,
                )

        logger.info(
            f"TableSession {session.id} opened for {name} ({guest_count} guests) "
            f"at {'table ' + table.table_number if table else 'walk-in'}"
        )
        result = ServiceResult(value=session)

        if table is not None:
            run_best_effort(
                "mark_table_occupied",
                lambda: SessionService._set_table_status(table, Table.TableStatus.OCCUPIED),
                result,
            )
        if booking is not None:
            run_best_effort("check_in_booking", lambda: SessionService._check_in_booking(booking), result)

        notifications.notify(session.id, notifications.SUCCESS, f"Session opened for {name}")
        return result

    @staticmethod
    def _set_table_status(table: Table, status: str) -> None:
        table.status = status
        table.save(update_fields=["status"])
        logger.info(f"Table {table.table_number}: status -> {status}")

    @staticmethod
    def _check_in_booking(booking: Booking) -> None:
        booking.status = Booking.BookingStatus.SEATED
        if booking.checked_in_at is None:
            booking.checked_in_at = timezone.now()
        booking.save(update_fields=["status", "checked_in_at"])
        logger.info(f"Booking {booking.id} seated")

    # --- Queries -------------------------------------------------------

    @staticmethod
    def load_session(session_id) -> TableSession:
        """The session with its orders, items, invoices and payments prefetched."""
        orders = SessionOrder.objects.order_by("order_number").prefetch_related(
            Prefetch("items", queryset=SessionOrderItem.objects.order_by("created_at"))
        )
        invoices = SessionInvoice.objects.order_by("generated_at", "split_number").prefetch_related("payments")
        try:
            return (
                TableSession.objects.select_related("table", "booking")
                .prefetch_related(Prefetch("orders", queryset=orders), Prefetch("invoices", queryset=invoices))
                .get(pk=session_id)
            )
        except TableSession.DoesNotExist:
            raise NotFoundError("SessionNotFound", f"Table session {session_id} not found")

    @staticmethod
    def billable_items(session: TableSession):
        """Non-cancelled items of non-cancelled orders."""
        return (
            SessionOrderItem.objects.filter(order__session=session)
            .exclude(status=OrderStatus.CANCELLED)
            .exclude(order__status=OrderStatus.CANCELLED)
            .select_related("order")
            .order_by("order__order_number", "created_at")
        )

    @staticmethod
    def active_invoices(session: TableSession) -> List[SessionInvoice]:
        return list(
            SessionInvoice.objects.filter(session=session)
            .exclude(status=SessionInvoice.InvoiceStatus.VOID)
            .order_by("generated_at", "split_number")
        )

    @staticmethod
    def outstanding_balance(session: TableSession) -> Decimal:
        return sum((invoice.balance_due for invoice in SessionService.active_invoices(session)), Decimal("0"))

    @staticmethod
    def ensure_mutable(session: TableSession) -> None:
        """
        Raises:
            StateError: SessionLocked unless the session is open or billing
        """
        if not session.is_mutable:
            raise StateError(
                "SessionLocked",
                f"Session is {session.status}; orders and invoices can no longer change",
                status=session.status,
            )

    # --- Billing state -------------------------------------------------

    @staticmethod
    def mark_billing(session: TableSession) -> TableSession:
        """First invoice generation moves an open session to billing."""
        if session.status == Status.OPEN:
            SessionService._transition(session, Status.BILLING)
        return session

    @staticmethod
    def sync_settlement(session: TableSession) -> TableSession:
        """
        Observes settlement: a billing session whose active invoices are all paid
        becomes paid, and a paid session that is left with nothing settled
        (an invoice was voided) goes back to billing. Safe to call any number
        of times.
        """
        session.refresh_from_db(fields=["status"])
        if session.status not in (Status.BILLING, Status.PAID):
            return session

        invoices = SessionService.active_invoices(session)
        settled = bool(invoices) and all(inv.status == SessionInvoice.InvoiceStatus.PAID for inv in invoices)
        if session.status == Status.BILLING and settled:
            SessionService._transition(session, Status.PAID)
            transaction.on_commit(
                lambda: notifications.notify(session.id, notifications.SUCCESS, "All invoices settled")
            )
        elif session.status == Status.PAID and not settled:
            SessionService._transition(session, Status.BILLING)
        return session

    # --- Closing -------------------------------------------------------

    @staticmethod
    def close_session(session: TableSession, closed_by=None) -> ServiceResult:
        """
        Archives a settled session. Freeing the table is advisory.

        Raises:
            StateError: NotSettled while any active invoice has a balance;
                InvalidTransition if the session is not paid
        """
        SessionService.sync_settlement(session)

        outstanding = SessionService.outstanding_balance(session)
        if outstanding > 0:
            raise StateError(
                "NotSettled",
                f"Cannot close session: {format_money(None, outstanding)} is still outstanding",
                outstanding=outstanding,
            )
        if session.status != Status.PAID:
            raise InvalidTransition(
                "session",
                session.status,
                Status.CLOSED,
                message=f"Cannot close a session that is {session.status}; settle its invoices first",
            )

        with upstream_guard("Closing the table session"):
            with transaction.atomic():
                SessionService._transition(
                    session, Status.CLOSED, closed_at=timezone.now(), closed_by=closed_by
                )

        result = ServiceResult(value=session)
        if session.table_id:
            run_best_effort("release_table", lambda: SessionService._release_table(session), result)

        notifications.notify(session.id, notifications.SUCCESS, "Session closed")
        return result

    @staticmethod
    def _release_table(session: TableSession) -> None:
        still_seated = (
            TableSession.objects.filter(table_id=session.table_id, status__in=TableSession.MUTABLE_STATUSES)
            .exclude(pk=session.pk)
            .exists()
        )
        if still_seated:
            logger.info(f"Table {session.table_id} still has an active session; leaving it occupied")
            return
        SessionService._set_table_status(session.table, Table.TableStatus.AVAILABLE)

    # --- Deposits ------------------------------------------------------

    @staticmethod
    def deposit_credit_for(session: TableSession) -> Decimal:
        from payments.services import DepositService

        return DepositService.credit_for_session(session)
