"""
Invoice generation: commits the current billable surface of a table session
into one invoice, or into N split invoices tagged to guests.
"""

from decimal import Decimal
from typing import List, Optional, Sequence

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
import logging

from core_backend.exceptions import (
    ConflictError,
    StateError,
    ValidationError,
    upstream_guard,
)
from core_backend.infrastructure import notifications
from core_backend.results import run_best_effort
from customers.services import SplitGuest
from discounts.services import AppliedPromo, PromoService
from discounts.strategies import Adjustment
from orders.calculators import BillTotals, InvoiceCalculator
from payments.models import InvoiceSequence, SessionInvoice
from payments.money import (
    default_currency,
    format_money,
    from_minor,
    split_evenly,
    to_minor,
    validate_minor_sum,
)
from settings.config import venue_settings
from tables.models import TableSession
from tables.services import SessionService

logger = logging.getLogger(__name__)

InvoiceStatus = SessionInvoice.InvoiceStatus


class InvoiceService:
    """
    Materializes invoices from a session's billable items and adjustments.
    """

    # --- Helpers -------------------------------------------------------

    @staticmethod
    def _highest_issued(prefix: str) -> int:
        numbers = SessionInvoice.objects.filter(invoice_number__startswith=prefix).values_list(
            "invoice_number", flat=True
        )
        last = 0
        for number in numbers:
            sequence = number[len(prefix):].split("-", 1)[0]
            if sequence.isdigit():
                last = max(last, int(sequence))
        return last

    @staticmethod
    def next_invoice_number(now=None) -> str:
        """
        Takes the next number of the day: INV-20250101-0001, INV-20250101-0002, ...
        Split invoices append -i/N to a single base number.

        The number is reserved on the day's InvoiceSequence row, so a second
        caller gets a different one even before the first invoice is saved.
        """
        now = timezone.localtime(now or timezone.now())
        prefix = f"{settings.INVOICE_NUMBER_PREFIX}-{now:%Y%m%d}-"
        with transaction.atomic():
            sequence, created = InvoiceSequence.objects.select_for_update().get_or_create(day=now.date())
            if created:
                sequence.last_number = InvoiceService._highest_issued(prefix)
            sequence.last_number += 1
            sequence.save(update_fields=["last_number", "updated_at"])
        return f"{prefix}{sequence.last_number:04d}"

    @staticmethod
    def _save_numbered(build, max_retries=5) -> List[SessionInvoice]:
        """
        Saves the invoices returned by ``build(number)`` under a fresh number.
        If the number collides with one already stored, the savepoint is
        rolled back and a new number is taken.
        """
        for attempt in range(1, max_retries + 1):
            number = InvoiceService.next_invoice_number()
            invoices = build(number)
            try:
                with transaction.atomic():
                    for invoice in invoices:
                        invoice.save()
                return invoices
            except IntegrityError as e:
                if "invoice_number" not in str(e).lower():
                    raise
                logger.warning(f"Invoice number {number} already taken, retrying ({attempt}/{max_retries})")
        raise ConflictError(
            "InvoiceNumberUnavailable",
            f"Could not allocate a unique invoice number after {max_retries} attempts. Please retry.",
        )

    @staticmethod
    def calculator_for(session: TableSession, tax_rate=None, service_charge_rate=None) -> InvoiceCalculator:
        if tax_rate is None or service_charge_rate is None:
            rates = venue_settings.get_rates(session.venue_id)
            tax_rate = rates.tax_rate if tax_rate is None else tax_rate
            service_charge_rate = rates.service_charge_rate if service_charge_rate is None else service_charge_rate
        return InvoiceCalculator(tax_rate=tax_rate, service_charge_rate=service_charge_rate)

    @staticmethod
    def _resolve_promo(session: TableSession, promo_code: Optional[str], subtotal) -> Optional[AppliedPromo]:
        if not promo_code:
            return None
        promo = PromoService.lookup(session.venue_id, promo_code)
        return PromoService.apply_promo(promo, subtotal)

    @staticmethod
    def _discount_reason(discount: Adjustment, reason: Optional[str], applied_promo: Optional[AppliedPromo]) -> Optional[str]:
        parts = []
        if not discount.is_zero:
            parts.append(reason or f"Discount {discount.describe()}")
        if applied_promo is not None:
            parts.append(applied_promo.reason)
        return "; ".join(parts) or None

    @staticmethod
    def active_invoices(session: TableSession) -> List[SessionInvoice]:
        """Non-void invoices; when split invoices exist they are the bill."""
        invoices = SessionService.active_invoices(session)
        split = [invoice for invoice in invoices if invoice.is_split]
        return split or invoices

    @staticmethod
    def _ensure_no_active_invoice(session: TableSession) -> None:
        active = InvoiceService.active_invoices(session)
        if active:
            raise ConflictError(
                "ActiveInvoiceExists",
                f"Session already has an active invoice ({active[0].invoice_number}). Void it before generating a new one.",
            )

    @staticmethod
    def _calculate(calculator, session, subtotal, discount, applied_promo, deposit_credit, tip) -> BillTotals:
        """
        An explicit deposit_credit is used as given. When it is looked up from
        the session's deposits it is capped at what is left of the bill after
        discounts, so a large deposit settles a small bill instead of failing it.
        """
        looked_up = deposit_credit is None
        if looked_up:
            deposit_credit = SessionService.deposit_credit_for(session)
        promo_amount = applied_promo.amount if applied_promo else None

        totals = calculator.calculate(
            subtotal, discount=discount, promo_discount=promo_amount, deposit_credit=deposit_credit, tip=tip
        )
        if looked_up:
            room = max(
                totals.subtotal + totals.tax_amount + totals.service_charge - totals.total_discount,
                Decimal("0"),
            )
            if totals.deposit_credit > room:
                logger.info(f"Session {session.id}: deposit credit {totals.deposit_credit} capped at {room}")
                totals = calculator.calculate(
                    subtotal, discount=discount, promo_discount=promo_amount, deposit_credit=room, tip=tip
                )
        return totals

    # --- Preview -------------------------------------------------------

    @staticmethod
    def preview(
        session: TableSession,
        discount=None,
        promo_code: Optional[str] = None,
        tip=None,
        deposit_credit=None,
        tax_rate=None,
        service_charge_rate=None,
    ) -> BillTotals:
        """
        Live bill for the session's current billable items. Nothing is written,
        so this can be called after every item change.
        """
        calculator = InvoiceService.calculator_for(session, tax_rate, service_charge_rate)
        items = list(SessionService.billable_items(session))
        subtotal = calculator.subtotal(items)
        applied_promo = InvoiceService._resolve_promo(session, promo_code, subtotal)
        return InvoiceService._calculate(calculator, session, subtotal, discount, applied_promo, deposit_credit, tip)

    # --- Commit --------------------------------------------------------

    @staticmethod
    def _totals_for_commit(session, tax_rate, service_charge_rate, discount, promo_code, deposit_credit, tip=None):
        session.refresh_from_db()
        SessionService.ensure_mutable(session)
        InvoiceService._ensure_no_active_invoice(session)

        calculator = InvoiceService.calculator_for(session, tax_rate, service_charge_rate)
        subtotal = calculator.subtotal(SessionService.billable_items(session))
        if subtotal <= 0:
            raise ValidationError("EmptyBill", "There are no billable items on this session")

        applied_promo = InvoiceService._resolve_promo(session, promo_code, subtotal)
        totals = InvoiceService._calculate(calculator, session, subtotal, discount, applied_promo, deposit_credit, tip)
        return calculator.committable(totals), applied_promo

    @staticmethod
    def _settle_if_zero(invoice: SessionInvoice) -> None:
        if invoice.total_amount == 0:
            invoice.status = InvoiceStatus.PAID
            invoice.paid_at = invoice.generated_at

    @staticmethod
    def _after_commit(session: TableSession, applied_promo: Optional[AppliedPromo]) -> None:
        SessionService.mark_billing(session)
        SessionService.sync_settlement(session)
        if applied_promo is not None:
            run_best_effort(
                "record_promo_redemption",
                lambda: PromoService.record_redemption(applied_promo.promo_id),
            )

    @staticmethod
    def generate_invoice(
        session: TableSession,
        tax_rate=None,
        service_charge_rate=None,
        discount_amount=None,
        discount_reason: Optional[str] = None,
        deposit_credit=None,
        promo_code: Optional[str] = None,
        generated_by=None,
    ) -> SessionInvoice:
        """
        Snapshots the billable items into one pending invoice.

        Rates default to the venue settings; deposit credit defaults to the
        session's paid booking or package deposit, capped at the bill. discount_amount may be an
        absolute amount or an Adjustment.

        Raises:
            ValidationError: EmptyBill, AdjustmentsExceedBill
            ConflictError: ActiveInvoiceExists
            StateError: SessionLocked
            NotFoundError: PromoNotFound
            UpstreamError: If the invoice could not be stored
        """
        discount = Adjustment.coerce(discount_amount)
        with upstream_guard("Invoice generation"):
            with transaction.atomic():
                session = TableSession.objects.select_for_update().get(pk=session.pk)
                totals, applied_promo = InvoiceService._totals_for_commit(
                    session, tax_rate, service_charge_rate, discount, promo_code, deposit_credit
                )

                reason = InvoiceService._discount_reason(discount, discount_reason, applied_promo)

                def build(number):
                    invoice = SessionInvoice(
                        session=session,
                        invoice_number=number,
                        subtotal=totals.subtotal,
                        tax_amount=totals.tax_amount,
                        service_charge=totals.service_charge,
                        discount_amount=totals.total_discount,
                        discount_reason=reason,
                        deposit_credit=totals.deposit_credit,
                        total_amount=totals.invoice_total,
                        generated_by=generated_by,
                    )
                    InvoiceService._settle_if_zero(invoice)
                    return [invoice]

                invoice = InvoiceService._save_numbered(build)[0]

                InvoiceService._after_commit(session, applied_promo)

        logger.info(
            f"Invoice {invoice.invoice_number} generated for session {session.id}: "
            f"total {invoice.total_amount} (subtotal {invoice.subtotal}, tax {invoice.tax_amount}, "
            f"service {invoice.service_charge}, discount {invoice.discount_amount}, deposit {invoice.deposit_credit})"
        )
        notifications.notify(
            session.id,
            notifications.SUCCESS,
            f"Invoice {invoice.invoice_number} generated: {format_money(None, invoice.total_amount)}",
        )
        return invoice

    @staticmethod
    def generate_split_invoices(
        session: TableSession,
        split_count: int,
        guest_infos: Sequence,
        tax_rate=None,
        service_charge_rate=None,
        total_discount=None,
        tip_amount=None,
        discount_reason: Optional[str] = None,
        deposit_credit=None,
        promo_code: Optional[str] = None,
        generated_by=None,
    ) -> List[SessionInvoice]:
        """
        Computes one totals breakdown for the whole bill and partitions it into
        ``split_count`` invoices, one per guest.

        Every component (tax, service charge, discount, deposit, tip and the
        total) is split evenly with the remainder on the first shares; each
        share's subtotal is the balancing figure. The shares therefore add up
        to the combined bill exactly and every invoice keeps
        total = subtotal + tax + service - discount - deposit.

        Raises:
            ValidationError: InvalidSplitCount, GuestCountMismatch,
                IncompleteAssignment, EmptyBill, AdjustmentsExceedBill
            ConflictError: ActiveInvoiceExists
        """
        try:
            split_count = int(split_count)
        except (TypeError, ValueError):
            split_count = 0
        if split_count < 2:
            raise ValidationError("InvalidSplitCount", "A split needs at least 2 invoices")

        guest_infos = list(guest_infos or [])
        if len(guest_infos) != split_count:
            raise ValidationError(
                "GuestCountMismatch",
                f"{split_count} invoices need {split_count} guests, got {len(guest_infos)}",
            )
        guests = []
        for index, guest in enumerate(guest_infos):
            if isinstance(guest, dict):
                guest = SplitGuest.from_dict(guest)
            if guest is None or not (guest.name or "").strip():
                raise ValidationError(
                    "IncompleteAssignment",
                    f"Assign a guest to split {index + 1} of {split_count}",
                    slot=index,
                )
            guests.append(guest)

        discount = Adjustment.coerce(total_discount)
        tip = Adjustment.coerce(tip_amount)
        currency = default_currency()

        with upstream_guard("Split invoice generation"):
            with transaction.atomic():
                session = TableSession.objects.select_for_update().get(pk=session.pk)
                totals, applied_promo = InvoiceService._totals_for_commit(
                    session, tax_rate, service_charge_rate, discount, promo_code, deposit_credit, tip=tip
                )

                shares = {
                    name: split_evenly(to_minor(currency, value), split_count)
                    for name, value in (
                        ("total", totals.invoice_total),
                        ("tax", totals.tax_amount),
                        ("service", totals.service_charge),
                        ("discount", totals.total_discount),
                        ("deposit", totals.deposit_credit),
                        ("tip", totals.tip_amount),
                    )
                }
                validate_minor_sum(shares["total"], to_minor(currency, totals.invoice_total), "split total")

                reason = InvoiceService._discount_reason(discount, discount_reason, applied_promo)

                def build(base_number):
                    invoices = []
                    for i, guest in enumerate(guests):
                        subtotal_minor = (
                            shares["total"][i]
                            - shares["tax"][i]
                            - shares["service"][i]
                            + shares["discount"][i]
                            + shares["deposit"][i]
                        )
                        invoice = SessionInvoice(
                            session=session,
                            invoice_number=f"{base_number}-{i + 1}/{split_count}",
                            split_number=i + 1,
                            split_count=split_count,
                            subtotal=from_minor(currency, subtotal_minor),
                            tax_amount=from_minor(currency, shares["tax"][i]),
                            service_charge=from_minor(currency, shares["service"][i]),
                            discount_amount=from_minor(currency, shares["discount"][i]),
                            discount_reason=reason,
                            deposit_credit=from_minor(currency, shares["deposit"][i]),
                            tip_amount=from_minor(currency, shares["tip"][i]),
                            total_amount=from_minor(currency, shares["total"][i]),
                            generated_by=generated_by,
                            **guest.invoice_fields(),
                        )
                        InvoiceService._settle_if_zero(invoice)
                        invoices.append(invoice)
                    return invoices

                invoices = InvoiceService._save_numbered(build)
                base_number = invoices[0].invoice_number.rsplit("-", 1)[0]

                InvoiceService._after_commit(session, applied_promo)

        logger.info(
            f"Session {session.id}: {split_count} split invoices generated from {base_number} "
            f"totalling {totals.invoice_total} ({', '.join(str(inv.total_amount) for inv in invoices)})"
        )
        notifications.notify(
            session.id,
            notifications.SUCCESS,
            f"{split_count} split invoices generated: {format_money(None, totals.invoice_total)}",
        )
        return invoices

    # --- Post-generation adjustments -----------------------------------

    @staticmethod
    @transaction.atomic
    def apply_discount(invoice: SessionInvoice, discount, reason: Optional[str] = None) -> SessionInvoice:
        """
        Re-prices an unpaid or partly paid invoice with a new discount, resolved
        against the invoice's own subtotal.

        Raises:
            StateError: InvoiceNotPayable for void or paid invoices
            ValidationError: AdjustmentsExceedBill, DiscountBelowPaid
        """
        invoice = SessionInvoice.objects.select_for_update().get(pk=invoice.pk)
        if invoice.status in (InvoiceStatus.VOID, InvoiceStatus.PAID):
            raise StateError("InvoiceNotPayable", f"Invoice {invoice.invoice_number} is {invoice.status}")

        adjustment = Adjustment.coerce(discount)
        discount_amount = adjustment.resolve(invoice.subtotal)
        new_total = (
            invoice.subtotal + invoice.tax_amount + invoice.service_charge - discount_amount - invoice.deposit_credit
        )
        if new_total < 0:
            raise ValidationError(
                "AdjustmentsExceedBill",
                f"A discount of {discount_amount} would take invoice {invoice.invoice_number} below zero",
            )
        if new_total < invoice.amount_paid:
            raise ValidationError(
                "DiscountBelowPaid",
                f"Invoice {invoice.invoice_number} already has {invoice.amount_paid} paid; "
                f"the discounted total {new_total} would be lower",
            )

        invoice.discount_amount = discount_amount
        invoice.discount_reason = reason or f"Discount {adjustment.describe()}"
        invoice.total_amount = new_total
        if invoice.amount_paid >= new_total:
            invoice.status = InvoiceStatus.PAID
            invoice.paid_at = timezone.now()
        invoice.save(
            update_fields=["discount_amount", "discount_reason", "total_amount", "status", "paid_at", "updated_at"]
        )
        logger.info(f"Invoice {invoice.invoice_number}: discount {discount_amount} applied, total now {new_total}")

        SessionService.sync_settlement(invoice.session)
        return invoice

    @staticmethod
    @transaction.atomic
    def void_invoice(invoice: SessionInvoice, reason: str) -> SessionInvoice:
        """
        Voids an invoice that has not received any money. A void invoice stays
        on record and no longer counts towards the session balance.

        Raises:
            ValidationError: MissingReason
            StateError: AlreadyVoid, InvoiceHasPayments
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("MissingReason", "A reason is required to void an invoice")

        invoice = SessionInvoice.objects.select_for_update().get(pk=invoice.pk)
        if invoice.status == InvoiceStatus.VOID:
            raise StateError("AlreadyVoid", f"Invoice {invoice.invoice_number} is already void")
        if invoice.amount_paid > 0:
            raise StateError(
                "InvoiceHasPayments",
                f"Invoice {invoice.invoice_number} has {invoice.amount_paid} paid and cannot be voided",
            )
        if invoice.session.status == TableSession.SessionStatus.CLOSED:
            raise StateError("SessionLocked", "Invoices of a closed session cannot be voided")

        old_status = invoice.status
        invoice.status = InvoiceStatus.VOID
        invoice.voided_at = timezone.now()
        invoice.void_reason = reason
        invoice.save(update_fields=["status", "voided_at", "void_reason", "updated_at"])
        logger.info(f"Invoice {invoice.invoice_number}: Status transition {old_status} -> void ({reason})")

        SessionService.sync_settlement(invoice.session)
        return invoice
