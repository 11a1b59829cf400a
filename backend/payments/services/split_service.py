"""
Split coordination for a table session's bill.

Two lifecycles are supported:

* split payment: one invoice, ``split_payers_count`` sequential payments.
  After each payment that leaves the invoice unpaid the flow re-opens for
  the next payer; once the invoice is paid or every payer has paid the mode
  resets.
* split invoice: ``split_count`` invoices, one per assigned guest. After a
  payment completes an invoice, selection advances to the next unpaid one.

All mode flags live on one BillingContext. The coordinator mutates that
object and calls the invoice/payment services; it holds no state of its own.
"""

from dataclasses import dataclass, field
from decimal import ROUND_CEILING, Decimal
from typing import List, Optional
import logging

from core_backend.exceptions import ConflictError, NotFoundError, StateError, ValidationError
from customers.services import SplitGuest
from payments.models import SessionInvoice, SessionPayment
from payments.money import money, quantize_decimal
from .invoice_service import InvoiceService
from .payment_service import PaymentService

logger = logging.getLogger(__name__)


class BillingMode:
    NONE = "none"
    SPLIT_PAYMENT = "split_payment"
    SPLIT_INVOICE = "split_invoice"


@dataclass
class BillingContext:
    """Billing-sheet state for one session."""

    session_id: str
    mode: str = BillingMode.NONE
    split_payers_count: int = 0
    current_payer_number: int = 0
    guest_slots: List[Optional[SplitGuest]] = field(default_factory=list)
    invoice_ids: List[str] = field(default_factory=list)
    selected_invoice_index: int = 0
    payment_in_flight: bool = False
    reopen_payment_flow: bool = False

    @property
    def is_split_mode(self) -> bool:
        return self.mode != BillingMode.NONE

    @property
    def remaining_payers(self) -> int:
        if self.mode != BillingMode.SPLIT_PAYMENT:
            return 1
        return max(self.split_payers_count - self.current_payer_number + 1, 1)


class SplitCoordinator:
    def __init__(self, context: BillingContext):
        self.context = context

    # --- Shared --------------------------------------------------------

    def reset(self) -> None:
        ctx = self.context
        if ctx.mode != BillingMode.NONE:
            logger.info(f"Session {ctx.session_id}: split mode {ctx.mode} reset")
        ctx.mode = BillingMode.NONE
        ctx.split_payers_count = 0
        ctx.current_payer_number = 0
        ctx.guest_slots = []
        ctx.reopen_payment_flow = False

    @staticmethod
    def _validate_count(count) -> int:
        try:
            count = int(count)
        except (TypeError, ValueError):
            count = 0
        if count < 2:
            raise ValidationError("InvalidSplitCount", "A split needs at least 2 parts")
        return count

    def _load_invoice(self, invoice_id) -> SessionInvoice:
        try:
            return SessionInvoice.objects.get(pk=invoice_id, session_id=self.context.session_id)
        except SessionInvoice.DoesNotExist:
            raise NotFoundError("InvoiceNotFound", f"Invoice {invoice_id} not found on this session")

    def selected_invoice(self) -> SessionInvoice:
        ctx = self.context
        if not ctx.invoice_ids:
            raise StateError("NoInvoiceSelected", "Generate an invoice before taking payments")
        return self._load_invoice(ctx.invoice_ids[ctx.selected_invoice_index])

    def select_invoice(self, index: int) -> SessionInvoice:
        if not 0 <= index < len(self.context.invoice_ids):
            raise ValidationError("InvalidSelection", f"There is no invoice at position {index + 1}")
        self.context.selected_invoice_index = index
        return self.selected_invoice()

    def use_invoices(self, invoices) -> None:
        """Points the context at already generated invoices, e.g. after a reload."""
        self.context.invoice_ids = [str(invoice.id) for invoice in invoices]
        self.context.selected_invoice_index = 0
        if len(invoices) > 1:
            self.context.mode = BillingMode.SPLIT_INVOICE
            self.context.split_payers_count = len(invoices)
            self.advance_to_next_unpaid()

    def advance_to_next_unpaid(self) -> Optional[SessionInvoice]:
        """
        Moves selection to the next invoice that is not paid, searching forward
        from the current one and wrapping around. Returns None when every
        invoice is settled.
        """
        ctx = self.context
        invoices = {
            str(invoice.id): invoice
            for invoice in SessionInvoice.objects.filter(pk__in=ctx.invoice_ids)
        }
        count = len(ctx.invoice_ids)
        for offset in range(count):
            index = (ctx.selected_invoice_index + offset) % count
            invoice = invoices.get(str(ctx.invoice_ids[index]))
            if invoice is not None and invoice.status not in (
                SessionInvoice.InvoiceStatus.PAID,
                SessionInvoice.InvoiceStatus.VOID,
            ):
                ctx.selected_invoice_index = index
                return invoice
        return None

    # --- Split payment -------------------------------------------------

    def start_split_payment(self, invoice: SessionInvoice, payers_count) -> None:
        payers_count = self._validate_count(payers_count)
        if invoice.status not in PaymentService.PAYABLE_STATUSES:
            raise StateError("InvoiceNotPayable", f"Invoice {invoice.invoice_number} is {invoice.status}")

        ctx = self.context
        ctx.mode = BillingMode.SPLIT_PAYMENT
        ctx.split_payers_count = payers_count
        ctx.current_payer_number = 1
        ctx.invoice_ids = [str(invoice.id)]
        ctx.selected_invoice_index = 0
        ctx.reopen_payment_flow = False
        logger.info(f"Session {ctx.session_id}: split payment across {payers_count} payers on {invoice.invoice_number}")

    def suggested_amount(self, invoice: Optional[SessionInvoice] = None) -> Decimal:
        """
        Each remaining payer's share of the balance, rounded up to the currency
        unit and never above the balance. The last payer gets exactly the rest.
        """
        invoice = invoice or self.selected_invoice()
        balance = invoice.balance_due
        remaining = self.context.remaining_payers
        if remaining <= 1:
            return money(balance)
        share = (balance / remaining).quantize(quantize_decimal(), rounding=ROUND_CEILING)
        return min(share, money(balance))

    def submit_payment(self, method: str, amount, **payment_kwargs) -> SessionPayment:
        """
        Records one payment on the selected invoice.

        Raises:
            StateError: PaymentInFlight when a previous submission has not
                finished yet
        """
        ctx = self.context
        if ctx.payment_in_flight:
            raise StateError("PaymentInFlight", "A payment is already being processed")

        invoice = self.selected_invoice()
        ctx.payment_in_flight = True
        ctx.reopen_payment_flow = False
        try:
            payment = PaymentService.process_payment(invoice, method, amount, **payment_kwargs)
        finally:
            ctx.payment_in_flight = False

        invoice.refresh_from_db()
        if ctx.mode == BillingMode.SPLIT_PAYMENT:
            self._after_split_payment(invoice)
        elif ctx.mode == BillingMode.SPLIT_INVOICE and invoice.status == SessionInvoice.InvoiceStatus.PAID:
            next_invoice = self.advance_to_next_unpaid()
            if next_invoice is None:
                logger.info(f"Session {ctx.session_id}: all split invoices paid")
            else:
                logger.info(f"Session {ctx.session_id}: advancing to invoice {next_invoice.invoice_number}")
        return payment

    def _after_split_payment(self, invoice: SessionInvoice) -> None:
        ctx = self.context
        if invoice.status != SessionInvoice.InvoiceStatus.PAID and ctx.current_payer_number < ctx.split_payers_count:
            ctx.current_payer_number += 1
            ctx.reopen_payment_flow = True
            logger.info(
                f"Session {ctx.session_id}: payer {ctx.current_payer_number} of {ctx.split_payers_count} "
                f"next, {invoice.balance_due} remaining"
            )
        else:
            self.reset()

    def pay_in_full(self, method: str, **payment_kwargs) -> SessionPayment:
        """Pays the selected invoice's whole balance and leaves split payment."""
        invoice = self.selected_invoice()
        if self.context.mode == BillingMode.SPLIT_PAYMENT:
            self.reset()
        return self.submit_payment(method, invoice.balance_due, **payment_kwargs)

    # --- Split invoice -------------------------------------------------

    def start_split_invoice(self, split_count) -> None:
        split_count = self._validate_count(split_count)
        ctx = self.context
        ctx.mode = BillingMode.SPLIT_INVOICE
        ctx.split_payers_count = split_count
        ctx.current_payer_number = 0
        ctx.guest_slots = [None] * split_count
        ctx.reopen_payment_flow = False
        logger.info(f"Session {ctx.session_id}: split invoice into {split_count}")

    def resize_split(self, split_count, truncate: bool = False) -> List[Optional[SplitGuest]]:
        """
        Changes the number of split invoices. Growing adds empty slots;
        shrinking over assigned slots needs ``truncate=True``.

        Raises:
            ConflictError: AssignmentsWouldBeDropped
        """
        split_count = self._validate_count(split_count)
        ctx = self.context
        if ctx.mode != BillingMode.SPLIT_INVOICE:
            self.start_split_invoice(split_count)
            return ctx.guest_slots

        dropped = [guest for guest in ctx.guest_slots[split_count:] if guest is not None]
        if dropped and not truncate:
            raise ConflictError(
                "AssignmentsWouldBeDropped",
                f"Reducing to {split_count} would drop {len(dropped)} assigned guest(s): "
                + ", ".join(guest.name for guest in dropped),
                dropped=[guest.to_dict() for guest in dropped],
            )
        if dropped:
            logger.info(f"Session {ctx.session_id}: dropping {len(dropped)} guest assignment(s) on resize")

        slots = ctx.guest_slots[:split_count]
        slots.extend([None] * (split_count - len(slots)))
        ctx.guest_slots = slots
        ctx.split_payers_count = split_count
        return slots

    def _check_slot(self, slot: int) -> None:
        if self.context.mode != BillingMode.SPLIT_INVOICE:
            raise StateError("NotSplitting", "Start a split invoice before assigning guests")
        if not 0 <= slot < len(self.context.guest_slots):
            raise ValidationError("InvalidSlot", f"There is no split slot {slot + 1}")

    @staticmethod
    def _same_guest(a: SplitGuest, b: SplitGuest) -> bool:
        if a.guest_profile_id and a.guest_profile_id == b.guest_profile_id:
            return True
        if a.user_id is not None and a.user_id == b.user_id:
            return True
        return bool(a.phone and a.phone == b.phone) or bool(a.email and a.email == b.email)

    def assign_guest(self, slot: int, guest) -> SplitGuest:
        """
        Raises:
            ConflictError: GuestAlreadyAssigned when the guest holds another slot
        """
        self._check_slot(slot)
        if isinstance(guest, dict):
            guest = SplitGuest.from_dict(guest)
        if not (guest.name or "").strip():
            raise ValidationError("MissingGuestFields", "A guest needs a name")

        for index, other in enumerate(self.context.guest_slots):
            if index != slot and other is not None and self._same_guest(guest, other):
                raise ConflictError(
                    "GuestAlreadyAssigned",
                    f"{guest.name} is already assigned to split {index + 1}",
                    slot=index,
                )
        self.context.guest_slots[slot] = guest
        return guest

    def unassign_guest(self, slot: int) -> None:
        self._check_slot(slot)
        self.context.guest_slots[slot] = None

    def next_open_slot(self) -> Optional[int]:
        for index, guest in enumerate(self.context.guest_slots):
            if guest is None:
                return index
        return None

    def generate_split_invoices(self, session, **invoice_kwargs) -> List[SessionInvoice]:
        """
        Raises:
            ValidationError: IncompleteAssignment while any slot is empty
        """
        ctx = self.context
        if ctx.mode != BillingMode.SPLIT_INVOICE:
            raise StateError("NotSplitting", "Start a split invoice before generating split invoices")
        open_slot = self.next_open_slot()
        if open_slot is not None:
            raise ValidationError(
                "IncompleteAssignment",
                f"Assign a guest to split {open_slot + 1} of {len(ctx.guest_slots)}",
                slot=open_slot,
            )

        invoices = InvoiceService.generate_split_invoices(
            session,
            split_count=len(ctx.guest_slots),
            guest_infos=list(ctx.guest_slots),
            **invoice_kwargs,
        )
        ctx.invoice_ids = [str(invoice.id) for invoice in invoices]
        ctx.selected_invoice_index = 0
        ctx.guest_slots = []
        self.advance_to_next_unpaid()
        return invoices
