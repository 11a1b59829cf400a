from decimal import Decimal, InvalidOperation
from typing import List, Optional
import logging

from django.db import transaction
from django.utils import timezone

from core_backend.exceptions import StateError, ValidationError, upstream_guard
from core_backend.infrastructure import notifications
from payments.models import SessionInvoice, SessionPayment
from payments.money import format_money, money
from tables.services import SessionService

logger = logging.getLogger(__name__)

InvoiceStatus = SessionInvoice.InvoiceStatus


def _amount(value, label) -> Decimal:
    try:
        return money(value if value is not None else 0)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("InvalidAmount", f"{label} '{value}' is not a number")


class PaymentService:
    """
    Records payments against invoices. Keeps 0 <= amount_paid <= total_amount
    for every invoice and moves the session to paid once everything is settled.
    """

    PAYABLE_STATUSES = (InvoiceStatus.PENDING, InvoiceStatus.PARTIALLY_PAID)

    @staticmethod
    def process_payment(
        invoice: SessionInvoice,
        method: str,
        amount,
        reference: Optional[str] = None,
        tip_amount=None,
        notes: str = "",
        processed_by=None,
    ) -> SessionPayment:
        """
        Applies a payment to an invoice.

        Args:
            invoice: Invoice to pay
            method: One of SessionPayment.PaymentMethod
            amount: Amount applied to the invoice balance. Tips are recorded
                separately and never count towards the balance.
            reference: External reference (card slip, QRIS transaction id)

        Raises:
            ValidationError: InvalidAmount, InvalidMethod, Overpayment
            StateError: InvoiceNotPayable for void or fully paid invoices
            UpstreamError: If the payment could not be stored
        """
        amount = _amount(amount, "Payment amount")
        if amount <= 0:
            raise ValidationError("InvalidAmount", "Payment amount must be greater than zero")
        tip = _amount(tip_amount, "Tip amount")
        if tip < 0:
            raise ValidationError("InvalidAmount", "Tip amount cannot be negative")
        if method not in SessionPayment.PaymentMethod.values:
            raise ValidationError("InvalidMethod", f"Unknown payment method '{method}'")

        with upstream_guard("Payment processing"):
            with transaction.atomic():
                invoice = SessionInvoice.objects.select_for_update().select_related("session").get(pk=invoice.pk)

                if invoice.status not in PaymentService.PAYABLE_STATUSES:
                    raise StateError(
                        "InvoiceNotPayable",
                        f"Invoice {invoice.invoice_number} is {invoice.status} and cannot take payments",
                        status=invoice.status,
                    )

                balance = invoice.balance_due
                if amount > balance:
                    raise ValidationError(
                        "Overpayment",
                        f"Payment of {amount} exceeds the balance due of {balance} on invoice {invoice.invoice_number}",
                        balance_due=balance,
                    )

                payment = SessionPayment.objects.create(
                    invoice=invoice,
                    method=method,
                    amount=amount,
                    tip_amount=tip,
                    reference_number=reference or None,
                    notes=notes or "",
                    processed_by=processed_by,
                )

                old_status = invoice.status
                invoice.amount_paid += amount
                if invoice.amount_paid >= invoice.total_amount:
                    invoice.status = InvoiceStatus.PAID
                    invoice.paid_at = timezone.now()
                else:
                    invoice.status = InvoiceStatus.PARTIALLY_PAID
                invoice.save(update_fields=["amount_paid", "status", "paid_at", "updated_at"])

                if old_status != invoice.status:
                    logger.info(f"Invoice {invoice.invoice_number}: Status transition {old_status} -> {invoice.status}")

                SessionService.sync_settlement(invoice.session)

        logger.info(
            f"Payment {payment.id}: {method} {amount} (tip {tip}) on invoice {invoice.invoice_number}, "
            f"{invoice.balance_due} remaining"
        )
        notifications.notify(
            invoice.session_id,
            notifications.SUCCESS,
            f"Payment of {format_money(None, amount)} received for {invoice.invoice_number}",
            invoice_id=str(invoice.id),
            balance_due=str(invoice.balance_due),
        )
        return payment

    @staticmethod
    def cash_change_due(amount_owed, cash_received) -> Decimal:
        """
        Change to hand back for a cash payment.

        Raises:
            ValidationError: InsufficientCash
        """
        owed = _amount(amount_owed, "Amount owed")
        received = _amount(cash_received, "Cash received")
        if received < owed:
            raise ValidationError(
                "InsufficientCash",
                f"Cash received {received} is less than the {owed} owed",
                short_by=owed - received,
            )
        return received - owed

    @staticmethod
    def payments_for_invoice(invoice: SessionInvoice) -> List[SessionPayment]:
        return list(SessionPayment.objects.filter(invoice=invoice).order_by("created_at"))
