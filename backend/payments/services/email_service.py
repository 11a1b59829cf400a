"""
Bills and receipts by email.

A bill lists what is owed on an invoice; a receipt confirms a settled one.
Both are rendered from the emails/session-invoice templates and sent through
Django's email backend.
"""

from functools import partial
from smtplib import SMTPException
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.mail import send_mail
from django.core.validators import validate_email
from django.template.loader import render_to_string
from django.utils import timezone
import logging

from core_backend.exceptions import StateError, UpstreamError, ValidationError
from core_backend.utils.pii import PIIProtection
from payments.models import SessionInvoice
from payments.money import format_money
from settings.models import VenueSettings
from tables.services import SessionService

logger = logging.getLogger(__name__)


class InvoiceEmailService:
    BILL = "bill"
    RECEIPT = "receipt"
    KINDS = (BILL, RECEIPT)

    def __init__(self):
        from_email_address = getattr(settings, "DEFAULT_FROM_EMAIL", "billing@localhost")
        sender_name = getattr(settings, "BILLING_EMAIL_SENDER_NAME", "")
        self.default_from_email = f"{sender_name} <{from_email_address}>" if sender_name else from_email_address

    @staticmethod
    def default_kind(invoice: SessionInvoice) -> str:
        return InvoiceEmailService.RECEIPT if invoice.status == SessionInvoice.InvoiceStatus.PAID else InvoiceEmailService.BILL

    @staticmethod
    def _recipient(invoice: SessionInvoice, recipient_email: Optional[str]) -> str:
        email = (recipient_email or invoice.guest_email or "").strip()
        if not email:
            raise ValidationError("MissingRecipient", f"No email address given for invoice {invoice.invoice_number}")
        try:
            validate_email(email)
        except DjangoValidationError:
            raise ValidationError("InvalidEmail", f"'{email}' is not a valid email address")
        return email

    @staticmethod
    def build_context(invoice: SessionInvoice, kind: str) -> dict:
        session = invoice.session
        venue = VenueSettings.objects.filter(venue_id=session.venue_id).first()
        money = partial(format_money, None)

        items = [
            {
                "name": item.item_name,
                "quantity": item.quantity,
                "unit_price": money(item.unit_price),
                "total": money(item.line_total),
            }
            for item in SessionService.billable_items(session)
        ]
        last_payment = invoice.payments.order_by("-created_at").first()

        return {
            "is_receipt": kind == InvoiceEmailService.RECEIPT,
            "title": "Receipt" if kind == InvoiceEmailService.RECEIPT else "Bill",
            "venue_name": venue.venue_name if venue and venue.venue_name else "",
            "venue_address": venue.address if venue else "",
            "recipient_name": invoice.guest_name or session.guest_name or "Guest",
            "invoice_number": invoice.invoice_number,
            "split_label": f"Split {invoice.split_number} of {invoice.split_count}" if invoice.is_split else "",
            "session_date": timezone.localtime(session.opened_at).strftime("%d %B %Y"),
            "table_name": f"Table {session.table.table_number}" if session.table_id else "Walk-in",
            "items": items,
            "subtotal": money(invoice.subtotal),
            "tax_amount": money(invoice.tax_amount),
            "service_charge": money(invoice.service_charge),
            "discount_amount": money(invoice.discount_amount) if invoice.discount_amount > 0 else "",
            "deposit_credit": money(invoice.deposit_credit) if invoice.deposit_credit > 0 else "",
            "total_amount": money(invoice.total_amount),
            "amount_paid": money(invoice.amount_paid) if invoice.amount_paid > 0 else "",
            "balance_due": money(invoice.balance_due) if invoice.balance_due > 0 else "",
            "payment_method": last_payment.get_method_display() if last_payment else "",
            "paid_at": timezone.localtime(invoice.paid_at).strftime("%d %B %Y %H:%M") if invoice.paid_at else "",
        }

    def send_invoice_email(
        self,
        invoice: SessionInvoice,
        recipient_email: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> str:
        """
        Emails a bill or receipt for the invoice and returns the recipient.

        kind defaults to a receipt for paid invoices and a bill otherwise.
        recipient_email defaults to the guest email stored on a split invoice.

        Raises:
            ValidationError: MissingRecipient, InvalidEmail, InvalidEmailType
            StateError: InvoiceVoid
            UpstreamError: If the email backend fails
        """
        kind = kind or self.default_kind(invoice)
        if kind not in self.KINDS:
            raise ValidationError("InvalidEmailType", f"Unknown email type '{kind}'")
        if invoice.status == SessionInvoice.InvoiceStatus.VOID:
            raise StateError("InvoiceVoid", f"Invoice {invoice.invoice_number} is void")
        recipient = self._recipient(invoice, recipient_email)

        context = self.build_context(invoice, kind)
        subject = f"{context['title']} - {invoice.invoice_number}"
        if context["venue_name"]:
            subject = f"{subject} - {context['venue_name']}"

        try:
            send_mail(
                subject,
                render_to_string("emails/session-invoice.txt", context),
                self.default_from_email,
                [recipient],
                html_message=render_to_string("emails/session-invoice.html", context),
                fail_silently=False,
            )
        except (SMTPException, OSError) as e:
            logger.error(
                f"Failed to send {kind} for invoice {invoice.invoice_number} "
                f"to {PIIProtection.mask_email(recipient)}: {e}"
            )
            raise UpstreamError("EmailDelivery", "The email could not be sent. Please retry.", kind=kind) from e

        logger.info(f"{context['title']} for invoice {invoice.invoice_number} sent to {PIIProtection.mask_email(recipient)}")
        return recipient
