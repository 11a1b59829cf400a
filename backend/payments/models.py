import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

MONEY = dict(max_digits=14, decimal_places=2)


class SessionInvoice(models.Model):
    """
    A committed billing snapshot of a table session.

    The stored total always satisfies:
        total_amount = subtotal + tax_amount + service_charge - discount_amount - deposit_credit
    Tips are tracked in tip_amount and collected on top of total_amount.
    """

    class InvoiceStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        PARTIALLY_PAID = "partially_paid", _("Partially Paid")
        PAID = "paid", _("Paid")
        VOID = "void", _("Void")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session = models.ForeignKey(
        "tables.TableSession",
        on_delete=models.CASCADE,
        related_name="invoices",
    )
    invoice_number = models.CharField(max_length=40, unique=True)
    split_number = models.PositiveIntegerField(null=True, blank=True)
    split_count = models.PositiveIntegerField(null=True, blank=True)

    subtotal = models.DecimalField(**MONEY, default=Decimal("0.00"))
    tax_amount = models.DecimalField(**MONEY, default=Decimal("0.00"))
    service_charge = models.DecimalField(**MONEY, default=Decimal("0.00"))
    discount_amount = models.DecimalField(**MONEY, default=Decimal("0.00"))
    discount_reason = models.CharField(max_length=255, null=True, blank=True)
    deposit_credit = models.DecimalField(**MONEY, default=Decimal("0.00"))
    tip_amount = models.DecimalField(
        **MONEY,
        default=Decimal("0.00"),
        help_text=_("Tip share expected with this invoice. Not part of total_amount."),
    )
    total_amount = models.DecimalField(**MONEY, default=Decimal("0.00"))
    amount_paid = models.DecimalField(**MONEY, default=Decimal("0.00"))

    status = models.CharField(
        max_length=20,
        choices=InvoiceStatus.choices,
        default=InvoiceStatus.PENDING,
        help_text=_("The current settlement status of the invoice."),
    )

    # --- Split-invoice guest fields ---
    guest_name = models.CharField(max_length=200, null=True, blank=True)
    guest_phone = models.CharField(max_length=32, null=True, blank=True)
    guest_email = models.EmailField(null=True, blank=True)
    guest_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="session_invoices",
    )

    generated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="generated_session_invoices",
    )
    generated_at = models.DateTimeField(default=timezone.now)
    paid_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    void_reason = models.CharField(max_length=255, null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["generated_at", "split_number"]
        verbose_name = _("Session Invoice")
        verbose_name_plural = _("Session Invoices")
        indexes = [
            models.Index(fields=["session", "status"], name="invoice_session_status_idx"),
            models.Index(fields=["invoice_number"], name="invoice_number_idx"),
        ]

    def __str__(self):
        return f"Invoice {self.invoice_number} - {self.status}"

    @property
    def is_active(self) -> bool:
        return self.status != self.InvoiceStatus.VOID

    @property
    def is_split(self) -> bool:
        return self.split_count is not None

    @property
    def balance_due(self) -> Decimal:
        if not self.is_active:
            return Decimal("0.00")
        return max(self.total_amount - self.amount_paid, Decimal("0.00"))

    @property
    def computed_total(self) -> Decimal:
        return (
            self.subtotal
            + self.tax_amount
            + self.service_charge
            - self.discount_amount
            - self.deposit_credit
        )

    def clean(self):
        if self.total_amount != self.computed_total:
            raise ValidationError(
                f"Invoice total {self.total_amount} does not match its components ({self.computed_total})"
            )
        if self.amount_paid < 0 or self.amount_paid > self.total_amount:
            raise ValidationError("amount_paid must stay between 0 and total_amount")


class AppendOnlyError(Exception):
    """Raised when code tries to edit or delete a recorded payment."""


class SessionPayment(models.Model):
    """
    Money received against one invoice. Payments are append-only: corrections
    are new payments or an invoice void, never an edit.
    """

    class PaymentMethod(models.TextChoices):
        CASH = "cash", _("Cash")
        CARD = "card", _("Card")
        QRIS = "qris", _("QRIS")
        TRANSFER = "transfer", _("Bank Transfer")
        GOPAY = "gopay", _("GoPay")
        OVO = "ovo", _("OVO")
        DANA = "dana", _("DANA")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    invoice = models.ForeignKey(SessionInvoice, on_delete=models.PROTECT, related_name="payments")
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    amount = models.DecimalField(**MONEY, validators=[MinValueValidator(Decimal("0.01"))])
    tip_amount = models.DecimalField(**MONEY, default=Decimal("0.00"))
    reference_number = models.CharField(max_length=100, null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="session_payments",
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at"]
        verbose_name = _("Session Payment")
        verbose_name_plural = _("Session Payments")
        indexes = [
            models.Index(fields=["invoice", "created_at"], name="session_payment_invoice_idx"),
        ]

    def __str__(self):
        return f"{self.get_method_display()} {self.amount} for {self.invoice.invoice_number}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyError(f"Payment {self.pk} is immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AppendOnlyError(f"Payment {self.pk} cannot be deleted")


class BookingDeposit(models.Model):
    """
    A pre-paid amount from a booking or a package purchase, credited against
    the party's bill.
    """

    class DepositStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        PAID = "paid", _("Paid")
        REFUNDED = "refunded", _("Refunded")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(
        "customers.Booking",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="deposits",
    )
    package_purchase_ref = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    amount = models.DecimalField(**MONEY, validators=[MinValueValidator(Decimal("0"))])
    status = models.CharField(max_length=20, choices=DepositStatus.choices, default=DepositStatus.PENDING)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = _("Booking Deposit")
        verbose_name_plural = _("Booking Deposits")

    def __str__(self):
        source = f"booking {self.booking_id}" if self.booking_id else f"package {self.package_purchase_ref}"
        return f"Deposit {self.amount} ({source}) - {self.status}"


class InvoiceSequence(models.Model):
    """
    Last invoice number handed out per business day. The row is locked while
    a number is taken so concurrent sessions never compute the same one.
    """

    day = models.DateField(unique=True)
    last_number = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Invoice Sequence")
        verbose_name_plural = _("Invoice Sequences")

    def __str__(self):
        return f"{self.day}: {self.last_number}"
