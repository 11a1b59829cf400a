import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=14, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("customers", "0001_initial"),
        ("tables", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SessionInvoice",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("invoice_number", models.CharField(max_length=40, unique=True)),
                ("split_number", models.PositiveIntegerField(blank=True, null=True)),
                ("split_count", models.PositiveIntegerField(blank=True, null=True)),
                ("subtotal", money(default=Decimal("0.00"))),
                ("tax_amount", money(default=Decimal("0.00"))),
                ("service_charge", money(default=Decimal("0.00"))),
                ("discount_amount", money(default=Decimal("0.00"))),
                ("discount_reason", models.CharField(blank=True, max_length=255, null=True)),
                ("deposit_credit", money(default=Decimal("0.00"))),
                (
                    "tip_amount",
                    money(
                        default=Decimal("0.00"),
                        help_text="Tip share expected with this invoice. Not part of total_amount.",
                    ),
                ),
                ("total_amount", money(default=Decimal("0.00"))),
                ("amount_paid", money(default=Decimal("0.00"))),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("partially_paid", "Partially Paid"),
                            ("paid", "Paid"),
                            ("void", "Void"),
                        ],
                        default="pending",
                        help_text="The current settlement status of the invoice.",
                        max_length=20,
                    ),
                ),
                ("guest_name", models.CharField(blank=True, max_length=200, null=True)),
                ("guest_phone", models.CharField(blank=True, max_length=32, null=True)),
                ("guest_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("generated_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("void_reason", models.CharField(blank=True, max_length=255, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "generated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="generated_session_invoices",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "guest_user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="session_invoices",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="invoices",
                        to="tables.tablesession",
                    ),
                ),
            ],
            options={
                "verbose_name": "Session Invoice",
                "verbose_name_plural": "Session Invoices",
                "ordering": ["generated_at", "split_number"],
                "indexes": [
                    models.Index(fields=["session", "status"], name="invoice_session_status_idx"),
                    models.Index(fields=["invoice_number"], name="invoice_number_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SessionPayment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("card", "Card"),
                            ("qris", "QRIS"),
                            ("transfer", "Bank Transfer"),
                            ("gopay", "GoPay"),
                            ("ovo", "OVO"),
                            ("dana", "DANA"),
                        ],
                        max_length=20,
                    ),
                ),
                ("amount", money(validators=[django.core.validators.MinValueValidator(Decimal("0.01"))])),
                ("tip_amount", money(default=Decimal("0.00"))),
                ("reference_number", models.CharField(blank=True, max_length=100, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="payments.sessioninvoice",
                    ),
                ),
                (
                    "processed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="session_payments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Session Payment",
                "verbose_name_plural": "Session Payments",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["invoice", "created_at"], name="session_payment_invoice_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BookingDeposit",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("package_purchase_ref", models.CharField(blank=True, db_index=True, max_length=100, null=True)),
                ("amount", money(validators=[django.core.validators.MinValueValidator(Decimal("0"))])),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("paid", "Paid"), ("refunded", "Refunded")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "booking",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="deposits",
                        to="customers.booking",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking Deposit",
                "verbose_name_plural": "Booking Deposits",
                "ordering": ["-created_at"],
            },
        ),
    ]
