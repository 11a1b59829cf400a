import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

STATUS_CHOICES = [
    ("pending", "Pending"),
    ("preparing", "Preparing"),
    ("ready", "Ready"),
    ("served", "Served"),
    ("cancelled", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("tables", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SessionOrder",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_number", models.PositiveIntegerField(help_text="1-based sequence number within the session.")),
                ("status", models.CharField(choices=STATUS_CHOICES, default="pending", max_length=20)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "ordered_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="session_orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="orders",
                        to="tables.tablesession",
                    ),
                ),
            ],
            options={
                "verbose_name": "Session Order",
                "verbose_name_plural": "Session Orders",
                "ordering": ["session", "order_number"],
                "constraints": [
                    models.UniqueConstraint(fields=("session", "order_number"), name="unique_order_number_per_session"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SessionOrderItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "menu_item_ref",
                    models.CharField(blank=True, help_text="Catalog reference; empty for custom items.", max_length=100, null=True),
                ),
                ("item_name", models.CharField(max_length=200)),
                ("quantity", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                (
                    "unit_price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Price snapshot at the time of ordering.",
                        max_digits=14,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "destination",
                    models.CharField(choices=[("kitchen", "Kitchen"), ("bar", "Bar")], default="kitchen", max_length=10),
                ),
                ("status", models.CharField(choices=STATUS_CHOICES, default="pending", max_length=20)),
                ("notes", models.TextField(blank=True, default="")),
                ("served_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.sessionorder",
                    ),
                ),
            ],
            options={
                "verbose_name": "Session Order Item",
                "verbose_name_plural": "Session Order Items",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["order", "status"], name="order_item_status_idx"),
                ],
            },
        ),
    ]
