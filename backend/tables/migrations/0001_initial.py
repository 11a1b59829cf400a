import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("customers", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Table",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("venue_id", models.UUIDField(db_index=True)),
                ("table_number", models.CharField(max_length=20)),
                ("seats", models.PositiveIntegerField(default=2)),
                ("location_zone", models.CharField(blank=True, default="", max_length=50)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("reserved", "Reserved"),
                            ("occupied", "Occupied"),
                            ("maintenance", "Maintenance"),
                        ],
                        default="available",
                        help_text="Advisory seating status kept in step with table sessions.",
                        max_length=20,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Table",
                "verbose_name_plural": "Tables",
                "ordering": ["table_number"],
                "constraints": [
                    models.UniqueConstraint(fields=("venue_id", "table_number"), name="unique_table_number_per_venue"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TableSession",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("venue_id", models.UUIDField(db_index=True)),
                (
                    "package_purchase_ref",
                    models.CharField(
                        blank=True,
                        help_text="Package purchase the party redeemed; source of deposit credit.",
                        max_length=100,
                        null=True,
                    ),
                ),
                ("guest_count", models.PositiveIntegerField(default=1)),
                ("guest_name", models.CharField(blank=True, default="", max_length=200)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "status",
                    models.CharField(
                        choices=[("open", "Open"), ("billing", "Billing"), ("paid", "Paid"), ("closed", "Closed")],
                        default="open",
                        max_length=20,
                    ),
                ),
                ("opened_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "booking",
                    models.ForeignKey(
                        blank=True,
                        help_text="Booking the party was seated from; source of deposit credit.",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="table_sessions",
                        to="customers.booking",
                    ),
                ),
                (
                    "closed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="closed_table_sessions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "opened_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="opened_table_sessions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "table",
                    models.ForeignKey(
                        blank=True,
                        help_text="Empty for walk-in sessions.",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sessions",
                        to="tables.table",
                    ),
                ),
            ],
            options={
                "verbose_name": "Table Session",
                "verbose_name_plural": "Table Sessions",
                "ordering": ["-opened_at"],
                "indexes": [
                    models.Index(fields=["venue_id", "status"], name="session_venue_status_idx"),
                    models.Index(fields=["table", "status"], name="session_table_status_idx"),
                ],
            },
        ),
    ]
