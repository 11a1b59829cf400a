import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="GuestProfile",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("venue_id", models.UUIDField(db_index=True)),
                ("guest_name", models.CharField(max_length=200)),
                ("guest_phone", models.CharField(max_length=32)),
                ("guest_email", models.EmailField(max_length=254)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        help_text="Linked account, when the guest has one.",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="guest_profiles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Guest Profile",
                "verbose_name_plural": "Guest Profiles",
                "constraints": [
                    models.UniqueConstraint(fields=("venue_id", "guest_phone"), name="unique_guest_phone_per_venue"),
                    models.UniqueConstraint(fields=("venue_id", "guest_email"), name="unique_guest_email_per_venue"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("venue_id", models.UUIDField(db_index=True)),
                ("guest_name", models.CharField(max_length=200)),
                ("party_size", models.PositiveIntegerField(default=1)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("confirmed", "Confirmed"),
                            ("checked_in", "Checked In"),
                            ("seated", "Seated"),
                            ("cancelled", "Cancelled"),
                            ("no_show", "No Show"),
                        ],
                        default="confirmed",
                        max_length=20,
                    ),
                ),
                ("checked_in_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "guest_profile",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="bookings",
                        to="customers.guestprofile",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "indexes": [
                    models.Index(fields=["venue_id", "status"], name="booking_venue_status_idx"),
                ],
            },
        ),
    ]
