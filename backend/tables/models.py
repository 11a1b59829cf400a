import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Table(models.Model):
    """A physical seating unit in a venue."""

    class TableStatus(models.TextChoices):
        AVAILABLE = "available", _("Available")
        RESERVED = "reserved", _("Reserved")
        OCCUPIED = "occupied", _("Occupied")
        MAINTENANCE = "maintenance", _("Maintenance")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    venue_id = models.UUIDField(db_index=True)
    table_number = models.CharField(max_length=20)
    seats = models.PositiveIntegerField(default=2)
    location_zone = models.CharField(max_length=50, blank=True, default="")
    status = models.CharField(
        max_length=20,
        choices=TableStatus.choices,
        default=TableStatus.AVAILABLE,
        help_text=_("Advisory seating status kept in step with table sessions."),
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["table_number"]
        verbose_name = _("Table")
        verbose_name_plural = _("Tables")
        constraints = [
            models.UniqueConstraint(fields=["venue_id", "table_number"], name="unique_table_number_per_venue"),
        ]

    def __str__(self):
        return f"Table {self.table_number}"


class TableSession(models.Model):
    """
    One party's occupancy of a table (or a walk-in with no table), from seating
    to settlement. A session that has not been opened has no row.
    """

    class SessionStatus(models.TextChoices):
        OPEN = "open", _("Open")
        BILLING = "billing", _("Billing")
        PAID = "paid", _("Paid")
        CLOSED = "closed", _("Closed")

    MUTABLE_STATUSES = (SessionStatus.OPEN, SessionStatus.BILLING)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    venue_id = models.UUIDField(db_index=True)
    table = models.ForeignKey(
        Table,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="sessions",
        help_text=_("Empty for walk-in sessions."),
    )
    booking = models.ForeignKey(
        "customers.Booking",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="table_sessions",
        help_text=_("Booking the party was seated from; source of deposit credit."),
    )
    package_purchase_ref = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text=_("Package purchase the party redeemed; source of deposit credit."),
    )
    guest_count = models.PositiveIntegerField(default=1)
    guest_name = models.CharField(max_length=200, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=20,
        choices=SessionStatus.choices,
        default=SessionStatus.OPEN,
    )
    opened_at = models.DateTimeField(default=timezone.now)
    closed_at = models.DateTimeField(null=True, blank=True)
    opened_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opened_table_sessions",
    )
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="closed_table_sessions",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-opened_at"]
        verbose_name = _("Table Session")
        verbose_name_plural = _("Table Sessions")
        indexes = [
            models.Index(fields=["venue_id", "status"], name="session_venue_status_idx"),
            models.Index(fields=["table", "status"], name="session_table_status_idx"),
        ]

    def __str__(self):
        where = f"Table {self.table.table_number}" if self.table_id else "Walk-in"
        return f"{where} - {self.guest_name or 'Guest'} ({self.status})"

    @property
    def is_mutable(self) -> bool:
        return self.status in self.MUTABLE_STATUSES
