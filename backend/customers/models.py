"""
Venue guests and the bookings that seat them.
"""
import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class GuestProfileManager(models.Manager):
    """Custom manager for GuestProfile"""

    @staticmethod
    def normalize_email(email):
        if email:
            email = email.strip().lower()
        return email

    @staticmethod
    def normalize_phone(phone):
        if phone:
            phone = "".join(ch for ch in phone.strip() if ch.isdigit() or ch == "+")
        return phone


class GuestProfile(models.Model):
    """
    A venue's guest record. Phone and email are each unique within a venue so a
    guest can be found again by either.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    venue_id = models.UUIDField(db_index=True)
    guest_name = models.CharField(max_length=200)
    guest_phone = models.CharField(max_length=32)
    guest_email = models.EmailField()
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="guest_profiles",
        help_text=_("Linked account, when the guest has one."),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = GuestProfileManager()

    class Meta:
        verbose_name = _("Guest Profile")
        verbose_name_plural = _("Guest Profiles")
        constraints = [
            models.UniqueConstraint(fields=["venue_id", "guest_phone"], name="unique_guest_phone_per_venue"),
            models.UniqueConstraint(fields=["venue_id", "guest_email"], name="unique_guest_email_per_venue"),
        ]

    def __str__(self):
        return self.guest_name

    def save(self, *args, **kwargs):
        self.guest_email = GuestProfileManager.normalize_email(self.guest_email)
        self.guest_phone = GuestProfileManager.normalize_phone(self.guest_phone)
        super().save(*args, **kwargs)


class Booking(models.Model):
    """
    A reservation. Only the fields the seating flow needs live here: the guest
    identity carried onto a session and the check-in state.
    """

    class BookingStatus(models.TextChoices):
        CONFIRMED = "confirmed", _("Confirmed")
        CHECKED_IN = "checked_in", _("Checked In")
        SEATED = "seated", _("Seated")
        CANCELLED = "cancelled", _("Cancelled")
        NO_SHOW = "no_show", _("No Show")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    venue_id = models.UUIDField(db_index=True)
    guest_name = models.CharField(max_length=200)
    guest_profile = models.ForeignKey(
        GuestProfile, on_delete=models.SET_NULL, null=True, blank=True, related_name="bookings"
    )
    party_size = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=20, choices=BookingStatus.choices, default=BookingStatus.CONFIRMED)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        indexes = [
            models.Index(fields=["venue_id", "status"], name="booking_venue_status_idx"),
        ]

    def __str__(self):
        return f"Booking {self.id} ({self.guest_name}) - {self.status}"
