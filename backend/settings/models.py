import uuid
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class VenueSettings(models.Model):
    """
    Venue-level billing defaults. One row per venue; a venue without a row
    falls back to the BILLING_DEFAULT_* Django settings.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    venue_id = models.UUIDField(unique=True, db_index=True)
    venue_name = models.CharField(max_length=200, blank=True, default="")
    address = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text=_("Printed on emailed bills and receipts."),
    )
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("10.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text=_("Tax rate as a percentage of the subtotal, e.g. 10 for 10%."),
    )
    service_charge_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("5.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        help_text=_("Service charge as a percentage of the subtotal."),
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Venue Settings")
        verbose_name_plural = _("Venue Settings")

    def __str__(self):
        return f"{self.venue_name or self.venue_id}: tax {self.tax_rate}%, service {self.service_charge_rate}%"
