import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Promo(models.Model):
    """
    A venue promo redeemable by code. Promos are only looked up here; once
    applied, the amount is folded into an invoice's discount fields and the
    promo itself is not linked to the invoice.
    """

    class DiscountType(models.TextChoices):
        PERCENTAGE = "percentage", _("Percentage of subtotal")
        FIXED = "fixed", _("Fixed amount")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    venue_id = models.UUIDField(db_index=True)
    promo_code = models.CharField(max_length=50)
    title = models.CharField(max_length=200)
    discount_type = models.CharField(max_length=20, choices=DiscountType.choices)
    discount_value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        help_text=_("Percentage (e.g. 15 for 15%) or a fixed amount, depending on discount_type."),
    )
    max_redemptions = models.PositiveIntegerField(
        null=True, blank=True, help_text=_("Leave empty for unlimited redemptions.")
    )
    current_redemptions = models.PositiveIntegerField(default=0)
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Promo")
        verbose_name_plural = _("Promos")
        constraints = [
            models.UniqueConstraint(fields=["venue_id", "promo_code"], name="unique_promo_code_per_venue"),
        ]
        indexes = [
            models.Index(fields=["venue_id", "promo_code", "is_active"], name="promo_lookup_idx"),
        ]

    def __str__(self):
        return f"{self.promo_code} ({self.title})"

    def save(self, *args, **kwargs):
        self.promo_code = (self.promo_code or "").strip().upper()
        super().save(*args, **kwargs)

    @property
    def is_exhausted(self) -> bool:
        return self.max_redemptions is not None and self.current_redemptions >= self.max_redemptions
