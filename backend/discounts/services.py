from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.db.models import F
from django.utils import timezone
import logging

from core_backend.exceptions import NotFoundError, StateError, ValidationError
from .models import Promo
from .strategies import Adjustment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppliedPromo:
    """Transient result of applying a promo to a subtotal."""

    promo_id: object
    promo_code: str
    title: str
    amount: Decimal

    @property
    def reason(self) -> str:
        return f"Promo {self.promo_code}: {self.title}"


class PromoService:
    """
    Promo lookup by code. Codes are case-insensitive and only match promos that
    are active and inside their date window.
    """

    @staticmethod
    def lookup(venue_id, code: str, at=None) -> Promo:
        """
        Returns the active promo for a code.

        Raises:
            ValidationError: If no code is given
            NotFoundError: If no active promo matches in the current date window
            StateError: If the promo has reached its redemption cap
        """
        normalized = (code or "").strip().upper()
        if not normalized:
            raise ValidationError("MissingPromoCode", "Enter a promo code")

        now = at or timezone.now()
        promo = (
            Promo.objects.filter(
                venue_id=venue_id,
                promo_code=normalized,
                is_active=True,
                starts_at__lte=now,
                ends_at__gte=now,
            )
            .order_by("-starts_at")
            .first()
        )
        if promo is None:
            logger.info(f"Promo code {normalized} not found for venue {venue_id}")
            raise NotFoundError("PromoNotFound", f"Promo code '{normalized}' is invalid or expired")

        if promo.is_exhausted:
            raise StateError(
                "PromoExhausted",
                f"Promo '{normalized}' has reached its redemption limit",
                promo_id=promo.id,
            )
        return promo

    @staticmethod
    def to_adjustment(promo: Promo) -> Adjustment:
        if promo.discount_type == Promo.DiscountType.PERCENTAGE:
            return Adjustment.percent(promo.discount_value)
        return Adjustment.fixed(promo.discount_value)

    @staticmethod
    def apply_promo(promo: Promo, subtotal, currency: Optional[str] = None) -> AppliedPromo:
        amount = PromoService.to_adjustment(promo).resolve(subtotal, currency)
        return AppliedPromo(
            promo_id=promo.id,
            promo_code=promo.promo_code,
            title=promo.title,
            amount=amount,
        )

    @staticmethod
    def record_redemption(promo_id) -> None:
        """Counts one redemption. Run as an advisory step after invoicing."""
        updated = Promo.objects.filter(pk=promo_id).update(current_redemptions=F("current_redemptions") + 1)
        if updated:
            logger.info(f"Promo {promo_id}: redemption recorded")
