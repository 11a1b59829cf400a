"""
Venue billing configuration provider.

Business logic asks this provider for a venue's tax and service-charge rates
instead of querying VenueSettings directly. Lookups are cached and the cache is
invalidated from the VenueSettings post_save signal.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.core.cache import cache
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillingRates:
    tax_rate: Decimal
    service_charge_rate: Decimal


class VenueSettingsProvider:
    """
    A LAZY singleton giving access to per-venue billing defaults.
    Nothing touches the database until the first lookup, so management commands
    can run before migrations are applied.
    """

    _instance: Optional["VenueSettingsProvider"] = None

    def __new__(cls) -> "VenueSettingsProvider":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @staticmethod
    def cache_key(venue_id) -> str:
        return f"venue_settings:{venue_id}"

    @staticmethod
    def defaults() -> BillingRates:
        return BillingRates(
            tax_rate=Decimal(str(settings.BILLING_DEFAULT_TAX_RATE)),
            service_charge_rate=Decimal(str(settings.BILLING_DEFAULT_SERVICE_CHARGE_RATE)),
        )

    def get_rates(self, venue_id) -> BillingRates:
        """Tax and service-charge rates for a venue."""
        key = self.cache_key(venue_id)
        rates = cache.get(key)
        if rates is not None:
            return rates

        from .models import VenueSettings

        row = VenueSettings.objects.filter(venue_id=venue_id).first()
        if row is None:
            rates = self.defaults()
            logger.debug(f"No VenueSettings for venue {venue_id}; using configured defaults")
        else:
            rates = BillingRates(tax_rate=row.tax_rate, service_charge_rate=row.service_charge_rate)

        cache.set(key, rates, settings.VENUE_SETTINGS_CACHE_TIMEOUT)
        return rates

    def invalidate(self, venue_id) -> None:
        cache.delete(self.cache_key(venue_id))
        logger.info(f"Venue settings cache invalidated for venue {venue_id}")


venue_settings = VenueSettingsProvider()
