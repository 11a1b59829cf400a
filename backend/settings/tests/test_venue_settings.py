"""
Venue billing rates: cached lookup with signal-driven invalidation.
"""
import uuid
import pytest
from decimal import Decimal

from settings.config import BillingRates, VenueSettingsProvider, venue_settings
from settings.models import VenueSettings


@pytest.mark.django_db
class TestVenueSettingsProvider:
    def test_singleton(self):
        assert VenueSettingsProvider() is venue_settings

    def test_rates_from_row(self, venue_id, venue_settings_row):
        rates = venue_settings.get_rates(venue_id)
        assert rates == BillingRates(tax_rate=Decimal('10'), service_charge_rate=Decimal('5'))

    def test_defaults_without_row(self, settings):
        settings.BILLING_DEFAULT_TAX_RATE = '11'
        settings.BILLING_DEFAULT_SERVICE_CHARGE_RATE = '0'

        rates = venue_settings.get_rates(uuid.uuid4())

        assert rates.tax_rate == Decimal('11')
        assert rates.service_charge_rate == Decimal('0')

    def test_second_lookup_is_cached(self, venue_id, venue_settings_row, django_assert_num_queries):
        venue_settings.get_rates(venue_id)

        with django_assert_num_queries(0):
            venue_settings.get_rates(venue_id)

    def test_saving_settings_invalidates_cache(self, venue_id, venue_settings_row):
        venue_settings.get_rates(venue_id)

        venue_settings_row.tax_rate = Decimal('11')
        venue_settings_row.save()

        assert venue_settings.get_rates(venue_id).tax_rate == Decimal('11')

    def test_deleting_settings_falls_back_to_defaults(self, venue_id, venue_settings_row, settings):
        settings.BILLING_DEFAULT_SERVICE_CHARGE_RATE = '0'
        venue_settings.get_rates(venue_id)

        venue_settings_row.delete()

        assert venue_settings.get_rates(venue_id).service_charge_rate == Decimal('0')

    def test_bulk_update_needs_explicit_invalidate(self, venue_id, venue_settings_row):
        venue_settings.get_rates(venue_id)
        VenueSettings.objects.filter(pk=venue_settings_row.pk).update(service_charge_rate=Decimal('0'))

        assert venue_settings.get_rates(venue_id).service_charge_rate == Decimal('5')

        venue_settings.invalidate(venue_id)
        assert venue_settings.get_rates(venue_id).service_charge_rate == Decimal('0')

    def test_invoice_uses_venue_rates(self, billed_session):
        from payments.services import InvoiceService

        invoice = InvoiceService.generate_invoice(billed_session)

        assert invoice.tax_amount == Decimal('10000')
        assert invoice.service_charge == Decimal('5000')
