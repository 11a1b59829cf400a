"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like venues, users, tables, sessions and invoices.

Amounts are in IDR (no minor unit). The default bill is 100,000:
    2 x Nasi Goreng @ 35,000 + 2 x Es Teh @ 15,000
which with 10% tax and 5% service charge totals 115,000.
"""
import uuid
import pytest
from decimal import Decimal
from django.contrib.auth import get_user_model
from django.utils import timezone
from datetime import timedelta

from customers.models import Booking, GuestProfile
from discounts.models import Promo
from orders.services import OrderLedgerService
from payments.models import BookingDeposit
from settings.models import VenueSettings
from tables.models import Table
from tables.services import SessionService

User = get_user_model()


# ============================================================================
# VENUE FIXTURES
# ============================================================================

@pytest.fixture
def venue_id():
    return uuid.uuid4()


@pytest.fixture
def venue_settings_row(db, venue_id):
    """Venue with 10% tax and 5% service charge"""
    return VenueSettings.objects.create(
        venue_id=venue_id,
        venue_name='Warung Senja',
        tax_rate=Decimal('10'),
        service_charge_rate=Decimal('5'),
    )


# ============================================================================
# USER FIXTURES
# ============================================================================

@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        username='cashier',
        email='cashier@warungsenja.id',
        password='password123',
        first_name='Sari',
        last_name='Cashier',
    )


# ============================================================================
# TABLE & SESSION FIXTURES
# ============================================================================

@pytest.fixture
def table(db, venue_id):
    return Table.objects.create(venue_id=venue_id, table_number='T1', seats=4, location_zone='Indoor')


@pytest.fixture
def session(venue_settings_row, venue_id, table, staff_user):
    """An open session at table T1 with no orders"""
    result = SessionService.open_session(
        venue_id=venue_id,
        guest_count=2,
        guest_name='Budi',
        table=table,
        opened_by=staff_user,
    )
    return result.value


NASI_GORENG = {'item_name': 'Nasi Goreng', 'quantity': 2, 'unit_price': '35000', 'destination': 'kitchen'}
ES_TEH = {'item_name': 'Es Teh', 'quantity': 2, 'unit_price': '15000', 'destination': 'bar'}


@pytest.fixture
def order(session, staff_user):
    """Order #1 on the session: subtotal 100,000"""
    return OrderLedgerService.create_order(session, [NASI_GORENG, ES_TEH], ordered_by=staff_user)


@pytest.fixture
def billed_session(session, order):
    """Session with the default 100,000 bill"""
    session.refresh_from_db()
    return session


# ============================================================================
# GUEST & BOOKING FIXTURES
# ============================================================================

@pytest.fixture
def guest_profile(db, venue_id):
    return GuestProfile.objects.create(
        venue_id=venue_id,
        guest_name='Ayu Lestari',
        guest_phone='+62 812-1111-2222',
        guest_email='Ayu@Example.com',
    )


@pytest.fixture
def booking(db, venue_id, guest_profile):
    return Booking.objects.create(
        venue_id=venue_id,
        guest_name='Ayu Lestari',
        guest_profile=guest_profile,
        party_size=4,
    )


@pytest.fixture
def paid_deposit(booking):
    return BookingDeposit.objects.create(
        booking=booking,
        amount=Decimal('50000'),
        status=BookingDeposit.DepositStatus.PAID,
        paid_at=timezone.now(),
    )


@pytest.fixture
def split_guests():
    return [
        {'name': 'Ayu', 'phone': '081211112222', 'email': 'ayu@example.com'},
        {'name': 'Budi', 'phone': '081233334444', 'email': 'budi@example.com'},
        {'name': 'Citra', 'phone': '081255556666', 'email': 'citra@example.com'},
    ]


# ============================================================================
# PROMO FIXTURES
# ============================================================================

@pytest.fixture
def promo(db, venue_id):
    """10% off, valid now, 2 redemptions left"""
    now = timezone.now()
    return Promo.objects.create(
        venue_id=venue_id,
        promo_code='hemat10',
        title='Hemat 10%',
        discount_type=Promo.DiscountType.PERCENTAGE,
        discount_value=Decimal('10'),
        max_redemptions=2,
        starts_at=now - timedelta(days=1),
        ends_at=now + timedelta(days=1),
    )
