"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest
from django.core.cache import cache


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def clear_cache_after_test():
    """
    Clear cache after each test to prevent cache pollution.

    Venue rates are cached, so a test that changes VenueSettings must not
    leak into the next one.
    """
    yield  # Run the test
    cache.clear()


@pytest.fixture(autouse=True)
def reset_subscriptions():
    """Drop in-process session subscriptions left behind by a test."""
    yield
    from tables import subscriptions
    subscriptions.clear()


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def api_client():
    """
    Provide DRF API client for testing.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/health/')
    """
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, staff_user):
    """
    API client logged in as a staff member.

    Usage:
        def test_protected_endpoint(authenticated_client):
            response = authenticated_client.get('/api/table-sessions/')
    """
    api_client.force_authenticate(user=staff_user)
    return api_client


# ============================================================================
# IMPORT ALL FIXTURES FROM core_backend/tests/fixtures.py
# ============================================================================
from core_backend.tests.fixtures import *
