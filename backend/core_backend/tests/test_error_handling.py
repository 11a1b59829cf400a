"""
Error taxonomy and its mapping onto HTTP responses.
"""
import pytest
from unittest.mock import Mock

from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.exceptions import NotAuthenticated

from core_backend.api_exceptions import billing_exception_handler, status_for
from core_backend.exceptions import (
    BillingError,
    ConflictError,
    InvalidQuantity,
    InvalidTransition,
    NotFoundError,
    StateError,
    UpstreamError,
    ValidationError,
    upstream_guard,
)
from core_backend.results import ServiceResult, run_best_effort


def _context():
    return {'request': Mock(method='POST', path='/api/table-sessions/')}


class TestErrorTaxonomy:
    def test_code_and_message(self):
        error = ValidationError('EmptyBill', 'There are no billable items on this session')
        assert error.code == 'EmptyBill'
        assert str(error) == 'There are no billable items on this session'

    def test_default_code(self):
        assert ConflictError().code == 'Conflict'
        assert str(NotFoundError()) == 'NotFound'

    def test_invalid_quantity(self):
        error = InvalidQuantity(0)
        assert isinstance(error, ValidationError)
        assert error.code == 'InvalidQuantity'
        assert error.context == {'quantity': 0}

    def test_invalid_transition_is_a_state_error(self):
        error = InvalidTransition('session', 'closed', 'billing')
        assert isinstance(error, StateError)
        assert "'closed'" in error.message

    def test_only_upstream_is_retryable(self):
        assert UpstreamError().retryable
        assert not StateError().retryable


class TestUpstreamGuard:
    def test_database_errors_become_upstream(self):
        with pytest.raises(UpstreamError) as exc_info:
            with upstream_guard('Invoice generation'):
                raise IntegrityError('duplicate key')

        assert exc_info.value.context['operation'] == 'Invoice generation'
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    def test_billing_errors_pass_through(self):
        with pytest.raises(ConflictError):
            with upstream_guard('Invoice generation'):
                raise ConflictError('ActiveInvoiceExists', 'already invoiced')


@pytest.mark.django_db
class TestBestEffort:
    def test_failure_is_recorded_not_raised(self):
        result = ServiceResult(value='session')

        def failing_step():
            raise DatabaseError('connection reset')

        outcome = run_best_effort('release_table', failing_step, result)

        assert not outcome.ok
        assert result.failed_advisories == [outcome]
        assert result.value == 'session'

    def test_success_is_recorded(self):
        result = ServiceResult(value=None)
        run_best_effort('mark_table_occupied', lambda: None, result)

        assert result.fully_succeeded
        assert result.advisory('mark_table_occupied').ok

    def test_other_exceptions_propagate(self):
        with pytest.raises(KeyError):
            run_best_effort('bug', lambda: {}['missing'])


class TestExceptionHandler:
    @pytest.mark.parametrize('error, expected', [
        (ValidationError('InvalidQuantity'), status.HTTP_400_BAD_REQUEST),
        (NotFoundError('PromoNotFound'), status.HTTP_404_NOT_FOUND),
        (ConflictError('DuplicateGuest'), status.HTTP_409_CONFLICT),
        (StateError('SessionLocked'), status.HTTP_409_CONFLICT),
        (UpstreamError(), status.HTTP_503_SERVICE_UNAVAILABLE),
        (BillingError(), status.HTTP_400_BAD_REQUEST),
    ])
    def test_status_mapping(self, error, expected):
        assert status_for(error) == expected

    def test_response_body(self):
        response = billing_exception_handler(StateError('NotSettled', '65000 outstanding'), _context())

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data == {'error': 'NotSettled', 'detail': '65000 outstanding'}

    def test_retryable_flag(self):
        response = billing_exception_handler(UpstreamError('Upstream', 'retry'), _context())
        assert response.data['retryable'] is True

    def test_drf_errors_use_default_handler(self):
        response = billing_exception_handler(NotAuthenticated(), _context())
        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)
