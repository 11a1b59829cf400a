"""
Error taxonomy for the table session and billing engine.

Every primary failure carries a machine-readable ``code`` and a human-readable
message. Services raise these; the API layer maps them to HTTP responses in
``core_backend.api_exceptions``.
"""

import logging
from contextlib import contextmanager

from django.db import DatabaseError

logger = logging.getLogger(__name__)


class BillingError(Exception):
    """Base exception for table session and billing errors."""

    default_code = "BillingError"
    retryable = False

    def __init__(self, code=None, message=None, **context):
        self.code = code or self.default_code
        self.context = context
        if message is None:
            message = self.code
        self.message = message
        super().__init__(message)

    def __str__(self):
        return self.message


class ValidationError(BillingError):
    """Bad input shape: quantity < 1, missing guest fields, empty bill."""

    default_code = "ValidationError"


class ConflictError(BillingError):
    """Duplicate guest, second active single invoice, lossy split resize."""

    default_code = "Conflict"


class StateError(BillingError):
    """Operation invalid for the current session or invoice status."""

    default_code = "InvalidState"


class NotFoundError(BillingError):
    """Promo code, invoice or session does not exist."""

    default_code = "NotFound"


class UpstreamError(BillingError):
    """Persistence failure. Always retryable by the caller."""

    default_code = "Upstream"
    retryable = True


class InvalidQuantity(ValidationError):
    def __init__(self, quantity, message=None):
        self.quantity = quantity
        if message is None:
            message = f"Quantity must be at least 1 (got {quantity}). Delete the item instead."
        super().__init__("InvalidQuantity", message, quantity=quantity)


class InvalidTransition(StateError):
    def __init__(self, entity, current, target, message=None):
        if message is None:
            message = f"Cannot move {entity} from '{current}' to '{target}'"
        super().__init__("InvalidTransition", message, current=current, target=target)


@contextmanager
def upstream_guard(operation):
    """
    Converts database failures inside a primary operation into UpstreamError so
    callers get one retryable error type with a readable reason.
    """
    try:
        yield
    except DatabaseError as e:
        logger.error(f"{operation} failed against the data store: {e}", exc_info=True)
        raise UpstreamError(
            "Upstream",
            f"{operation} could not be saved. Please retry.",
            operation=operation,
        ) from e
