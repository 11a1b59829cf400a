"""
DRF exception handler that turns billing errors into JSON responses.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import (
    BillingError,
    ConflictError,
    NotFoundError,
    StateError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StateError, status.HTTP_409_CONFLICT),
    (UpstreamError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc):
    for error_class, http_status in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def billing_exception_handler(exc, context):
    """
    Maps BillingError subclasses to HTTP responses; everything else falls back to
    DRF's default handler.
    """
    if isinstance(exc, BillingError):
        http_status = status_for(exc)
        request = context.get("request")
        if request is not None:
            logger.warning(
                f"Billing API error {exc.code} on {request.method} {request.path}: {exc.message}"
            )
        data = {"error": exc.code, "detail": exc.message}
        if exc.retryable:
            data["retryable"] = True
        return Response(data, status=http_status)

    return exception_handler(exc, context)
