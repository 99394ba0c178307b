import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import NotFound
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class UpstreamUnavailable(Exception):
    """Raised when an external data source cannot be fetched or parsed."""

    def __init__(self, source, url=None, reason=None):
        self.source = source
        self.url = url
        self.reason = reason
        message = f"Could not fetch data from {source}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StorageError(Exception):
    """Raised when persisting the refreshed snapshot fails."""
    pass


class CountryNotFound(NotFound):
    default_detail = "Country not found"


def exception_handler(exc, context):
    """Renders every error as ``{"error": ...}`` JSON."""
    if isinstance(exc, UpstreamUnavailable):
        return Response(
            {
                "error": "External data source unavailable",
                "details": f"Could not fetch data from {exc.source}",
                "source": exc.source,
            },
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    if isinstance(exc, (StorageError, DatabaseError)):
        logger.error("Storage failure: %s", exc)
        return Response(
            {"error": "Internal server error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response = drf_exception_handler(exc, context)
    if response is not None and isinstance(response.data, dict) and "detail" in response.data:
        response.data = {"error": response.data["detail"]}
    return response
