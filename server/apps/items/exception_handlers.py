"""Mapping of item errors to HTTP responses."""

import logging
from typing import Any

from django.core.exceptions import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from server.apps.items.exceptions import ItemNotFoundError, QuotaExceededError

logger = logging.getLogger(__name__)


def _validation_message(error: ValidationError) -> str:
    """Flatten a Django ValidationError into one message.

    Args:
        error: Validation error.

    Returns:
        Messages joined with '; '.
    """
    return '; '.join(error.messages)


def quota_exceeded_payload(error: QuotaExceededError) -> dict[str, Any]:
    """Build the response body for a quota rejection.

    Args:
        error: Quota error.

    Returns:
        Message plus usage figures in bytes.
    """
    return {
        'message': 'Insufficient storage for new files',
        'details': {
            'currentUsed': error.used_bytes,
            'availableSpace': error.available_bytes,
            'requiredSpace': error.required_bytes,
            'skippedFiles': error.skipped_count,
        },
    }


def item_exception_handler(
    exc: Exception,
    context: dict[str, Any],
) -> Response | None:
    """DRF exception handler for the items API.

    Domain errors become 400/404 responses with a ``message``; errors
    DRF knows about keep DRF's handling; anything else is logged and
    reported as a generic 500.

    Args:
        exc: Raised exception.
        context: DRF handler context (view, request, ...).

    Returns:
        Response to send.
    """
    if isinstance(exc, QuotaExceededError):
        return Response(
            quota_exceeded_payload(exc),
            status=status.HTTP_400_BAD_REQUEST,
        )
    if isinstance(exc, ValidationError):
        return Response(
            {'message': _validation_message(exc)},
            status=status.HTTP_400_BAD_REQUEST,
        )
    if isinstance(exc, ItemNotFoundError):
        return Response(
            {'message': 'Item not found'},
            status=status.HTTP_404_NOT_FOUND,
        )

    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    logger.exception(
        'Unhandled error in %s',
        type(view).__name__ if view else 'items API',
    )
    return Response(
        {'message': 'Request failed', 'error': str(exc)},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
