"""
API exception handling.

Infrastructure failures (database unavailable, payment gateway timeout) are
reported to clients with a generic retry-later message. The original error is
logged; no stack trace or query text is ever placed in a response body.
"""

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The service is temporarily unavailable. Please try again later.'
    default_code = 'service_unavailable'


class PaymentGatewayError(Exception):
    """Raised when the payment gateway cannot be reached or rejects a request."""


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, (DatabaseError, PaymentGatewayError)):
        view = context.get('view')
        logger.error(
            f"Infrastructure failure in {view.__class__.__name__ if view else 'unknown view'}: {exc!r}"
        )
        return Response(
            {'error': str(ServiceUnavailable.default_detail)},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return None
