# shared/common/exceptions.py
"""
Exception Classes and the API Exception Handler

All errors leave the API in one envelope::

    {"success": false, "error": {"code", "message", "request_id", "details"?}}
"""

import logging
import traceback
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

DEFAULT_ERROR_CODES = {
    400: 'VALIDATION_ERROR',
    401: 'UNAUTHORIZED',
    403: 'FORBIDDEN',
    404: 'NOT_FOUND',
    405: 'METHOD_NOT_ALLOWED',
    415: 'UNSUPPORTED_MEDIA_TYPE',
    429: 'THROTTLED',
}


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ServiceError(Exception):
    """
    Base class for domain errors raised by the booking services.

    Services stay free of DRF imports; the handler below maps
    ``status_code`` and ``error_code`` onto the response.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = 'SERVICE_ERROR'

    def __init__(self, message: str = '', details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ForbiddenException(APIException):
    """Raised by views for role checks that depend on the request body."""

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'
    default_code = 'forbidden'
    error_code = 'FORBIDDEN'


# =============================================================================
# EXCEPTION HANDLER
# =============================================================================

def error_envelope(code: str, message: str, request_id: Optional[str],
                   details: Any = None, http_status: int = 400) -> Response:
    error = {'code': code, 'message': message, 'request_id': request_id}
    if details:
        error['details'] = details
    return Response({'success': False, 'error': error}, status=http_status)


def custom_exception_handler(exc, context) -> Optional[Response]:
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    if isinstance(exc, ServiceError):
        log = logger.warning if exc.status_code >= status.HTTP_409_CONFLICT else logger.info
        log(
            f"{exc.error_code}: {exc.message}",
            extra={'request_id': request_id, 'error_code': exc.error_code}
        )
        return error_envelope(
            exc.error_code, exc.message, request_id, exc.details, exc.status_code
        )

    response = exception_handler(exc, context)
    if response is not None:
        code = getattr(exc, 'error_code', None) or DEFAULT_ERROR_CODES.get(
            response.status_code, 'ERROR'
        )
        details = None
        if isinstance(response.data, dict) and 'detail' not in response.data:
            details = response.data
        response.data = error_envelope(
            code, get_error_message(exc, response), request_id, details
        ).data
        return response

    if isinstance(exc, DjangoValidationError):
        details = exc.message_dict if hasattr(exc, 'error_dict') else {'detail': exc.messages}
        return error_envelope('VALIDATION_ERROR', 'Validation error', request_id, details)

    if isinstance(exc, Http404):
        return error_envelope(
            'NOT_FOUND', str(exc) or 'Resource not found', request_id,
            http_status=status.HTTP_404_NOT_FOUND
        )

    logger.exception(
        f"Unhandled exception: {exc}",
        extra={'request_id': request_id, 'exception_type': type(exc).__name__}
    )
    if settings.DEBUG:
        return error_envelope(
            'INTERNAL_ERROR', str(exc), request_id,
            {'type': type(exc).__name__, 'traceback': traceback.format_exc().splitlines()},
            status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return error_envelope(
        'INTERNAL_ERROR', 'An unexpected error occurred. Please try again later.',
        request_id, http_status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


def get_error_message(exc, response: Response) -> str:
    detail = getattr(exc, 'detail', None)
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        return str(detail[0])
    if isinstance(detail, dict):
        return str(detail['detail']) if 'detail' in detail else 'Validation error'
    if isinstance(response.data, dict):
        return str(response.data.get('detail', response.data))
    return str(response.data)
