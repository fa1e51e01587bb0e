# shared/common/middleware.py
"""
Request Middleware

Request tracing and access logging for the booking API.
"""

import logging
import time
import uuid
from typing import Callable, Optional

from django.http import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = 'X-Request-ID'
QUIET_PATHS = ('/health/', '/ready/')


class RequestIDMiddleware:
    """
    Tags every request with an id.

    An incoming ``X-Request-ID`` is kept so that a booking can be traced
    from the storefront through the error envelope and the access log.
    """

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        response = self.get_response(request)
        response[REQUEST_ID_HEADER] = request.request_id
        return response


class LoggingMiddleware:
    """
    Access log with the acting customer.

    Authentication happens inside DRF, so the customer id is read after
    the view ran. Client errors log at WARNING and server errors at ERROR.
    """

    def __init__(self, get_response: Callable):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        if request.path in QUIET_PATHS:
            return self.get_response(request)

        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = round((time.monotonic() - started) * 1000, 2)

        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        logger.log(
            level,
            f"{request.method} {request.path} -> {response.status_code} ({elapsed_ms}ms)",
            extra={
                'request_id': getattr(request, 'request_id', None),
                'customer_id': self.get_actor(request),
                'client_ip': self.get_client_ip(request),
                'status_code': response.status_code,
                'duration_ms': elapsed_ms,
            }
        )
        response['X-Response-Time'] = f"{elapsed_ms}ms"
        return response

    @staticmethod
    def get_actor(request: HttpRequest) -> Optional[str]:
        user = getattr(request, 'user', None)
        if user is None or not getattr(user, 'is_authenticated', False):
            return None
        return str(getattr(user, 'id', '')) or None

    @staticmethod
    def get_client_ip(request: HttpRequest) -> str:
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
        if forwarded:
            return forwarded.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR', '')
