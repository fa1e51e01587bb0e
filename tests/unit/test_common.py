# tests/unit/test_common.py
"""
Unit Tests for the Shared Request Plumbing

Bearer token authentication, request ids and the error envelope.
"""

import uuid
from datetime import timedelta

import pytest
from rest_framework import status
from rest_framework.test import APIClient

from apps.booking.models import Customer
from shared.common.authentication import generate_access_token
from shared.common.exceptions import ServiceError, custom_exception_handler


def bearer(token):
    return {'HTTP_AUTHORIZATION': f'Bearer {token}'}


@pytest.mark.django_db
class TestJWTAuthentication:
    """Tests for bearer token authentication."""

    def test_valid_token_creates_customer(self):
        sub = uuid.uuid4()
        token = generate_access_token(sub, 'jwt@example.com', ['customer'])

        response = APIClient().get('/api/v1/customers/me/', **bearer(token))

        assert response.status_code == status.HTTP_200_OK
        assert Customer.objects.get(id=sub).email == 'jwt@example.com'

    def test_expired_token(self):
        token = generate_access_token(
            uuid.uuid4(), 'old@example.com', ['customer'], lifetime=timedelta(seconds=-5)
        )

        response = APIClient().get('/api/v1/customers/me/', **bearer(token))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['error']['code'] == 'UNAUTHORIZED'
        assert response.data['error']['message'] == 'Token has expired'

    def test_bad_signature(self, settings):
        token = generate_access_token(uuid.uuid4(), 'x@example.com', ['admin'])
        settings.JWT_SECRET_KEY = 'a-different-secret-key-0123456789abcdef'

        response = APIClient().get('/api/v1/customers/me/', **bearer(token))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_malformed_header(self):
        response = APIClient().get(
            '/api/v1/customers/me/', HTTP_AUTHORIZATION='Bearer one two'
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestRequestID:

    def test_incoming_id_is_echoed(self, api_client):
        response = api_client.get('/api/v1/bookings/', HTTP_X_REQUEST_ID='trace-42')

        assert response['X-Request-ID'] == 'trace-42'
        assert response.data['error']['request_id'] == 'trace-42'

    def test_id_generated(self, api_client):
        response = api_client.get('/health/')

        assert len(response['X-Request-ID']) == 32


class TestExceptionHandler:
    """Tests for the error envelope."""

    def test_service_error(self):
        class SlotError(ServiceError):
            status_code = 409
            error_code = 'SLOT_ERROR'

        response = custom_exception_handler(
            SlotError('Route is full', details={'remaining': 0}), {}
        )

        assert response.status_code == 409
        assert response.data == {
            'success': False,
            'error': {
                'code': 'SLOT_ERROR',
                'message': 'Route is full',
                'request_id': None,
                'details': {'remaining': 0},
            },
        }

    def test_unhandled_error_is_generic(self, settings):
        settings.DEBUG = False

        response = custom_exception_handler(RuntimeError('boom'), {})

        assert response.status_code == 500
        assert response.data['error']['code'] == 'INTERNAL_ERROR'
        assert 'boom' not in response.data['error']['message']
