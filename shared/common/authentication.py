# shared/common/authentication.py
"""
JWT Authentication

Bearer tokens are issued by the storefront's identity provider. The
``sub`` claim is the customer id; ``roles`` carries ``customer``,
``admin`` or ``service`` (payment gateway relay).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import jwt
from django.conf import settings
from rest_framework import authentication, exceptions
from rest_framework.request import Request

logger = logging.getLogger(__name__)


class JWTAuthentication(authentication.BaseAuthentication):
    """Authenticate ``Authorization: Bearer <token>`` headers."""

    keyword = 'Bearer'

    def authenticate(self, request: Request) -> Optional[Tuple['TokenUser', Dict]]:
        header = authentication.get_authorization_header(request)
        if not header:
            return None

        try:
            parts = header.decode('utf-8').split()
        except UnicodeDecodeError:
            raise exceptions.AuthenticationFailed('Invalid token header encoding')

        if not parts or parts[0].lower() != self.keyword.lower():
            return None
        if len(parts) != 2:
            raise exceptions.AuthenticationFailed('Invalid token header format')

        payload = self.decode(parts[1])
        return TokenUser(payload), payload

    def decode(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
                options={'require': ['exp', 'sub']},
            )
        except jwt.ExpiredSignatureError:
            raise exceptions.AuthenticationFailed('Token has expired')
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected bearer token: {e}")
            raise exceptions.AuthenticationFailed('Invalid token')

    def authenticate_header(self, request: Request) -> str:
        return self.keyword


class TokenUser:
    """
    Request user built from the token claims.

    ``id`` is the customer id; the Customer row itself is created lazily
    by the API layer on first use.
    """

    is_active = True
    is_authenticated = True
    is_anonymous = False

    def __init__(self, payload: Dict):
        self.payload = payload
        self.id = payload.get('sub')
        self.email = payload.get('email')
        self.name = payload.get('name', '')
        self.roles: List[str] = list(payload.get('roles', []))

    def __str__(self) -> str:
        return f"TokenUser({self.id})"

    @property
    def is_admin(self) -> bool:
        return 'admin' in self.roles

    @property
    def is_service(self) -> bool:
        return 'service' in self.roles


def generate_access_token(
    customer_id: str,
    email: str,
    roles: List[str],
    name: str = '',
    lifetime: Optional[timedelta] = None,
) -> str:
    """Issue a signed access token (used by tooling and tests)."""
    now = datetime.now(timezone.utc)
    lifetime = lifetime or timedelta(seconds=settings.JWT_ACCESS_TOKEN_LIFETIME)

    return jwt.encode(
        {
            'sub': str(customer_id),
            'email': email,
            'name': name,
            'roles': roles,
            'iat': now,
            'exp': now + lifetime,
        },
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )
