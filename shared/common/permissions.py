# shared/common/permissions.py
"""
Custom Permission Classes for Role-Based Access Control (RBAC)
"""

from typing import List
from rest_framework import permissions
from rest_framework.request import Request
from rest_framework.views import APIView
import logging

logger = logging.getLogger(__name__)


class BasePermission(permissions.BasePermission):
    """Base permission class with utility methods"""

    def get_user_roles(self, request: Request) -> List[str]:
        """Get roles from user object or JWT payload"""
        if hasattr(request.user, 'roles'):
            return request.user.roles
        if hasattr(request, 'auth') and isinstance(request.auth, dict):
            return request.auth.get('roles', [])
        return []

    def is_authenticated(self, request: Request) -> bool:
        return bool(
            request.user and
            getattr(request.user, 'is_authenticated', False)
        )


class HasRole(BasePermission):
    """Check if user has required role(s)"""

    required_roles: List[str] = []

    def has_permission(self, request: Request, view: APIView) -> bool:
        if not self.is_authenticated(request):
            return False

        return bool(set(self.required_roles) & set(self.get_user_roles(request)))


class IsAdmin(HasRole):
    """Only platform administrators"""

    required_roles = ['admin']


class IsAdminOrService(HasRole):
    """Administrators or trusted internal callers (payment gateway relay)"""

    required_roles = ['admin', 'service']


class IsAdminOrReadOnly(BasePermission):
    """Read access for anyone, writes for admins"""

    def has_permission(self, request: Request, view: APIView) -> bool:
        if request.method in permissions.SAFE_METHODS:
            return True
        if not self.is_authenticated(request):
            return False
        return 'admin' in self.get_user_roles(request)


class IsOwnerOrAdmin(BasePermission):
    """Verify user owns the resource or is an administrator"""

    owner_field: str = 'customer_id'

    def has_permission(self, request: Request, view: APIView) -> bool:
        return self.is_authenticated(request)

    def has_object_permission(self, request: Request, view: APIView, obj) -> bool:
        if 'admin' in self.get_user_roles(request):
            return True

        owner_id = getattr(obj, self.owner_field, None)
        if str(owner_id) != str(request.user.id):
            logger.info(
                f"Denied access to {type(obj).__name__} {obj.pk} for user {request.user.id}"
            )
            return False
        return True
