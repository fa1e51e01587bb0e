# apps/api/views/mixins.py
"""
View Mixins

Resolve the authenticated token user into a Customer profile.
"""

from apps.booking.models import Customer
from apps.booking.services import CustomerService


class CurrentCustomerMixin:
    """Lazily create and cache the Customer behind ``request.user``."""

    def get_customer(self) -> Customer:
        request = self.request
        customer = getattr(request, '_customer', None)
        if customer is None:
            customer = CustomerService().get_or_create_from_token(request.user)
            request._customer = customer
        return customer

    def is_admin(self) -> bool:
        return 'admin' in getattr(self.request.user, 'roles', [])

    def has_any_role(self, roles) -> bool:
        return bool(set(roles) & set(getattr(self.request.user, 'roles', [])))
