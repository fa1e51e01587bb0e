# apps/booking/services/__init__.py
"""
Mail Route Booking Business Logic
"""

from shared.common.exceptions import ServiceError


# Custom Exceptions
class BookingServiceError(ServiceError):
    """Base exception for booking service errors."""
    status_code = 400
    error_code = 'BOOKING_ERROR'


class BookingValidationError(BookingServiceError):
    """Malformed or missing input."""
    error_code = 'VALIDATION_ERROR'


class PermissionDeniedError(BookingServiceError):
    """Actor may not perform the operation on this resource."""
    status_code = 403
    error_code = 'FORBIDDEN'


class NotFoundError(BookingServiceError):
    """Referenced entity does not exist."""
    status_code = 404
    error_code = 'NOT_FOUND'


class BookingNotFoundError(NotFoundError):
    """Booking not found."""
    pass


class CampaignNotFoundError(NotFoundError):
    """Campaign not found."""
    pass


class RouteNotFoundError(NotFoundError):
    """Route not found."""
    pass


class IndustryNotFoundError(NotFoundError):
    """Industry or subcategory not found."""
    pass


class CustomerNotFoundError(NotFoundError):
    """Customer not found."""
    pass


class PricingRuleNotFoundError(NotFoundError):
    """Pricing rule not found."""
    pass


class WaitlistEntryNotFoundError(NotFoundError):
    """Waitlist entry not found."""
    pass


class AdminNotificationNotFoundError(NotFoundError):
    """Admin notification not found."""
    pass


class CapacityExceededError(BookingServiceError):
    """No slot could be reserved; the caller should offer the waitlist."""
    status_code = 409
    error_code = 'CAPACITY_EXCEEDED'


class SlotUnavailableError(BookingServiceError):
    """Slot reservation kept conflicting and gave up."""
    status_code = 409
    error_code = 'SLOT_UNAVAILABLE'


class RuleExhaustedError(BookingServiceError):
    """Pricing rule or loyalty credit was used up between selection and commit."""
    status_code = 409
    error_code = 'RULE_EXHAUSTED'


class RuleConflictError(BookingServiceError):
    """Pricing resolution kept racing other bookings."""
    status_code = 409
    error_code = 'RULE_CONFLICT'


class InvalidTransitionError(BookingServiceError):
    """Status change not permitted from the current state."""
    status_code = 409
    error_code = 'INVALID_TRANSITION'

    def __init__(self, message: str, allowed=None):
        self.allowed = sorted(str(state) for state in allowed) if allowed is not None else []
        details = {'allowed': self.allowed} if allowed is not None else None
        super().__init__(message, details=details)


class RevisionLimitExceededError(BookingServiceError):
    """Design revision requested beyond the cap."""
    status_code = 409
    error_code = 'REVISION_LIMIT_EXCEEDED'


from .slot_allocator import SlotAllocator, Reserved, WaitlistRequired  # noqa: E402
from .pricing_service import PricingResolver, PricingRuleService, PriceBreakdown  # noqa: E402
from .loyalty_service import LoyaltyService  # noqa: E402
from .waitlist_service import WaitlistService  # noqa: E402
from .campaign_service import CampaignService  # noqa: E402
from .admin_notification_service import AdminNotificationService  # noqa: E402
from .customer_service import CustomerService  # noqa: E402
from .dashboard_service import DashboardService  # noqa: E402
from .booking_service import BookingService, BookingResult  # noqa: E402


__all__ = [
    # Services
    'SlotAllocator',
    'Reserved',
    'WaitlistRequired',
    'PricingResolver',
    'PricingRuleService',
    'PriceBreakdown',
    'LoyaltyService',
    'WaitlistService',
    'CampaignService',
    'CustomerService',
    'AdminNotificationService',
    'DashboardService',
    'BookingService',
    'BookingResult',

    # Exceptions
    'BookingServiceError',
    'BookingValidationError',
    'PermissionDeniedError',
    'NotFoundError',
    'BookingNotFoundError',
    'CampaignNotFoundError',
    'RouteNotFoundError',
    'IndustryNotFoundError',
    'CustomerNotFoundError',
    'PricingRuleNotFoundError',
    'WaitlistEntryNotFoundError',
    'AdminNotificationNotFoundError',
    'CapacityExceededError',
    'SlotUnavailableError',
    'RuleExhaustedError',
    'RuleConflictError',
    'InvalidTransitionError',
    'RevisionLimitExceededError',
]
