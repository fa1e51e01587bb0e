# apps/api/views/__init__.py
"""
Booking API Views
"""

from .catalog_views import (
    RouteViewSet,
    IndustryViewSet,
    IndustrySubcategoryViewSet,
)

from .campaign_views import (
    CampaignViewSet,
)

from .booking_views import (
    BookingViewSet,
)

from .pricing_views import (
    PricingRuleViewSet,
)

from .waitlist_views import (
    WaitlistEntryViewSet,
    WaitlistNotificationViewSet,
)

from .customer_views import (
    CustomerMeView,
    ApplyReferralView,
    CustomerNotificationListView,
    CustomerViewSet,
)

from .admin_views import (
    AdminNotificationViewSet,
    DashboardStatsView,
)


__all__ = [
    # Catalog
    'RouteViewSet',
    'IndustryViewSet',
    'IndustrySubcategoryViewSet',

    # Campaigns
    'CampaignViewSet',

    # Bookings
    'BookingViewSet',

    # Pricing
    'PricingRuleViewSet',

    # Waitlist
    'WaitlistEntryViewSet',
    'WaitlistNotificationViewSet',

    # Customers
    'CustomerMeView',
    'ApplyReferralView',
    'CustomerNotificationListView',
    'CustomerViewSet',

    # Admin
    'AdminNotificationViewSet',
    'DashboardStatsView',
]
