# apps/api/serializers/__init__.py
"""
Mail Route Booking API Serializers
"""

from .catalog_serializers import (
    RouteSerializer,
    IndustrySerializer,
    IndustrySubcategorySerializer,
)

from .campaign_serializers import (
    CampaignSerializer,
    CampaignListSerializer,
    CampaignDetailSerializer,
    CampaignCreateSerializer,
    CampaignTransitionSerializer,
    CampaignAvailabilitySerializer,
)

from .booking_serializers import (
    BookingSerializer,
    BookingListSerializer,
    BookingDetailSerializer,
    BookingCreateSerializer,
    BookingQuoteSerializer,
    BookingCancelSerializer,
    BookingRejectSerializer,
    PriceBreakdownSerializer,
    PaymentCallbackSerializer,
    ArtworkUploadSerializer,
    ArtworkReviewSerializer,
    DesignRevisionSerializer,
    DesignRevisionUploadSerializer,
    DesignFeedbackSerializer,
)

from .pricing_serializers import (
    PricingRuleSerializer,
    PricingRuleCreateSerializer,
    PricingRuleUpdateSerializer,
    PricingRuleApplicationSerializer,
)

from .waitlist_serializers import (
    WaitlistEntrySerializer,
    WaitlistEntryCreateSerializer,
    WaitlistNotifySerializer,
    WaitlistConvertSerializer,
    WaitlistNotificationSerializer,
)

from .customer_serializers import (
    CustomerSummarySerializer,
    ApplyReferralSerializer,
    CustomerNotificationSerializer,
    AdminCustomerSerializer,
    CustomerNoteSerializer,
    CustomerTagSerializer,
)

from .admin_serializers import (
    AdminNotificationSerializer,
    DashboardStatsSerializer,
)

__all__ = [
    # Catalog
    'RouteSerializer',
    'IndustrySerializer',
    'IndustrySubcategorySerializer',
    # Campaign
    'CampaignSerializer',
    'CampaignListSerializer',
    'CampaignDetailSerializer',
    'CampaignCreateSerializer',
    'CampaignTransitionSerializer',
    'CampaignAvailabilitySerializer',
    # Booking
    'BookingSerializer',
    'BookingListSerializer',
    'BookingDetailSerializer',
    'BookingCreateSerializer',
    'BookingQuoteSerializer',
    'BookingCancelSerializer',
    'BookingRejectSerializer',
    'PriceBreakdownSerializer',
    'PaymentCallbackSerializer',
    'ArtworkUploadSerializer',
    'ArtworkReviewSerializer',
    'DesignRevisionSerializer',
    'DesignRevisionUploadSerializer',
    'DesignFeedbackSerializer',
    # Pricing
    'PricingRuleSerializer',
    'PricingRuleCreateSerializer',
    'PricingRuleUpdateSerializer',
    'PricingRuleApplicationSerializer',
    # Waitlist
    'WaitlistEntrySerializer',
    'WaitlistEntryCreateSerializer',
    'WaitlistNotifySerializer',
    'WaitlistConvertSerializer',
    'WaitlistNotificationSerializer',
    # Customer
    'CustomerSummarySerializer',
    'ApplyReferralSerializer',
    'CustomerNotificationSerializer',
    'AdminCustomerSerializer',
    'CustomerNoteSerializer',
    'CustomerTagSerializer',
    # Admin
    'AdminNotificationSerializer',
    'DashboardStatsSerializer',
]
