# apps/api/urls.py
"""
Booking API URL Configuration

Defines all API routes for the booking platform.
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    # Catalog
    RouteViewSet,
    IndustryViewSet,
    IndustrySubcategoryViewSet,
    # Campaigns
    CampaignViewSet,
    # Bookings
    BookingViewSet,
    # Pricing
    PricingRuleViewSet,
    # Waitlist
    WaitlistEntryViewSet,
    WaitlistNotificationViewSet,
    # Customers
    CustomerMeView,
    ApplyReferralView,
    CustomerNotificationListView,
    CustomerViewSet,
    # Admin
    AdminNotificationViewSet,
    DashboardStatsView,
)

app_name = 'api'

# Create router and register viewsets
router = DefaultRouter()
router.register(r'routes', RouteViewSet, basename='route')
router.register(r'industries', IndustryViewSet, basename='industry')
router.register(r'industry-subcategories', IndustrySubcategoryViewSet, basename='industry-subcategory')
router.register(r'campaigns', CampaignViewSet, basename='campaign')
router.register(r'bookings', BookingViewSet, basename='booking')
router.register(r'pricing-rules', PricingRuleViewSet, basename='pricing-rule')
router.register(r'waitlist', WaitlistEntryViewSet, basename='waitlist')
router.register(r'waitlist-notifications', WaitlistNotificationViewSet, basename='waitlist-notification')
router.register(r'customers', CustomerViewSet, basename='customer')
router.register(r'admin-notifications', AdminNotificationViewSet, basename='admin-notification')

urlpatterns = [
    # Current customer (ahead of the router's customers/<id>/)
    path('customers/me/', CustomerMeView.as_view(), name='customer-me'),
    path('customers/me/referral/', ApplyReferralView.as_view(), name='customer-referral'),
    path('customers/me/notifications/', CustomerNotificationListView.as_view(), name='customer-notifications'),

    # Dashboard
    path('dashboard/stats/', DashboardStatsView.as_view(), name='dashboard-stats'),

    # Router URLs
    path('', include(router.urls)),
]
