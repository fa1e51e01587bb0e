# apps/api/views/filters.py
"""
API Filters

Django Filter classes for the booking API.
"""

import django_filters
from django.db.models import F

from apps.booking.models import Booking, Campaign, Customer, PricingRule, WaitlistEntry


class CampaignFilter(django_filters.FilterSet):
    """Filter for campaign queries."""

    status = django_filters.ChoiceFilter(choices=Campaign.Status.choices)
    mail_date_from = django_filters.DateFilter(field_name='mail_date', lookup_expr='gte')
    mail_date_to = django_filters.DateFilter(field_name='mail_date', lookup_expr='lte')
    has_availability = django_filters.BooleanFilter(method='filter_has_availability')

    class Meta:
        model = Campaign
        fields = ['status', 'industry_exclusive']

    def filter_has_availability(self, queryset, name, value):
        if value:
            return queryset.filter(booked_slots__lt=F('total_slots'))
        return queryset.filter(booked_slots__gte=F('total_slots'))


class BookingFilter(django_filters.FilterSet):
    """Filter for booking queries."""

    # Status filters
    status = django_filters.ChoiceFilter(choices=Booking.Status.choices)
    payment_status = django_filters.ChoiceFilter(choices=Booking.PaymentStatus.choices)
    approval_status = django_filters.ChoiceFilter(choices=Booking.ApprovalStatus.choices)
    artwork_status = django_filters.ChoiceFilter(choices=Booking.ArtworkStatus.choices)
    design_status = django_filters.ChoiceFilter(choices=Booking.DesignStatus.choices)
    active = django_filters.BooleanFilter(method='filter_active')

    # Resource filters
    campaign_id = django_filters.UUIDFilter()
    route_id = django_filters.UUIDFilter()
    industry_id = django_filters.UUIDFilter()
    customer_id = django_filters.UUIDFilter()

    created_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Booking
        fields = ['status', 'payment_status', 'campaign_id', 'route_id']

    def filter_active(self, queryset, name, value):
        if value:
            return queryset.exclude(status=Booking.Status.CANCELLED)
        return queryset.filter(status=Booking.Status.CANCELLED)


class PricingRuleFilter(django_filters.FilterSet):
    """Filter for pricing rule queries."""

    status = django_filters.ChoiceFilter(choices=PricingRule.Status.choices)
    rule_type = django_filters.ChoiceFilter(choices=PricingRule.RuleType.choices)
    campaign_id = django_filters.UUIDFilter()
    customer_id = django_filters.UUIDFilter()

    class Meta:
        model = PricingRule
        fields = ['status', 'rule_type']


class WaitlistEntryFilter(django_filters.FilterSet):
    """Filter for waitlist queries."""

    status = django_filters.ChoiceFilter(choices=WaitlistEntry.Status.choices)
    reason = django_filters.ChoiceFilter(choices=WaitlistEntry.Reason.choices)
    campaign_id = django_filters.UUIDFilter()
    route_id = django_filters.UUIDFilter()

    class Meta:
        model = WaitlistEntry
        fields = ['status', 'reason', 'campaign_id', 'route_id']


class CustomerFilter(django_filters.FilterSet):
    """Filter for the admin customer list."""

    role = django_filters.ChoiceFilter(choices=Customer.Role.choices)
    tag = django_filters.CharFilter(method='filter_tag')

    class Meta:
        model = Customer
        fields = ['role']

    def filter_tag(self, queryset, name, value):
        return queryset.filter(tags__tag=value.strip().lower()).distinct()
