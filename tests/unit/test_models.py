# tests/unit/test_models.py
"""
Unit Tests for Booking Models

Tests for model methods, properties, and constraints.
"""

from datetime import timedelta

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.booking.models import (
    AdminSetting,
    Booking,
    Campaign,
    Customer,
    PricingRule,
    Referral,
    WaitlistEntry,
    WaitlistNotification,
)


@pytest.mark.django_db
class TestCampaignModel:
    """Tests for Campaign model."""

    def test_available_slots(self, create_campaign):
        campaign = create_campaign(total_slots=10, booked_slots=4)
        assert campaign.available_slots == 6
        assert campaign.is_booking_open

    def test_deadline_must_precede_mail_date(self, create_campaign, today):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                create_campaign(print_deadline=today + timedelta(days=5), mail_date=today + timedelta(days=5))

    def test_booked_cannot_exceed_total(self, create_campaign):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                create_campaign(total_slots=2, booked_slots=3)

    def test_empty_offering_means_all_active(self, campaign, create_route):
        active = create_route()
        inactive = create_route(status='inactive')

        assert campaign.offers_route(active)
        assert not campaign.offers_route(inactive)
        assert list(campaign.get_offered_routes()) == [active]

    def test_explicit_offering(self, campaign, create_route):
        offered = create_route()
        other = create_route()
        campaign.routes.add(offered)

        assert campaign.offers_route(offered)
        assert not campaign.offers_route(other)

    def test_slot_prices_default(self, campaign, settings):
        assert campaign.get_slot_prices() == (
            settings.DEFAULT_FIRST_SLOT_PRICE,
            settings.DEFAULT_ADDITIONAL_SLOT_PRICE,
        )

    def test_slot_prices_base_only(self, create_campaign):
        campaign = create_campaign(base_slot_price=40000)
        assert campaign.get_slot_prices() == (40000, 40000)


@pytest.mark.django_db
class TestBookingModel:
    """Tests for Booking model."""

    def _make(self, customer, campaign, route, industry, **kwargs):
        defaults = {
            'customer': customer,
            'campaign': campaign,
            'route': route,
            'industry': industry,
            'business_name': 'Acme',
            'contact_email': 'acme@example.com',
            'base_price_before_discounts': 60000,
            'discount_amount': 0,
            'amount': 60000,
        }
        defaults.update(kwargs)
        return Booking.objects.create(**defaults)

    def test_booking_number_generation(self, customer, campaign, route, industry):
        first = self._make(customer, campaign, route, industry)
        second = self._make(customer, campaign, route, industry)

        assert first.booking_number.startswith('BK-')
        assert first.booking_number != second.booking_number

    def test_booking_number_suffix_fits_column(self, customer, campaign, route, industry):
        """The suffix carries 48 bits of the id and fills the column exactly."""
        booking = self._make(customer, campaign, route, industry)

        assert booking.booking_number.endswith(booking.id.hex[:12].upper())
        assert len(booking.booking_number) == Booking._meta.get_field('booking_number').max_length

    def test_defaults(self, customer, campaign, route, industry):
        booking = self._make(customer, campaign, route, industry)

        assert booking.status == Booking.Status.PENDING
        assert booking.payment_status == Booking.PaymentStatus.PENDING
        assert booking.approval_status == Booking.ApprovalStatus.PENDING
        assert booking.artwork_status == Booking.ArtworkStatus.PENDING_UPLOAD
        assert booking.design_status == Booking.DesignStatus.PENDING_DESIGN
        assert booking.revisions_remaining == 2

    def test_amount_must_match_breakdown(self, customer, campaign, route, industry):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                self._make(customer, campaign, route, industry, amount=50000)

    def test_quantity_range(self, customer, campaign, route, industry):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                self._make(customer, campaign, route, industry, quantity=5)

    def test_is_expired(self, customer, campaign, route, industry, settings):
        booking = self._make(customer, campaign, route, industry)
        assert not booking.is_expired

        booking.pending_since = timezone.now() - timedelta(
            minutes=settings.PENDING_BOOKING_EXPIRATION_MINUTES + 1
        )
        assert booking.is_expired

        booking.payment_status = Booking.PaymentStatus.PAID
        assert not booking.is_expired


@pytest.mark.django_db
class TestPricingRuleModel:
    """Tests for PricingRule model."""

    def test_scope_label(self, create_pricing_rule, campaign, customer):
        assert create_pricing_rule().scope_label == 'global'
        assert create_pricing_rule(campaign=campaign).scope_label == 'campaign'
        assert create_pricing_rule(customer=customer).scope_label == 'customer'
        assert create_pricing_rule(
            campaign=campaign, customer=customer
        ).scope_label == 'customer_campaign'

    def test_is_exhausted(self, create_pricing_rule):
        rule = create_pricing_rule(usage_limit=2, usage_count=2)
        assert rule.is_exhausted

    def test_validity_window(self, create_pricing_rule):
        now = timezone.now()
        rule = create_pricing_rule(valid_from=now, valid_until=now + timedelta(days=1))

        assert rule.is_valid_at(now + timedelta(hours=1))
        assert not rule.is_valid_at(now - timedelta(seconds=1))
        assert not rule.is_valid_at(now + timedelta(days=2))

    def test_percent_above_hundred_rejected(self, create_pricing_rule):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                create_pricing_rule(value=150)

    def test_deactivate_twice(self, create_pricing_rule):
        rule = create_pricing_rule()
        rule.deactivate()

        assert rule.status == PricingRule.Status.INACTIVE
        with pytest.raises(ValueError):
            rule.deactivate()


@pytest.mark.django_db
class TestCustomerModel:
    """Tests for Customer and Referral models."""

    def test_referral_code_generated(self, create_customer):
        first = create_customer()
        second = create_customer()

        assert len(first.referral_code) == 8
        assert first.referral_code != second.referral_code

    def test_needs_loyalty_reset(self, create_customer):
        customer = create_customer()
        assert customer.needs_loyalty_reset(2026)

        customer.loyalty_year_reset = 2026
        assert not customer.needs_loyalty_reset(2026)
        assert customer.needs_loyalty_reset(2027)

    def test_referral_credit_once(self, create_customer):
        referral = Referral.objects.create(
            referrer=create_customer(), referred=create_customer()
        )
        referral.credit(10000)

        assert referral.status == Referral.Status.CREDITED
        assert referral.credit_amount == 10000
        with pytest.raises(ValueError):
            referral.credit(10000)

    def test_admin_role(self, admin_customer):
        assert admin_customer.is_admin
        assert admin_customer.role == Customer.Role.ADMIN


@pytest.mark.django_db
class TestWaitlistModels:
    """Tests for WaitlistEntry and WaitlistNotification."""

    def test_mark_notified(self, customer, campaign, route):
        entry = WaitlistEntry.objects.create(customer=customer, campaign=campaign, route=route)
        entry.mark_notified(['in_app'])

        assert entry.status == WaitlistEntry.Status.NOTIFIED
        assert entry.notified_count == 1
        assert entry.last_notified_channels == ['in_app']
        assert entry.is_open

    def test_cannot_notify_closed_entry(self, customer, campaign, route):
        entry = WaitlistEntry.objects.create(
            customer=customer, campaign=campaign, route=route,
            status=WaitlistEntry.Status.CANCELLED
        )
        with pytest.raises(ValueError):
            entry.mark_notified(['email'])

    def test_automatic_notification(self):
        assert WaitlistNotification(sent_by=None, message='x').is_automatic


@pytest.mark.django_db
class TestAdminSetting:
    """Tests for runtime-adjustable settings."""

    def test_falls_back_to_django_setting(self, settings):
        settings.LOYALTY_SLOTS_THRESHOLD = 5
        assert AdminSetting.get_int('loyalty_slots_threshold', 'LOYALTY_SLOTS_THRESHOLD') == 5

    def test_row_overrides_setting(self):
        AdminSetting.objects.create(key='loyalty_slots_threshold', value='7')
        assert AdminSetting.get_int('loyalty_slots_threshold', 'LOYALTY_SLOTS_THRESHOLD') == 7

    def test_bad_row_ignored(self, settings):
        settings.LOYALTY_SLOTS_THRESHOLD = 3
        AdminSetting.objects.create(key='loyalty_slots_threshold', value='many')
        assert AdminSetting.get_int('loyalty_slots_threshold', 'LOYALTY_SLOTS_THRESHOLD') == 3
