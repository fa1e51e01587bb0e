# tests/unit/test_pricing.py
"""
Unit Tests for Pricing

Tests for price resolution, rule precedence and rule usage accounting.
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest
from django.utils import timezone

from apps.booking.models import Booking, PricingRule, PricingRuleApplication
from apps.booking.services import (
    BookingValidationError,
    InvalidTransitionError,
    PricingResolver,
    PricingRuleService,
    RuleExhaustedError,
)
from apps.booking.services.pricing_service import (
    apply_rule,
    calculate_base_price,
    select_winning_rule,
)


class TestPricingHelpers:
    """Tests for the pure pricing helpers."""

    def test_tiered_base_price(self):
        assert calculate_base_price(1, 60000, 50000) == 60000
        assert calculate_base_price(3, 60000, 50000) == 160000

    def test_apply_fixed_price(self):
        assert apply_rule(PricingRule.RuleType.FIXED_PRICE, 50000, 110000, 2) == 10000

    def test_fixed_price_above_tier_gives_negative_discount(self):
        assert apply_rule(PricingRule.RuleType.FIXED_PRICE, 70000, 60000, 1) == -10000

    def test_apply_discount_amount_capped_at_base(self):
        assert apply_rule(PricingRule.RuleType.DISCOUNT_AMOUNT, 90000, 60000, 1) == 60000

    def test_apply_percent_rounds_down(self):
        assert apply_rule(PricingRule.RuleType.DISCOUNT_PERCENT, 15, 60001, 1) == 9000

    def test_unknown_rule_type(self):
        with pytest.raises(ValueError):
            apply_rule('bogus', 1, 100, 1)

    def test_priority_beats_specificity(self):
        now = timezone.now()
        low = SimpleNamespace(id='a', priority=1, customer_id='c', campaign_id='k', created_at=now)
        high = SimpleNamespace(id='b', priority=5, customer_id=None, campaign_id=None, created_at=now)

        assert select_winning_rule([low, high]) is high

    def test_specificity_breaks_priority_tie(self):
        now = timezone.now()
        global_rule = SimpleNamespace(id='a', priority=1, customer_id=None, campaign_id=None, created_at=now)
        campaign_rule = SimpleNamespace(id='b', priority=1, customer_id=None, campaign_id='k', created_at=now)

        assert select_winning_rule([global_rule, campaign_rule]) is campaign_rule

    def test_recency_breaks_remaining_tie(self):
        now = timezone.now()
        older = SimpleNamespace(id='a', priority=1, customer_id=None, campaign_id=None, created_at=now)
        newer = SimpleNamespace(
            id='b', priority=1, customer_id=None, campaign_id=None,
            created_at=now + timedelta(seconds=1)
        )

        assert select_winning_rule([newer, older]) is newer

    def test_no_candidates(self):
        assert select_winning_rule([]) is None


@pytest.mark.django_db
class TestPricingResolver:
    """Tests for PricingResolver."""

    def setup_method(self):
        self.resolver = PricingResolver()

    def test_default_tiered_price(self, customer, campaign):
        breakdown = self.resolver.compute_price(customer.id, campaign.id, 2)

        assert breakdown.base_price_before_discounts == 110000
        assert breakdown.discount_amount == 0
        assert breakdown.final_amount == 110000
        assert breakdown.price_source == Booking.PriceSource.DEFAULT_TIERED

    def test_campaign_base_price(self, customer, create_campaign):
        campaign = create_campaign(base_slot_price=45000, additional_slot_price=40000)
        breakdown = self.resolver.compute_price(customer.id, campaign.id, 2)

        assert breakdown.final_amount == 85000
        assert breakdown.price_source == Booking.PriceSource.CAMPAIGN_BASE

    def test_higher_priority_fixed_price_wins(self, customer, campaign, create_pricing_rule):
        create_pricing_rule(rule_type=PricingRule.RuleType.DISCOUNT_PERCENT, value=10, priority=1)
        fixed = create_pricing_rule(
            rule_type=PricingRule.RuleType.FIXED_PRICE, value=50000,
            priority=5, campaign=campaign
        )

        breakdown = self.resolver.compute_price(customer.id, campaign.id, 3)

        assert breakdown.applied_rule_id == fixed.id
        assert breakdown.final_amount == 150000
        assert breakdown.price_source == Booking.PriceSource.CAMPAIGN_FIXED
        assert breakdown.base_price_before_discounts - breakdown.discount_amount == breakdown.final_amount

    def test_percent_discount(self, customer, campaign, create_pricing_rule):
        create_pricing_rule(value=10)

        breakdown = self.resolver.compute_price(customer.id, campaign.id, 1)

        assert breakdown.discount_amount == 6000
        assert breakdown.final_amount == 54000
        assert breakdown.price_source == Booking.PriceSource.GLOBAL_DISCOUNT

    def test_rule_for_other_customer_ignored(self, customer, create_customer, campaign, create_pricing_rule):
        create_pricing_rule(customer=create_customer(), value=50)

        breakdown = self.resolver.compute_price(customer.id, campaign.id, 1)

        assert breakdown.applied_rule_id is None

    def test_exhausted_and_inactive_rules_ignored(self, customer, campaign, create_pricing_rule):
        create_pricing_rule(usage_limit=1, usage_count=1)
        create_pricing_rule(status=PricingRule.Status.INACTIVE)
        create_pricing_rule(valid_until=timezone.now() - timedelta(days=1))

        breakdown = self.resolver.compute_price(customer.id, campaign.id, 1)

        assert breakdown.applied_rule_id is None
        assert breakdown.final_amount == 60000

    def test_loyalty_discount_applied(self, customer, campaign, settings):
        customer.loyalty_discounts_available = 1
        customer.save()

        breakdown = self.resolver.compute_price(customer.id, campaign.id, 1)

        assert breakdown.loyalty_discount_applied
        assert breakdown.final_amount == 60000 - settings.LOYALTY_DISCOUNT_AMOUNT

    def test_loyalty_skipped_with_fixed_price(self, customer, campaign, create_pricing_rule):
        customer.loyalty_discounts_available = 1
        customer.save()
        create_pricing_rule(rule_type=PricingRule.RuleType.FIXED_PRICE, value=30000)

        breakdown = self.resolver.compute_price(customer.id, campaign.id, 1)

        assert not breakdown.loyalty_discount_applied
        assert breakdown.final_amount == 30000

    def test_admin_override(self, customer, campaign, create_pricing_rule):
        create_pricing_rule(value=50)

        breakdown = self.resolver.compute_price(
            customer.id, campaign.id, 2,
            override_price=25000, override_note='Trade show deal'
        )

        assert breakdown.final_amount == 25000
        assert breakdown.discount_amount == 0
        assert breakdown.applied_rule_id is None
        assert breakdown.price_source == Booking.PriceSource.ADMIN_OVERRIDE

    def test_override_requires_note(self, customer, campaign):
        with pytest.raises(BookingValidationError):
            self.resolver.compute_price(customer.id, campaign.id, 1, override_price=100)

    def test_compute_is_side_effect_free(self, customer, campaign, create_pricing_rule):
        rule = create_pricing_rule(usage_limit=5)

        first = self.resolver.compute_price(customer.id, campaign.id, 2)
        second = self.resolver.compute_price(customer.id, campaign.id, 2)

        rule.refresh_from_db()
        assert first == second
        assert rule.usage_count == 0

    def test_invalid_quantity(self, customer, campaign):
        with pytest.raises(BookingValidationError):
            self.resolver.compute_price(customer.id, campaign.id, 0)


@pytest.mark.django_db
class TestPricingCommit:
    """Tests for rule usage accounting through bookings."""

    def test_usage_counted_once_per_booking(self, customer, book, create_pricing_rule):
        rule = create_pricing_rule(usage_limit=2)

        result = book(customer)

        rule.refresh_from_db()
        assert rule.usage_count == 1
        assert result.booking.applied_rule_id == rule.id
        assert PricingRuleApplication.objects.filter(rule=rule, booking=result.booking).count() == 1

    def test_usage_limit_respected(self, create_customer, book, create_pricing_rule):
        rule = create_pricing_rule(usage_limit=1)

        first = book(create_customer())
        second = book(create_customer())

        rule.refresh_from_db()
        assert rule.usage_count == 1
        assert first.booking.applied_rule_id == rule.id
        assert second.booking.applied_rule_id is None
        assert second.booking.amount == 60000

    def test_per_customer_limit(self, customer, book, create_pricing_rule):
        rule = create_pricing_rule(per_customer_limit=1)

        first = book(customer)
        second = book(customer)

        assert first.booking.applied_rule_id == rule.id
        assert second.booking.applied_rule_id is None

    def test_commit_raises_when_rule_ran_out(self, customer, campaign, create_pricing_rule, book):
        rule = create_pricing_rule(usage_limit=1)
        resolver = PricingResolver()
        breakdown = resolver.compute_price(customer.id, campaign.id, 1)

        PricingRule.objects.filter(id=rule.id).update(usage_count=1)

        booking = book(customer).booking
        with pytest.raises(RuleExhaustedError):
            resolver.commit(breakdown, booking)

    def test_loyalty_used_once(self, customer, book):
        customer.loyalty_discounts_available = 1
        customer.save()

        first = book(customer).booking
        second = book(customer).booking

        customer.refresh_from_db()
        assert first.loyalty_discount_applied
        assert not second.loyalty_discount_applied
        assert customer.loyalty_discounts_available == 0


@pytest.mark.django_db
class TestPricingRuleService:
    """Tests for pricing rule administration."""

    def setup_method(self):
        self.service = PricingRuleService()

    def test_create_rule(self, campaign, admin_customer):
        rule = self.service.create_rule({
            'name': 'Early bird',
            'rule_type': PricingRule.RuleType.DISCOUNT_AMOUNT,
            'value': 5000,
            'campaign': campaign,
            'usage_count': 99,
        }, created_by=admin_customer.id)

        assert rule.usage_count == 0
        assert rule.status == PricingRule.Status.ACTIVE
        assert rule.scope_label == 'campaign'

    def test_create_rejects_bad_percent(self):
        with pytest.raises(BookingValidationError):
            self.service.create_rule({
                'name': 'Too generous',
                'rule_type': PricingRule.RuleType.DISCOUNT_PERCENT,
                'value': 120,
            })

    def test_update_cannot_drop_limit_below_usage(self, create_pricing_rule):
        rule = create_pricing_rule(usage_limit=5, usage_count=3)

        with pytest.raises(BookingValidationError):
            self.service.update_rule(rule.id, {'usage_limit': 2})

    def test_update_ignores_fixed_fields(self, create_pricing_rule):
        rule = create_pricing_rule(value=10)

        updated = self.service.update_rule(rule.id, {'value': 90, 'priority': 7})

        assert updated.value == 10
        assert updated.priority == 7

    def test_deactivate(self, create_pricing_rule):
        rule = create_pricing_rule()

        self.service.deactivate_rule(rule.id)
        with pytest.raises(InvalidTransitionError):
            self.service.deactivate_rule(rule.id)
