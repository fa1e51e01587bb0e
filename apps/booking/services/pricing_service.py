# apps/booking/services/pricing_service.py
"""
Pricing Resolver

Computes the final price of a booking from the campaign's slot tiers,
the single winning pricing rule, and the customer's loyalty credit.

Resolution has no side effects; ``commit`` records rule usage and
consumes loyalty credit inside the booking transaction.
"""

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import Count, F, Q
from django.utils import timezone

from ..events import publish_pricing_rule_applied
from ..models import Booking, Campaign, Customer, PricingRule, PricingRuleApplication
from .slot_allocator import validate_quantity

logger = logging.getLogger(__name__)


@dataclass
class PriceBreakdown:
    """Result of price resolution for a candidate booking."""
    quantity: int
    base_price_before_discounts: int
    discount_amount: int
    final_amount: int
    price_source: str
    discounts: List[Dict[str, Any]] = field(default_factory=list)
    applied_rule_id: Optional[uuid.UUID] = None
    rule_discount_amount: int = 0
    loyalty_discount_applied: bool = False
    price_override: Optional[int] = None
    price_override_note: str = ''

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.applied_rule_id is not None:
            data['applied_rule_id'] = str(self.applied_rule_id)
        return data


# ==========================================================================
# Pure helpers
# ==========================================================================

def calculate_base_price(quantity: int, first_slot_price: int, additional_slot_price: int) -> int:
    """First slot at the first tier, every further slot at the additional tier."""
    return first_slot_price + (quantity - 1) * additional_slot_price


def rule_specificity(rule) -> int:
    """customer+campaign > campaign > customer > global."""
    if rule.customer_id and rule.campaign_id:
        return 3
    if rule.campaign_id:
        return 2
    if rule.customer_id:
        return 1
    return 0


def rule_sort_key(rule):
    return (rule.priority, rule_specificity(rule), rule.created_at, str(rule.id))


def select_winning_rule(candidates: Iterable):
    """
    Pick one rule by priority, then specificity, then recency.

    The id is the last tiebreaker so the order is total.
    """
    candidates = list(candidates)
    if not candidates:
        return None
    return max(candidates, key=rule_sort_key)


def apply_rule(rule_type: str, value: int, base_price: int, quantity: int) -> int:
    """Return the discount (base minus rule price) for one rule."""
    if rule_type == PricingRule.RuleType.FIXED_PRICE:
        return base_price - value * quantity
    if rule_type == PricingRule.RuleType.DISCOUNT_AMOUNT:
        return min(value, base_price)
    if rule_type == PricingRule.RuleType.DISCOUNT_PERCENT:
        return base_price * min(value, 100) // 100
    raise ValueError(f"Unknown rule type: {rule_type}")


_SOURCES = {
    ('customer', True): Booking.PriceSource.CUSTOMER_FIXED,
    ('customer', False): Booking.PriceSource.CUSTOMER_DISCOUNT,
    ('campaign', True): Booking.PriceSource.CAMPAIGN_FIXED,
    ('campaign', False): Booking.PriceSource.CAMPAIGN_DISCOUNT,
    ('global', True): Booking.PriceSource.GLOBAL_FIXED,
    ('global', False): Booking.PriceSource.GLOBAL_DISCOUNT,
}


def price_source_for(rule, campaign) -> str:
    if rule is None:
        if campaign.base_slot_price is not None:
            return Booking.PriceSource.CAMPAIGN_BASE
        return Booking.PriceSource.DEFAULT_TIERED
    scope = rule.scope_label
    if scope == 'customer_campaign':
        scope = 'customer'
    return _SOURCES[(scope, rule.is_fixed_price)]


class PricingResolver:
    """
    Service class for price computation.
    """

    def __init__(self):
        from .loyalty_service import LoyaltyService
        self.loyalty = LoyaltyService()

    # ==========================================================================
    # Resolution
    # ==========================================================================

    def compute_price(
        self,
        customer_id: uuid.UUID,
        campaign_id: uuid.UUID,
        quantity: int,
        override_price: Optional[int] = None,
        override_note: Optional[str] = None,
        moment: Optional[datetime] = None
    ) -> PriceBreakdown:
        """
        Resolve the price for a candidate booking.

        Calling this twice with the same inputs yields the same result.
        """
        from . import BookingValidationError

        validate_quantity(quantity)
        campaign = self._get_campaign(campaign_id)
        customer = self._get_customer(customer_id)

        if override_price is not None:
            if override_price < 0:
                raise BookingValidationError("Price override cannot be negative")
            if not (override_note or '').strip():
                raise BookingValidationError("A note is required when overriding the price")
            return PriceBreakdown(
                quantity=quantity,
                base_price_before_discounts=override_price,
                discount_amount=0,
                final_amount=override_price,
                price_source=Booking.PriceSource.ADMIN_OVERRIDE,
                price_override=override_price,
                price_override_note=override_note.strip(),
            )

        first_price, additional_price = campaign.get_slot_prices()
        base_price = calculate_base_price(quantity, first_price, additional_price)

        candidates = self.get_candidate_rules(customer, campaign, moment)
        winner = select_winning_rule(candidates)

        discounts = []
        rule_discount = 0
        if winner is not None:
            rule_discount = apply_rule(winner.rule_type, winner.value, base_price, quantity)
            discounts.append({
                'source': 'pricing_rule',
                'rule_id': str(winner.id),
                'description': winner.description or winner.name,
                'rule_type': winner.rule_type,
                'value': winner.value,
                'amount': rule_discount,
            })

        loyalty_applied = False
        remaining = base_price - rule_discount
        if (
            (winner is None or not winner.is_fixed_price)
            and remaining > 0
            and self.loyalty.available_discounts(customer) > 0
        ):
            loyalty_amount = min(self.loyalty.get_discount_amount(), remaining)
            discounts.append({
                'source': 'loyalty',
                'description': 'Loyalty discount',
                'amount': loyalty_amount,
            })
            remaining -= loyalty_amount
            loyalty_applied = True

        total_discount = base_price - remaining

        return PriceBreakdown(
            quantity=quantity,
            base_price_before_discounts=base_price,
            discount_amount=total_discount,
            final_amount=remaining,
            price_source=price_source_for(winner, campaign),
            discounts=discounts,
            applied_rule_id=winner.id if winner else None,
            rule_discount_amount=rule_discount,
            loyalty_discount_applied=loyalty_applied,
        )

    def get_candidate_rules(
        self,
        customer: Customer,
        campaign: Campaign,
        moment: Optional[datetime] = None
    ) -> List[PricingRule]:
        """Active, unexhausted, in-window rules whose scope matches."""
        moment = moment or timezone.now()

        rules = PricingRule.objects.filter(
            status=PricingRule.Status.ACTIVE
        ).filter(
            Q(campaign__isnull=True) | Q(campaign=campaign)
        ).filter(
            Q(customer__isnull=True) | Q(customer=customer)
        ).filter(
            Q(usage_limit__isnull=True) | Q(usage_count__lt=F('usage_limit'))
        ).filter(
            Q(valid_from__isnull=True) | Q(valid_from__lte=moment)
        ).filter(
            Q(valid_until__isnull=True) | Q(valid_until__gte=moment)
        )

        limited = [rule.id for rule in rules if rule.per_customer_limit is not None]
        used = {}
        if limited:
            used = dict(
                PricingRuleApplication.objects.filter(
                    rule_id__in=limited, customer=customer
                ).order_by().values('rule_id').annotate(
                    n=Count('id')
                ).values_list('rule_id', 'n')
            )

        return [
            rule for rule in rules
            if rule.per_customer_limit is None or used.get(rule.id, 0) < rule.per_customer_limit
        ]

    # ==========================================================================
    # Commit
    # ==========================================================================

    def commit(self, breakdown: PriceBreakdown, booking: Booking) -> Optional[PricingRuleApplication]:
        """
        Record rule usage and consume loyalty credit for a new booking.

        Must run inside the booking transaction. Raises RuleExhaustedError
        when the rule or the loyalty credit ran out after resolution.
        """
        from . import RuleExhaustedError

        application = None

        if breakdown.applied_rule_id is not None:
            updated = PricingRule.objects.filter(
                id=breakdown.applied_rule_id,
                status=PricingRule.Status.ACTIVE
            ).filter(
                Q(usage_limit__isnull=True) | Q(usage_count__lt=F('usage_limit'))
            ).update(usage_count=F('usage_count') + 1)

            if not updated:
                logger.warning(
                    f"Pricing rule {breakdown.applied_rule_id} exhausted before commit"
                )
                raise RuleExhaustedError(
                    f"Pricing rule {breakdown.applied_rule_id} is no longer available"
                )

            rule = PricingRule.objects.get(id=breakdown.applied_rule_id)
            if rule.per_customer_limit is not None:
                used = PricingRuleApplication.objects.filter(
                    rule=rule, customer_id=booking.customer_id
                ).count()
                if used >= rule.per_customer_limit:
                    raise RuleExhaustedError(
                        f"Pricing rule {rule.name} already used {used} time(s) by this customer"
                    )

            application = PricingRuleApplication.objects.create(
                rule=rule,
                booking=booking,
                customer_id=booking.customer_id,
                discount_amount=breakdown.rule_discount_amount,
            )
            publish_pricing_rule_applied(application)
            logger.info(f"Applied pricing rule {rule.name} to booking {booking.booking_number}")

        if breakdown.loyalty_discount_applied:
            self.loyalty.consume_discount(booking.customer_id)

        return application

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _get_campaign(self, campaign_id: uuid.UUID) -> Campaign:
        from . import CampaignNotFoundError

        try:
            return Campaign.objects.get(id=campaign_id)
        except Campaign.DoesNotExist:
            raise CampaignNotFoundError(f"Campaign {campaign_id} not found")

    def _get_customer(self, customer_id: uuid.UUID) -> Customer:
        from . import CustomerNotFoundError

        try:
            return Customer.objects.get(id=customer_id)
        except Customer.DoesNotExist:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")


class PricingRuleService:
    """
    Service class for administering pricing rules.

    Applications are derived from bookings and never edited here.
    """

    EDITABLE_FIELDS = [
        'name', 'description', 'priority', 'usage_limit',
        'per_customer_limit', 'valid_from', 'valid_until',
    ]

    @transaction.atomic
    def create_rule(self, data: Dict[str, Any], created_by: Optional[uuid.UUID] = None) -> PricingRule:
        data = dict(data)
        data.pop('usage_count', None)
        data.pop('status', None)
        self._validate(data)

        rule = PricingRule.objects.create(created_by=created_by, **data)

        logger.info(f"Created pricing rule {rule.name} ({rule.scope_label})")
        return rule

    def get_rule(self, rule_id: uuid.UUID) -> PricingRule:
        from . import PricingRuleNotFoundError

        try:
            return PricingRule.objects.get(id=rule_id)
        except PricingRule.DoesNotExist:
            raise PricingRuleNotFoundError(f"Pricing rule {rule_id} not found")

    @transaction.atomic
    def update_rule(self, rule_id: uuid.UUID, data: Dict[str, Any]) -> PricingRule:
        """Update the editable fields; type, value and scope are fixed once created."""
        from . import BookingValidationError

        rule = self.get_rule(rule_id)

        update_fields = []
        for field_name in self.EDITABLE_FIELDS:
            if field_name in data:
                setattr(rule, field_name, data[field_name])
                update_fields.append(field_name)

        if rule.usage_limit is not None and rule.usage_limit < rule.usage_count:
            raise BookingValidationError(
                f"Usage limit cannot drop below the {rule.usage_count} uses already recorded"
            )
        if rule.valid_from and rule.valid_until and rule.valid_from > rule.valid_until:
            raise BookingValidationError("valid_from must be before valid_until")

        if update_fields:
            update_fields.append('updated_at')
            rule.save(update_fields=update_fields)

        logger.info(f"Updated pricing rule {rule.name}: {update_fields}")
        return rule

    @transaction.atomic
    def deactivate_rule(self, rule_id: uuid.UUID) -> PricingRule:
        from . import InvalidTransitionError

        rule = self.get_rule(rule_id)
        try:
            rule.deactivate()
        except ValueError as e:
            raise InvalidTransitionError(str(e), allowed=[])

        logger.info(f"Deactivated pricing rule {rule.name}")
        return rule

    def list_applications(self, rule_id: uuid.UUID):
        rule = self.get_rule(rule_id)
        return rule.applications.select_related('booking', 'customer').order_by('-applied_at')

    def _validate(self, data: Dict[str, Any]):
        from . import BookingValidationError

        if not data.get('name'):
            raise BookingValidationError("Rule name is required")

        rule_type = data.get('rule_type')
        if rule_type not in PricingRule.RuleType.values:
            raise BookingValidationError(f"Unknown rule type: {rule_type}")

        value = data.get('value')
        if value is None or value < 0:
            raise BookingValidationError("Rule value must be zero or more")
        if rule_type == PricingRule.RuleType.DISCOUNT_PERCENT and value > 100:
            raise BookingValidationError("A percentage discount cannot exceed 100")

        valid_from = data.get('valid_from')
        valid_until = data.get('valid_until')
        if valid_from and valid_until and valid_from > valid_until:
            raise BookingValidationError("valid_from must be before valid_until")
