# apps/booking/models/pricing.py
"""
Pricing Models

Scoped, prioritized, usage-capped price modifiers and their audit trail.
"""

from django.db import models
from django.utils import timezone

from shared.common.mixins import BaseModel


class PricingRule(BaseModel):
    """
    Price modifier scoped optionally to a campaign and/or a customer.

    ``value`` is interpreted per type: cents per slot for fixed_price,
    cents off the booking for discount_amount, percent for discount_percent.
    """

    class RuleType(models.TextChoices):
        FIXED_PRICE = 'fixed_price', 'Fixed Price'
        DISCOUNT_AMOUNT = 'discount_amount', 'Discount Amount'
        DISCOUNT_PERCENT = 'discount_percent', 'Discount Percent'

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    # Scope (null = any)
    campaign = models.ForeignKey(
        'booking.Campaign',
        on_delete=models.CASCADE,
        related_name='pricing_rules',
        blank=True,
        null=True
    )
    customer = models.ForeignKey(
        'booking.Customer',
        on_delete=models.CASCADE,
        related_name='pricing_rules',
        blank=True,
        null=True
    )

    rule_type = models.CharField(max_length=20, choices=RuleType.choices)
    value = models.PositiveIntegerField()
    priority = models.IntegerField(default=0, db_index=True)

    # Usage caps
    usage_limit = models.PositiveIntegerField(blank=True, null=True)
    usage_count = models.PositiveIntegerField(default=0)
    per_customer_limit = models.PositiveIntegerField(blank=True, null=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True
    )
    valid_from = models.DateTimeField(blank=True, null=True)
    valid_until = models.DateTimeField(blank=True, null=True)
    created_by = models.UUIDField(blank=True, null=True)

    class Meta:
        db_table = 'pricing_rules'
        ordering = ['-priority', '-created_at']
        indexes = [
            models.Index(fields=['status', 'campaign', 'customer']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(usage_limit__isnull=True) |
                    models.Q(usage_count__lte=models.F('usage_limit'))
                ),
                name='pricing_rule_usage_within_limit'
            ),
            models.CheckConstraint(
                condition=(
                    ~models.Q(rule_type='discount_percent') |
                    models.Q(value__lte=100)
                ),
                name='pricing_rule_percent_range'
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_rule_type_display()} {self.value})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_exhausted(self) -> bool:
        return self.usage_limit is not None and self.usage_count >= self.usage_limit

    @property
    def is_fixed_price(self) -> bool:
        return self.rule_type == self.RuleType.FIXED_PRICE

    @property
    def scope_label(self) -> str:
        if self.customer_id and self.campaign_id:
            return 'customer_campaign'
        if self.campaign_id:
            return 'campaign'
        if self.customer_id:
            return 'customer'
        return 'global'

    def is_valid_at(self, moment=None) -> bool:
        moment = moment or timezone.now()
        if self.valid_from and moment < self.valid_from:
            return False
        if self.valid_until and moment > self.valid_until:
            return False
        return True

    def deactivate(self):
        """Deactivate the rule; applications already recorded stay intact."""
        if self.status == self.Status.INACTIVE:
            raise ValueError("Pricing rule is already inactive")
        self.status = self.Status.INACTIVE
        self.save(update_fields=['status', 'updated_at'])


class PricingRuleApplication(BaseModel):
    """Immutable record of one rule applied to one booking."""

    rule = models.ForeignKey(
        PricingRule,
        on_delete=models.PROTECT,
        related_name='applications'
    )
    booking = models.ForeignKey(
        'booking.Booking',
        on_delete=models.CASCADE,
        related_name='rule_applications'
    )
    customer = models.ForeignKey(
        'booking.Customer',
        on_delete=models.CASCADE,
        related_name='rule_applications'
    )
    discount_amount = models.IntegerField()
    applied_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'pricing_rule_applications'
        ordering = ['-applied_at']
        constraints = [
            models.UniqueConstraint(
                fields=['rule', 'booking'],
                name='unique_rule_application_per_booking'
            ),
        ]

    def __str__(self):
        return f"{self.rule.name} -> {self.booking.booking_number}"
