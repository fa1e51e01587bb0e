# apps/api/serializers/pricing_serializers.py
"""
Pricing Serializers

Serializers for pricing rules and their application history.
"""

from rest_framework import serializers

from apps.booking.models import Campaign, Customer, PricingRule, PricingRuleApplication


class PricingRuleSerializer(serializers.ModelSerializer):
    """Pricing rule serializer."""

    rule_type_display = serializers.CharField(
        source='get_rule_type_display',
        read_only=True
    )
    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    scope = serializers.CharField(source='scope_label', read_only=True)
    is_exhausted = serializers.BooleanField(read_only=True)

    class Meta:
        model = PricingRule
        fields = [
            'id', 'name', 'description',
            'campaign', 'customer', 'scope',
            'rule_type', 'rule_type_display', 'value', 'priority',
            'usage_limit', 'usage_count', 'per_customer_limit', 'is_exhausted',
            'status', 'status_display',
            'valid_from', 'valid_until', 'created_by',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class PricingRuleCreateSerializer(serializers.Serializer):
    """Input for creating a pricing rule."""

    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    campaign = serializers.PrimaryKeyRelatedField(
        queryset=Campaign.objects.all(), required=False, allow_null=True
    )
    customer = serializers.PrimaryKeyRelatedField(
        queryset=Customer.objects.all(), required=False, allow_null=True
    )
    rule_type = serializers.ChoiceField(choices=PricingRule.RuleType.choices)
    value = serializers.IntegerField(min_value=0)
    priority = serializers.IntegerField(required=False, default=0)
    usage_limit = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    per_customer_limit = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    valid_from = serializers.DateTimeField(required=False, allow_null=True)
    valid_until = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['rule_type'] == PricingRule.RuleType.DISCOUNT_PERCENT and attrs['value'] > 100:
            raise serializers.ValidationError({
                'value': "A percentage discount cannot exceed 100"
            })
        return attrs


class PricingRuleUpdateSerializer(serializers.Serializer):
    """Editable pricing rule fields."""

    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.IntegerField(required=False)
    usage_limit = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    per_customer_limit = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    valid_from = serializers.DateTimeField(required=False, allow_null=True)
    valid_until = serializers.DateTimeField(required=False, allow_null=True)


class PricingRuleApplicationSerializer(serializers.ModelSerializer):
    """Read-only record of a rule applied to a booking."""

    booking_number = serializers.CharField(source='booking.booking_number', read_only=True)

    class Meta:
        model = PricingRuleApplication
        fields = [
            'id', 'rule', 'booking', 'booking_number', 'customer',
            'discount_amount', 'applied_at',
        ]
        read_only_fields = fields
