# apps/api/serializers/customer_serializers.py
"""
Customer Serializers
"""

from rest_framework import serializers

from apps.booking.models import Customer, CustomerNote, CustomerNotification


class LoyaltySummarySerializer(serializers.Serializer):
    slots_earned = serializers.IntegerField()
    threshold = serializers.IntegerField()
    slots_until_next_discount = serializers.IntegerField()
    discounts_available = serializers.IntegerField()
    discount_amount = serializers.IntegerField()
    year = serializers.IntegerField(allow_null=True)


class ReferralSummarySerializer(serializers.Serializer):
    code = serializers.CharField()
    referred_by = serializers.UUIDField(allow_null=True)
    referrals_made = serializers.IntegerField()
    referrals_credited = serializers.IntegerField()
    credit_earned = serializers.IntegerField()


class CustomerSummarySerializer(serializers.Serializer):
    """Loyalty and referral overview for the current customer."""

    customer_id = serializers.UUIDField()
    email = serializers.EmailField()
    business_name = serializers.CharField(allow_blank=True)
    role = serializers.CharField()
    loyalty = LoyaltySummarySerializer()
    referral = ReferralSummarySerializer()
    contract_version = serializers.CharField()


class ApplyReferralSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=16)


class CustomerNotificationSerializer(serializers.ModelSerializer):

    class Meta:
        model = CustomerNotification
        fields = ['id', 'title', 'message', 'link', 'is_read', 'created_at']
        read_only_fields = fields


# =============================================================================
# CRM (admin)
# =============================================================================

class AdminCustomerSerializer(serializers.ModelSerializer):
    tags = serializers.SlugRelatedField(many=True, read_only=True, slug_field='tag')

    class Meta:
        model = Customer
        fields = [
            'id', 'email', 'name', 'business_name', 'phone', 'role',
            'loyalty_slots_earned', 'loyalty_discounts_available',
            'referral_code', 'tags', 'created_at'
        ]
        read_only_fields = fields


class CustomerNoteSerializer(serializers.ModelSerializer):

    class Meta:
        model = CustomerNote
        fields = ['id', 'customer', 'note', 'created_by', 'created_at']
        read_only_fields = ['id', 'customer', 'created_by', 'created_at']


class CustomerTagSerializer(serializers.Serializer):
    tag = serializers.CharField(max_length=50)
