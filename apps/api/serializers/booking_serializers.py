# apps/api/serializers/booking_serializers.py
"""
Booking Serializers

Serializers for bookings and their payment, approval, artwork and
design workflows.
"""

from django.conf import settings
from rest_framework import serializers

from apps.booking.models import Booking, DesignRevision


class BookingSerializer(serializers.ModelSerializer):
    """Base booking serializer."""

    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    payment_status_display = serializers.CharField(
        source='get_payment_status_display',
        read_only=True
    )
    approval_status_display = serializers.CharField(
        source='get_approval_status_display',
        read_only=True
    )
    artwork_status_display = serializers.CharField(
        source='get_artwork_status_display',
        read_only=True
    )
    design_status_display = serializers.CharField(
        source='get_design_status_display',
        read_only=True
    )
    campaign_name = serializers.CharField(source='campaign.name', read_only=True)
    route_zip_code = serializers.CharField(source='route.zip_code', read_only=True)
    industry_name = serializers.CharField(source='industry.name', read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'booking_number',
            'customer', 'campaign', 'campaign_name',
            'route', 'route_zip_code',
            'industry', 'industry_name',
            'subcategory', 'industry_subcategory_label',
            'quantity', 'business_name', 'contact_email', 'contact_phone',
            'status', 'status_display',
            'payment_status', 'payment_status_display',
            'approval_status', 'approval_status_display',
            'artwork_status', 'artwork_status_display',
            'design_status', 'design_status_display',
            'amount',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class BookingListSerializer(BookingSerializer):
    """Optimized serializer for booking lists."""

    class Meta(BookingSerializer.Meta):
        fields = [
            'id', 'booking_number',
            'campaign', 'campaign_name',
            'route', 'route_zip_code',
            'industry_name', 'quantity', 'business_name',
            'status', 'status_display',
            'payment_status', 'payment_status_display',
            'approval_status', 'artwork_status', 'design_status',
            'amount', 'created_at',
        ]
        read_only_fields = fields


class DesignRevisionSerializer(serializers.ModelSerializer):
    """Design revision serializer."""

    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )

    class Meta:
        model = DesignRevision
        fields = [
            'id', 'booking', 'revision_number', 'design_file',
            'status', 'status_display',
            'customer_feedback', 'admin_notes',
            'uploaded_by', 'uploaded_at', 'reviewed_at',
        ]
        read_only_fields = fields


class BookingDetailSerializer(BookingSerializer):
    """Detailed booking serializer."""

    price_source_display = serializers.CharField(
        source='get_price_source_display',
        read_only=True
    )
    refund_status_display = serializers.CharField(
        source='get_refund_status_display',
        read_only=True
    )
    revisions_remaining = serializers.IntegerField(read_only=True)
    design_revisions = DesignRevisionSerializer(many=True, read_only=True)

    class Meta(BookingSerializer.Meta):
        fields = BookingSerializer.Meta.fields + [
            # Pricing
            'base_price_before_discounts', 'discount_amount',
            'price_source', 'price_source_display',
            'price_override', 'price_override_note', 'applied_rule',
            'loyalty_discount_applied', 'counts_toward_loyalty',
            # Payment
            'pending_since', 'checkout_session_id', 'payment_reference',
            'amount_paid', 'paid_at', 'payment_failure_reason',
            # Approval
            'approved_at', 'rejected_at', 'rejection_note',
            # Artwork
            'artwork_file', 'artwork_file_name', 'artwork_uploaded_at',
            'artwork_reviewed_at', 'artwork_rejection_reason',
            # Design
            'main_message', 'qr_code_url', 'brand_colors', 'ad_style', 'design_notes',
            'revision_count', 'revisions_remaining', 'design_revisions',
            # Contract
            'contract_accepted', 'contract_accepted_at', 'contract_version',
            # Cancellation
            'cancelled_at', 'cancelled_by', 'cancellation_reason',
            'refund_amount', 'refund_status', 'refund_status_display',
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    """Input for booking slots."""

    campaign_id = serializers.UUIDField()
    route_id = serializers.UUIDField()
    industry_id = serializers.UUIDField()
    customer_id = serializers.UUIDField(required=False, allow_null=True)
    subcategory_id = serializers.UUIDField(required=False, allow_null=True)
    quantity = serializers.IntegerField(default=1)

    business_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    contact_email = serializers.EmailField(required=False, allow_blank=True)
    contact_phone = serializers.CharField(max_length=30, required=False, allow_blank=True)

    main_message = serializers.CharField(required=False, allow_blank=True)
    qr_code_url = serializers.URLField(required=False, allow_blank=True)
    brand_colors = serializers.CharField(max_length=255, required=False, allow_blank=True)
    ad_style = serializers.CharField(max_length=50, required=False, allow_blank=True)
    design_notes = serializers.CharField(required=False, allow_blank=True)

    contract_accepted = serializers.BooleanField(required=False, default=False)

    # Admin only
    override_price = serializers.IntegerField(required=False, allow_null=True)
    override_note = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    join_waitlist = serializers.BooleanField(required=False, default=True)
    waitlist_notes = serializers.CharField(required=False, allow_blank=True)

    def validate_quantity(self, value):
        max_quantity = settings.MAX_SLOTS_PER_BOOKING
        if value < 1 or value > max_quantity:
            raise serializers.ValidationError(
                f"Quantity must be between 1 and {max_quantity}"
            )
        return value


class BookingQuoteSerializer(serializers.Serializer):
    """Input for a price quote."""

    campaign_id = serializers.UUIDField()
    quantity = serializers.IntegerField(default=1)
    override_price = serializers.IntegerField(required=False, allow_null=True)
    override_note = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class PriceDiscountSerializer(serializers.Serializer):
    source = serializers.CharField()
    rule_id = serializers.UUIDField(required=False)
    description = serializers.CharField()
    rule_type = serializers.CharField(required=False)
    value = serializers.IntegerField(required=False)
    amount = serializers.IntegerField()


class PriceBreakdownSerializer(serializers.Serializer):
    """Resolved price of a candidate booking."""

    quantity = serializers.IntegerField()
    base_price_before_discounts = serializers.IntegerField()
    discount_amount = serializers.IntegerField()
    final_amount = serializers.IntegerField()
    price_source = serializers.CharField()
    discounts = PriceDiscountSerializer(many=True)
    applied_rule_id = serializers.UUIDField(allow_null=True)
    loyalty_discount_applied = serializers.BooleanField()
    price_override = serializers.IntegerField(allow_null=True)
    price_override_note = serializers.CharField(allow_blank=True)


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class BookingRejectSerializer(serializers.Serializer):
    note = serializers.CharField()


class PaymentCallbackSerializer(serializers.Serializer):
    """Result reported by the payment gateway."""

    RESULT_CHOICES = [('paid', 'Paid'), ('failed', 'Failed')]

    result = serializers.ChoiceField(choices=RESULT_CHOICES)
    amount_paid = serializers.IntegerField(required=False, min_value=0)
    reference = serializers.CharField(required=False, allow_blank=True, default='')
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ArtworkUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class ArtworkReviewSerializer(serializers.Serializer):
    approved = serializers.BooleanField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if not attrs['approved'] and not attrs.get('reason', '').strip():
            raise serializers.ValidationError({
                'reason': "A reason is required when rejecting artwork"
            })
        return attrs


class DesignRevisionUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class DesignFeedbackSerializer(serializers.Serializer):
    feedback = serializers.CharField()
