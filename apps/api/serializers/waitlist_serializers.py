# apps/api/serializers/waitlist_serializers.py
"""
Waitlist Serializers

Serializers for waitlist management.
"""

from django.conf import settings
from django.utils import timezone
from rest_framework import serializers

from apps.booking.models import WaitlistEntry, WaitlistNotification


class WaitlistEntrySerializer(serializers.ModelSerializer):
    """Base waitlist entry serializer."""

    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    reason_display = serializers.CharField(
        source='get_reason_display',
        read_only=True
    )
    campaign_name = serializers.CharField(source='campaign.name', read_only=True)
    route_zip_code = serializers.CharField(source='route.zip_code', read_only=True)
    is_open = serializers.BooleanField(read_only=True)
    days_waiting = serializers.SerializerMethodField()

    class Meta:
        model = WaitlistEntry
        fields = [
            'id', 'customer',
            'campaign', 'campaign_name',
            'route', 'route_zip_code',
            'industry', 'subcategory', 'quantity',
            'reason', 'reason_display', 'notes',
            'status', 'status_display', 'is_open',
            'notified_count', 'last_notified_at', 'last_notified_channels',
            'converted_booking', 'days_waiting',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_days_waiting(self, obj) -> int:
        """Get number of days on waitlist."""
        if obj.is_open:
            return (timezone.now().date() - obj.created_at.date()).days
        return 0


class WaitlistEntryCreateSerializer(serializers.Serializer):
    """Input for joining the waitlist directly."""

    campaign_id = serializers.UUIDField()
    route_id = serializers.UUIDField()
    industry_id = serializers.UUIDField(required=False, allow_null=True)
    subcategory_id = serializers.UUIDField(required=False, allow_null=True)
    quantity = serializers.IntegerField(default=1)
    reason = serializers.ChoiceField(
        choices=WaitlistEntry.Reason.choices,
        default=WaitlistEntry.Reason.ROUTE_FULL
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_quantity(self, value):
        max_quantity = settings.MAX_SLOTS_PER_BOOKING
        if value < 1 or value > max_quantity:
            raise serializers.ValidationError(
                f"Quantity must be between 1 and {max_quantity}"
            )
        return value


class WaitlistNotifySerializer(serializers.Serializer):
    """Admin bulk notification request."""

    entry_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    message = serializers.CharField()
    email = serializers.BooleanField(default=False)
    in_app = serializers.BooleanField(default=True)

    def validate(self, attrs):
        if not attrs['email'] and not attrs['in_app']:
            raise serializers.ValidationError("Select at least one notification channel")
        return attrs

    def get_channels(self):
        channels = []
        if self.validated_data['email']:
            channels.append(WaitlistNotification.Channel.EMAIL)
        if self.validated_data['in_app']:
            channels.append(WaitlistNotification.Channel.IN_APP)
        return channels


class WaitlistConvertSerializer(serializers.Serializer):
    """Optional booking details supplied when converting an entry."""

    industry_id = serializers.UUIDField(required=False, allow_null=True)
    business_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    contact_email = serializers.EmailField(required=False, allow_blank=True)
    contact_phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    contract_accepted = serializers.BooleanField(required=False, default=False)


class WaitlistNotificationSerializer(serializers.ModelSerializer):
    """Notification history serializer."""

    is_automatic = serializers.BooleanField(read_only=True)

    class Meta:
        model = WaitlistNotification
        fields = [
            'id', 'sent_by', 'is_automatic', 'campaign', 'route',
            'message', 'channels', 'recipient_count', 'recipient_ids',
            'sent_at',
        ]
        read_only_fields = fields
