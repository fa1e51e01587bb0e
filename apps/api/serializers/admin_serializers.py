# apps/api/serializers/admin_serializers.py
"""
Admin Work Queue and Dashboard Serializers
"""

from rest_framework import serializers

from apps.booking.models import AdminNotification


class AdminNotificationSerializer(serializers.ModelSerializer):
    booking_number = serializers.CharField(source='booking.booking_number', read_only=True)
    business_name = serializers.CharField(source='booking.business_name', read_only=True)
    customer_email = serializers.EmailField(source='booking.customer.email', read_only=True)
    route_zip_code = serializers.CharField(source='booking.route.zip_code', read_only=True)
    campaign_name = serializers.CharField(source='booking.campaign.name', read_only=True)

    class Meta:
        model = AdminNotification
        fields = [
            'id', 'type', 'booking', 'booking_number', 'business_name',
            'customer_email', 'route_zip_code', 'campaign_name',
            'is_handled', 'handled_at', 'handled_by', 'created_at'
        ]
        read_only_fields = fields


class DashboardStatsSerializer(serializers.Serializer):
    """Admin-only and customer-only fields are omitted for the other audience."""

    active_routes = serializers.IntegerField()
    open_campaigns = serializers.IntegerField()
    available_slots = serializers.IntegerField()
    total_bookings = serializers.IntegerField()
    booked_campaigns = serializers.IntegerField()
    active_waitlist_entries = serializers.IntegerField()

    # Admin
    total_revenue = serializers.IntegerField(required=False)
    total_customers = serializers.IntegerField(required=False)
    occupancy_rate = serializers.FloatField(required=False)
    unhandled_notifications = serializers.IntegerField(required=False)

    # Customer
    total_spent = serializers.IntegerField(required=False)
    loyalty_slots_earned = serializers.IntegerField(required=False)
    loyalty_discounts_available = serializers.IntegerField(required=False)
