# apps/api/serializers/campaign_serializers.py
"""
Campaign Serializers

Serializers for campaigns, their status workflow and availability.
"""

from rest_framework import serializers

from apps.booking.models import Campaign, Industry, Route


class CampaignSerializer(serializers.ModelSerializer):
    """Base campaign serializer."""

    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    available_slots = serializers.IntegerField(read_only=True)
    is_booking_open = serializers.BooleanField(read_only=True)

    class Meta:
        model = Campaign
        fields = [
            'id', 'name', 'mail_date', 'print_deadline',
            'status', 'status_display', 'is_booking_open',
            'total_slots', 'booked_slots', 'available_slots',
            'industry_exclusive',
            'base_slot_price', 'additional_slot_price',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class CampaignListSerializer(CampaignSerializer):
    """Compact serializer for campaign lists."""

    class Meta(CampaignSerializer.Meta):
        fields = [
            'id', 'name', 'mail_date', 'print_deadline',
            'status', 'status_display', 'is_booking_open',
            'total_slots', 'booked_slots', 'available_slots',
        ]
        read_only_fields = fields


class CampaignDetailSerializer(CampaignSerializer):
    """Campaign detail including offering and revenue."""

    routes = serializers.PrimaryKeyRelatedField(many=True, read_only=True)
    industries = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta(CampaignSerializer.Meta):
        fields = CampaignSerializer.Meta.fields + ['routes', 'industries', 'revenue']
        read_only_fields = fields


class CampaignCreateSerializer(serializers.Serializer):
    """Input for creating or updating a campaign."""

    name = serializers.CharField(max_length=255)
    mail_date = serializers.DateField()
    print_deadline = serializers.DateField()
    total_slots = serializers.IntegerField(min_value=1, required=False)
    industry_exclusive = serializers.BooleanField(required=False, default=False)
    base_slot_price = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    additional_slot_price = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    routes = serializers.PrimaryKeyRelatedField(
        queryset=Route.objects.all(), many=True, required=False
    )
    industries = serializers.PrimaryKeyRelatedField(
        queryset=Industry.objects.all(), many=True, required=False
    )

    def validate(self, attrs):
        print_deadline = attrs.get('print_deadline')
        mail_date = attrs.get('mail_date')
        if print_deadline and mail_date and print_deadline >= mail_date:
            raise serializers.ValidationError({
                'print_deadline': "Print deadline must be before the mail date"
            })
        return attrs


class CampaignTransitionSerializer(serializers.Serializer):
    """Target status for a campaign transition."""

    status = serializers.ChoiceField(choices=Campaign.Status.choices)


class RouteAvailabilitySerializer(serializers.Serializer):
    route_id = serializers.UUIDField()
    zip_code = serializers.CharField()
    name = serializers.CharField()
    household_count = serializers.IntegerField()
    capacity = serializers.IntegerField()
    occupied = serializers.IntegerField()
    remaining = serializers.IntegerField()
    taken_industries = serializers.ListField(child=serializers.CharField())


class CampaignAvailabilitySerializer(serializers.Serializer):
    """Per-route occupancy of a campaign."""

    campaign_id = serializers.UUIDField()
    status = serializers.CharField()
    total_slots = serializers.IntegerField()
    booked_slots = serializers.IntegerField()
    available_slots = serializers.IntegerField()
    slots_per_route = serializers.IntegerField()
    industry_exclusive = serializers.BooleanField()
    routes = RouteAvailabilitySerializer(many=True)
