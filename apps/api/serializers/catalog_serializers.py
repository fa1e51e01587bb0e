# apps/api/serializers/catalog_serializers.py
"""
Catalog Serializers

Serializers for routes, industries and subcategories.
"""

from rest_framework import serializers

from apps.booking.models import Industry, IndustrySubcategory, Route


class RouteSerializer(serializers.ModelSerializer):
    """Mail route serializer."""

    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )

    class Meta:
        model = Route
        fields = [
            'id', 'zip_code', 'name', 'city', 'household_count',
            'status', 'status_display',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_household_count(self, value):
        if value < 1:
            raise serializers.ValidationError("Household count must be at least 1")
        return value


class IndustrySubcategorySerializer(serializers.ModelSerializer):
    """Industry subcategory serializer."""

    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    industry_name = serializers.CharField(source='industry.name', read_only=True)

    class Meta:
        model = IndustrySubcategory
        fields = [
            'id', 'industry', 'industry_name', 'name',
            'status', 'status_display', 'sort_order',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class IndustrySerializer(serializers.ModelSerializer):
    """Industry serializer with nested subcategories."""

    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    subcategories = IndustrySubcategorySerializer(many=True, read_only=True)

    class Meta:
        model = Industry
        fields = [
            'id', 'name', 'description', 'icon',
            'status', 'status_display', 'sort_order',
            'subcategories',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
