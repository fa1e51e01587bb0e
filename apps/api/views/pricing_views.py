# apps/api/views/pricing_views.py
"""
Pricing Rule API Views

Administration of discount and fixed-price rules.
"""

from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from apps.booking.models import PricingRule
from apps.booking.services import PricingRuleService
from apps.api.serializers import (
    PricingRuleApplicationSerializer,
    PricingRuleCreateSerializer,
    PricingRuleSerializer,
    PricingRuleUpdateSerializer,
)
from shared.common.mixins import MultiSerializerMixin
from shared.common.permissions import IsAdmin
from .filters import PricingRuleFilter


class PricingRuleViewSet(
    MultiSerializerMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.ReadOnlyModelViewSet
):
    """ViewSet for pricing rules (admin only)."""

    queryset = PricingRule.objects.select_related('campaign', 'customer')
    serializer_class = PricingRuleSerializer
    serializer_classes = {
        'create': PricingRuleCreateSerializer,
        'update': PricingRuleUpdateSerializer,
        'partial_update': PricingRuleUpdateSerializer,
        'applications': PricingRuleApplicationSerializer,
    }
    permission_classes = [IsAdmin]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = PricingRuleFilter
    search_fields = ['name', 'description']
    ordering_fields = ['priority', 'created_at', 'usage_count']
    ordering = ['-priority', '-created_at']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.rule_service = PricingRuleService()

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rule = self.rule_service.create_rule(
            serializer.validated_data, created_by=request.user.id
        )
        return Response(PricingRuleSerializer(rule).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()

        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        rule = self.rule_service.update_rule(instance.id, serializer.validated_data)
        return Response(PricingRuleSerializer(rule).data)

    @action(detail=True, methods=['post'])
    def deactivate(self, request, pk=None):
        """Stop a rule from applying to new bookings."""
        rule = self.rule_service.deactivate_rule(pk)
        return Response(PricingRuleSerializer(rule).data)

    @action(detail=True, methods=['get'])
    def applications(self, request, pk=None):
        """Bookings the rule has been applied to."""
        queryset = self.rule_service.list_applications(pk)

        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = self.get_serializer(queryset, many=True)
        return Response(serializer.data)
