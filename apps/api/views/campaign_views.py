# apps/api/views/campaign_views.py
"""
Campaign API Views

Campaign management, status workflow and slot availability.
"""

import logging

from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from apps.booking.models import Campaign
from apps.booking.services import CampaignService, SlotAllocator
from apps.api.serializers import (
    CampaignAvailabilitySerializer,
    CampaignCreateSerializer,
    CampaignDetailSerializer,
    CampaignListSerializer,
    CampaignSerializer,
    CampaignTransitionSerializer,
)
from shared.common.mixins import MultiSerializerMixin
from shared.common.permissions import IsAdmin, IsAdminOrReadOnly
from .filters import CampaignFilter
from .mixins import CurrentCustomerMixin

logger = logging.getLogger(__name__)


class CampaignViewSet(
    MultiSerializerMixin,
    CurrentCustomerMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.ReadOnlyModelViewSet
):
    """
    ViewSet for campaigns.

    Anyone may browse campaigns past planning; admins manage them.
    """

    queryset = Campaign.objects.all()
    serializer_class = CampaignSerializer
    serializer_classes = {
        'list': CampaignListSerializer,
        'retrieve': CampaignDetailSerializer,
        'create': CampaignCreateSerializer,
        'update': CampaignCreateSerializer,
        'partial_update': CampaignCreateSerializer,
        'transition': CampaignTransitionSerializer,
        'availability': CampaignAvailabilitySerializer,
    }
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = CampaignFilter
    search_fields = ['name']
    ordering_fields = ['mail_date', 'print_deadline', 'created_at']
    ordering = ['mail_date']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.campaign_service = CampaignService()
        self.allocator = SlotAllocator()

    def get_queryset(self):
        queryset = super().get_queryset()
        if not self.is_admin():
            queryset = queryset.exclude(status=Campaign.Status.PLANNING)
        return queryset

    def get_permissions(self):
        if self.action in ['transition', 'reconcile']:
            return [IsAdmin()]
        if self.action == 'availability':
            return [AllowAny()]
        return super().get_permissions()

    def create(self, request, *args, **kwargs):
        """Create a campaign."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        campaign = self.campaign_service.create_campaign(serializer.validated_data)

        return Response(
            CampaignDetailSerializer(campaign).data,
            status=status.HTTP_201_CREATED
        )

    def update(self, request, *args, **kwargs):
        """Update a campaign."""
        partial = kwargs.pop('partial', False)
        instance = self.get_object()

        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)

        campaign = self.campaign_service.update_campaign(instance.id, serializer.validated_data)

        return Response(CampaignDetailSerializer(campaign).data)

    @action(detail=True, methods=['post'])
    def transition(self, request, pk=None):
        """Move the campaign to its next status."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        campaign = self.campaign_service.transition_status(
            pk, serializer.validated_data['status'], actor=request.user.id
        )

        return Response(CampaignDetailSerializer(campaign).data)

    @action(detail=True, methods=['get'])
    def availability(self, request, pk=None):
        """Per-route slot availability."""
        availability = self.allocator.get_availability(pk)
        return Response(CampaignAvailabilitySerializer(availability).data)

    @action(detail=True, methods=['post'])
    def reconcile(self, request, pk=None):
        """Recompute booked slots and revenue from bookings."""
        drift = self.allocator.reconcile(pk)
        campaign = self.campaign_service.get_campaign(pk)

        return Response({
            'drift': drift,
            'campaign': CampaignDetailSerializer(campaign).data,
        })
