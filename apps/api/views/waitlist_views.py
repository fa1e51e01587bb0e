# apps/api/views/waitlist_views.py
"""
Waitlist API Views

Views for waitlist entries and the admin notification history.
"""

import logging

from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from apps.booking.models import WaitlistEntry, WaitlistNotification
from apps.booking.services import WaitlistService
from apps.api.serializers import (
    BookingDetailSerializer,
    WaitlistConvertSerializer,
    WaitlistEntryCreateSerializer,
    WaitlistEntrySerializer,
    WaitlistNotificationSerializer,
    WaitlistNotifySerializer,
)
from shared.common.mixins import MultiSerializerMixin
from shared.common.permissions import IsAdmin, IsOwnerOrAdmin
from .filters import WaitlistEntryFilter
from .mixins import CurrentCustomerMixin

logger = logging.getLogger(__name__)


class WaitlistEntryViewSet(
    MultiSerializerMixin,
    CurrentCustomerMixin,
    mixins.CreateModelMixin,
    viewsets.ReadOnlyModelViewSet
):
    """
    ViewSet for waitlist entries.

    Customers manage their own entries; admins see every entry and send
    notifications.
    """

    queryset = WaitlistEntry.objects.select_related(
        'customer', 'campaign', 'route', 'industry', 'subcategory'
    )
    serializer_class = WaitlistEntrySerializer
    serializer_classes = {
        'create': WaitlistEntryCreateSerializer,
        'notify': WaitlistNotifySerializer,
        'convert': WaitlistConvertSerializer,
    }
    permission_classes = [IsOwnerOrAdmin]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = WaitlistEntryFilter
    ordering_fields = ['created_at', 'notified_count']
    ordering = ['created_at']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.waitlist_service = WaitlistService()

    def get_queryset(self):
        queryset = super().get_queryset()
        if not self.is_admin():
            queryset = queryset.filter(customer_id=self.request.user.id)
        return queryset

    def get_permissions(self):
        if self.action == 'notify':
            return [IsAdmin()]
        return super().get_permissions()

    def create(self, request, *args, **kwargs):
        """Join the waitlist for a campaign route."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = self.waitlist_service.add_entry(
            customer=self.get_customer(), **serializer.validated_data
        )
        return Response(WaitlistEntrySerializer(entry).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Leave the waitlist."""
        entry = self.get_object()
        entry = self.waitlist_service.cancel_entry(entry.id, self.get_customer())
        return Response(WaitlistEntrySerializer(entry).data)

    @action(detail=False, methods=['post'])
    def notify(self, request):
        """Send a message to selected waitlist entries."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        notified = self.waitlist_service.notify_entries(
            serializer.validated_data['entry_ids'],
            serializer.validated_data['message'],
            serializer.get_channels(),
            sent_by=request.user.id,
        )
        return Response({'notified': notified})

    @action(detail=True, methods=['post'])
    def convert(self, request, pk=None):
        """Book the slots an entry is waiting for."""
        entry = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking_data = {
            key: value for key, value in serializer.validated_data.items()
            if value is not None
        }
        result = self.waitlist_service.convert_entry(
            entry.id, self.get_customer(), **booking_data
        )

        if result.waitlisted:
            return Response({
                'waitlisted': True,
                'message': result.message,
                'waitlist_entry': WaitlistEntrySerializer(result.waitlist_entry).data,
            }, status=status.HTTP_202_ACCEPTED)

        return Response(
            BookingDetailSerializer(result.booking).data,
            status=status.HTTP_201_CREATED
        )


class WaitlistNotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """Notification history (admin only)."""

    queryset = WaitlistNotification.objects.all()
    serializer_class = WaitlistNotificationSerializer
    permission_classes = [IsAdmin]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['campaign', 'route']
    ordering = ['-sent_at']
