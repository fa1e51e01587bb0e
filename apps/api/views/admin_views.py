# apps/api/views/admin_views.py
"""
Admin Work Queue and Dashboard Views
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.booking.models import AdminNotification
from apps.booking.services import AdminNotificationService, DashboardService
from apps.api.serializers import AdminNotificationSerializer, DashboardStatsSerializer
from shared.common.permissions import IsAdmin
from .mixins import CurrentCustomerMixin


class AdminNotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    The admin work queue.

    The list holds unhandled items the caller has not dismissed;
    ``?type=`` narrows it to one notification type.
    """

    queryset = AdminNotification.objects.select_related(
        'booking', 'booking__customer', 'booking__route', 'booking__campaign'
    )
    serializer_class = AdminNotificationSerializer
    permission_classes = [IsAdmin]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.notification_service = AdminNotificationService()

    def get_queryset(self):
        if self.action == 'list':
            notification_type = self.request.query_params.get('type')
            if notification_type and notification_type not in AdminNotification.Type.values:
                return AdminNotification.objects.none()
            return self.notification_service.list_open(
                self.request.user.id, notification_type
            )
        return super().get_queryset()

    @action(detail=False, methods=['get'])
    def count(self, request):
        """Open items in the caller's queue."""
        return Response({'count': self.notification_service.unhandled_count(request.user.id)})

    @action(detail=True, methods=['post'])
    def handle(self, request, pk=None):
        """Resolve an item for every admin."""
        notification = self.get_object()
        notification = self.notification_service.mark_handled(notification.id, request.user.id)
        return Response(AdminNotificationSerializer(notification).data)

    @action(detail=True, methods=['post'])
    def dismiss(self, request, pk=None):
        """Hide an item from the caller's queue only."""
        notification = self.get_object()
        self.notification_service.dismiss(notification.id, request.user.id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class DashboardStatsView(CurrentCustomerMixin, APIView):
    """Platform totals for admins, own totals for customers."""

    def get(self, request):
        stats = DashboardService().get_stats(self.get_customer(), is_admin=self.is_admin())
        return Response(DashboardStatsSerializer(stats).data)
