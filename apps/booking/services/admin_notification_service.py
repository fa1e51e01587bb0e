# apps/booking/services/admin_notification_service.py
"""
Admin Notification Service

The administrators' work queue: new bookings to approve, artwork
waiting for review and customer cancellations.
"""

import uuid
import logging
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import QuerySet

from ..models import AdminNotification, AdminNotificationDismissal, Booking

logger = logging.getLogger(__name__)


class AdminNotificationService:
    """
    Service for the admin work queue.

    A booking has at most one open item per type; raising it again
    returns the open one.
    """

    def raise_for_booking(self, booking: Booking, notification_type: str) -> AdminNotification:
        """Open a queue item for ``booking`` unless one of this type is still unhandled."""
        existing = AdminNotification.objects.filter(
            booking=booking, type=notification_type, is_handled=False
        ).first()
        if existing:
            return existing

        notification = AdminNotification.objects.create(booking=booking, type=notification_type)
        logger.info(f"Raised {notification_type} notification for booking {booking.booking_number}")
        return notification

    def resolve_for_booking(self, booking: Booking, notification_type: str,
                            admin_id: Optional[uuid.UUID] = None) -> int:
        """Mark every open item of ``notification_type`` on ``booking`` handled."""
        open_items = list(AdminNotification.objects.filter(
            booking=booking, type=notification_type, is_handled=False
        ))
        for notification in open_items:
            notification.mark_handled(admin_id)
        return len(open_items)

    def list_open(self, admin_id: uuid.UUID, notification_type: Optional[str] = None) -> QuerySet:
        """Unhandled items this admin has not dismissed, newest first."""
        queryset = AdminNotification.objects.filter(
            is_handled=False
        ).exclude(
            dismissals__admin_id=admin_id
        ).select_related('booking', 'booking__customer', 'booking__route', 'booking__campaign')

        if notification_type:
            queryset = queryset.filter(type=notification_type)

        return queryset

    def unhandled_count(self, admin_id: Optional[uuid.UUID] = None) -> int:
        if admin_id is None:
            return AdminNotification.objects.filter(is_handled=False).count()
        return self.list_open(admin_id).count()

    def get_notification(self, notification_id: uuid.UUID) -> AdminNotification:
        from . import AdminNotificationNotFoundError

        try:
            return AdminNotification.objects.get(id=notification_id)
        except AdminNotification.DoesNotExist:
            raise AdminNotificationNotFoundError(f"Notification {notification_id} not found")

    @transaction.atomic
    def mark_handled(self, notification_id: uuid.UUID, admin_id: uuid.UUID) -> AdminNotification:
        """Resolve an item for every administrator; handling twice keeps the first record."""
        from . import AdminNotificationNotFoundError

        try:
            notification = AdminNotification.objects.select_for_update().get(id=notification_id)
        except AdminNotification.DoesNotExist:
            raise AdminNotificationNotFoundError(f"Notification {notification_id} not found")

        if notification.is_handled:
            return notification

        notification.mark_handled(admin_id)
        logger.info(f"Admin {admin_id} handled notification {notification.id}")
        return notification

    def dismiss(self, notification_id: uuid.UUID, admin_id: uuid.UUID) -> AdminNotificationDismissal:
        """Hide an item from one admin's queue only."""
        notification = self.get_notification(notification_id)

        try:
            with transaction.atomic():
                dismissal, created = AdminNotificationDismissal.objects.get_or_create(
                    notification=notification, admin_id=admin_id
                )
        except IntegrityError:
            # Same admin dismissing from two tabs
            return AdminNotificationDismissal.objects.get(
                notification=notification, admin_id=admin_id
            )

        if created:
            logger.info(f"Admin {admin_id} dismissed notification {notification.id}")
        return dismissal
