# apps/booking/models/admin_notification.py
"""
Admin Work Queue Models

Bookings that need an administrator's attention, and the per-admin
dismissals that hide an item from one admin's queue only.
"""

from django.db import models
from django.utils import timezone

from shared.common.mixins import BaseModel


class AdminNotification(BaseModel):
    """
    A queue item raised by a booking event.

    Handling resolves the item for every administrator; dismissing it
    only hides it for the admin who dismissed it.
    """

    class Type(models.TextChoices):
        NEW_BOOKING = 'new_booking', 'New Booking'
        ARTWORK_REVIEW = 'artwork_review', 'Artwork Review'
        CANCELED_BOOKING = 'canceled_booking', 'Canceled Booking'

    type = models.CharField(max_length=30, choices=Type.choices)
    booking = models.ForeignKey(
        'booking.Booking',
        on_delete=models.CASCADE,
        related_name='admin_notifications'
    )
    is_handled = models.BooleanField(default=False)
    handled_at = models.DateTimeField(blank=True, null=True)
    handled_by = models.UUIDField(blank=True, null=True)

    class Meta:
        db_table = 'admin_notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_handled', 'type']),
        ]

    def __str__(self):
        return f"{self.get_type_display()}: {self.booking_id}"

    def mark_handled(self, admin_id=None):
        self.is_handled = True
        self.handled_at = timezone.now()
        self.handled_by = admin_id
        self.save(update_fields=['is_handled', 'handled_at', 'handled_by', 'updated_at'])


class AdminNotificationDismissal(BaseModel):
    """One administrator hiding one queue item."""

    notification = models.ForeignKey(
        AdminNotification,
        on_delete=models.CASCADE,
        related_name='dismissals'
    )
    admin_id = models.UUIDField()

    class Meta:
        db_table = 'dismissed_notifications'
        constraints = [
            models.UniqueConstraint(
                fields=['notification', 'admin_id'],
                name='unique_notification_dismissal'
            ),
        ]

    def __str__(self):
        return f"{self.notification_id} dismissed by {self.admin_id}"
