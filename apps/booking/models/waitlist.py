# apps/booking/models/waitlist.py
"""
Waitlist Models

Standing requests for slots that were unavailable at request time,
and the history of notifications sent to waiting customers.
"""

from django.db import models
from django.utils import timezone

from shared.common.mixins import BaseModel


class WaitlistEntry(BaseModel):
    """
    A customer's request for a (campaign, route, industry) slot.

    Entries are served first-in first-out by ``created_at``.
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        NOTIFIED = 'notified', 'Notified'
        CONVERTED = 'converted', 'Converted'
        CANCELLED = 'cancelled', 'Cancelled'

    class Reason(models.TextChoices):
        ROUTE_FULL = 'route_full', 'Route Full'
        CAMPAIGN_FULL = 'campaign_full', 'Campaign Full'
        INDUSTRY_TAKEN = 'industry_taken', 'Industry Taken'

    customer = models.ForeignKey(
        'booking.Customer',
        on_delete=models.CASCADE,
        related_name='waitlist_entries'
    )
    campaign = models.ForeignKey(
        'booking.Campaign',
        on_delete=models.CASCADE,
        related_name='waitlist_entries'
    )
    route = models.ForeignKey(
        'booking.Route',
        on_delete=models.CASCADE,
        related_name='waitlist_entries'
    )
    industry = models.ForeignKey(
        'booking.Industry',
        on_delete=models.SET_NULL,
        related_name='waitlist_entries',
        blank=True,
        null=True
    )
    subcategory = models.ForeignKey(
        'booking.IndustrySubcategory',
        on_delete=models.SET_NULL,
        related_name='waitlist_entries',
        blank=True,
        null=True
    )
    quantity = models.PositiveSmallIntegerField(default=1)
    reason = models.CharField(
        max_length=20,
        choices=Reason.choices,
        default=Reason.ROUTE_FULL
    )
    notes = models.TextField(blank=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True
    )
    notified_count = models.PositiveIntegerField(default=0)
    last_notified_at = models.DateTimeField(blank=True, null=True)
    last_notified_channels = models.JSONField(default=list, blank=True)
    converted_booking = models.ForeignKey(
        'booking.Booking',
        on_delete=models.SET_NULL,
        related_name='+',
        blank=True,
        null=True
    )

    class Meta:
        db_table = 'waitlist_entries'
        ordering = ['created_at']
        verbose_name_plural = 'waitlist entries'
        indexes = [
            models.Index(fields=['campaign', 'route', 'status', 'created_at']),
            models.Index(fields=['customer', 'status']),
        ]

    def __str__(self):
        return f"Waitlist: {self.customer} - {self.campaign} / {self.route}"

    @property
    def is_open(self) -> bool:
        return self.status in [self.Status.ACTIVE, self.Status.NOTIFIED]

    def mark_notified(self, channels, moment=None):
        """Record a notification sent to this entry."""
        if not self.is_open:
            raise ValueError(f"Cannot notify a {self.status} waitlist entry")
        self.status = self.Status.NOTIFIED
        self.notified_count += 1
        self.last_notified_at = moment or timezone.now()
        self.last_notified_channels = list(channels)
        self.save(update_fields=[
            'status', 'notified_count', 'last_notified_at',
            'last_notified_channels', 'updated_at'
        ])

    def mark_converted(self, booking):
        if not self.is_open:
            raise ValueError(f"Cannot convert a {self.status} waitlist entry")
        self.status = self.Status.CONVERTED
        self.converted_booking = booking
        self.save(update_fields=['status', 'converted_booking', 'updated_at'])


class WaitlistNotification(BaseModel):
    """One notification broadcast to a set of waitlist entries."""

    class Channel(models.TextChoices):
        EMAIL = 'email', 'Email'
        IN_APP = 'in_app', 'In-App'

    sent_by = models.UUIDField(blank=True, null=True)
    campaign = models.ForeignKey(
        'booking.Campaign',
        on_delete=models.CASCADE,
        related_name='waitlist_notifications',
        blank=True,
        null=True
    )
    route = models.ForeignKey(
        'booking.Route',
        on_delete=models.SET_NULL,
        related_name='waitlist_notifications',
        blank=True,
        null=True
    )
    message = models.TextField()
    channels = models.JSONField(default=list)
    recipient_count = models.PositiveIntegerField(default=0)
    recipient_ids = models.JSONField(default=list)
    sent_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'waitlist_notifications'
        ordering = ['-sent_at']

    def __str__(self):
        return f"Waitlist notification to {self.recipient_count} recipients"

    @property
    def is_automatic(self) -> bool:
        return self.sent_by is None
