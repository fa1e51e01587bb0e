# apps/booking/signals.py
"""
Django Signals for the Booking Domain

Publishes booking lifecycle events when a booking's status changes.
"""

import logging
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .events import EventType, publish_booking_event
from .models import Booking

logger = logging.getLogger(__name__)


# ==========================================================================
# Booking Signals
# ==========================================================================

@receiver(pre_save, sender=Booking)
def booking_pre_save(sender, instance, **kwargs):
    """Track status changes before save."""
    if instance._state.adding:
        instance._old_status = None
        return

    instance._old_status = Booking.objects.filter(
        pk=instance.pk
    ).values_list('status', flat=True).first()


@receiver(post_save, sender=Booking)
def booking_post_save(sender, instance, created, **kwargs):
    """Handle booking creation and status changes."""
    if created:
        publish_booking_event(EventType.BOOKING_CREATED, instance)
        logger.info(f"Booking created: {instance.booking_number}")

        if instance.status == Booking.Status.CONFIRMED:
            publish_booking_event(EventType.BOOKING_CONFIRMED, instance)
        return

    old_status = getattr(instance, '_old_status', None)
    new_status = instance.status

    if old_status == new_status:
        return

    if new_status == Booking.Status.CONFIRMED:
        publish_booking_event(EventType.BOOKING_CONFIRMED, instance)
        logger.info(f"Booking confirmed: {instance.booking_number}")

    elif new_status == Booking.Status.CANCELLED:
        publish_booking_event(
            EventType.BOOKING_CANCELLED,
            instance,
            cancelled_by=instance.cancelled_by,
            reason=instance.cancellation_reason,
            refund_amount=instance.refund_amount,
            refund_status=instance.refund_status,
        )
        logger.info(f"Booking cancelled: {instance.booking_number}")
