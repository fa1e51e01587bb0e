# apps/booking/tasks.py
"""
Celery Tasks for the Booking Domain

- Expiry of unpaid bookings (beat, every minute)
- Waitlist notification when capacity frees up
- Waitlist emails
- Campaign counter reconciliation (beat)
"""

import logging
from typing import Any, Dict

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


def enqueue(task, *args) -> bool:
    """
    Queue a task without failing the caller.

    Used from on_commit hooks: the request has already committed, so a
    broker outage is logged and the task is dropped.
    """
    try:
        task.delay(*args)
        return True
    except Exception as e:
        logger.error(f"Could not queue {task.name}: {e}")
        return False


@shared_task(name='booking.expire_pending_bookings')
def expire_pending_bookings() -> Dict[str, Any]:
    """Cancel bookings whose payment window has passed."""
    from .services import BookingService

    expired = BookingService().expire_pending_bookings()
    return {'success': True, 'expired': expired}


@shared_task(name='booking.notify_freed_capacity')
def notify_freed_capacity(
    campaign_id: str,
    route_id: str,
    industry_id: str,
    slots_freed: int = 1
) -> Dict[str, Any]:
    """
    Tell waiting customers that slots opened up.

    Args:
        campaign_id: Campaign whose capacity was released
        route_id: Route the released booking occupied
        industry_id: Industry of the released booking
        slots_freed: Number of slots released

    Returns:
        Dict with the notified entry ids
    """
    from .services import WaitlistService

    entries = WaitlistService().on_capacity_freed(
        campaign_id, route_id, industry_id, slots_freed
    )
    return {'success': True, 'notified': [str(entry.id) for entry in entries]}


@shared_task(bind=True, name='booking.send_waitlist_email', max_retries=3, default_retry_delay=60)
def send_waitlist_email(self, entry_id: str, message: str) -> Dict[str, Any]:
    """Email a waitlisted customer."""
    from .models import WaitlistEntry

    try:
        entry = WaitlistEntry.objects.select_related('customer', 'campaign').get(id=entry_id)
    except WaitlistEntry.DoesNotExist:
        logger.error(f"Waitlist entry not found: {entry_id}")
        return {'success': False, 'error': 'Waitlist entry not found'}

    try:
        send_mail(
            subject=f"Waitlist update: {entry.campaign.name}",
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[entry.customer.email],
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Failed to email waitlist entry {entry_id}: {e}")
        raise self.retry(exc=e)

    logger.info(f"Emailed waitlist entry {entry_id} at {entry.customer.email}")
    return {'success': True, 'email': entry.customer.email}


@shared_task(name='booking.reconcile_campaign_counters')
def reconcile_campaign_counters() -> Dict[str, Any]:
    """Recompute booked slots and revenue for campaigns still in progress."""
    from .models import Campaign
    from .services import SlotAllocator

    allocator = SlotAllocator()
    corrected = []

    campaigns = Campaign.objects.exclude(status=Campaign.Status.COMPLETED)
    for campaign_id in campaigns.values_list('id', flat=True):
        drift = allocator.reconcile(campaign_id)
        if drift['booked_slots'] or drift['revenue']:
            corrected.append(str(campaign_id))

    if corrected:
        logger.warning(f"Reconciled counters on {len(corrected)} campaign(s)")

    return {'success': True, 'corrected': corrected}
