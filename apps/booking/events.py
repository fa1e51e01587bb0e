# apps/booking/events.py
"""
Booking Events

Event definitions and publishing for the booking domain.
Events are handed to the configured backend once the surrounding
transaction commits.
"""

import json
import logging
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List
from uuid import UUID

from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)


class EventType:
    """Event type constants for the booking domain."""

    # Booking lifecycle events
    BOOKING_CREATED = 'booking.created'
    BOOKING_WAITLISTED = 'booking.waitlisted'
    BOOKING_CONFIRMED = 'booking.confirmed'
    BOOKING_CANCELLED = 'booking.cancelled'
    BOOKING_EXPIRED = 'booking.expired'
    BOOKING_APPROVED = 'booking.approved'
    BOOKING_REJECTED = 'booking.rejected'
    PAYMENT_RECEIVED = 'booking.payment_received'
    PAYMENT_FAILED = 'booking.payment_failed'

    # Artwork and design events
    ARTWORK_UPLOADED = 'artwork.uploaded'
    ARTWORK_REVIEWED = 'artwork.reviewed'
    DESIGN_UPLOADED = 'design.uploaded'
    DESIGN_APPROVED = 'design.approved'
    DESIGN_CHANGES_REQUESTED = 'design.changes_requested'

    # Waitlist events
    WAITLIST_NOTIFIED = 'waitlist.notified'

    # Campaign and pricing events
    CAMPAIGN_STATUS_CHANGED = 'campaign.status_changed'
    PRICING_RULE_APPLIED = 'pricing_rule.applied'


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for event payloads."""

    def default(self, obj):
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


class EventPublisher:
    """
    Event publisher for the booking domain.

    Backends: ``log`` (default), ``redis`` pub/sub through django-redis,
    and ``memory`` which keeps events in ``sent`` for tests.
    """

    def __init__(self):
        self.service_name = getattr(settings, 'SERVICE_NAME', 'mailroute-booking')
        self.sent: List[Dict[str, Any]] = []

    def publish(self, event_type: str, payload: Dict[str, Any]) -> bool:
        """
        Publish an event immediately.

        Returns:
            True if published successfully, False otherwise
        """
        event = {
            'event_id': str(uuid.uuid4()),
            'event_type': event_type,
            'source': self.service_name,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'payload': payload,
        }

        try:
            event_json = json.dumps(event, cls=JSONEncoder)

            logger.info(f"Publishing event: {event_type}", extra={'event_type': event_type})

            self._publish_to_backend(event_type, event, event_json)
            return True

        except Exception as e:
            logger.error(f"Failed to publish event {event_type}: {e}")
            return False

    def publish_on_commit(self, event_type: str, payload: Dict[str, Any]):
        """Publish once the current transaction commits (immediately outside one)."""
        transaction.on_commit(lambda: self.publish(event_type, payload))

    def _publish_to_backend(self, event_type: str, event: Dict[str, Any], event_json: str):
        """Publish to the configured message backend."""
        backend = getattr(settings, 'EVENT_BACKEND', 'log')

        if backend == 'redis':
            self._publish_redis(event_type, event_json)
        elif backend == 'memory':
            self.sent.append(event)
        else:
            logger.debug(f"Event payload: {event_json[:500]}...")

    def _publish_redis(self, event_type: str, event_json: str):
        """Publish to Redis pub/sub."""
        from django_redis import get_redis_connection

        connection = get_redis_connection('default')
        connection.publish(f"events:{event_type}", event_json)

    def clear(self):
        self.sent.clear()


# Global event publisher instance
event_publisher = EventPublisher()


# Convenience functions for publishing specific events
def _booking_payload(booking, **extra) -> Dict[str, Any]:
    payload = {
        'booking_id': booking.id,
        'booking_number': booking.booking_number,
        'customer_id': booking.customer_id,
        'campaign_id': booking.campaign_id,
        'route_id': booking.route_id,
        'industry_id': booking.industry_id,
        'quantity': booking.quantity,
        'status': booking.status,
        'amount': booking.amount,
    }
    payload.update(extra)
    return payload


def publish_booking_event(event_type: str, booking, **extra):
    """Publish a booking lifecycle event after commit."""
    event_publisher.publish_on_commit(event_type, _booking_payload(booking, **extra))


def publish_booking_waitlisted(entry):
    event_publisher.publish_on_commit(
        EventType.BOOKING_WAITLISTED,
        payload={
            'waitlist_entry_id': entry.id,
            'customer_id': entry.customer_id,
            'campaign_id': entry.campaign_id,
            'route_id': entry.route_id,
            'industry_id': entry.industry_id,
            'reason': entry.reason,
        }
    )


def publish_waitlist_notified(notification):
    event_publisher.publish_on_commit(
        EventType.WAITLIST_NOTIFIED,
        payload={
            'notification_id': notification.id,
            'campaign_id': notification.campaign_id,
            'route_id': notification.route_id,
            'channels': notification.channels,
            'recipient_count': notification.recipient_count,
            'automatic': notification.is_automatic,
        }
    )


def publish_campaign_status_changed(campaign, old_status: str, changed_by=None):
    event_publisher.publish_on_commit(
        EventType.CAMPAIGN_STATUS_CHANGED,
        payload={
            'campaign_id': campaign.id,
            'old_status': old_status,
            'new_status': campaign.status,
            'changed_by': changed_by,
        }
    )


def publish_pricing_rule_applied(application):
    event_publisher.publish_on_commit(
        EventType.PRICING_RULE_APPLIED,
        payload={
            'rule_id': application.rule_id,
            'booking_id': application.booking_id,
            'customer_id': application.customer_id,
            'discount_amount': application.discount_amount,
        }
    )
