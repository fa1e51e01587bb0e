# tests/unit/test_tasks.py
"""
Unit Tests for Celery Tasks

Tasks run eagerly in the test settings.
"""

import uuid
from datetime import timedelta

import pytest
from django.core import mail
from django.utils import timezone

from apps.booking.models import Booking, Campaign, WaitlistEntry
from apps.booking.services import WaitlistService
from apps.booking.tasks import (
    expire_pending_bookings,
    notify_freed_capacity,
    reconcile_campaign_counters,
    send_waitlist_email,
)


@pytest.mark.django_db
class TestExpirePendingBookingsTask:

    def test_expires_stale_bookings(self, customer, book, settings):
        booking = book(customer).booking
        Booking.objects.filter(id=booking.id).update(
            pending_since=timezone.now() - timedelta(
                minutes=settings.PENDING_BOOKING_EXPIRATION_MINUTES + 5
            )
        )

        result = expire_pending_bookings.delay().get()

        booking.refresh_from_db()
        assert result == {'success': True, 'expired': 1}
        assert booking.status == Booking.Status.CANCELLED

    def test_nothing_to_expire(self):
        assert expire_pending_bookings.delay().get() == {'success': True, 'expired': 0}


@pytest.mark.django_db
class TestNotifyFreedCapacityTask:

    def test_notifies_waiting_entry(self, customer, campaign, route, industry):
        entry = WaitlistService().add_entry(customer, campaign.id, route.id, industry.id)

        result = notify_freed_capacity.delay(
            str(campaign.id), str(route.id), str(industry.id), 1
        ).get()

        entry.refresh_from_db()
        assert result['notified'] == [str(entry.id)]
        assert entry.status == WaitlistEntry.Status.NOTIFIED


@pytest.mark.django_db
class TestSendWaitlistEmailTask:

    def test_sends_email(self, customer, campaign, route):
        entry = WaitlistService().add_entry(customer, campaign.id, route.id)

        result = send_waitlist_email.delay(str(entry.id), 'A slot is free').get()

        assert result['success']
        assert mail.outbox[0].body == 'A slot is free'

    def test_missing_entry(self):
        result = send_waitlist_email.delay(str(uuid.uuid4()), 'Hello').get()

        assert result == {'success': False, 'error': 'Waitlist entry not found'}
        assert mail.outbox == []


@pytest.mark.django_db
class TestReconcileTask:

    def test_reports_corrected_campaigns(self, customer, book, campaign, create_campaign):
        book(customer)
        create_campaign(name='Consistent')
        Campaign.objects.filter(id=campaign.id).update(booked_slots=7)

        result = reconcile_campaign_counters.delay().get()

        campaign.refresh_from_db()
        assert result['corrected'] == [str(campaign.id)]
        assert campaign.booked_slots == 1
