# tests/unit/test_slot_allocator.py
"""
Unit Tests for the Slot Allocator

Tests for capacity enforcement, release and counter reconciliation.
"""

import threading
import uuid

import pytest
from django.db import OperationalError, connection

from apps.booking.models import Booking, Campaign, WaitlistEntry
from apps.booking.services import (
    BookingValidationError,
    CampaignNotFoundError,
    InvalidTransitionError,
    SlotAllocator,
    SlotUnavailableError,
)
from apps.booking.services.slot_allocator import Reserved, WaitlistRequired


@pytest.mark.django_db
class TestReservation:
    """Tests for SlotAllocator.try_reserve through booking creation."""

    def test_route_fills_at_sixteen(self, create_customer, book, campaign):
        results = [book(create_customer()) for _ in range(17)]

        assert all(not result.waitlisted for result in results[:16])
        assert results[16].waitlisted
        assert results[16].waitlist_entry.reason == WaitlistEntry.Reason.ROUTE_FULL

        campaign.refresh_from_db()
        assert campaign.booked_slots == 16

    def test_campaign_total_enforced(self, create_customer, create_campaign, create_route, industry, book):
        campaign = create_campaign(total_slots=3)
        other_route = create_route()

        book(create_customer(), campaign_id=campaign.id, quantity=2)
        result = book(create_customer(), campaign_id=campaign.id, route_id=other_route.id, quantity=2)

        assert result.waitlisted
        assert result.waitlist_entry.reason == WaitlistEntry.Reason.CAMPAIGN_FULL
        campaign.refresh_from_db()
        assert campaign.booked_slots == 2

    def test_multi_slot_booking_that_does_not_fit(self, create_customer, book):
        for _ in range(3):
            book(create_customer(), quantity=4)
        book(create_customer(), quantity=3)

        too_many = book(create_customer(), quantity=2)
        last_one = book(create_customer(), quantity=1)

        assert too_many.waitlisted
        assert too_many.waitlist_entry.quantity == 2
        assert not last_one.waitlisted

    def test_industry_exclusive(self, create_customer, create_campaign, create_industry, book):
        campaign = create_campaign(industry_exclusive=True)
        other_industry = create_industry()

        first = book(create_customer(), campaign_id=campaign.id)
        same = book(create_customer(), campaign_id=campaign.id)
        different = book(create_customer(), campaign_id=campaign.id, industry_id=other_industry.id)

        assert not first.waitlisted
        assert same.waitlisted
        assert same.waitlist_entry.reason == WaitlistEntry.Reason.INDUSTRY_TAKEN
        assert not different.waitlisted

    def test_exclusive_subcategories(self, create_customer, create_campaign, industry, book):
        campaign = create_campaign(industry_exclusive=True)
        plumbing = industry.subcategories.create(name='Plumbing')
        roofing = industry.subcategories.create(name='Roofing')

        first = book(create_customer(), campaign_id=campaign.id, subcategory_id=plumbing.id)
        other_subcategory = book(create_customer(), campaign_id=campaign.id, subcategory_id=roofing.id)
        whole_industry = book(create_customer(), campaign_id=campaign.id)

        assert not first.waitlisted
        assert not other_subcategory.waitlisted
        assert whole_industry.waitlisted
        assert whole_industry.waitlist_entry.reason == WaitlistEntry.Reason.INDUSTRY_TAKEN

    def test_whole_industry_blocks_subcategory(self, create_customer, create_campaign, industry, book):
        campaign = create_campaign(industry_exclusive=True)
        plumbing = industry.subcategories.create(name='Plumbing')

        book(create_customer(), campaign_id=campaign.id)
        result = book(create_customer(), campaign_id=campaign.id, subcategory_id=plumbing.id)

        assert result.waitlisted

    def test_industries_shared_when_not_exclusive(self, create_customer, book):
        first = book(create_customer())
        second = book(create_customer())

        assert not first.waitlisted
        assert not second.waitlisted

    def test_closed_campaign(self, customer, create_campaign, book):
        campaign = create_campaign(status=Campaign.Status.PLANNING)

        with pytest.raises(InvalidTransitionError):
            book(customer, campaign_id=campaign.id)

    def test_route_not_offered(self, customer, campaign, create_route, route, book):
        campaign.routes.add(route)
        other = create_route()

        with pytest.raises(BookingValidationError):
            book(customer, route_id=other.id)

    def test_unknown_campaign(self, route, industry):
        with pytest.raises(CampaignNotFoundError):
            SlotAllocator().try_reserve(uuid.uuid4(), route.id, industry.id, 1)

    @pytest.mark.parametrize('quantity', [0, 5, -1])
    def test_quantity_out_of_range(self, campaign, route, industry, quantity):
        with pytest.raises(BookingValidationError):
            SlotAllocator().try_reserve(campaign.id, route.id, industry.id, quantity)


@pytest.mark.django_db
class TestRelease:
    """Tests for SlotAllocator.release."""

    def test_release_is_idempotent(self, customer, book, campaign):
        booking = book(customer, quantity=2).booking
        allocator = SlotAllocator()

        assert allocator.release(booking.id) is True
        assert allocator.release(booking.id) is False

        campaign.refresh_from_db()
        booking.refresh_from_db()
        assert campaign.booked_slots == 0
        assert booking.slots_released

    def test_cancellation_frees_route_capacity(self, create_customer, book):
        from apps.booking.services import BookingService

        bookings = [book(create_customer(), quantity=4).booking for _ in range(4)]
        assert book(create_customer()).waitlisted

        BookingService().cancel(bookings[0].id, actor_id=None, is_admin=True)

        assert not book(create_customer()).waitlisted


@pytest.mark.django_db
class TestAvailabilityAndReconcile:
    """Tests for availability reporting and counter reconciliation."""

    def test_availability(self, customer, book, campaign, route, industry):
        book(customer, quantity=3)

        availability = SlotAllocator().get_availability(campaign.id)
        route_row = next(row for row in availability['routes'] if row['route_id'] == str(route.id))

        assert availability['booked_slots'] == 3
        assert availability['available_slots'] == 61
        assert route_row['occupied'] == 3
        assert route_row['remaining'] == 13
        assert route_row['taken_industries'] == [str(industry.id)]

    def test_reconcile_consistent(self, customer, book, campaign):
        book(customer)

        drift = SlotAllocator().reconcile(campaign.id)

        assert drift == {'booked_slots': 0, 'revenue': 0}

    def test_reconcile_corrects_drift(self, customer, book, campaign):
        book(customer, quantity=2)
        Campaign.objects.filter(id=campaign.id).update(booked_slots=9, revenue=500)

        drift = SlotAllocator().reconcile(campaign.id)

        campaign.refresh_from_db()
        assert drift == {'booked_slots': -7, 'revenue': -500}
        assert campaign.booked_slots == 2
        assert campaign.revenue == 0

    def test_reconcile_counts_paid_revenue(self, customer, book, campaign):
        from apps.booking.services import BookingService

        booking = book(customer).booking
        BookingService().record_payment(booking.id, reference='pi_1')
        Campaign.objects.filter(id=campaign.id).update(revenue=0)

        SlotAllocator().reconcile(campaign.id)

        campaign.refresh_from_db()
        assert campaign.revenue == booking.amount
        assert Booking.objects.get(id=booking.id).is_paid


# =============================================================================
# Lock conflicts
# =============================================================================

@pytest.mark.django_db
class TestLockConflicts:
    """Tests for the bounded retry around the campaign lock."""

    @pytest.fixture(autouse=True)
    def no_backoff(self, settings):
        settings.SLOT_RESERVATION_MAX_RETRIES = 3
        settings.SLOT_RESERVATION_RETRY_BACKOFF = 0

    def test_conflict_is_retried(self, monkeypatch, campaign, route, industry):
        original = SlotAllocator._reserve
        calls = []

        def locked_once(self, *args):
            calls.append(args)
            if len(calls) == 1:
                raise OperationalError('could not obtain lock on row in relation "booking_campaign"')
            return original(self, *args)

        monkeypatch.setattr(SlotAllocator, '_reserve', locked_once)

        result = SlotAllocator().try_reserve(campaign.id, route.id, industry.id, 1)

        campaign.refresh_from_db()
        assert isinstance(result, Reserved)
        assert len(calls) == 2
        assert campaign.booked_slots == 1

    def test_gives_up_after_max_retries(self, monkeypatch, campaign, route, industry):
        calls = []

        def always_locked(self, *args):
            calls.append(args)
            raise OperationalError('deadlock detected')

        monkeypatch.setattr(SlotAllocator, '_reserve', always_locked)

        with pytest.raises(SlotUnavailableError):
            SlotAllocator().try_reserve(campaign.id, route.id, industry.id, 1)

        campaign.refresh_from_db()
        assert len(calls) == 3
        assert campaign.booked_slots == 0


@pytest.mark.django_db(transaction=True)
def test_last_slot_race(settings, create_campaign, route, industry):
    """Two simultaneous requests for the last slot: exactly one gets it."""
    settings.SLOT_RESERVATION_MAX_RETRIES = 25
    settings.SLOT_RESERVATION_RETRY_BACKOFF = 0.02
    campaign = create_campaign(total_slots=1)
    barrier = threading.Barrier(2)
    outcomes = []

    def reserve():
        try:
            barrier.wait()
            outcomes.append(
                SlotAllocator().try_reserve(campaign.id, route.id, industry.id, 1)
            )
        except SlotUnavailableError as e:
            outcomes.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=reserve) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    campaign.refresh_from_db()
    assert len(outcomes) == 2
    assert sum(isinstance(outcome, Reserved) for outcome in outcomes) == 1
    loser = next(outcome for outcome in outcomes if not isinstance(outcome, Reserved))
    assert isinstance(loser, (WaitlistRequired, SlotUnavailableError))
    assert campaign.booked_slots == 1
