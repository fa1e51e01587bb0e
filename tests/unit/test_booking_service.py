# tests/unit/test_booking_service.py
"""
Unit Tests for the Booking Service

Tests for booking creation, payment, approval, artwork and design
workflows, cancellation with refunds, and expiry.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from apps.booking.events import EventType
from apps.booking.models import Booking, Campaign, DesignRevision, Referral
from apps.booking.services import (
    BookingService,
    BookingValidationError,
    CapacityExceededError,
    InvalidTransitionError,
    LoyaltyService,
    PermissionDeniedError,
    RevisionLimitExceededError,
    RuleConflictError,
    RuleExhaustedError,
)


def artwork_file(name='ad.pdf'):
    return SimpleUploadedFile(name, b'%PDF-1.4 test', content_type='application/pdf')


@pytest.mark.django_db
class TestCreateBooking:
    """Tests for BookingService.create_booking."""

    def test_create_booking(self, customer, book, campaign):
        result = book(customer, quantity=2, contract_accepted=True)
        booking = result.booking

        assert not result.waitlisted
        assert booking.status == Booking.Status.PENDING
        assert booking.payment_status == Booking.PaymentStatus.PENDING
        assert booking.amount == 110000
        assert booking.business_name == customer.business_name
        assert booking.contact_email == customer.email
        assert booking.contract_accepted
        assert booking.contract_version == '1.0'
        assert booking.counts_toward_loyalty

        campaign.refresh_from_db()
        assert campaign.booked_slots == 2

    def test_created_event_published_on_commit(
        self, customer, book, clear_events, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            book(customer)

        event_types = [event['event_type'] for event in clear_events.sent]
        assert EventType.BOOKING_CREATED in event_types

    def test_subcategory_label_snapshot(self, customer, book, industry):
        subcategory = industry.subcategories.create(name='Plumbing')

        booking = book(customer, subcategory_id=subcategory.id).booking

        assert booking.industry_subcategory_label == 'Plumbing'

    def test_subcategory_from_other_industry(self, customer, book, create_industry):
        other = create_industry().subcategories.create(name='Dentist')

        with pytest.raises(BookingValidationError):
            book(customer, subcategory_id=other.id)

    def test_full_route_joins_waitlist(self, create_customer, customer, book):
        for _ in range(4):
            book(create_customer(), quantity=4)

        result = book(customer, waitlist_notes='Any week is fine')

        assert result.waitlisted
        assert result.booking is None
        assert 'added to the waitlist' in result.message
        assert result.waitlist_entry.notes == 'Any week is fine'

    def test_full_route_without_waitlist(self, create_customer, customer, book):
        for _ in range(4):
            book(create_customer(), quantity=4)

        with pytest.raises(CapacityExceededError):
            book(customer, join_waitlist=False)

    def test_zero_amount_booking_confirmed(self, customer, book, campaign):
        booking = book(customer, override_price=0, override_note='Sponsor').booking

        assert booking.amount == 0
        assert booking.is_paid
        assert booking.status == Booking.Status.CONFIRMED
        assert not booking.counts_toward_loyalty

    def test_rule_race_retried_once(self, customer, book):
        calls = {'n': 0}

        def flaky_commit(self, breakdown, booking):
            calls['n'] += 1
            if calls['n'] == 1:
                raise RuleExhaustedError("gone")
            return None

        with patch('apps.booking.services.pricing_service.PricingResolver.commit', flaky_commit):
            result = book(customer)

        assert calls['n'] == 2
        assert result.booking is not None
        assert Booking.objects.filter(customer=customer).count() == 1

    def test_rule_race_gives_up(self, customer, book, campaign):
        def always_exhausted(self, breakdown, booking):
            raise RuleExhaustedError("gone")

        with patch('apps.booking.services.pricing_service.PricingResolver.commit', always_exhausted):
            with pytest.raises(RuleConflictError):
                book(customer)

        campaign.refresh_from_db()
        assert campaign.booked_slots == 0
        assert not Booking.objects.exists()


@pytest.mark.django_db
class TestPayment:
    """Tests for checkout and payment callbacks."""

    def setup_method(self):
        self.service = BookingService()

    def test_record_payment(self, customer, book, campaign):
        booking = book(customer).booking

        paid = self.service.record_payment(booking.id, reference='pi_123')

        campaign.refresh_from_db()
        assert paid.is_paid
        assert paid.status == Booking.Status.CONFIRMED
        assert paid.amount_paid == booking.amount
        assert campaign.revenue == booking.amount

    def test_record_payment_is_idempotent(self, customer, book, campaign):
        booking = book(customer).booking

        self.service.record_payment(booking.id, reference='pi_123')
        self.service.record_payment(booking.id, reference='pi_123')

        campaign.refresh_from_db()
        assert campaign.revenue == booking.amount

    def test_second_reference_rejected(self, customer, book):
        booking = book(customer).booking
        self.service.record_payment(booking.id, reference='pi_1')

        with pytest.raises(InvalidTransitionError):
            self.service.record_payment(booking.id, reference='pi_2')

    def test_amount_mismatch(self, customer, book):
        booking = book(customer).booking

        with pytest.raises(BookingValidationError):
            self.service.record_payment(booking.id, amount_paid=1, reference='pi_1')

    def test_failure_then_retry(self, customer, book):
        booking = book(customer).booking

        failed = self.service.record_payment_failure(booking.id, reason='card declined')
        assert failed.payment_status == Booking.PaymentStatus.FAILED
        assert failed.status == Booking.Status.PENDING

        retried = self.service.start_checkout(booking.id)
        assert retried.payment_status == Booking.PaymentStatus.PENDING
        assert retried.checkout_session_id.startswith('cs_')
        assert retried.payment_failure_reason == ''

    def test_checkout_on_paid_booking(self, customer, book):
        booking = book(customer).booking
        self.service.record_payment(booking.id, reference='pi_1')

        with pytest.raises(InvalidTransitionError):
            self.service.start_checkout(booking.id)

    def test_payment_accrues_loyalty(self, customer, book, settings):
        settings.LOYALTY_SLOTS_THRESHOLD = 3
        booking = book(customer, quantity=3).booking

        self.service.record_payment(booking.id, reference='pi_1')

        customer.refresh_from_db()
        assert customer.loyalty_discounts_available == 1
        assert customer.loyalty_slots_earned == 0

    def test_payment_credits_referral(self, customer, create_customer, book, settings):
        referrer = create_customer()
        LoyaltyService().apply_referral_code(customer, referrer.referral_code)

        booking = book(customer).booking
        self.service.record_payment(booking.id, reference='pi_1')

        referral = Referral.objects.get(referred=customer)
        assert referral.status == Referral.Status.CREDITED
        assert referral.credit_amount == settings.REFERRAL_CREDIT_AMOUNT
        assert referral.qualifying_booking_id == booking.id


@pytest.mark.django_db
class TestApproval:
    """Tests for approve and reject."""

    def setup_method(self):
        self.service = BookingService()

    def test_approve(self, customer, admin_customer, book):
        booking = book(customer).booking

        approved = self.service.approve(booking.id, admin_id=admin_customer.id)

        assert approved.approval_status == Booking.ApprovalStatus.APPROVED
        assert approved.approved_by == admin_customer.id

    def test_approve_twice(self, customer, book):
        booking = book(customer).booking
        self.service.approve(booking.id)

        with pytest.raises(InvalidTransitionError):
            self.service.approve(booking.id)

    def test_reject_cancels_with_full_refund(self, customer, admin_customer, book, campaign):
        booking = book(customer).booking
        self.service.record_payment(booking.id, reference='pi_1')

        rejected = self.service.reject(booking.id, admin_customer.id, 'Content not allowed')

        campaign.refresh_from_db()
        assert rejected.approval_status == Booking.ApprovalStatus.REJECTED
        assert rejected.status == Booking.Status.CANCELLED
        assert rejected.refund_amount == booking.amount
        assert rejected.refund_status == Booking.RefundStatus.PENDING
        assert campaign.booked_slots == 0
        assert campaign.revenue == 0

    def test_reject_requires_note(self, customer, book):
        booking = book(customer).booking

        with pytest.raises(BookingValidationError):
            self.service.reject(booking.id, None, '  ')


@pytest.mark.django_db
class TestArtworkAndDesign:
    """Tests for the artwork and design review workflows."""

    def setup_method(self):
        self.service = BookingService()

    def _paid_booking(self, customer, book):
        booking = book(customer).booking
        return self.service.record_payment(booking.id, reference=f"pi_{booking.id.hex}")

    def test_artwork_requires_payment(self, customer, book):
        booking = book(customer).booking

        with pytest.raises(InvalidTransitionError):
            self.service.upload_artwork(booking.id, artwork_file())

    def test_artwork_review_cycle(self, customer, book):
        booking = self._paid_booking(customer, book)

        uploaded = self.service.upload_artwork(booking.id, artwork_file())
        assert uploaded.artwork_status == Booking.ArtworkStatus.UNDER_REVIEW
        assert uploaded.artwork_file_name.endswith('.pdf')

        rejected = self.service.review_artwork(booking.id, approved=False, reason='Low resolution')
        assert rejected.artwork_status == Booking.ArtworkStatus.REJECTED
        assert rejected.artwork_rejection_reason == 'Low resolution'

        self.service.upload_artwork(booking.id, artwork_file('ad-v2.pdf'))
        approved = self.service.review_artwork(booking.id, approved=True)
        assert approved.artwork_status == Booking.ArtworkStatus.APPROVED

    def test_artwork_rejection_needs_reason(self, customer, book):
        booking = self._paid_booking(customer, book)
        self.service.upload_artwork(booking.id, artwork_file())

        with pytest.raises(BookingValidationError):
            self.service.review_artwork(booking.id, approved=False)

    def test_design_revisions_capped_at_two(self, customer, book):
        booking = self._paid_booking(customer, book)

        for expected in (1, 2):
            revision = self.service.upload_design_revision(booking.id, artwork_file('proof.png'))
            assert revision.revision_number == expected
            updated = self.service.request_design_changes(booking.id, 'Bigger logo')
            assert updated.revision_count == expected

        self.service.upload_design_revision(booking.id, artwork_file('proof.png'))
        with pytest.raises(RevisionLimitExceededError):
            self.service.request_design_changes(booking.id, 'One more change')

        booking.refresh_from_db()
        assert booking.revision_count == 2
        assert booking.design_status == Booking.DesignStatus.PENDING_REVIEW

    def test_feedback_stored_on_revision(self, customer, book):
        booking = self._paid_booking(customer, book)
        self.service.upload_design_revision(booking.id, artwork_file('proof.png'))

        self.service.request_design_changes(booking.id, 'Use our blue')

        revision = DesignRevision.objects.get(booking=booking)
        assert revision.status == DesignRevision.Status.CHANGES_REQUESTED
        assert revision.customer_feedback == 'Use our blue'

    def test_approve_design(self, customer, book):
        booking = self._paid_booking(customer, book)
        self.service.upload_design_revision(booking.id, artwork_file('proof.png'))

        approved = self.service.approve_design(booking.id)

        assert approved.design_status == Booking.DesignStatus.APPROVED
        assert DesignRevision.objects.get(booking=booking).status == DesignRevision.Status.APPROVED

    def test_changes_before_any_proof(self, customer, book):
        booking = self._paid_booking(customer, book)

        with pytest.raises(InvalidTransitionError):
            self.service.request_design_changes(booking.id, 'Too early')


@pytest.mark.django_db
class TestCancellation:
    """Tests for cancel and refund calculation."""

    def setup_method(self):
        self.service = BookingService()

    def test_customer_cancel_unpaid(self, customer, book, campaign):
        booking = book(customer, quantity=2).booking

        cancelled, cancelled_now = self.service.cancel(booking.id, actor_id=customer.id)

        campaign.refresh_from_db()
        assert cancelled_now
        assert cancelled.status == Booking.Status.CANCELLED
        assert cancelled.refund_status == Booking.RefundStatus.NO_REFUND
        assert campaign.booked_slots == 0

    def test_cancel_twice_is_noop(self, customer, book):
        booking = book(customer).booking
        self.service.cancel(booking.id, actor_id=customer.id)

        _, cancelled_now = self.service.cancel(booking.id, actor_id=customer.id)

        assert not cancelled_now

    def test_cannot_cancel_someone_elses(self, customer, create_customer, book):
        booking = book(customer).booking

        with pytest.raises(PermissionDeniedError):
            self.service.cancel(booking.id, actor_id=create_customer().id)

    def test_customer_cannot_cancel_after_print_deadline(self, customer, book, campaign, today):
        booking = book(customer).booking
        Campaign.objects.filter(id=campaign.id).update(
            print_deadline=today - timedelta(days=1),
            mail_date=today + timedelta(days=5)
        )

        with pytest.raises(InvalidTransitionError):
            self.service.cancel(booking.id, actor_id=customer.id)

    def test_refund_inside_window_charges_fee(self, customer, book, today):
        booking = book(customer).booking
        booking = self.service.record_payment(booking.id, reference='pi_1')

        amount, status = self.service.calculate_refund(booking, by_admin=False, today=today)

        # 3% of 60000
        assert amount == 58200
        assert status == Booking.RefundStatus.PENDING

    def test_refund_fee_rounds_half_up(self, customer, book, today):
        booking = book(customer, override_price=50, override_note='Test').booking
        booking = self.service.record_payment(booking.id, reference='pi_1')

        amount, _ = self.service.calculate_refund(booking, by_admin=False, today=today)

        assert amount == 48

    def test_no_refund_close_to_deadline(self, customer, book, campaign):
        booking = book(customer).booking
        booking = self.service.record_payment(booking.id, reference='pi_1')
        late = campaign.print_deadline - timedelta(days=3)

        amount, status = self.service.calculate_refund(booking, by_admin=False, today=late)

        assert amount == 0
        assert status == Booking.RefundStatus.NO_REFUND

    def test_admin_refund_is_full(self, customer, book, campaign):
        booking = book(customer).booking
        booking = self.service.record_payment(booking.id, reference='pi_1')

        amount, _ = self.service.calculate_refund(booking, by_admin=True, today=campaign.print_deadline)

        assert amount == booking.amount_paid

    def test_cancel_paid_reduces_revenue(self, customer, book, campaign):
        booking = book(customer).booking
        self.service.record_payment(booking.id, reference='pi_1')

        self.service.cancel(booking.id, actor_id=customer.id)

        campaign.refresh_from_db()
        assert campaign.revenue == 0

    def test_cancel_unpaid_restores_loyalty_credit(self, customer, book):
        customer.loyalty_discounts_available = 1
        customer.save()
        booking = book(customer).booking

        self.service.cancel(booking.id, actor_id=customer.id)

        customer.refresh_from_db()
        assert customer.loyalty_discounts_available == 1

    def test_cancel_event(self, customer, book, clear_events, django_capture_on_commit_callbacks):
        booking = book(customer).booking

        with django_capture_on_commit_callbacks(execute=True):
            self.service.cancel(booking.id, actor_id=customer.id, reason='Changed plans')

        cancelled = [e for e in clear_events.sent if e['event_type'] == EventType.BOOKING_CANCELLED]
        assert len(cancelled) == 1
        assert cancelled[0]['payload']['reason'] == 'Changed plans'

    def test_cancel_survives_broker_outage(self, customer, book, django_capture_on_commit_callbacks):
        """Queueing the waitlist notice after commit cannot fail the cancel."""
        from apps.booking.tasks import notify_freed_capacity

        booking = book(customer).booking

        with patch.object(notify_freed_capacity, 'delay', side_effect=ConnectionError('broker down')) as delay:
            with django_capture_on_commit_callbacks(execute=True):
                cancelled, cancelled_now = self.service.cancel(booking.id, actor_id=customer.id)

        booking.refresh_from_db()
        assert delay.called
        assert cancelled_now
        assert booking.status == Booking.Status.CANCELLED
        assert booking.slots_released


@pytest.mark.django_db
class TestExpiry:
    """Tests for expire_pending_bookings."""

    def setup_method(self):
        self.service = BookingService()

    def test_expires_stale_unpaid(self, customer, book, campaign, settings):
        booking = book(customer, quantity=2).booking
        later = timezone.now() + timedelta(minutes=settings.PENDING_BOOKING_EXPIRATION_MINUTES + 1)

        expired = self.service.expire_pending_bookings(now=later)

        booking.refresh_from_db()
        campaign.refresh_from_db()
        assert expired == 1
        assert booking.status == Booking.Status.CANCELLED
        assert booking.cancelled_by == 'system'
        assert booking.refund_status == Booking.RefundStatus.NO_REFUND
        assert campaign.booked_slots == 0

    def test_fresh_and_paid_bookings_kept(self, customer, create_customer, book, settings):
        fresh = book(customer).booking
        paid = book(create_customer()).booking
        self.service.record_payment(paid.id, reference='pi_1')

        expired = self.service.expire_pending_bookings(now=timezone.now())
        assert expired == 0

        later = timezone.now() + timedelta(minutes=settings.PENDING_BOOKING_EXPIRATION_MINUTES + 1)
        assert self.service.expire_pending_bookings(now=later) == 1

        fresh.refresh_from_db()
        paid.refresh_from_db()
        assert fresh.status == Booking.Status.CANCELLED
        assert paid.status == Booking.Status.CONFIRMED

    def test_expiry_event(self, customer, book, clear_events, settings, django_capture_on_commit_callbacks):
        book(customer)
        later = timezone.now() + timedelta(minutes=settings.PENDING_BOOKING_EXPIRATION_MINUTES + 1)

        with django_capture_on_commit_callbacks(execute=True):
            self.service.expire_pending_bookings(now=later)

        assert EventType.BOOKING_EXPIRED in [e['event_type'] for e in clear_events.sent]
