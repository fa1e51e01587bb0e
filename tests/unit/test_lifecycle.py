# tests/unit/test_lifecycle.py
"""
Unit Tests for Lifecycle Transitions

Tests for the per-axis transition tables.
"""

import pytest

from apps.booking.models import Booking, Campaign
from apps.booking.services import InvalidTransitionError
from apps.booking.services import lifecycle


class TestTransitionTables:
    """Tests for validate_transition and allowed_transitions."""

    @pytest.mark.parametrize('current,target', [
        ('planning', 'booking_open'),
        ('booking_open', 'booking_closed'),
        ('booking_closed', 'printed'),
        ('printed', 'mailed'),
        ('mailed', 'completed'),
    ])
    def test_campaign_forward_steps(self, current, target):
        lifecycle.validate_transition(lifecycle.CAMPAIGN, current, target)

    @pytest.mark.parametrize('current,target', [
        ('booking_open', 'planning'),
        ('planning', 'printed'),
        ('completed', 'planning'),
    ])
    def test_campaign_rejects_skips_and_reversals(self, current, target):
        with pytest.raises(InvalidTransitionError):
            lifecycle.validate_transition(lifecycle.CAMPAIGN, current, target)

    def test_error_lists_allowed_states(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            lifecycle.validate_transition(lifecycle.STATUS, 'pending', 'pending')

        assert exc_info.value.allowed == ['cancelled', 'confirmed']
        assert exc_info.value.details == {'allowed': ['cancelled', 'confirmed']}
        assert exc_info.value.status_code == 409

    def test_unknown_target(self):
        with pytest.raises(InvalidTransitionError):
            lifecycle.validate_transition(lifecycle.PAYMENT, 'pending', 'refunded')

    def test_cancelled_is_terminal(self):
        assert lifecycle.allowed_transitions(lifecycle.STATUS, 'cancelled') == frozenset()

    def test_paid_is_terminal(self):
        with pytest.raises(InvalidTransitionError):
            lifecycle.validate_transition(lifecycle.PAYMENT, 'paid', 'failed')

    def test_failed_payment_can_retry(self):
        lifecycle.validate_transition(lifecycle.PAYMENT, 'failed', 'pending')
        lifecycle.validate_transition(lifecycle.PAYMENT, 'failed', 'paid')

    def test_approval_decided_once(self):
        with pytest.raises(InvalidTransitionError):
            lifecycle.validate_transition(lifecycle.APPROVAL, 'approved', 'rejected')

    def test_artwork_resubmission(self):
        lifecycle.validate_transition(lifecycle.ARTWORK, 'rejected', 'under_review')

    def test_design_cycle(self):
        lifecycle.validate_transition(lifecycle.DESIGN, 'pending_design', 'pending_review')
        lifecycle.validate_transition(lifecycle.DESIGN, 'pending_review', 'changes_requested')
        lifecycle.validate_transition(lifecycle.DESIGN, 'changes_requested', 'pending_review')
        with pytest.raises(InvalidTransitionError):
            lifecycle.validate_transition(lifecycle.DESIGN, 'approved', 'changes_requested')


class TestAdvance:
    """Tests for advance on unsaved instances."""

    def test_advance_sets_field_and_returns_previous(self):
        booking = Booking(status=Booking.Status.PENDING)

        previous = lifecycle.advance(booking, lifecycle.STATUS, Booking.Status.CONFIRMED)

        assert previous == Booking.Status.PENDING
        assert booking.status == Booking.Status.CONFIRMED

    def test_advance_leaves_other_axes(self):
        booking = Booking(payment_status=Booking.PaymentStatus.PENDING)

        lifecycle.advance(booking, lifecycle.PAYMENT, Booking.PaymentStatus.FAILED)

        assert booking.status == Booking.Status.PENDING
        assert booking.approval_status == Booking.ApprovalStatus.PENDING

    def test_advance_campaign(self):
        campaign = Campaign(status=Campaign.Status.PLANNING)

        lifecycle.advance(campaign, lifecycle.CAMPAIGN, Campaign.Status.BOOKING_OPEN)

        assert campaign.status == Campaign.Status.BOOKING_OPEN

    def test_failed_advance_does_not_mutate(self):
        campaign = Campaign(status=Campaign.Status.PLANNING)

        with pytest.raises(InvalidTransitionError):
            lifecycle.advance(campaign, lifecycle.CAMPAIGN, Campaign.Status.MAILED)

        assert campaign.status == Campaign.Status.PLANNING
