# apps/booking/services/lifecycle.py
"""
Lifecycle Transition Tables

Each status axis of a booking, and the campaign status, has its own
allowed-transition table. Every status write goes through
``advance`` so the tables are the single source of truth.
"""

import logging
from typing import Dict, FrozenSet

from ..models import Booking, Campaign

logger = logging.getLogger(__name__)


STATUS = 'status'
PAYMENT = 'payment_status'
APPROVAL = 'approval_status'
ARTWORK = 'artwork_status'
DESIGN = 'design_status'
CAMPAIGN = 'campaign_status'

_B = Booking
_C = Campaign.Status

TRANSITIONS: Dict[str, Dict[str, FrozenSet[str]]] = {
    STATUS: {
        _B.Status.PENDING: frozenset({_B.Status.CONFIRMED, _B.Status.CANCELLED}),
        _B.Status.CONFIRMED: frozenset({_B.Status.CANCELLED}),
        _B.Status.CANCELLED: frozenset(),
    },
    PAYMENT: {
        _B.PaymentStatus.PENDING: frozenset({_B.PaymentStatus.PAID, _B.PaymentStatus.FAILED}),
        _B.PaymentStatus.FAILED: frozenset({_B.PaymentStatus.PENDING, _B.PaymentStatus.PAID}),
        _B.PaymentStatus.PAID: frozenset(),
    },
    APPROVAL: {
        _B.ApprovalStatus.PENDING: frozenset({_B.ApprovalStatus.APPROVED, _B.ApprovalStatus.REJECTED}),
        _B.ApprovalStatus.APPROVED: frozenset(),
        _B.ApprovalStatus.REJECTED: frozenset(),
    },
    ARTWORK: {
        _B.ArtworkStatus.PENDING_UPLOAD: frozenset({_B.ArtworkStatus.UNDER_REVIEW}),
        _B.ArtworkStatus.UNDER_REVIEW: frozenset({_B.ArtworkStatus.APPROVED, _B.ArtworkStatus.REJECTED}),
        _B.ArtworkStatus.REJECTED: frozenset({_B.ArtworkStatus.UNDER_REVIEW, _B.ArtworkStatus.PENDING_UPLOAD}),
        _B.ArtworkStatus.APPROVED: frozenset(),
    },
    DESIGN: {
        _B.DesignStatus.PENDING_DESIGN: frozenset({_B.DesignStatus.PENDING_REVIEW}),
        _B.DesignStatus.PENDING_REVIEW: frozenset({
            _B.DesignStatus.APPROVED, _B.DesignStatus.CHANGES_REQUESTED
        }),
        _B.DesignStatus.CHANGES_REQUESTED: frozenset({_B.DesignStatus.PENDING_REVIEW}),
        _B.DesignStatus.APPROVED: frozenset(),
    },
    CAMPAIGN: {
        _C.PLANNING: frozenset({_C.BOOKING_OPEN}),
        _C.BOOKING_OPEN: frozenset({_C.BOOKING_CLOSED}),
        _C.BOOKING_CLOSED: frozenset({_C.PRINTED}),
        _C.PRINTED: frozenset({_C.MAILED}),
        _C.MAILED: frozenset({_C.COMPLETED}),
        _C.COMPLETED: frozenset(),
    },
}

AXIS_LABELS = {
    STATUS: 'booking status',
    PAYMENT: 'payment status',
    APPROVAL: 'approval status',
    ARTWORK: 'artwork status',
    DESIGN: 'design status',
    CAMPAIGN: 'campaign status',
}


def allowed_transitions(axis: str, current: str) -> FrozenSet[str]:
    """Return the states reachable in one step from ``current``."""
    return TRANSITIONS[axis].get(current, frozenset())


def validate_transition(axis: str, current: str, target: str):
    """
    Raise InvalidTransitionError unless ``current -> target`` is allowed.

    The error names the allowed next states.
    """
    from . import InvalidTransitionError

    if target not in TRANSITIONS[axis]:
        raise InvalidTransitionError(
            f"Unknown {AXIS_LABELS[axis]} '{target}'",
            allowed=allowed_transitions(axis, current)
        )

    allowed = allowed_transitions(axis, current)
    if target not in allowed:
        allowed_text = ', '.join(sorted(allowed)) or 'none'
        raise InvalidTransitionError(
            f"Cannot change {AXIS_LABELS[axis]} from '{current}' to '{target}'. "
            f"Allowed next states: {allowed_text}",
            allowed=allowed
        )


def advance(instance, axis: str, target: str) -> str:
    """
    Validate and apply a transition on a model instance (not saved).

    Returns the previous state.
    """
    field = 'status' if axis == CAMPAIGN else axis
    current = getattr(instance, field)
    validate_transition(axis, current, target)
    setattr(instance, field, target)
    logger.debug(f"{type(instance).__name__} {instance.pk} {field}: {current} -> {target}")
    return current
