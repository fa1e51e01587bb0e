# apps/booking/services/slot_allocator.py
"""
Slot Allocator

Guarantees that a campaign's route inventory is never oversold and keeps
the campaign's ``booked_slots`` counter consistent with its bookings.
"""

import logging
import random
import time
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from django.conf import settings
from django.core.cache import cache
from django.db import OperationalError, transaction
from django.db.models import F, Q, Sum, Value
from django.db.models.functions import Greatest

from ..models import Booking, Campaign, Industry, IndustrySubcategory, Route, WaitlistEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reserved:
    """Capacity was taken; ``hold_token`` becomes the booking id."""
    hold_token: uuid.UUID
    campaign_id: uuid.UUID
    route_id: uuid.UUID
    quantity: int
    route_remaining: int
    campaign_remaining: int

    waitlisted = False


@dataclass(frozen=True)
class WaitlistRequired:
    """No capacity; the caller should create a waitlist entry instead."""
    reason: str
    message: str
    campaign_id: uuid.UUID
    route_id: uuid.UUID
    quantity: int

    waitlisted = True


ReservationResult = Union[Reserved, WaitlistRequired]


def validate_quantity(quantity: int):
    """Quantity must be a whole number of slots within the per-booking cap."""
    from . import BookingValidationError

    max_quantity = settings.MAX_SLOTS_PER_BOOKING
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise BookingValidationError("Quantity must be a whole number")
    if quantity < 1 or quantity > max_quantity:
        raise BookingValidationError(
            f"Quantity must be between 1 and {max_quantity}"
        )


class SlotAllocator:
    """
    Service class for slot reservation and release.

    Reservations lock the campaign row, so check-and-increment is
    serialized per campaign.
    """

    CACHE_TTL = 30

    def __init__(self):
        self.route_capacity = settings.SLOTS_PER_ROUTE
        self.max_retries = settings.SLOT_RESERVATION_MAX_RETRIES
        self.retry_backoff = settings.SLOT_RESERVATION_RETRY_BACKOFF

    # ==========================================================================
    # Reservation
    # ==========================================================================

    def try_reserve(
        self,
        campaign_id: uuid.UUID,
        route_id: uuid.UUID,
        industry_id: uuid.UUID,
        quantity: int,
        subcategory_id: Optional[uuid.UUID] = None
    ) -> ReservationResult:
        """
        Reserve ``quantity`` slots or report that the waitlist is needed.

        Lock conflicts are retried a bounded number of times before
        SlotUnavailableError is raised.
        """
        validate_quantity(quantity)

        for attempt in range(1, self.max_retries + 1):
            try:
                with transaction.atomic():
                    return self._reserve(
                        campaign_id, route_id, industry_id, quantity, subcategory_id
                    )
            except OperationalError as e:
                logger.warning(
                    f"Slot reservation conflict on campaign {campaign_id} "
                    f"(attempt {attempt}/{self.max_retries}): {e}"
                )
                if attempt < self.max_retries:
                    time.sleep(random.uniform(0, self.retry_backoff * attempt))

        from . import SlotUnavailableError
        raise SlotUnavailableError(
            "Could not reserve a slot right now. Please try again."
        )

    def _reserve(
        self,
        campaign_id: uuid.UUID,
        route_id: uuid.UUID,
        industry_id: uuid.UUID,
        quantity: int,
        subcategory_id: Optional[uuid.UUID]
    ) -> ReservationResult:
        from . import BookingValidationError, CampaignNotFoundError, InvalidTransitionError

        try:
            campaign = Campaign.objects.select_for_update().get(id=campaign_id)
        except Campaign.DoesNotExist:
            raise CampaignNotFoundError(f"Campaign {campaign_id} not found")

        if not campaign.is_booking_open:
            raise InvalidTransitionError(
                f"Campaign {campaign.name} is not open for booking (status: {campaign.status})"
            )

        route = self._get_route(route_id)
        if not campaign.offers_route(route):
            raise BookingValidationError(f"Route {route.zip_code} is not offered in this campaign")

        industry = self._get_industry(industry_id)
        if not campaign.offers_industry(industry):
            raise BookingValidationError(f"Industry {industry.name} is not offered in this campaign")

        if subcategory_id is not None:
            self._validate_subcategory(subcategory_id, industry)

        occupied = self._route_occupancy(campaign.id, route.id)

        if occupied + quantity > self.route_capacity:
            remaining = max(0, self.route_capacity - occupied)
            logger.info(
                f"Route {route.zip_code} full for campaign {campaign.name}: "
                f"{remaining} left, {quantity} requested"
            )
            return WaitlistRequired(
                reason=WaitlistEntry.Reason.ROUTE_FULL,
                message=f"Only {remaining} slot(s) remain on route {route.zip_code}",
                campaign_id=campaign.id,
                route_id=route.id,
                quantity=quantity,
            )

        if campaign.booked_slots + quantity > campaign.total_slots:
            logger.info(
                f"Campaign {campaign.name} full: {campaign.available_slots} left, {quantity} requested"
            )
            return WaitlistRequired(
                reason=WaitlistEntry.Reason.CAMPAIGN_FULL,
                message=f"Only {campaign.available_slots} slot(s) remain in this campaign",
                campaign_id=campaign.id,
                route_id=route.id,
                quantity=quantity,
            )

        if campaign.industry_exclusive and self._industry_taken(
            campaign.id, route.id, industry.id, subcategory_id
        ):
            return WaitlistRequired(
                reason=WaitlistEntry.Reason.INDUSTRY_TAKEN,
                message=f"{industry.name} is already booked on route {route.zip_code}",
                campaign_id=campaign.id,
                route_id=route.id,
                quantity=quantity,
            )

        Campaign.objects.filter(id=campaign.id).update(
            booked_slots=F('booked_slots') + quantity
        )
        transaction.on_commit(lambda: self.invalidate_cache(campaign.id))

        logger.info(
            f"Reserved {quantity} slot(s) on route {route.zip_code} "
            f"for campaign {campaign.name}"
        )

        return Reserved(
            hold_token=uuid.uuid4(),
            campaign_id=campaign.id,
            route_id=route.id,
            quantity=quantity,
            route_remaining=self.route_capacity - occupied - quantity,
            campaign_remaining=campaign.total_slots - campaign.booked_slots - quantity,
        )

    # ==========================================================================
    # Release
    # ==========================================================================

    @transaction.atomic
    def release(self, booking_id: uuid.UUID) -> bool:
        """
        Give a booking's slots back to the campaign.

        Idempotent: returns False when the slots were already released.
        Waiting customers are notified after commit.
        """
        from . import BookingNotFoundError
        from ..tasks import enqueue, notify_freed_capacity

        try:
            booking = Booking.objects.select_for_update().get(id=booking_id)
        except Booking.DoesNotExist:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

        if booking.slots_released:
            logger.info(f"Slots for booking {booking.booking_number} already released")
            return False

        # Serialize with reservations on the same campaign
        Campaign.objects.select_for_update().get(id=booking.campaign_id)
        Campaign.objects.filter(id=booking.campaign_id).update(
            booked_slots=Greatest(F('booked_slots') - booking.quantity, Value(0))
        )

        booking.slots_released = True
        booking.save(update_fields=['slots_released', 'updated_at'])

        campaign_id = booking.campaign_id
        route_id = booking.route_id
        industry_id = booking.industry_id
        quantity = booking.quantity

        transaction.on_commit(lambda: self.invalidate_cache(campaign_id))
        transaction.on_commit(lambda: enqueue(
            notify_freed_capacity, str(campaign_id), str(route_id), str(industry_id), quantity
        ))

        logger.info(
            f"Released {quantity} slot(s) from booking {booking.booking_number}"
        )
        return True

    # ==========================================================================
    # Availability
    # ==========================================================================

    def get_availability(self, campaign_id: uuid.UUID) -> Dict[str, Any]:
        """Per-route occupancy for a campaign (cached briefly)."""
        from . import CampaignNotFoundError

        cache_key = f"campaign_availability:{campaign_id}"
        cached = cache.get(cache_key)
        if cached:
            return cached

        try:
            campaign = Campaign.objects.get(id=campaign_id)
        except Campaign.DoesNotExist:
            raise CampaignNotFoundError(f"Campaign {campaign_id} not found")

        active = Booking.objects.filter(campaign=campaign).exclude(
            status=Booking.Status.CANCELLED
        )
        occupancy = dict(
            active.order_by().values('route_id').annotate(
                occupied=Sum('quantity')
            ).values_list('route_id', 'occupied')
        )
        taken = defaultdict(set)
        for route_id, industry_id in active.values_list('route_id', 'industry_id'):
            taken[route_id].add(str(industry_id))

        routes = []
        for route in campaign.get_offered_routes():
            occupied = occupancy.get(route.id, 0)
            routes.append({
                'route_id': str(route.id),
                'zip_code': route.zip_code,
                'name': route.name,
                'household_count': route.household_count,
                'capacity': self.route_capacity,
                'occupied': occupied,
                'remaining': max(0, self.route_capacity - occupied),
                'taken_industries': sorted(taken.get(route.id, set())),
            })

        availability = {
            'campaign_id': str(campaign.id),
            'status': campaign.status,
            'total_slots': campaign.total_slots,
            'booked_slots': campaign.booked_slots,
            'available_slots': campaign.available_slots,
            'slots_per_route': self.route_capacity,
            'industry_exclusive': campaign.industry_exclusive,
            'routes': routes,
        }

        cache.set(cache_key, availability, self.CACHE_TTL)
        return availability

    def invalidate_cache(self, campaign_id: uuid.UUID):
        # Runs after commit; a stale entry expires within CACHE_TTL anyway
        try:
            cache.delete(f"campaign_availability:{campaign_id}")
        except Exception as e:
            logger.warning(f"Could not invalidate availability for campaign {campaign_id}: {e}")

    # ==========================================================================
    # Reconciliation
    # ==========================================================================

    @transaction.atomic
    def reconcile(self, campaign_id: uuid.UUID) -> Dict[str, int]:
        """
        Recompute ``booked_slots`` and ``revenue`` from bookings.

        Returns the drift that was corrected (zero when consistent).
        """
        from . import CampaignNotFoundError

        try:
            campaign = Campaign.objects.select_for_update().get(id=campaign_id)
        except Campaign.DoesNotExist:
            raise CampaignNotFoundError(f"Campaign {campaign_id} not found")

        bookings = Booking.objects.filter(campaign=campaign)
        booked = bookings.filter(
            slots_released=False
        ).aggregate(total=Sum('quantity'))['total'] or 0
        revenue = bookings.exclude(
            status=Booking.Status.CANCELLED
        ).filter(
            payment_status=Booking.PaymentStatus.PAID
        ).aggregate(total=Sum('amount_paid'))['total'] or 0

        drift = {
            'booked_slots': booked - campaign.booked_slots,
            'revenue': revenue - campaign.revenue,
        }

        if drift['booked_slots'] or drift['revenue']:
            logger.warning(
                f"Corrected counter drift on campaign {campaign.name}: {drift}"
            )
            campaign.booked_slots = booked
            campaign.revenue = revenue
            campaign.save(update_fields=['booked_slots', 'revenue', 'updated_at'])
            transaction.on_commit(lambda: self.invalidate_cache(campaign.id))

        return drift

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _get_route(self, route_id: uuid.UUID) -> Route:
        from . import RouteNotFoundError

        try:
            return Route.objects.get(id=route_id)
        except Route.DoesNotExist:
            raise RouteNotFoundError(f"Route {route_id} not found")

    def _get_industry(self, industry_id: uuid.UUID) -> Industry:
        from . import IndustryNotFoundError

        try:
            return Industry.objects.get(id=industry_id)
        except Industry.DoesNotExist:
            raise IndustryNotFoundError(f"Industry {industry_id} not found")

    def _validate_subcategory(self, subcategory_id: uuid.UUID, industry: Industry):
        from . import BookingValidationError, IndustryNotFoundError

        try:
            subcategory = IndustrySubcategory.objects.get(id=subcategory_id)
        except IndustrySubcategory.DoesNotExist:
            raise IndustryNotFoundError(f"Subcategory {subcategory_id} not found")

        if subcategory.industry_id != industry.id:
            raise BookingValidationError(
                f"Subcategory {subcategory.name} does not belong to {industry.name}"
            )

    def _route_occupancy(self, campaign_id: uuid.UUID, route_id: uuid.UUID) -> int:
        return Booking.objects.filter(
            campaign_id=campaign_id,
            route_id=route_id
        ).exclude(
            status=Booking.Status.CANCELLED
        ).aggregate(total=Sum('quantity'))['total'] or 0

    def _industry_taken(
        self,
        campaign_id: uuid.UUID,
        route_id: uuid.UUID,
        industry_id: uuid.UUID,
        subcategory_id: Optional[uuid.UUID]
    ) -> bool:
        holders = Booking.objects.filter(
            campaign_id=campaign_id,
            route_id=route_id,
            industry_id=industry_id
        ).exclude(status=Booking.Status.CANCELLED)
        # A booking without a subcategory holds the whole industry
        if subcategory_id is not None:
            holders = holders.filter(
                Q(subcategory_id=subcategory_id) | Q(subcategory__isnull=True)
            )
        return holders.exists()
