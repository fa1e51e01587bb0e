# apps/booking/services/waitlist_service.py
"""
Waitlist Service

Manages waitlist entries and notifies waiting customers when
capacity frees up.
"""

import uuid
import logging
from typing import Iterable, List, Optional

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from ..events import publish_booking_waitlisted, publish_waitlist_notified
from ..models import (
    Campaign,
    Customer,
    CustomerNotification,
    WaitlistEntry,
    WaitlistNotification,
)

logger = logging.getLogger(__name__)


class WaitlistService:
    """
    Service for managing the waitlist.

    Handles:
    - Waitlist CRUD
    - Automatic notification on freed capacity
    - Admin bulk notification
    - Customer-initiated conversion into a booking
    """

    VALID_CHANNELS = {
        WaitlistNotification.Channel.EMAIL,
        WaitlistNotification.Channel.IN_APP,
    }

    # ==========================================================================
    # Waitlist CRUD
    # ==========================================================================

    @transaction.atomic
    def add_entry(
        self,
        customer: Customer,
        campaign_id: uuid.UUID,
        route_id: uuid.UUID,
        industry_id: Optional[uuid.UUID] = None,
        subcategory_id: Optional[uuid.UUID] = None,
        quantity: int = 1,
        reason: str = WaitlistEntry.Reason.ROUTE_FULL,
        notes: str = ''
    ) -> WaitlistEntry:
        """Add a waitlist entry, reusing an open one for the same request."""
        existing = WaitlistEntry.objects.filter(
            customer=customer,
            campaign_id=campaign_id,
            route_id=route_id,
            industry_id=industry_id,
            subcategory_id=subcategory_id,
            status__in=[WaitlistEntry.Status.ACTIVE, WaitlistEntry.Status.NOTIFIED]
        ).first()

        if existing:
            logger.info(f"Customer {customer.id} already waitlisted as entry {existing.id}")
            return existing

        entry = WaitlistEntry.objects.create(
            customer=customer,
            campaign_id=campaign_id,
            route_id=route_id,
            industry_id=industry_id,
            subcategory_id=subcategory_id,
            quantity=quantity,
            reason=reason,
            notes=notes or '',
        )

        publish_booking_waitlisted(entry)

        logger.info(
            f"Added waitlist entry {entry.id} for customer {customer.id} "
            f"on campaign {campaign_id} ({reason})"
        )

        return entry

    def get_entry(self, entry_id: uuid.UUID) -> WaitlistEntry:
        """Get a waitlist entry by ID."""
        from . import WaitlistEntryNotFoundError

        try:
            return WaitlistEntry.objects.select_related(
                'customer', 'campaign', 'route', 'industry'
            ).get(id=entry_id)
        except WaitlistEntry.DoesNotExist:
            raise WaitlistEntryNotFoundError(f"Waitlist entry {entry_id} not found")

    def list_entries(
        self,
        customer_id: Optional[uuid.UUID] = None,
        campaign_id: Optional[uuid.UUID] = None,
        route_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        open_only: bool = False
    ):
        """List waitlist entries in FIFO order."""
        queryset = WaitlistEntry.objects.select_related(
            'customer', 'campaign', 'route', 'industry'
        )

        if customer_id:
            queryset = queryset.filter(customer_id=customer_id)

        if campaign_id:
            queryset = queryset.filter(campaign_id=campaign_id)

        if route_id:
            queryset = queryset.filter(route_id=route_id)

        if status:
            queryset = queryset.filter(status=status)
        elif open_only:
            queryset = queryset.filter(
                status__in=[WaitlistEntry.Status.ACTIVE, WaitlistEntry.Status.NOTIFIED]
            )

        return queryset.order_by('created_at')

    @transaction.atomic
    def cancel_entry(self, entry_id: uuid.UUID, customer: Customer) -> WaitlistEntry:
        """Withdraw a customer's own waitlist entry."""
        from . import InvalidTransitionError, PermissionDeniedError

        entry = self.get_entry(entry_id)

        if entry.customer_id != customer.id and not customer.is_admin:
            raise PermissionDeniedError("You can only cancel your own waitlist entries")

        if entry.status == WaitlistEntry.Status.CANCELLED:
            return entry

        if not entry.is_open:
            raise InvalidTransitionError(
                f"Cannot cancel a {entry.status} waitlist entry",
                allowed=[]
            )

        entry.status = WaitlistEntry.Status.CANCELLED
        entry.save(update_fields=['status', 'updated_at'])

        logger.info(f"Cancelled waitlist entry {entry.id}")

        return entry

    # ==========================================================================
    # Notification
    # ==========================================================================

    @transaction.atomic
    def on_capacity_freed(
        self,
        campaign_id: uuid.UUID,
        route_id: uuid.UUID,
        industry_id: Optional[uuid.UUID] = None,
        slots_freed: int = 1
    ) -> List[WaitlistEntry]:
        """
        Notify the longest-waiting matching entries about freed capacity.

        Notification only; a booking is created when the customer converts.
        """
        try:
            campaign = Campaign.objects.get(id=campaign_id)
        except Campaign.DoesNotExist:
            logger.warning(f"Freed capacity on unknown campaign {campaign_id}")
            return []

        if not campaign.is_booking_open:
            logger.info(
                f"Campaign {campaign.name} is {campaign.status}; not notifying waitlist"
            )
            return []

        queryset = WaitlistEntry.objects.select_for_update().filter(
            campaign_id=campaign_id,
            status=WaitlistEntry.Status.ACTIVE
        )

        if campaign.industry_exclusive:
            queryset = queryset.filter(route_id=route_id).filter(
                Q(industry_id=industry_id) | Q(industry__isnull=True)
            )
        else:
            queryset = queryset.filter(
                Q(route_id=route_id) | Q(reason=WaitlistEntry.Reason.CAMPAIGN_FULL)
            )

        entries = list(queryset.order_by('created_at')[:max(slots_freed, 1)])
        if not entries:
            logger.debug(f"No waitlist entries match freed capacity on campaign {campaign_id}")
            return []

        now = timezone.now()
        channels = [WaitlistNotification.Channel.IN_APP]
        message = (
            f"A slot opened up in {campaign.name}. "
            f"Book now before someone else takes it."
        )

        for entry in entries:
            entry.mark_notified(channels, now)
            self._notify_in_app(entry, message)

        notification = WaitlistNotification.objects.create(
            sent_by=None,
            campaign=campaign,
            route_id=route_id,
            message=message,
            channels=channels,
            recipient_count=len(entries),
            recipient_ids=[str(entry.id) for entry in entries],
            sent_at=now,
        )
        publish_waitlist_notified(notification)

        logger.info(
            f"Notified {len(entries)} waitlist entr(ies) of freed capacity "
            f"on campaign {campaign.name}"
        )

        return entries

    @transaction.atomic
    def notify_entries(
        self,
        entry_ids: Iterable[uuid.UUID],
        message: str,
        channels: Iterable[str],
        sent_by: Optional[uuid.UUID] = None
    ) -> int:
        """
        Bulk notify waitlist entries (admin).

        Entries that are converted or cancelled are skipped. Returns the
        number of entries notified.
        """
        from . import BookingValidationError
        from ..tasks import enqueue, send_waitlist_email

        channels = list(dict.fromkeys(channels or []))
        if not channels:
            raise BookingValidationError("At least one notification channel is required")

        unknown = [channel for channel in channels if channel not in self.VALID_CHANNELS]
        if unknown:
            raise BookingValidationError(f"Unknown notification channel(s): {', '.join(unknown)}")

        if not (message or '').strip():
            raise BookingValidationError("A notification message is required")

        entries = list(
            WaitlistEntry.objects.select_for_update().filter(
                id__in=list(entry_ids),
                status__in=[WaitlistEntry.Status.ACTIVE, WaitlistEntry.Status.NOTIFIED]
            ).order_by('created_at')
        )

        if not entries:
            logger.info("No open waitlist entries to notify")
            return 0

        now = timezone.now()
        for entry in entries:
            entry.mark_notified(channels, now)

            if WaitlistNotification.Channel.IN_APP in channels:
                self._notify_in_app(entry, message)

            if WaitlistNotification.Channel.EMAIL in channels:
                entry_id = str(entry.id)
                transaction.on_commit(
                    lambda entry_id=entry_id: enqueue(send_waitlist_email, entry_id, message)
                )

        campaign_ids = {entry.campaign_id for entry in entries}
        route_ids = {entry.route_id for entry in entries}

        notification = WaitlistNotification.objects.create(
            sent_by=sent_by,
            campaign_id=campaign_ids.pop() if len(campaign_ids) == 1 else None,
            route_id=route_ids.pop() if len(route_ids) == 1 else None,
            message=message,
            channels=channels,
            recipient_count=len(entries),
            recipient_ids=[str(entry.id) for entry in entries],
            sent_at=now,
        )
        publish_waitlist_notified(notification)

        logger.info(f"Admin {sent_by} notified {len(entries)} waitlist entr(ies) via {channels}")

        return len(entries)

    # ==========================================================================
    # Conversion
    # ==========================================================================

    def convert_entry(self, entry_id: uuid.UUID, customer: Customer, **booking_data):
        """
        Turn a waitlist entry into a booking for its owner.

        Returns the BookingResult. When there is still no capacity the
        entry is left untouched and a waitlisted result comes back.
        """
        from . import (
            BookingValidationError,
            CapacityExceededError,
            InvalidTransitionError,
            PermissionDeniedError,
        )
        from .booking_service import BookingResult, BookingService

        entry = self.get_entry(entry_id)

        if entry.customer_id != customer.id:
            raise PermissionDeniedError("You can only convert your own waitlist entries")

        if not entry.is_open:
            raise InvalidTransitionError(
                f"Cannot convert a {entry.status} waitlist entry",
                allowed=[]
            )

        if entry.industry_id is None:
            industry_id = booking_data.pop('industry_id', None)
            if industry_id is None:
                raise BookingValidationError("An industry is required to book this entry")
        else:
            industry_id = entry.industry_id
            booking_data.pop('industry_id', None)

        try:
            with transaction.atomic():
                result = BookingService().create_booking(
                    customer=customer,
                    campaign_id=entry.campaign_id,
                    route_id=entry.route_id,
                    industry_id=industry_id,
                    quantity=entry.quantity,
                    subcategory_id=entry.subcategory_id,
                    join_waitlist=False,
                    **booking_data
                )
                entry.mark_converted(result.booking)
        except CapacityExceededError as e:
            logger.info(f"Waitlist entry {entry.id} still has no capacity")
            return BookingResult(waitlist_entry=entry, waitlisted=True, message=e.message)

        logger.info(
            f"Converted waitlist entry {entry.id} into booking {result.booking.booking_number}"
        )

        return BookingResult(booking=result.booking, waitlist_entry=entry, waitlisted=False)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _notify_in_app(self, entry: WaitlistEntry, message: str) -> CustomerNotification:
        return CustomerNotification.objects.create(
            customer_id=entry.customer_id,
            title='Waitlist update',
            message=message,
            link=f"/campaigns/{entry.campaign_id}/",
        )
