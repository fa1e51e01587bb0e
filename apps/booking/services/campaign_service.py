# apps/booking/services/campaign_service.py
"""
Campaign Service

Campaign CRUD and the forward-only campaign status workflow.
"""

import uuid
import logging
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Sum

from ..events import publish_campaign_status_changed
from ..models import Booking, Campaign
from . import lifecycle

logger = logging.getLogger(__name__)


class CampaignService:
    """
    Service class for campaign management.
    """

    # ==========================================================================
    # CRUD
    # ==========================================================================

    @transaction.atomic
    def create_campaign(self, data: Dict[str, Any]) -> Campaign:
        """Create a campaign in planning status."""
        from . import BookingValidationError

        data = dict(data)
        routes = data.pop('routes', None)
        industries = data.pop('industries', None)

        if not data.get('name'):
            raise BookingValidationError("Campaign name is required")

        self._validate_dates(data.get('print_deadline'), data.get('mail_date'))

        total_slots = data.get('total_slots')
        if total_slots is None:
            total_slots = settings.DEFAULT_CAMPAIGN_TOTAL_SLOTS
        if total_slots < 1:
            raise BookingValidationError("Total slots must be at least 1")
        data['total_slots'] = total_slots

        data.pop('status', None)
        data.pop('booked_slots', None)
        data.pop('revenue', None)

        campaign = Campaign.objects.create(**data)

        if routes is not None:
            campaign.routes.set(routes)
        if industries is not None:
            campaign.industries.set(industries)

        logger.info(f"Created campaign {campaign.name} mailing {campaign.mail_date}")

        return campaign

    def get_campaign(self, campaign_id: uuid.UUID) -> Campaign:
        from . import CampaignNotFoundError

        try:
            return Campaign.objects.get(id=campaign_id)
        except Campaign.DoesNotExist:
            raise CampaignNotFoundError(f"Campaign {campaign_id} not found")

    def list_open_campaigns(self):
        return Campaign.objects.filter(
            status=Campaign.Status.BOOKING_OPEN
        ).order_by('mail_date')

    @transaction.atomic
    def update_campaign(self, campaign_id: uuid.UUID, data: Dict[str, Any]) -> Campaign:
        """Update editable campaign fields."""
        from . import BookingValidationError, CampaignNotFoundError

        try:
            campaign = Campaign.objects.select_for_update().get(id=campaign_id)
        except Campaign.DoesNotExist:
            raise CampaignNotFoundError(f"Campaign {campaign_id} not found")

        allowed_fields = [
            'name', 'mail_date', 'print_deadline', 'total_slots',
            'industry_exclusive', 'base_slot_price', 'additional_slot_price',
        ]

        update_fields = []
        for field in allowed_fields:
            if field in data:
                setattr(campaign, field, data[field])
                update_fields.append(field)

        self._validate_dates(campaign.print_deadline, campaign.mail_date)

        if campaign.total_slots < 1:
            raise BookingValidationError("Total slots must be at least 1")

        if campaign.total_slots < campaign.booked_slots:
            raise BookingValidationError(
                f"Total slots cannot drop below the {campaign.booked_slots} already booked"
            )

        if update_fields:
            update_fields.append('updated_at')
            campaign.save(update_fields=update_fields)

        if 'routes' in data:
            campaign.routes.set(data['routes'])
        if 'industries' in data:
            campaign.industries.set(data['industries'])

        transaction.on_commit(lambda: self._invalidate_availability(campaign.id))

        logger.info(f"Updated campaign {campaign.name}: {update_fields}")

        return campaign

    # ==========================================================================
    # Status workflow
    # ==========================================================================

    @transaction.atomic
    def transition_status(
        self,
        campaign_id: uuid.UUID,
        target: str,
        actor: Optional[uuid.UUID] = None
    ) -> Campaign:
        """Move a campaign one step forward in its workflow."""
        from . import CampaignNotFoundError

        try:
            campaign = Campaign.objects.select_for_update().get(id=campaign_id)
        except Campaign.DoesNotExist:
            raise CampaignNotFoundError(f"Campaign {campaign_id} not found")

        old_status = lifecycle.advance(campaign, lifecycle.CAMPAIGN, target)
        campaign.save(update_fields=['status', 'updated_at'])

        publish_campaign_status_changed(campaign, old_status, changed_by=actor)
        transaction.on_commit(lambda: self._invalidate_availability(campaign.id))

        logger.info(f"Campaign {campaign.name} moved from {old_status} to {campaign.status}")

        return campaign

    # ==========================================================================
    # Counters
    # ==========================================================================

    def refresh_revenue(self, campaign_id: uuid.UUID) -> int:
        """Recompute revenue from paid, non-cancelled bookings."""
        revenue = Booking.objects.filter(
            campaign_id=campaign_id,
            payment_status=Booking.PaymentStatus.PAID
        ).exclude(
            status=Booking.Status.CANCELLED
        ).aggregate(total=Sum('amount_paid'))['total'] or 0

        Campaign.objects.filter(id=campaign_id).update(revenue=revenue)
        return revenue

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _validate_dates(self, print_deadline, mail_date):
        from . import BookingValidationError

        if not print_deadline or not mail_date:
            raise BookingValidationError("Both print deadline and mail date are required")

        if print_deadline >= mail_date:
            raise BookingValidationError("Print deadline must be before the mail date")

    def _invalidate_availability(self, campaign_id: uuid.UUID):
        from .slot_allocator import SlotAllocator
        SlotAllocator().invalidate_cache(campaign_id)
