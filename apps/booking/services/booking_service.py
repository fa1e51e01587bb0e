# apps/booking/services/booking_service.py
"""
Booking Service

Core business logic for slot bookings: creation, payment, approval,
artwork and design workflows, cancellation and expiry.
"""

import uuid
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.db.models import F, Max, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from ..events import EventType, publish_booking_event
from ..models import (
    AdminNotification,
    Booking,
    Campaign,
    Customer,
    DesignRevision,
    IndustrySubcategory,
    WaitlistEntry,
)
from . import lifecycle
from .admin_notification_service import AdminNotificationService
from .loyalty_service import LoyaltyService
from .pricing_service import PriceBreakdown, PricingResolver
from .slot_allocator import SlotAllocator, validate_quantity
from .waitlist_service import WaitlistService

logger = logging.getLogger(__name__)


@dataclass
class BookingResult:
    """Outcome of a booking request: a booking or a waitlist entry."""
    booking: Optional[Booking] = None
    waitlist_entry: Optional[WaitlistEntry] = None
    waitlisted: bool = False
    message: str = ''


class BookingService:
    """
    Service for managing bookings.

    Handles:
    - Booking creation (reserve, price, persist as one unit)
    - Payment and approval
    - Artwork and design review
    - Cancellation, refunds and expiry
    """

    PRICING_ATTEMPTS = 2

    def __init__(self):
        self.allocator = SlotAllocator()
        self.pricing = PricingResolver()
        self.loyalty = LoyaltyService()
        self.waitlist = WaitlistService()
        self.admin_queue = AdminNotificationService()

    # ==========================================================================
    # Booking CRUD
    # ==========================================================================

    def create_booking(
        self,
        customer: Customer,
        campaign_id: uuid.UUID,
        route_id: uuid.UUID,
        industry_id: uuid.UUID,
        quantity: int = 1,
        subcategory_id: Optional[uuid.UUID] = None,
        business_name: str = '',
        contact_email: str = '',
        contact_phone: str = '',
        main_message: str = '',
        qr_code_url: str = '',
        brand_colors: str = '',
        ad_style: str = '',
        design_notes: str = '',
        contract_accepted: bool = False,
        override_price: Optional[int] = None,
        override_note: Optional[str] = None,
        join_waitlist: bool = True,
        waitlist_notes: str = ''
    ) -> BookingResult:
        """
        Book ``quantity`` slots, or join the waitlist when none are left.

        Reservation, pricing and the booking insert commit together. A
        pricing rule that runs out between quote and commit is retried once.
        """
        from . import CapacityExceededError, RuleConflictError, RuleExhaustedError

        validate_quantity(quantity)

        for attempt in range(1, self.PRICING_ATTEMPTS + 1):
            try:
                with transaction.atomic():
                    reservation = self.allocator.try_reserve(
                        campaign_id, route_id, industry_id, quantity, subcategory_id
                    )

                    if reservation.waitlisted:
                        if not join_waitlist:
                            raise CapacityExceededError(reservation.message)

                        entry = self.waitlist.add_entry(
                            customer=customer,
                            campaign_id=campaign_id,
                            route_id=route_id,
                            industry_id=industry_id,
                            subcategory_id=subcategory_id,
                            quantity=quantity,
                            reason=reservation.reason,
                            notes=waitlist_notes,
                        )
                        return BookingResult(
                            waitlist_entry=entry,
                            waitlisted=True,
                            message=f"{reservation.message}. You have been added to the waitlist.",
                        )

                    breakdown = self.pricing.compute_price(
                        customer.id, campaign_id, quantity,
                        override_price=override_price,
                        override_note=override_note,
                    )

                    booking = self._build_booking(
                        reservation.hold_token, customer, campaign_id, route_id,
                        industry_id, quantity, subcategory_id, breakdown,
                        business_name=business_name,
                        contact_email=contact_email,
                        contact_phone=contact_phone,
                        main_message=main_message,
                        qr_code_url=qr_code_url,
                        brand_colors=brand_colors,
                        ad_style=ad_style,
                        design_notes=design_notes,
                        contract_accepted=contract_accepted,
                    )
                    booking.save()

                    self.pricing.commit(breakdown, booking)
                    self.admin_queue.raise_for_booking(
                        booking, AdminNotification.Type.NEW_BOOKING
                    )

                    if booking.is_paid:
                        self._on_paid(booking)

            except RuleExhaustedError as e:
                if attempt >= self.PRICING_ATTEMPTS:
                    logger.error(f"Pricing kept conflicting for customer {customer.id}: {e}")
                    raise RuleConflictError(
                        "Pricing changed while booking. Please try again."
                    )
                logger.warning(
                    f"Pricing rule exhausted during booking (attempt {attempt}); retrying"
                )
                continue

            logger.info(
                f"Created booking {booking.booking_number} for customer {customer.id}: "
                f"{quantity} slot(s), {booking.amount} cents"
            )
            return BookingResult(booking=booking)

    def quote(
        self,
        customer: Customer,
        campaign_id: uuid.UUID,
        quantity: int = 1,
        override_price: Optional[int] = None,
        override_note: Optional[str] = None
    ) -> PriceBreakdown:
        """Price a candidate booking without side effects."""
        return self.pricing.compute_price(
            customer.id, campaign_id, quantity,
            override_price=override_price,
            override_note=override_note,
        )

    def get_booking(self, booking_id: uuid.UUID) -> Booking:
        """Get a booking by ID."""
        from . import BookingNotFoundError

        try:
            return Booking.objects.select_related(
                'customer', 'campaign', 'route', 'industry', 'subcategory'
            ).get(id=booking_id)
        except Booking.DoesNotExist:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

    def list_bookings(
        self,
        customer_id: Optional[uuid.UUID] = None,
        campaign_id: Optional[uuid.UUID] = None,
        route_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        exclude_cancelled: bool = False
    ):
        """List bookings with filters."""
        queryset = Booking.objects.select_related(
            'customer', 'campaign', 'route', 'industry', 'subcategory'
        )

        if customer_id:
            queryset = queryset.filter(customer_id=customer_id)

        if campaign_id:
            queryset = queryset.filter(campaign_id=campaign_id)

        if route_id:
            queryset = queryset.filter(route_id=route_id)

        if status:
            queryset = queryset.filter(status=status)
        elif exclude_cancelled:
            queryset = queryset.exclude(status=Booking.Status.CANCELLED)

        return queryset

    # ==========================================================================
    # Payment
    # ==========================================================================

    @transaction.atomic
    def start_checkout(self, booking_id: uuid.UUID) -> Booking:
        """Open a checkout session with the payment gateway."""
        from . import InvalidTransitionError

        booking = self._lock(booking_id)

        if booking.is_cancelled:
            raise InvalidTransitionError(
                f"Booking {booking.booking_number} is cancelled",
                allowed=[]
            )

        update_fields = ['checkout_session_id', 'updated_at']

        if booking.payment_status == Booking.PaymentStatus.FAILED:
            lifecycle.advance(booking, lifecycle.PAYMENT, Booking.PaymentStatus.PENDING)
            booking.pending_since = timezone.now()
            booking.payment_failure_reason = ''
            update_fields += ['payment_status', 'pending_since', 'payment_failure_reason']
        elif booking.payment_status != Booking.PaymentStatus.PENDING:
            raise InvalidTransitionError(
                f"Booking {booking.booking_number} is already {booking.payment_status}",
                allowed=[]
            )

        booking.checkout_session_id = f"cs_{uuid.uuid4().hex}"
        booking.save(update_fields=update_fields)

        logger.info(
            f"Started checkout {booking.checkout_session_id} for booking {booking.booking_number}"
        )

        return booking

    @transaction.atomic
    def record_payment(
        self,
        booking_id: uuid.UUID,
        amount_paid: Optional[int] = None,
        reference: str = ''
    ) -> Booking:
        """
        Apply a successful payment callback.

        Replaying the same reference returns the booking unchanged.
        """
        from . import BookingValidationError, InvalidTransitionError

        booking = self._lock(booking_id)

        if booking.is_paid:
            if not reference or reference == booking.payment_reference:
                logger.info(f"Payment for booking {booking.booking_number} already recorded")
                return booking
            raise InvalidTransitionError(
                f"Booking {booking.booking_number} was already paid with another reference",
                allowed=[]
            )

        if booking.is_cancelled:
            raise InvalidTransitionError(
                f"Cannot record payment for cancelled booking {booking.booking_number}",
                allowed=[]
            )

        amount_paid = booking.amount if amount_paid is None else amount_paid
        if amount_paid != booking.amount:
            raise BookingValidationError(
                f"Payment of {amount_paid} does not match booking amount {booking.amount}"
            )

        lifecycle.advance(booking, lifecycle.PAYMENT, Booking.PaymentStatus.PAID)
        lifecycle.advance(booking, lifecycle.STATUS, Booking.Status.CONFIRMED)
        booking.amount_paid = amount_paid
        booking.paid_at = timezone.now()
        booking.payment_reference = reference or ''
        booking.payment_failure_reason = ''
        booking.save(update_fields=[
            'payment_status', 'status', 'amount_paid', 'paid_at',
            'payment_reference', 'payment_failure_reason', 'updated_at'
        ])

        self._on_paid(booking)

        publish_booking_event(EventType.PAYMENT_RECEIVED, booking, reference=reference)

        logger.info(
            f"Recorded payment of {amount_paid} cents for booking {booking.booking_number}"
        )

        return booking

    @transaction.atomic
    def record_payment_failure(self, booking_id: uuid.UUID, reason: str = '') -> Booking:
        """Apply a failed payment callback."""
        from . import InvalidTransitionError

        booking = self._lock(booking_id)

        if booking.is_cancelled:
            raise InvalidTransitionError(
                f"Cannot record payment for cancelled booking {booking.booking_number}",
                allowed=[]
            )

        lifecycle.advance(booking, lifecycle.PAYMENT, Booking.PaymentStatus.FAILED)
        booking.payment_failure_reason = reason or ''
        booking.save(update_fields=['payment_status', 'payment_failure_reason', 'updated_at'])

        publish_booking_event(EventType.PAYMENT_FAILED, booking, reason=reason)

        logger.info(f"Payment failed for booking {booking.booking_number}: {reason}")

        return booking

    # ==========================================================================
    # Approval
    # ==========================================================================

    @transaction.atomic
    def approve(self, booking_id: uuid.UUID, admin_id: Optional[uuid.UUID] = None) -> Booking:
        """Approve a booking (admin)."""
        from . import InvalidTransitionError

        booking = self._lock(booking_id)

        if booking.is_cancelled:
            raise InvalidTransitionError(
                f"Cannot approve cancelled booking {booking.booking_number}",
                allowed=[]
            )

        lifecycle.advance(booking, lifecycle.APPROVAL, Booking.ApprovalStatus.APPROVED)
        booking.approved_at = timezone.now()
        booking.approved_by = admin_id
        booking.save(update_fields=['approval_status', 'approved_at', 'approved_by', 'updated_at'])

        self.admin_queue.resolve_for_booking(
            booking, AdminNotification.Type.NEW_BOOKING, admin_id
        )

        publish_booking_event(EventType.BOOKING_APPROVED, booking, approved_by=admin_id)

        logger.info(f"Approved booking {booking.booking_number}")

        return booking

    @transaction.atomic
    def reject(self, booking_id: uuid.UUID, admin_id: Optional[uuid.UUID], note: str) -> Booking:
        """Reject a booking (admin); the booking is cancelled with a full refund."""
        from . import BookingValidationError

        if not (note or '').strip():
            raise BookingValidationError("A rejection note is required")

        booking = self._lock(booking_id)

        lifecycle.validate_transition(lifecycle.STATUS, booking.status, Booking.Status.CANCELLED)
        lifecycle.advance(booking, lifecycle.APPROVAL, Booking.ApprovalStatus.REJECTED)
        booking.rejected_at = timezone.now()
        booking.rejection_note = note.strip()

        refund_amount, refund_status = self.calculate_refund(booking, by_admin=True)
        self._apply_cancellation(
            booking,
            cancelled_by=str(admin_id) if admin_id else 'admin',
            reason=f"Rejected: {booking.rejection_note}",
            refund_amount=refund_amount,
            refund_status=refund_status,
            extra_fields=['approval_status', 'rejected_at', 'rejection_note'],
        )

        self.admin_queue.resolve_for_booking(
            booking, AdminNotification.Type.NEW_BOOKING, admin_id
        )

        publish_booking_event(EventType.BOOKING_REJECTED, booking, note=booking.rejection_note)

        logger.info(f"Rejected booking {booking.booking_number}")

        return booking

    # ==========================================================================
    # Artwork
    # ==========================================================================

    @transaction.atomic
    def upload_artwork(self, booking_id: uuid.UUID, file, uploader_id: Optional[uuid.UUID] = None) -> Booking:
        """Attach customer artwork and send it for review."""
        from . import BookingValidationError, InvalidTransitionError

        if not file:
            raise BookingValidationError("An artwork file is required")

        booking = self._lock(booking_id)
        self._ensure_active(booking)

        if settings.ARTWORK_REQUIRES_PAYMENT and not booking.is_paid:
            raise InvalidTransitionError(
                "Artwork can be uploaded once payment is complete",
                allowed=[]
            )

        lifecycle.advance(booking, lifecycle.ARTWORK, Booking.ArtworkStatus.UNDER_REVIEW)
        booking.artwork_file = file
        booking.artwork_file_name = getattr(file, 'name', '') or ''
        booking.artwork_uploaded_at = timezone.now()
        booking.artwork_reviewed_at = None
        booking.artwork_rejection_reason = ''
        booking.save(update_fields=[
            'artwork_status', 'artwork_file', 'artwork_file_name',
            'artwork_uploaded_at', 'artwork_reviewed_at',
            'artwork_rejection_reason', 'updated_at'
        ])

        self.admin_queue.raise_for_booking(booking, AdminNotification.Type.ARTWORK_REVIEW)

        publish_booking_event(EventType.ARTWORK_UPLOADED, booking, uploaded_by=uploader_id)

        logger.info(f"Artwork uploaded for booking {booking.booking_number}")

        return booking

    @transaction.atomic
    def review_artwork(self, booking_id: uuid.UUID, approved: bool, reason: str = '') -> Booking:
        """Approve or reject uploaded artwork (admin)."""
        from . import BookingValidationError

        booking = self._lock(booking_id)
        self._ensure_active(booking)

        if approved:
            lifecycle.advance(booking, lifecycle.ARTWORK, Booking.ArtworkStatus.APPROVED)
            booking.artwork_rejection_reason = ''
        else:
            if not (reason or '').strip():
                raise BookingValidationError("A reason is required when rejecting artwork")
            lifecycle.advance(booking, lifecycle.ARTWORK, Booking.ArtworkStatus.REJECTED)
            booking.artwork_rejection_reason = reason.strip()

        booking.artwork_reviewed_at = timezone.now()
        booking.save(update_fields=[
            'artwork_status', 'artwork_rejection_reason', 'artwork_reviewed_at', 'updated_at'
        ])

        self.admin_queue.resolve_for_booking(booking, AdminNotification.Type.ARTWORK_REVIEW)

        publish_booking_event(
            EventType.ARTWORK_REVIEWED, booking,
            artwork_status=booking.artwork_status
        )

        logger.info(f"Artwork for booking {booking.booking_number} {booking.artwork_status}")

        return booking

    # ==========================================================================
    # Design revisions
    # ==========================================================================

    @transaction.atomic
    def upload_design_revision(
        self,
        booking_id: uuid.UUID,
        file,
        uploader_id: Optional[uuid.UUID] = None,
        notes: str = ''
    ) -> DesignRevision:
        """Upload the next design proof for customer review (admin)."""
        from . import BookingValidationError

        if not file:
            raise BookingValidationError("A design file is required")

        booking = self._lock(booking_id)
        self._ensure_active(booking)

        lifecycle.advance(booking, lifecycle.DESIGN, Booking.DesignStatus.PENDING_REVIEW)

        last_number = booking.design_revisions.aggregate(
            last=Max('revision_number')
        )['last'] or 0

        revision = DesignRevision.objects.create(
            booking=booking,
            revision_number=last_number + 1,
            design_file=file,
            admin_notes=notes or '',
            uploaded_by=uploader_id,
        )

        booking.save(update_fields=['design_status', 'updated_at'])

        publish_booking_event(
            EventType.DESIGN_UPLOADED, booking,
            revision_number=revision.revision_number
        )

        logger.info(
            f"Uploaded design revision {revision.revision_number} "
            f"for booking {booking.booking_number}"
        )

        return revision

    @transaction.atomic
    def approve_design(self, booking_id: uuid.UUID) -> Booking:
        """Customer signs off the latest design proof."""
        from . import InvalidTransitionError

        booking = self._lock(booking_id)
        self._ensure_active(booking)

        if not booking.is_paid:
            raise InvalidTransitionError(
                "The design can be approved once payment is complete",
                allowed=[]
            )

        lifecycle.advance(booking, lifecycle.DESIGN, Booking.DesignStatus.APPROVED)
        booking.save(update_fields=['design_status', 'updated_at'])

        revision = self._latest_revision(booking)
        if revision is not None:
            revision.status = DesignRevision.Status.APPROVED
            revision.reviewed_at = timezone.now()
            revision.save(update_fields=['status', 'reviewed_at', 'updated_at'])

        publish_booking_event(EventType.DESIGN_APPROVED, booking)

        logger.info(f"Design approved for booking {booking.booking_number}")

        return booking

    @transaction.atomic
    def request_design_changes(self, booking_id: uuid.UUID, feedback: str) -> Booking:
        """Customer asks for another design revision."""
        from . import BookingValidationError, RevisionLimitExceededError

        if not (feedback or '').strip():
            raise BookingValidationError("Feedback is required when requesting changes")

        booking = self._lock(booking_id)
        self._ensure_active(booking)

        lifecycle.validate_transition(
            lifecycle.DESIGN, booking.design_status, Booking.DesignStatus.CHANGES_REQUESTED
        )

        max_revisions = settings.MAX_DESIGN_REVISIONS
        if booking.revision_count >= max_revisions:
            raise RevisionLimitExceededError(
                f"All {max_revisions} design revisions have been used. "
                f"Please contact us to arrange further changes."
            )

        lifecycle.advance(booking, lifecycle.DESIGN, Booking.DesignStatus.CHANGES_REQUESTED)
        booking.revision_count += 1
        booking.save(update_fields=['design_status', 'revision_count', 'updated_at'])

        revision = self._latest_revision(booking)
        if revision is not None:
            revision.status = DesignRevision.Status.CHANGES_REQUESTED
            revision.customer_feedback = feedback.strip()
            revision.reviewed_at = timezone.now()
            revision.save(update_fields=['status', 'customer_feedback', 'reviewed_at', 'updated_at'])

        publish_booking_event(
            EventType.DESIGN_CHANGES_REQUESTED, booking,
            revision_count=booking.revision_count
        )

        logger.info(
            f"Changes requested on booking {booking.booking_number} "
            f"({booking.revision_count}/{max_revisions})"
        )

        return booking

    # ==========================================================================
    # Cancellation
    # ==========================================================================

    @transaction.atomic
    def cancel(
        self,
        booking_id: uuid.UUID,
        actor_id: Optional[uuid.UUID],
        reason: str = '',
        is_admin: bool = False
    ) -> Tuple[Booking, bool]:
        """
        Cancel a booking and release its slots.

        Returns (booking, cancelled_now); cancelling twice is a no-op.
        """
        from . import InvalidTransitionError, PermissionDeniedError

        booking = self._lock(booking_id)

        if booking.is_cancelled:
            logger.info(f"Booking {booking.booking_number} already cancelled")
            return booking, False

        if not is_admin:
            if str(booking.customer_id) != str(actor_id):
                raise PermissionDeniedError("You can only cancel your own bookings")

            if timezone.localdate() > booking.campaign.print_deadline:
                raise InvalidTransitionError(
                    "Bookings cannot be cancelled after the print deadline. "
                    "Please contact us for assistance.",
                    allowed=[]
                )

        refund_amount, refund_status = self.calculate_refund(booking, by_admin=is_admin)

        self._apply_cancellation(
            booking,
            cancelled_by=str(actor_id) if actor_id else ('admin' if is_admin else 'customer'),
            reason=reason,
            refund_amount=refund_amount,
            refund_status=refund_status,
        )

        if not is_admin:
            self.admin_queue.raise_for_booking(booking, AdminNotification.Type.CANCELED_BOOKING)

        logger.info(
            f"Cancelled booking {booking.booking_number}: refund {refund_amount} ({refund_status})"
        )

        return booking, True

    def calculate_refund(
        self,
        booking: Booking,
        by_admin: bool,
        today: Optional[date] = None
    ) -> Tuple[int, str]:
        """Return (refund amount, refund status) for cancelling ``booking`` now."""
        if not booking.is_paid or booking.amount_paid <= 0:
            return 0, Booking.RefundStatus.NO_REFUND

        if by_admin:
            return booking.amount_paid, Booking.RefundStatus.PENDING

        today = today or timezone.localdate()
        cutoff = booking.campaign.print_deadline - timedelta(days=settings.REFUND_WINDOW_DAYS)
        if today > cutoff:
            return 0, Booking.RefundStatus.NO_REFUND

        fee_percent = settings.REFUND_PROCESSING_FEE_PERCENT
        fee = (booking.amount_paid * fee_percent + 50) // 100
        return booking.amount_paid - fee, Booking.RefundStatus.PENDING

    def expire_pending_bookings(self, now: Optional[datetime] = None) -> int:
        """Cancel bookings whose payment hold ran out. Returns the count."""
        now = now or timezone.now()
        cutoff = now - timedelta(minutes=settings.PENDING_BOOKING_EXPIRATION_MINUTES)

        candidate_ids = list(
            Booking.objects.filter(
                status=Booking.Status.PENDING,
                payment_status=Booking.PaymentStatus.PENDING,
                pending_since__lt=cutoff
            ).values_list('id', flat=True)
        )

        expired = 0
        for booking_id in candidate_ids:
            with transaction.atomic():
                booking = Booking.objects.select_for_update().get(id=booking_id)

                # Paid or cancelled since the scan
                if (
                    booking.status != Booking.Status.PENDING
                    or booking.payment_status != Booking.PaymentStatus.PENDING
                    or booking.pending_since >= cutoff
                ):
                    continue

                self._apply_cancellation(
                    booking,
                    cancelled_by='system',
                    reason='Payment was not completed in time',
                    refund_amount=0,
                    refund_status=Booking.RefundStatus.NO_REFUND,
                )
                publish_booking_event(EventType.BOOKING_EXPIRED, booking)

            expired += 1

        if expired:
            logger.info(f"Expired {expired} pending booking(s)")

        return expired

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _build_booking(
        self,
        booking_id: uuid.UUID,
        customer: Customer,
        campaign_id: uuid.UUID,
        route_id: uuid.UUID,
        industry_id: uuid.UUID,
        quantity: int,
        subcategory_id: Optional[uuid.UUID],
        breakdown: PriceBreakdown,
        contract_accepted: bool = False,
        **details: Any
    ) -> Booking:
        now = timezone.now()

        subcategory_label = ''
        if subcategory_id is not None:
            subcategory_label = IndustrySubcategory.objects.values_list(
                'name', flat=True
            ).get(id=subcategory_id)

        booking = Booking(
            id=booking_id,
            customer=customer,
            campaign_id=campaign_id,
            route_id=route_id,
            industry_id=industry_id,
            subcategory_id=subcategory_id,
            industry_subcategory_label=subcategory_label,
            quantity=quantity,
            business_name=(
                details.get('business_name') or customer.business_name
                or customer.name or customer.email
            ),
            contact_email=details.get('contact_email') or customer.email,
            contact_phone=details.get('contact_phone') or customer.phone,
            main_message=details.get('main_message') or '',
            qr_code_url=details.get('qr_code_url') or '',
            brand_colors=details.get('brand_colors') or '',
            ad_style=details.get('ad_style') or '',
            design_notes=details.get('design_notes') or '',
            base_price_before_discounts=breakdown.base_price_before_discounts,
            discount_amount=breakdown.discount_amount,
            amount=breakdown.final_amount,
            price_source=breakdown.price_source,
            price_override=breakdown.price_override,
            price_override_note=breakdown.price_override_note,
            applied_rule_id=breakdown.applied_rule_id,
            loyalty_discount_applied=breakdown.loyalty_discount_applied,
            counts_toward_loyalty=(
                breakdown.price_override is None and not breakdown.loyalty_discount_applied
            ),
            pending_since=now,
        )

        if contract_accepted:
            booking.contract_accepted = True
            booking.contract_accepted_at = now
            booking.contract_version = settings.CONTRACT_VERSION

        if booking.amount == 0:
            booking.payment_status = Booking.PaymentStatus.PAID
            booking.status = Booking.Status.CONFIRMED
            booking.paid_at = now

        return booking

    def _on_paid(self, booking: Booking):
        """Revenue, loyalty accrual and referral credit for a newly paid booking."""
        Campaign.objects.filter(id=booking.campaign_id).update(
            revenue=F('revenue') + booking.amount_paid
        )
        self.loyalty.record_confirmed_booking(booking)
        self.loyalty.credit_referral(booking)

    def _apply_cancellation(
        self,
        booking: Booking,
        cancelled_by: str,
        reason: str,
        refund_amount: int,
        refund_status: str,
        extra_fields: Optional[list] = None
    ):
        """Cancel a locked booking, release its slots and settle counters."""
        lifecycle.advance(booking, lifecycle.STATUS, Booking.Status.CANCELLED)
        booking.cancelled_at = timezone.now()
        booking.cancelled_by = cancelled_by
        booking.cancellation_reason = reason or ''
        booking.refund_amount = refund_amount
        booking.refund_status = refund_status
        booking.save(update_fields=[
            'status', 'cancelled_at', 'cancelled_by', 'cancellation_reason',
            'refund_amount', 'refund_status', 'updated_at'
        ] + list(extra_fields or []))

        self.allocator.release(booking.id)

        if booking.is_paid:
            Campaign.objects.filter(id=booking.campaign_id).update(
                revenue=Greatest(F('revenue') - booking.amount_paid, Value(0))
            )
        else:
            self.loyalty.restore_discount(booking)

    def _lock(self, booking_id: uuid.UUID) -> Booking:
        from . import BookingNotFoundError

        try:
            return Booking.objects.select_for_update(of=('self',)).select_related(
                'campaign'
            ).get(id=booking_id)
        except Booking.DoesNotExist:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

    def _ensure_active(self, booking: Booking):
        from . import InvalidTransitionError

        if booking.is_cancelled:
            raise InvalidTransitionError(
                f"Booking {booking.booking_number} is cancelled",
                allowed=[]
            )

    def _latest_revision(self, booking: Booking) -> Optional[DesignRevision]:
        return booking.design_revisions.order_by('-revision_number').first()
