# apps/booking/models/booking.py
"""
Booking Model

A booking consumes ``quantity`` slots on a (campaign, route) pair and
moves through four independent status axes: approval, payment, artwork
and design.
"""

from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone

from shared.common.mixins import BaseModel


class Booking(BaseModel):
    """
    Advertising slot booking.

    ``amount`` always equals ``base_price_before_discounts`` minus
    ``discount_amount``. The discount is negative when a fixed-price rule
    charges more than the tier price.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        CONFIRMED = 'confirmed', 'Confirmed'
        CANCELLED = 'cancelled', 'Cancelled'

    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        FAILED = 'failed', 'Failed'

    class ApprovalStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    class ArtworkStatus(models.TextChoices):
        PENDING_UPLOAD = 'pending_upload', 'Pending Upload'
        UNDER_REVIEW = 'under_review', 'Under Review'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    class DesignStatus(models.TextChoices):
        PENDING_DESIGN = 'pending_design', 'Pending Design'
        PENDING_REVIEW = 'pending_review', 'Pending Review'
        APPROVED = 'approved', 'Approved'
        CHANGES_REQUESTED = 'changes_requested', 'Changes Requested'

    class RefundStatus(models.TextChoices):
        NONE = 'none', 'None'
        PENDING = 'pending', 'Pending'
        PROCESSED = 'processed', 'Processed'
        NO_REFUND = 'no_refund', 'No Refund'
        FAILED = 'failed', 'Failed'

    class PriceSource(models.TextChoices):
        ADMIN_OVERRIDE = 'admin_override', 'Admin Override'
        CUSTOMER_FIXED = 'customer_fixed', 'Customer Fixed Price'
        CUSTOMER_DISCOUNT = 'customer_discount', 'Customer Discount'
        CAMPAIGN_FIXED = 'campaign_fixed', 'Campaign Fixed Price'
        CAMPAIGN_DISCOUNT = 'campaign_discount', 'Campaign Discount'
        GLOBAL_FIXED = 'global_fixed', 'Global Fixed Price'
        GLOBAL_DISCOUNT = 'global_discount', 'Global Discount'
        CAMPAIGN_BASE = 'campaign_base', 'Campaign Base Price'
        DEFAULT_TIERED = 'default_tiered', 'Default Tiered Price'

    booking_number = models.CharField(max_length=24, unique=True, db_index=True)

    # Slot
    customer = models.ForeignKey(
        'booking.Customer',
        on_delete=models.PROTECT,
        related_name='bookings'
    )
    campaign = models.ForeignKey(
        'booking.Campaign',
        on_delete=models.PROTECT,
        related_name='bookings'
    )
    route = models.ForeignKey(
        'booking.Route',
        on_delete=models.PROTECT,
        related_name='bookings'
    )
    industry = models.ForeignKey(
        'booking.Industry',
        on_delete=models.PROTECT,
        related_name='bookings'
    )
    subcategory = models.ForeignKey(
        'booking.IndustrySubcategory',
        on_delete=models.PROTECT,
        related_name='bookings',
        blank=True,
        null=True
    )
    industry_subcategory_label = models.CharField(max_length=100, blank=True)
    quantity = models.PositiveSmallIntegerField(default=1)
    slots_released = models.BooleanField(default=False)

    # Contact
    business_name = models.CharField(max_length=255)
    contact_email = models.EmailField()
    contact_phone = models.CharField(max_length=30, blank=True)

    # Status axes
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True
    )
    approval_status = models.CharField(
        max_length=20,
        choices=ApprovalStatus.choices,
        default=ApprovalStatus.PENDING
    )
    artwork_status = models.CharField(
        max_length=20,
        choices=ArtworkStatus.choices,
        default=ArtworkStatus.PENDING_UPLOAD
    )
    design_status = models.CharField(
        max_length=20,
        choices=DesignStatus.choices,
        default=DesignStatus.PENDING_DESIGN
    )
    revision_count = models.PositiveSmallIntegerField(default=0)

    # Pricing (cents)
    base_price_before_discounts = models.IntegerField(default=0)
    discount_amount = models.IntegerField(default=0)
    amount = models.IntegerField(default=0)
    price_source = models.CharField(
        max_length=30,
        choices=PriceSource.choices,
        default=PriceSource.DEFAULT_TIERED
    )
    price_override = models.IntegerField(blank=True, null=True)
    price_override_note = models.TextField(blank=True)
    applied_rule = models.ForeignKey(
        'booking.PricingRule',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='+'
    )
    loyalty_discount_applied = models.BooleanField(default=False)
    counts_toward_loyalty = models.BooleanField(default=True)

    # Payment
    pending_since = models.DateTimeField(default=timezone.now, db_index=True)
    checkout_session_id = models.CharField(max_length=255, blank=True)
    payment_reference = models.CharField(max_length=255, blank=True)
    amount_paid = models.IntegerField(default=0)
    paid_at = models.DateTimeField(blank=True, null=True)
    payment_failure_reason = models.TextField(blank=True)

    # Approval
    approved_at = models.DateTimeField(blank=True, null=True)
    approved_by = models.UUIDField(blank=True, null=True)
    rejected_at = models.DateTimeField(blank=True, null=True)
    rejection_note = models.TextField(blank=True)

    # Artwork
    artwork_file = models.FileField(upload_to='artwork/%Y/%m/', blank=True)
    artwork_file_name = models.CharField(max_length=255, blank=True)
    artwork_uploaded_at = models.DateTimeField(blank=True, null=True)
    artwork_reviewed_at = models.DateTimeField(blank=True, null=True)
    artwork_rejection_reason = models.TextField(blank=True)

    # Design brief
    main_message = models.TextField(blank=True)
    qr_code_url = models.URLField(blank=True)
    brand_colors = models.CharField(max_length=255, blank=True)
    ad_style = models.CharField(max_length=50, blank=True)
    design_notes = models.TextField(blank=True)

    # Contract
    contract_accepted = models.BooleanField(default=False)
    contract_accepted_at = models.DateTimeField(blank=True, null=True)
    contract_version = models.CharField(max_length=20, blank=True)

    # Cancellation
    cancelled_at = models.DateTimeField(blank=True, null=True)
    cancelled_by = models.CharField(max_length=64, blank=True)
    cancellation_reason = models.TextField(blank=True)
    refund_amount = models.IntegerField(default=0)
    refund_status = models.CharField(
        max_length=20,
        choices=RefundStatus.choices,
        default=RefundStatus.NONE
    )

    admin_notes = models.TextField(blank=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['campaign', 'route', 'status']),
            models.Index(fields=['customer', 'status']),
            models.Index(fields=['status', 'payment_status', 'pending_since']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1) & models.Q(quantity__lte=4),
                name='booking_quantity_range'
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name='booking_amount_non_negative'
            ),
            models.CheckConstraint(
                condition=models.Q(
                    amount=models.F('base_price_before_discounts') - models.F('discount_amount')
                ),
                name='booking_amount_matches_breakdown'
            ),
            models.CheckConstraint(
                condition=models.Q(revision_count__lte=2),
                name='booking_revision_cap'
            ),
        ]

    def __str__(self):
        return f"{self.booking_number}: {self.business_name}"

    def save(self, *args, **kwargs):
        if not self.booking_number:
            self.booking_number = self._generate_booking_number()
        super().save(*args, **kwargs)

    def _generate_booking_number(self) -> str:
        """Generate a booking number from the date and the booking id."""
        date_str = timezone.now().strftime('%Y%m%d')
        return f"BK-{date_str}-{self.id.hex[:12].upper()}"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_cancelled(self) -> bool:
        return self.status == self.Status.CANCELLED

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.PaymentStatus.PAID

    @property
    def can_cancel(self) -> bool:
        """Check if booking can be cancelled."""
        return self.status != self.Status.CANCELLED

    @property
    def revisions_remaining(self) -> int:
        return max(0, settings.MAX_DESIGN_REVISIONS - self.revision_count)

    @property
    def is_expired(self) -> bool:
        """Pending payment beyond the hold window."""
        if self.status != self.Status.PENDING or self.is_paid:
            return False
        window = timedelta(minutes=settings.PENDING_BOOKING_EXPIRATION_MINUTES)
        return self.pending_since + window < timezone.now()

    @classmethod
    def get_active_statuses(cls):
        """Statuses that occupy slots."""
        return [cls.Status.PENDING, cls.Status.CONFIRMED]


class DesignRevision(BaseModel):
    """One iteration of the advertisement design awaiting customer sign-off."""

    class Status(models.TextChoices):
        PENDING_REVIEW = 'pending_review', 'Pending Review'
        APPROVED = 'approved', 'Approved'
        CHANGES_REQUESTED = 'changes_requested', 'Changes Requested'

    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name='design_revisions'
    )
    revision_number = models.PositiveSmallIntegerField()
    design_file = models.FileField(upload_to='designs/%Y/%m/')
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING_REVIEW
    )
    customer_feedback = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)
    uploaded_by = models.UUIDField(blank=True, null=True)
    uploaded_at = models.DateTimeField(default=timezone.now)
    reviewed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = 'design_revisions'
        ordering = ['booking', 'revision_number']
        constraints = [
            models.UniqueConstraint(
                fields=['booking', 'revision_number'],
                name='unique_revision_number_per_booking'
            ),
        ]

    def __str__(self):
        return f"{self.booking.booking_number} rev {self.revision_number}"
