# apps/booking/models/customer.py
"""
Customer Models

Advertiser profiles keyed by the identity provider's subject id,
with loyalty counters, referrals and in-app notifications.
"""

import secrets

from django.db import models
from django.utils import timezone

from shared.common.mixins import BaseModel


def generate_referral_code() -> str:
    return secrets.token_hex(4).upper()


class Customer(BaseModel):
    """
    Customer or administrator profile.

    ``id`` equals the ``sub`` claim of the access token, so no local
    credentials are stored.
    """

    class Role(models.TextChoices):
        CUSTOMER = 'customer', 'Customer'
        ADMIN = 'admin', 'Admin'

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255, blank=True)
    business_name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CUSTOMER
    )

    # Loyalty
    loyalty_slots_earned = models.PositiveIntegerField(default=0)
    loyalty_discounts_available = models.PositiveIntegerField(default=0)
    loyalty_year_reset = models.PositiveIntegerField(blank=True, null=True)

    # Referrals
    referral_code = models.CharField(
        max_length=16,
        unique=True,
        default=generate_referral_code
    )
    referred_by = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='referred_customers'
    )

    class Meta:
        db_table = 'customers'
        ordering = ['email']

    def __str__(self):
        return self.business_name or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == self.Role.ADMIN

    def needs_loyalty_reset(self, year: int = None) -> bool:
        year = year or timezone.now().year
        return self.loyalty_year_reset is None or self.loyalty_year_reset < year


class Referral(BaseModel):
    """A referrer/referred pair; credited once the referred customer pays."""

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        CREDITED = 'credited', 'Credited'

    referrer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name='referrals_made'
    )
    referred = models.OneToOneField(
        Customer,
        on_delete=models.CASCADE,
        related_name='referral'
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING
    )
    credit_amount = models.PositiveIntegerField(default=0)
    credit_used = models.BooleanField(default=False)
    credited_at = models.DateTimeField(blank=True, null=True)
    qualifying_booking = models.ForeignKey(
        'booking.Booking',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='+'
    )

    class Meta:
        db_table = 'referrals'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.referrer} -> {self.referred} ({self.status})"

    def credit(self, amount: int, booking=None):
        """Mark the referral as credited."""
        if self.status != self.Status.PENDING:
            raise ValueError(f"Referral already {self.status}")
        self.status = self.Status.CREDITED
        self.credit_amount = amount
        self.credited_at = timezone.now()
        self.qualifying_booking = booking
        self.save(update_fields=[
            'status', 'credit_amount', 'credited_at', 'qualifying_booking', 'updated_at'
        ])


class CustomerNotification(BaseModel):
    """In-app notification shown in the customer's inbox."""

    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    link = models.CharField(max_length=500, blank=True)
    is_read = models.BooleanField(default=False)

    class Meta:
        db_table = 'customer_notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['customer', 'is_read']),
        ]

    def __str__(self):
        return f"{self.customer}: {self.title}"


class CustomerNote(BaseModel):
    """Internal CRM note an administrator keeps on a customer."""

    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name='notes'
    )
    note = models.TextField()
    created_by = models.UUIDField(blank=True, null=True)

    class Meta:
        db_table = 'customer_notes'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.customer}: {self.note[:40]}"


class CustomerTag(BaseModel):
    """CRM label on a customer (e.g. ``vip``); stored lowercase."""

    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name='tags'
    )
    tag = models.CharField(max_length=50)
    created_by = models.UUIDField(blank=True, null=True)

    class Meta:
        db_table = 'customer_tags'
        ordering = ['tag']
        constraints = [
            models.UniqueConstraint(
                fields=['customer', 'tag'],
                name='unique_customer_tag'
            ),
        ]

    def __str__(self):
        return f"{self.customer}: {self.tag}"
