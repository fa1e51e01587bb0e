# apps/booking/models/campaign.py
"""
Campaign Model

A campaign is one scheduled mailing cycle with its own slot inventory.
"""

from django.conf import settings
from django.db import models

from shared.common.mixins import BaseModel


def default_total_slots() -> int:
    return settings.DEFAULT_CAMPAIGN_TOTAL_SLOTS


class Campaign(BaseModel):
    """
    A monthly mailing cycle.

    ``booked_slots`` and ``revenue`` are derived counters owned by the
    campaign; they are only written through the slot allocator and the
    reconcile job.
    """

    class Status(models.TextChoices):
        PLANNING = 'planning', 'Planning'
        BOOKING_OPEN = 'booking_open', 'Booking Open'
        BOOKING_CLOSED = 'booking_closed', 'Booking Closed'
        PRINTED = 'printed', 'Printed'
        MAILED = 'mailed', 'Mailed'
        COMPLETED = 'completed', 'Completed'

    name = models.CharField(max_length=255)
    mail_date = models.DateField()
    print_deadline = models.DateField()
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PLANNING,
        db_index=True
    )

    # Slot inventory
    total_slots = models.PositiveIntegerField(default=default_total_slots)
    booked_slots = models.PositiveIntegerField(default=0)
    industry_exclusive = models.BooleanField(
        default=False,
        help_text="Allow only one advertiser per industry on each route"
    )

    # Pricing (cents)
    base_slot_price = models.PositiveIntegerField(blank=True, null=True)
    additional_slot_price = models.PositiveIntegerField(blank=True, null=True)
    revenue = models.BigIntegerField(default=0)

    # Offering; empty means every active route / industry
    routes = models.ManyToManyField(
        'booking.Route',
        related_name='campaigns',
        blank=True,
        db_table='campaign_routes'
    )
    industries = models.ManyToManyField(
        'booking.Industry',
        related_name='campaigns',
        blank=True,
        db_table='campaign_industries'
    )

    class Meta:
        db_table = 'campaigns'
        ordering = ['-mail_date']
        indexes = [
            models.Index(fields=['status', 'mail_date']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(print_deadline__lt=models.F('mail_date')),
                name='campaign_deadline_before_mail_date'
            ),
            models.CheckConstraint(
                condition=models.Q(booked_slots__lte=models.F('total_slots')),
                name='campaign_booked_within_total'
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.mail_date})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def available_slots(self) -> int:
        return max(0, self.total_slots - self.booked_slots)

    @property
    def is_booking_open(self) -> bool:
        return self.status == self.Status.BOOKING_OPEN

    def offers_route(self, route) -> bool:
        """Check whether the route is part of this campaign's offering."""
        if not self.routes.exists():
            return route.is_active
        return self.routes.filter(id=route.id).exists()

    def offers_industry(self, industry) -> bool:
        """Check whether the industry is part of this campaign's offering."""
        if not self.industries.exists():
            return industry.is_active
        return self.industries.filter(id=industry.id).exists()

    def get_offered_routes(self):
        from .catalog import Route

        if self.routes.exists():
            return self.routes.all()
        return Route.objects.filter(status=Route.Status.ACTIVE)

    def get_slot_prices(self):
        """Return (first slot price, additional slot price) in cents."""
        if self.base_slot_price is None:
            return (
                settings.DEFAULT_FIRST_SLOT_PRICE,
                settings.DEFAULT_ADDITIONAL_SLOT_PRICE,
            )
        additional = self.additional_slot_price
        if additional is None:
            additional = self.base_slot_price
        return self.base_slot_price, additional
