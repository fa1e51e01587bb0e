# apps/booking/models/catalog.py
"""
Catalog Models

Mail routes and the industry taxonomy that advertisers book against.
"""

from django.db import models

from shared.common.mixins import BaseModel, OrderableMixin


class Route(BaseModel):
    """
    A carrier route identified by its zip code.

    Every campaign offers a fixed number of advertising slots per route.
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'

    zip_code = models.CharField(max_length=10, unique=True)
    name = models.CharField(max_length=255)
    city = models.CharField(max_length=100, blank=True)
    household_count = models.PositiveIntegerField()
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE,
        db_index=True
    )

    class Meta:
        db_table = 'routes'
        ordering = ['zip_code']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(household_count__gte=1),
                name='route_household_count_positive'
            ),
        ]

    def __str__(self):
        return f"{self.zip_code} - {self.name}"

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE


class Industry(OrderableMixin, BaseModel):
    """Top-level advertiser category (e.g. Home Services)."""

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    icon = models.CharField(max_length=50, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE
    )

    class Meta:
        db_table = 'industries'
        ordering = ['sort_order', 'name']
        verbose_name_plural = 'industries'

    def __str__(self):
        return self.name

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE


class IndustrySubcategory(OrderableMixin, BaseModel):
    """A subcategory belonging to exactly one industry."""

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'

    industry = models.ForeignKey(
        Industry,
        on_delete=models.CASCADE,
        related_name='subcategories'
    )
    name = models.CharField(max_length=100)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE
    )

    class Meta:
        db_table = 'industry_subcategories'
        ordering = ['industry', 'sort_order', 'name']
        verbose_name_plural = 'industry subcategories'
        constraints = [
            models.UniqueConstraint(
                fields=['industry', 'name'],
                name='unique_subcategory_per_industry'
            ),
        ]

    def __str__(self):
        return f"{self.industry.name} / {self.name}"
