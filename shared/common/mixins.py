# shared/common/mixins.py
"""
Model and view mixins shared by the booking apps.
"""

import uuid
from typing import Any, Dict

from django.db import models


# =============================================================================
# MODEL MIXINS
# =============================================================================

class TimestampMixin(models.Model):
    """Creation and last-change timestamps."""

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class OrderableMixin(models.Model):
    """Manual display order for catalogue entries (industries, subcategories)."""

    sort_order = models.PositiveIntegerField(
        default=0,
        db_index=True,
        help_text="Position in the booking form; lower comes first"
    )

    class Meta:
        abstract = True
        ordering = ['sort_order']


class BaseModel(TimestampMixin):
    """
    UUID-keyed, timestamped base for the booking entities.

    Customer ids are the identity provider's subject, so every table is
    keyed by UUID rather than an auto-increment integer.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True


# =============================================================================
# VIEW MIXINS
# =============================================================================

class MultiSerializerMixin:
    """
    Picks the serializer from ``serializer_classes`` by viewset action,
    falling back to ``serializer_class`` (e.g. ``create`` takes a write
    serializer while ``list`` and ``retrieve`` use the detail one).
    """

    serializer_classes: Dict[str, Any] = {}

    def get_serializer_class(self):
        return self.serializer_classes.get(getattr(self, 'action', None), self.serializer_class)
