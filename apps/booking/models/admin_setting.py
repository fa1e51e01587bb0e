# apps/booking/models/admin_setting.py
"""
Admin Setting Model

Runtime-adjustable key/value settings that override Django settings.
"""

import logging

from django.conf import settings
from django.db import models

from shared.common.mixins import TimestampMixin

logger = logging.getLogger(__name__)


class AdminSetting(TimestampMixin):
    """Key/value setting editable from the admin site."""

    key = models.CharField(max_length=100, primary_key=True)
    value = models.TextField()
    description = models.TextField(blank=True)

    class Meta:
        db_table = 'admin_settings'
        ordering = ['key']

    def __str__(self):
        return f"{self.key}={self.value}"

    @classmethod
    def get_int(cls, key: str, setting_name: str) -> int:
        """
        Read an integer setting.

        A row keyed ``key`` wins over the Django setting ``setting_name``.
        """
        row = cls.objects.filter(key=key).first()
        if row is not None:
            try:
                return int(row.value)
            except ValueError:
                logger.warning(f"Admin setting {key} is not an integer: {row.value!r}")
        return int(getattr(settings, setting_name))
