from django.apps import AppConfig


class BookingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.booking'
    label = 'booking'
    verbose_name = 'Mail Route Booking'

    def ready(self):
        """Import signals when app is ready."""
        from . import signals  # noqa: F401
