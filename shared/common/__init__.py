# Shared Common Library for the Mail Route Booking Service
# This package contains shared utilities, authentication, permissions,
# and other common components used by the Django apps.

__version__ = "1.0.0"
