# apps/booking/models/__init__.py
"""
Mail Route Booking Models
"""

from .catalog import Route, Industry, IndustrySubcategory
from .campaign import Campaign
from .customer import Customer, Referral, CustomerNotification, CustomerNote, CustomerTag
from .booking import Booking, DesignRevision
from .pricing import PricingRule, PricingRuleApplication
from .waitlist import WaitlistEntry, WaitlistNotification
from .admin_notification import AdminNotification, AdminNotificationDismissal
from .admin_setting import AdminSetting

__all__ = [
    'Route',
    'Industry',
    'IndustrySubcategory',
    'Campaign',
    'Customer',
    'Referral',
    'CustomerNotification',
    'CustomerNote',
    'CustomerTag',
    'Booking',
    'DesignRevision',
    'PricingRule',
    'PricingRuleApplication',
    'WaitlistEntry',
    'WaitlistNotification',
    'AdminNotification',
    'AdminNotificationDismissal',
    'AdminSetting',
]
