# apps/booking/services/dashboard_service.py
"""
Dashboard Service

Headline numbers for the dashboard. Admins see the whole platform;
customers see the open inventory and their own bookings.
"""

from typing import Any, Dict

from django.db.models import Sum

from ..models import Booking, Campaign, Customer, Route, WaitlistEntry
from .admin_notification_service import AdminNotificationService

OPEN_WAITLIST_STATUSES = [WaitlistEntry.Status.ACTIVE, WaitlistEntry.Status.NOTIFIED]


class DashboardService:
    """Aggregates for the admin and customer dashboards."""

    def get_stats(self, customer: Customer, is_admin: bool = False) -> Dict[str, Any]:
        open_campaigns = Campaign.objects.filter(status=Campaign.Status.BOOKING_OPEN)
        totals = open_campaigns.aggregate(
            total=Sum('total_slots'),
            booked=Sum('booked_slots'),
        )
        total_slots = totals['total'] or 0
        booked_slots = totals['booked'] or 0

        stats = {
            'active_routes': Route.objects.filter(status=Route.Status.ACTIVE).count(),
            'open_campaigns': open_campaigns.count(),
            'available_slots': max(0, total_slots - booked_slots),
        }

        if is_admin:
            stats.update(self._platform_stats(customer))
            stats['occupancy_rate'] = (
                round(booked_slots * 100 / total_slots, 1) if total_slots else 0.0
            )
        else:
            stats.update(self._customer_stats(customer))

        return stats

    def _platform_stats(self, admin: Customer) -> Dict[str, Any]:
        active = Booking.objects.exclude(status=Booking.Status.CANCELLED)

        return {
            'total_revenue': Campaign.objects.aggregate(total=Sum('revenue'))['total'] or 0,
            'total_bookings': active.count(),
            'booked_campaigns': active.values('campaign_id').distinct().count(),
            'total_customers': Customer.objects.filter(role=Customer.Role.CUSTOMER).count(),
            'active_waitlist_entries': WaitlistEntry.objects.filter(
                status__in=OPEN_WAITLIST_STATUSES
            ).count(),
            'unhandled_notifications': AdminNotificationService().unhandled_count(admin.id),
        }

    def _customer_stats(self, customer: Customer) -> Dict[str, Any]:
        active = Booking.objects.filter(customer=customer).exclude(
            status=Booking.Status.CANCELLED
        )
        spent = active.filter(
            payment_status=Booking.PaymentStatus.PAID
        ).aggregate(total=Sum('amount_paid'))['total'] or 0

        return {
            'total_bookings': active.count(),
            'booked_campaigns': active.values('campaign_id').distinct().count(),
            'total_spent': spent,
            'active_waitlist_entries': WaitlistEntry.objects.filter(
                customer=customer, status__in=OPEN_WAITLIST_STATUSES
            ).count(),
            'loyalty_slots_earned': customer.loyalty_slots_earned,
            'loyalty_discounts_available': customer.loyalty_discounts_available,
        }
