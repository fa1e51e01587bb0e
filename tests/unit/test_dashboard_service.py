# tests/unit/test_dashboard_service.py
"""
Unit Tests for the Dashboard Service
"""

import pytest

from apps.booking.models import Campaign, Customer
from apps.booking.services import BookingService, DashboardService


@pytest.mark.django_db
class TestDashboardService:
    """Tests for DashboardService.get_stats."""

    def setup_method(self):
        self.service = DashboardService()

    def test_empty_platform(self, admin_customer):
        stats = self.service.get_stats(admin_customer, is_admin=True)

        assert stats['available_slots'] == 0
        assert stats['occupancy_rate'] == 0.0
        assert stats['total_revenue'] == 0
        assert stats['total_customers'] == 0

    def test_admin_stats(self, admin_customer, customer, create_customer, create_campaign,
                         create_route, book, campaign):
        create_route(status='inactive')
        create_campaign(status=Campaign.Status.PLANNING, total_slots=100)

        paid = book(customer, quantity=4).booking
        BookingService().record_payment(paid.id, reference='pi_dash')
        book(customer, quantity=4)
        cancelled = book(create_customer(), quantity=4).booking
        BookingService().cancel(cancelled.id, cancelled.customer_id)

        campaign.refresh_from_db()
        stats = self.service.get_stats(admin_customer, is_admin=True)

        assert stats['active_routes'] == 1
        assert stats['open_campaigns'] == 1
        assert stats['available_slots'] == 56
        assert stats['occupancy_rate'] == 12.5
        assert stats['total_bookings'] == 2
        assert stats['booked_campaigns'] == 1
        assert stats['total_revenue'] == campaign.revenue == paid.amount
        assert stats['total_customers'] == Customer.objects.filter(role='customer').count() == 2
        # Three new bookings plus the customer's cancellation
        assert stats['unhandled_notifications'] == 4
        assert 'total_spent' not in stats

    def test_customer_stats(self, customer, create_customer, book):
        mine = book(customer, quantity=2).booking
        BookingService().record_payment(mine.id, reference='pi_mine')
        book(customer)
        book(create_customer(), quantity=3)

        stats = self.service.get_stats(customer)

        assert stats['total_bookings'] == 2
        assert stats['booked_campaigns'] == 1
        assert stats['total_spent'] == mine.amount
        assert stats['available_slots'] == 58
        assert stats['active_waitlist_entries'] == 0
        assert 'total_revenue' not in stats
        assert 'unhandled_notifications' not in stats
