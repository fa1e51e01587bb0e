# tests/conftest.py
"""
Pytest Configuration and Fixtures

Provides common fixtures for booking platform tests.
"""

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from shared.common.authentication import TokenUser


@pytest.fixture(autouse=True)
def clear_events():
    """Start every test with an empty in-memory event log."""
    from apps.booking.events import event_publisher

    event_publisher.clear()
    yield event_publisher
    event_publisher.clear()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Provide API client for testing."""
    return APIClient()


@pytest.fixture
def today():
    return timezone.localdate()


# ==========================================================================
# Factories
# ==========================================================================

@pytest.fixture
def create_route():
    """Factory fixture for creating routes."""
    from apps.booking.models import Route

    counter = {'n': 0}

    def _create_route(**kwargs):
        counter['n'] += 1
        defaults = {
            'zip_code': f"9{counter['n']:04d}",
            'name': f"Route {counter['n']}",
            'city': 'Springfield',
            'household_count': 1200,
        }
        defaults.update(kwargs)

        return Route.objects.create(**defaults)

    return _create_route


@pytest.fixture
def create_industry():
    """Factory fixture for creating industries."""
    from apps.booking.models import Industry

    counter = {'n': 0}

    def _create_industry(**kwargs):
        counter['n'] += 1
        defaults = {
            'name': f"Industry {counter['n']}",
        }
        defaults.update(kwargs)

        return Industry.objects.create(**defaults)

    return _create_industry


@pytest.fixture
def create_campaign(today):
    """Factory fixture for creating campaigns open for booking."""
    from apps.booking.models import Campaign

    def _create_campaign(**kwargs):
        defaults = {
            'name': 'Spring Mailer',
            'print_deadline': today + timedelta(days=30),
            'mail_date': today + timedelta(days=40),
            'status': Campaign.Status.BOOKING_OPEN,
            'total_slots': 64,
        }
        defaults.update(kwargs)

        return Campaign.objects.create(**defaults)

    return _create_campaign


@pytest.fixture
def create_customer():
    """Factory fixture for creating customers."""
    from apps.booking.models import Customer

    def _create_customer(**kwargs):
        customer_id = kwargs.pop('id', None) or uuid.uuid4()
        defaults = {
            'id': customer_id,
            'email': f"{customer_id.hex[:12]}@example.com",
            'business_name': 'Acme Plumbing',
        }
        defaults.update(kwargs)

        return Customer.objects.create(**defaults)

    return _create_customer


@pytest.fixture
def create_pricing_rule():
    """Factory fixture for creating pricing rules."""
    from apps.booking.models import PricingRule

    def _create_rule(**kwargs):
        defaults = {
            'name': 'Test Rule',
            'rule_type': PricingRule.RuleType.DISCOUNT_PERCENT,
            'value': 10,
            'priority': 1,
        }
        defaults.update(kwargs)

        return PricingRule.objects.create(**defaults)

    return _create_rule


@pytest.fixture
def route(create_route):
    return create_route()


@pytest.fixture
def industry(create_industry):
    return create_industry(name='Home Services')


@pytest.fixture
def campaign(create_campaign):
    return create_campaign()


@pytest.fixture
def customer(create_customer):
    return create_customer()


@pytest.fixture
def admin_customer(create_customer):
    from apps.booking.models import Customer

    return create_customer(email='admin@example.com', role=Customer.Role.ADMIN)


@pytest.fixture
def book(campaign, route, industry):
    """Book slots through the service with sensible defaults."""
    from apps.booking.services import BookingService

    def _book(customer, **kwargs):
        defaults = {
            'campaign_id': campaign.id,
            'route_id': route.id,
            'industry_id': industry.id,
            'quantity': 1,
        }
        defaults.update(kwargs)

        return BookingService().create_booking(customer=customer, **defaults)

    return _book


# ==========================================================================
# Authentication
# ==========================================================================

def make_token_user(sub, roles, email='user@example.com'):
    return TokenUser({
        'sub': str(sub),
        'email': email,
        'name': 'Test User',
        'roles': roles,
    })


@pytest.fixture
def customer_user(customer):
    """Token user whose subject is the ``customer`` fixture."""
    return make_token_user(customer.id, ['customer'], email=customer.email)


@pytest.fixture
def admin_user(admin_customer):
    return make_token_user(admin_customer.id, ['admin'], email=admin_customer.email)


@pytest.fixture
def customer_client(customer_user):
    client = APIClient()
    client.force_authenticate(user=customer_user)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def service_client():
    client = APIClient()
    client.force_authenticate(user=make_token_user(uuid.uuid4(), ['service']))
    return client
