# apps/booking/services/customer_service.py
"""
Customer Service

Customer profiles are created lazily from access token claims. Admins
keep CRM notes and tags on them.
"""

import uuid
import logging
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Sum

from ..models import Customer, CustomerNote, CustomerTag, Referral
from .loyalty_service import LoyaltyService

logger = logging.getLogger(__name__)


class CustomerService:
    """
    Service class for customer profiles, their loyalty summary and
    the admin CRM notes and tags.
    """

    TAG_MAX_LENGTH = 50

    def get_or_create_from_token(self, user) -> Customer:
        """Return the Customer for an authenticated token user, creating it on first use."""
        from . import BookingValidationError

        try:
            customer_id = uuid.UUID(str(user.id))
        except (TypeError, ValueError):
            raise BookingValidationError(f"Token subject {user.id} is not a valid id")

        role = Customer.Role.ADMIN if user.is_admin else Customer.Role.CUSTOMER

        customer = Customer.objects.filter(id=customer_id).first()
        if customer is not None:
            if customer.role != role:
                customer.role = role
                customer.save(update_fields=['role', 'updated_at'])
            return customer

        email = user.email or f"{customer_id.hex}@customers.invalid"
        if Customer.objects.filter(email=email).exists():
            email = f"{customer_id.hex}@customers.invalid"

        try:
            with transaction.atomic():
                customer = Customer.objects.create(
                    id=customer_id,
                    email=email,
                    name=getattr(user, 'name', '') or '',
                    role=role,
                )
        except IntegrityError:
            # Concurrent first request for the same subject
            return Customer.objects.get(id=customer_id)

        logger.info(f"Created {role} profile {customer.id} for {email}")
        return customer

    def get_customer(self, customer_id: uuid.UUID) -> Customer:
        from . import CustomerNotFoundError

        try:
            return Customer.objects.get(id=customer_id)
        except Customer.DoesNotExist:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")

    def get_summary(self, customer: Customer) -> Dict[str, Any]:
        """Loyalty and referral overview for a customer."""
        loyalty = LoyaltyService()
        loyalty.apply_year_reset(customer)

        threshold = loyalty.get_threshold()
        referrals = Referral.objects.filter(referrer=customer)
        credited = referrals.filter(status=Referral.Status.CREDITED)

        return {
            'customer_id': str(customer.id),
            'email': customer.email,
            'business_name': customer.business_name,
            'role': customer.role,
            'loyalty': {
                'slots_earned': customer.loyalty_slots_earned,
                'threshold': threshold,
                'slots_until_next_discount': threshold - customer.loyalty_slots_earned,
                'discounts_available': customer.loyalty_discounts_available,
                'discount_amount': loyalty.get_discount_amount(),
                'year': customer.loyalty_year_reset,
            },
            'referral': {
                'code': customer.referral_code,
                'referred_by': str(customer.referred_by_id) if customer.referred_by_id else None,
                'referrals_made': referrals.count(),
                'referrals_credited': credited.count(),
                'credit_earned': credited.aggregate(total=Sum('credit_amount'))['total'] or 0,
            },
            'contract_version': settings.CONTRACT_VERSION,
        }

    # ==========================================================================
    # CRM
    # ==========================================================================

    def add_note(self, customer_id: uuid.UUID, note: str,
                 created_by: Optional[uuid.UUID] = None) -> CustomerNote:
        from . import BookingValidationError

        note = (note or '').strip()
        if not note:
            raise BookingValidationError("Note text is required")

        customer = self.get_customer(customer_id)
        customer_note = CustomerNote.objects.create(
            customer=customer, note=note, created_by=created_by
        )
        logger.info(f"Added note {customer_note.id} to customer {customer.id}")
        return customer_note

    def list_notes(self, customer_id: uuid.UUID) -> List[CustomerNote]:
        customer = self.get_customer(customer_id)
        return list(customer.notes.all())

    def normalize_tag(self, tag: str) -> str:
        from . import BookingValidationError

        tag = (tag or '').strip().lower()
        if not tag:
            raise BookingValidationError("Tag is required")
        if len(tag) > self.TAG_MAX_LENGTH:
            raise BookingValidationError(
                f"Tags are limited to {self.TAG_MAX_LENGTH} characters"
            )
        return tag

    def add_tag(self, customer_id: uuid.UUID, tag: str,
                created_by: Optional[uuid.UUID] = None) -> CustomerTag:
        """Tag a customer; tagging twice returns the existing tag."""
        tag = self.normalize_tag(tag)
        customer = self.get_customer(customer_id)

        try:
            with transaction.atomic():
                customer_tag, created = CustomerTag.objects.get_or_create(
                    customer=customer, tag=tag, defaults={'created_by': created_by}
                )
        except IntegrityError:
            return CustomerTag.objects.get(customer=customer, tag=tag)

        if created:
            logger.info(f"Tagged customer {customer.id} as '{tag}'")
        return customer_tag

    def remove_tag(self, customer_id: uuid.UUID, tag: str) -> bool:
        tag = self.normalize_tag(tag)
        customer = self.get_customer(customer_id)
        deleted, _ = CustomerTag.objects.filter(customer=customer, tag=tag).delete()
        return deleted > 0

    def list_tags(self, customer_id: uuid.UUID) -> List[str]:
        customer = self.get_customer(customer_id)
        return list(customer.tags.values_list('tag', flat=True))
