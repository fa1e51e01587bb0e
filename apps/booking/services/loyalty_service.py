# apps/booking/services/loyalty_service.py
"""
Loyalty Service

Loyalty accrual, discount credits and referral crediting.
"""

import logging
import uuid
from typing import Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from ..models import AdminSetting, Booking, Customer, Referral

logger = logging.getLogger(__name__)


class LoyaltyService:
    """
    Service class for loyalty counters and referrals.

    Every ``threshold`` paid slots in a calendar year earn one discount
    credit. Unused credits carry over; accrual restarts each year.
    """

    # ==========================================================================
    # Configuration
    # ==========================================================================

    def get_threshold(self) -> int:
        return max(1, AdminSetting.get_int('loyalty_slots_threshold', 'LOYALTY_SLOTS_THRESHOLD'))

    def get_discount_amount(self) -> int:
        return AdminSetting.get_int('loyalty_discount_amount', 'LOYALTY_DISCOUNT_AMOUNT')

    def get_referral_credit(self) -> int:
        return AdminSetting.get_int('referral_credit_amount', 'REFERRAL_CREDIT_AMOUNT')

    # ==========================================================================
    # Discounts
    # ==========================================================================

    def available_discounts(self, customer: Customer) -> int:
        return customer.loyalty_discounts_available

    def apply_year_reset(self, customer: Customer, year: Optional[int] = None) -> bool:
        """Zero the accrual counter when the stored year is behind."""
        year = year or timezone.now().year
        if not customer.needs_loyalty_reset(year):
            return False

        customer.loyalty_slots_earned = 0
        customer.loyalty_year_reset = year
        customer.save(update_fields=['loyalty_slots_earned', 'loyalty_year_reset', 'updated_at'])
        logger.info(f"Reset loyalty accrual for customer {customer.id} to year {year}")
        return True

    def consume_discount(self, customer_id: uuid.UUID):
        """Take one loyalty credit; RuleExhaustedError if none is left."""
        from . import RuleExhaustedError

        updated = Customer.objects.filter(
            id=customer_id,
            loyalty_discounts_available__gt=0
        ).update(loyalty_discounts_available=F('loyalty_discounts_available') - 1)

        if not updated:
            logger.warning(f"Loyalty discount for customer {customer_id} used up before commit")
            raise RuleExhaustedError("Loyalty discount is no longer available")

    def restore_discount(self, booking: Booking) -> bool:
        """Give back the loyalty credit of a booking that never got paid."""
        if not booking.loyalty_discount_applied or booking.is_paid:
            return False

        Customer.objects.filter(id=booking.customer_id).update(
            loyalty_discounts_available=F('loyalty_discounts_available') + 1
        )
        logger.info(f"Restored loyalty discount from booking {booking.booking_number}")
        return True

    # ==========================================================================
    # Accrual
    # ==========================================================================

    @transaction.atomic
    def record_confirmed_booking(self, booking: Booking) -> int:
        """
        Accrue a paid booking's slots; returns the number of credits granted.
        """
        customer = Customer.objects.select_for_update().get(id=booking.customer_id)
        self.apply_year_reset(customer)

        if not booking.counts_toward_loyalty:
            return 0

        threshold = self.get_threshold()
        granted, remainder = divmod(customer.loyalty_slots_earned + booking.quantity, threshold)

        customer.loyalty_slots_earned = remainder
        customer.loyalty_discounts_available += granted
        customer.save(update_fields=[
            'loyalty_slots_earned', 'loyalty_discounts_available', 'updated_at'
        ])

        if granted:
            logger.info(
                f"Customer {customer.id} earned {granted} loyalty discount(s) "
                f"from booking {booking.booking_number}"
            )
        return granted

    # ==========================================================================
    # Referrals
    # ==========================================================================

    @transaction.atomic
    def apply_referral_code(self, customer: Customer, code: str) -> Referral:
        """Link a customer to the owner of ``code`` as a pending referral."""
        from . import BookingValidationError

        code = (code or '').strip().upper()
        try:
            referrer = Customer.objects.get(referral_code=code)
        except Customer.DoesNotExist:
            raise BookingValidationError(f"Unknown referral code {code}")

        if referrer.id == customer.id:
            raise BookingValidationError("You cannot refer yourself")

        if customer.referred_by_id or Referral.objects.filter(referred=customer).exists():
            raise BookingValidationError("A referral code has already been applied")

        customer.referred_by = referrer
        customer.save(update_fields=['referred_by', 'updated_at'])

        referral = Referral.objects.create(referrer=referrer, referred=customer)
        logger.info(f"Customer {customer.id} referred by {referrer.id}")
        return referral

    def credit_referral(self, booking: Booking) -> Optional[Referral]:
        """Credit the pending referral of a customer whose booking got paid."""
        referral = Referral.objects.select_for_update().filter(
            referred_id=booking.customer_id,
            status=Referral.Status.PENDING
        ).first()
        if referral is None:
            return None

        referral.credit(self.get_referral_credit(), booking)
        logger.info(
            f"Credited referral {referral.id} to customer {referral.referrer_id} "
            f"after booking {booking.booking_number}"
        )
        return referral
