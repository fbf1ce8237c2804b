"""
Promotion code validation and usage counting.

A promo code that exists but cannot be used (inactive, expired, used up,
or below its minimum order value) produces a zero discount, never an
error. Only a promo code id that does not exist at all is reported, as
NotFoundError.
"""

import logging
from datetime import datetime
from decimal import Decimal

from order_lifecycle.db.models import PromoCode
from order_lifecycle.db.store import UnitOfWork
from order_lifecycle.lifecycle.pricing import PricingCalculator
from order_lifecycle.shared.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class PromotionUsageTracker:
    """Validates promo codes and counts their use within one transaction."""

    def __init__(self, uow: UnitOfWork, calculator: PricingCalculator | None = None):
        self.uow = uow
        self.calculator = calculator or PricingCalculator()

    async def load(self, promo_code_id: str) -> PromoCode:
        """
        Fetch and lock the promo row for the rest of the transaction.

        Raises:
            NotFoundError: If no promo code has this id
        """
        promo = await self.uow.promo_codes.find_by_id(promo_code_id, for_update=True)
        if promo is None:
            raise NotFoundError("PromoCode", promo_code_id)
        return promo

    async def apply_if_valid(
        self, promo_code_id: str, subtotal: Decimal, now: datetime
    ) -> Decimal:
        """Discount the promo grants on this subtotal; zero when it does not apply."""
        promo = await self.load(promo_code_id)
        discount = self.calculator.promo_discount(promo, subtotal, now)
        if not discount:
            logger.info(f"Promo code {promo.code} not applicable; no discount given")
        return discount

    async def record_usage(self, promo_code_id: str) -> None:
        """Count one more order that used the promo code."""
        await self.uow.promo_codes.increment_usage(promo_code_id)
