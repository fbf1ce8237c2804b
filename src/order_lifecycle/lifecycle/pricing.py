"""
Order pricing.

Pure functions over line items, restaurant configuration and an optional
promotion. Nothing here touches the store: the lifecycle manager fetches
the tax rate, service fee, delivery fee and promo row inside its
transaction and passes them in.

Monetary results are rounded to cents with ROUND_HALF_UP. The grand total
is the exact sum of the rounded components, so

    total = subtotal + tax + service_fee + delivery_fee + tip - discount

holds for every breakdown this module produces.
"""

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from order_lifecycle.shared.models import DiscountType

ZERO = Decimal("0")


@dataclass(frozen=True)
class PromoTerms:
    """Promotion terms; PromoCode rows expose the same attributes."""

    discount_type: DiscountType
    discount_value: Decimal
    valid_from: datetime
    valid_until: datetime
    min_order_value: Decimal = ZERO
    max_discount: Decimal | None = None
    usage_limit: int | None = None
    usage_count: int = 0
    is_active: bool = True


@dataclass(frozen=True)
class PriceBreakdown:
    """Monetary fields of an order."""

    subtotal: Decimal
    tax_amount: Decimal
    service_fee: Decimal
    delivery_fee: Decimal
    tip_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


def _customization_price(customization: Any) -> Decimal:
    if isinstance(customization, dict):
        return Decimal(str(customization.get("price", 0)))
    return Decimal(customization.price)


class PricingCalculator:
    """
    Computes order totals.

    Line items are any objects with ``price``, ``quantity`` and
    ``customizations`` (each customization carrying a ``price`` delta),
    e.g. OrderItemRequest.
    """

    def __init__(self, places: int = 2):
        self.places = places
        self._exponent = Decimal(1).scaleb(-places)

    def quantize(self, value: Decimal) -> Decimal:
        return Decimal(value).quantize(self._exponent, rounding=ROUND_HALF_UP)

    def line_total(self, item: Any) -> Decimal:
        """(unit price + customization deltas) x quantity."""
        unit_price = Decimal(item.price) + sum(
            (_customization_price(c) for c in item.customizations), ZERO
        )
        return unit_price * item.quantity

    def subtotal(self, items: Iterable[Any]) -> Decimal:
        return self.quantize(sum((self.line_total(item) for item in items), ZERO))

    def is_promo_applicable(
        self, promo: Any, subtotal: Decimal, now: datetime
    ) -> bool:
        """
        Check a promotion against the order.

        The promo must be active, inside its validity window, below its
        usage limit (when one is set), and the subtotal must reach the
        minimum order value.
        """
        if not getattr(promo, "is_active", True):
            return False
        if not (promo.valid_from <= now <= promo.valid_until):
            return False
        if promo.usage_limit is not None and promo.usage_count >= promo.usage_limit:
            return False
        if subtotal < Decimal(promo.min_order_value or 0):
            return False
        return True

    def promo_discount(
        self, promo: Any | None, subtotal: Decimal, now: datetime | None = None
    ) -> Decimal:
        """
        Discount granted by a promotion, or zero.

        An unusable promotion is not an error: the order simply gets no
        discount. Percentage discounts honour max_discount, and no discount
        exceeds the subtotal.
        """
        if promo is None:
            return self.quantize(ZERO)

        now = now or datetime.now(UTC)
        if not self.is_promo_applicable(promo, subtotal, now):
            return self.quantize(ZERO)

        value = Decimal(promo.discount_value)
        if promo.discount_type == DiscountType.PERCENTAGE:
            discount = subtotal * value / Decimal(100)
            if promo.max_discount is not None:
                discount = min(discount, Decimal(promo.max_discount))
        else:
            discount = value

        discount = min(max(discount, ZERO), subtotal)
        return self.quantize(discount)

    def compute(
        self,
        items: Iterable[Any],
        *,
        tax_rate: Decimal,
        service_fee: Decimal = ZERO,
        delivery_fee: Decimal = ZERO,
        tip_amount: Decimal = ZERO,
        promo: Any | None = None,
        now: datetime | None = None,
        discount_amount: Decimal | None = None,
    ) -> PriceBreakdown:
        """
        Price an order.

        Args:
            items: Line items
            tax_rate: Fraction of the subtotal (0.1 for 10%)
            service_fee: Flat restaurant service fee
            delivery_fee: Delivery zone fee (zero for non-delivery orders)
            tip_amount: Customer tip
            promo: Optional promotion terms
            now: Evaluation time for the promo validity window
            discount_amount: Discount already granted by the promotion
                tracker; replaces the promo evaluation when given

        Returns:
            PriceBreakdown with every amount rounded to cents
        """
        subtotal = self.subtotal(items)
        tax_amount = self.quantize(subtotal * Decimal(tax_rate))
        service_fee = self.quantize(service_fee)
        delivery_fee = self.quantize(delivery_fee)
        tip_amount = self.quantize(tip_amount)
        if discount_amount is None:
            discount_amount = self.promo_discount(promo, subtotal, now)
        else:
            discount_amount = self.quantize(min(max(discount_amount, ZERO), subtotal))

        total_amount = (
            subtotal + tax_amount + service_fee + delivery_fee + tip_amount - discount_amount
        )
        if total_amount < ZERO:
            total_amount = self.quantize(ZERO)

        return PriceBreakdown(
            subtotal=subtotal,
            tax_amount=tax_amount,
            service_fee=service_fee,
            delivery_fee=delivery_fee,
            tip_amount=tip_amount,
            discount_amount=discount_amount,
            total_amount=total_amount,
        )


def compute_totals(items: Iterable[Any], **kwargs) -> PriceBreakdown:
    """Price an order with the default two-decimal calculator."""
    return PricingCalculator().compute(items, **kwargs)
