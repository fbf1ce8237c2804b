"""
Unit tests for order pricing.

Covers subtotal and tax arithmetic, promo validity rules and discount caps,
and property tests for the total invariant.
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from order_lifecycle.lifecycle.pricing import (
    PriceBreakdown,
    PricingCalculator,
    PromoTerms,
    compute_totals,
)
from order_lifecycle.shared.models import Customization, DiscountType, OrderItemRequest

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


def item(price: str, quantity: int, *deltas: str) -> OrderItemRequest:
    return OrderItemRequest(
        menu_item_id="m1",
        name="Item",
        price=Decimal(price),
        quantity=quantity,
        customizations=[
            Customization(name=f"opt{i}", price=Decimal(d)) for i, d in enumerate(deltas)
        ],
    )


def promo(**overrides) -> PromoTerms:
    terms = {
        "discount_type": DiscountType.PERCENTAGE,
        "discount_value": Decimal("20"),
        "valid_from": NOW - timedelta(days=1),
        "valid_until": NOW + timedelta(days=1),
    }
    terms.update(overrides)
    return PromoTerms(**terms)


class TestSubtotal:
    """Tests for line and subtotal arithmetic."""

    def test_line_total_includes_customizations(self):
        calc = PricingCalculator()
        assert calc.line_total(item("10.00", 2, "1.50", "0.25")) == Decimal("23.50")

    def test_subtotal_sums_lines(self):
        calc = PricingCalculator()
        items = [item("10.00", 2), item("3.50", 1, "0.50")]
        assert calc.subtotal(items) == Decimal("24.00")

    def test_customization_dicts_are_accepted(self):
        """Stored line items keep customizations as JSON dicts."""

        class StoredLine:
            price = Decimal("4.00")
            quantity = 3
            customizations = [{"name": "Cheese", "price": "1.00"}]

        assert PricingCalculator().line_total(StoredLine()) == Decimal("15.00")

    def test_rounding_is_half_up(self):
        calc = PricingCalculator()
        assert calc.quantize(Decimal("2.345")) == Decimal("2.35")
        assert calc.quantize(Decimal("2.344")) == Decimal("2.34")


class TestComputeTotals:
    """Tests for the full price breakdown."""

    def test_dine_in_example(self):
        """price=10, qty=2, 10% tax, 2.00 fee, 3.00 tip."""
        result = compute_totals(
            [item("10", 2)],
            tax_rate=Decimal("0.1"),
            service_fee=Decimal("2"),
            tip_amount=Decimal("3"),
        )

        assert result.subtotal == Decimal("20.00")
        assert result.tax_amount == Decimal("2.00")
        assert result.service_fee == Decimal("2.00")
        assert result.delivery_fee == Decimal("0.00")
        assert result.discount_amount == Decimal("0.00")
        assert result.total_amount == Decimal("27.00")

    def test_delivery_fee_is_added(self):
        result = compute_totals(
            [item("10", 1)], tax_rate=Decimal("0"), delivery_fee=Decimal("4.99")
        )
        assert result.total_amount == Decimal("14.99")

    def test_as_dict_has_order_columns(self):
        result = compute_totals([item("10", 1)], tax_rate=Decimal("0"))
        assert set(result.as_dict()) == {
            "subtotal",
            "tax_amount",
            "service_fee",
            "delivery_fee",
            "tip_amount",
            "discount_amount",
            "total_amount",
        }

    def test_promo_discount_is_subtracted(self):
        result = compute_totals(
            [item("25", 2)],
            tax_rate=Decimal("0"),
            promo=promo(),
            now=NOW,
        )
        assert result.discount_amount == Decimal("10.00")
        assert result.total_amount == Decimal("40.00")

    def test_precomputed_discount_replaces_promo(self):
        result = compute_totals(
            [item("25", 2)],
            tax_rate=Decimal("0"),
            promo=promo(),
            now=NOW,
            discount_amount=Decimal("2.5"),
        )
        assert result.discount_amount == Decimal("2.50")
        assert result.total_amount == Decimal("47.50")

    def test_precomputed_discount_capped_at_subtotal(self):
        result = compute_totals(
            [item("5", 1)],
            tax_rate=Decimal("0"),
            service_fee=Decimal("2"),
            discount_amount=Decimal("8"),
        )
        assert result.discount_amount == Decimal("5.00")
        assert result.total_amount == Decimal("2.00")


class TestPromoDiscount:
    """Tests for promo validation and discount caps."""

    def test_percentage_capped_at_max_discount(self):
        """20% of 100 is 20, but max_discount caps it at 10."""
        calc = PricingCalculator()
        discount = calc.promo_discount(
            promo(max_discount=Decimal("10")), Decimal("100"), NOW
        )
        assert discount == Decimal("10.00")

    def test_percentage_below_cap(self):
        calc = PricingCalculator()
        discount = calc.promo_discount(
            promo(max_discount=Decimal("50")), Decimal("100"), NOW
        )
        assert discount == Decimal("20.00")

    def test_fixed_discount_capped_at_subtotal(self):
        calc = PricingCalculator()
        discount = calc.promo_discount(
            promo(discount_type=DiscountType.FIXED, discount_value=Decimal("15")),
            Decimal("12.00"),
            NOW,
        )
        assert discount == Decimal("12.00")

    def test_expired_promo_gives_zero(self):
        calc = PricingCalculator()
        expired = promo(
            valid_from=NOW - timedelta(days=10), valid_until=NOW - timedelta(days=1)
        )
        assert calc.promo_discount(expired, Decimal("100"), NOW) == Decimal("0.00")

    def test_not_yet_valid_promo_gives_zero(self):
        calc = PricingCalculator()
        future = promo(valid_from=NOW + timedelta(hours=1))
        assert calc.promo_discount(future, Decimal("100"), NOW) == Decimal("0.00")

    def test_window_bounds_are_inclusive(self):
        calc = PricingCalculator()
        edge = promo(valid_from=NOW, valid_until=NOW)
        assert calc.promo_discount(edge, Decimal("100"), NOW) == Decimal("20.00")

    def test_usage_limit_reached_gives_zero(self):
        calc = PricingCalculator()
        used_up = promo(usage_limit=5, usage_count=5)
        assert calc.promo_discount(used_up, Decimal("100"), NOW) == Decimal("0.00")

    def test_usage_below_limit_applies(self):
        calc = PricingCalculator()
        assert calc.promo_discount(
            promo(usage_limit=5, usage_count=4), Decimal("100"), NOW
        ) == Decimal("20.00")

    def test_min_order_value_not_met_gives_zero(self):
        calc = PricingCalculator()
        minimum = promo(min_order_value=Decimal("50"))
        assert calc.promo_discount(minimum, Decimal("49.99"), NOW) == Decimal("0.00")
        assert calc.promo_discount(minimum, Decimal("50"), NOW) == Decimal("10.00")

    def test_inactive_promo_gives_zero(self):
        calc = PricingCalculator()
        assert calc.promo_discount(
            promo(is_active=False), Decimal("100"), NOW
        ) == Decimal("0.00")

    def test_no_promo_gives_zero(self):
        assert PricingCalculator().promo_discount(None, Decimal("100"), NOW) == Decimal(
            "0.00"
        )


money = st.decimals(
    min_value=Decimal("0.01"), max_value=Decimal("500"), places=2, allow_nan=False
)


class TestPricingProperties:
    """Property tests for the total invariant."""

    @given(
        prices=st.lists(money, min_size=1, max_size=6),
        quantity=st.integers(min_value=1, max_value=10),
        tax_rate=st.decimals(min_value=Decimal("0"), max_value=Decimal("0.25"), places=4),
        service_fee=st.decimals(min_value=Decimal("0"), max_value=Decimal("20"), places=2),
        delivery_fee=st.decimals(min_value=Decimal("0"), max_value=Decimal("15"), places=2),
        tip=st.decimals(min_value=Decimal("0"), max_value=Decimal("50"), places=2),
        discount_value=st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=2),
        discount_type=st.sampled_from(list(DiscountType)),
    )
    @settings(max_examples=200, deadline=None)
    def test_total_is_deterministic_and_consistent(
        self,
        prices,
        quantity,
        tax_rate,
        service_fee,
        delivery_fee,
        tip,
        discount_value,
        discount_type,
    ):
        items = [item(str(p), quantity) for p in prices]
        terms = promo(discount_type=discount_type, discount_value=discount_value)
        kwargs = dict(
            tax_rate=tax_rate,
            service_fee=service_fee,
            delivery_fee=delivery_fee,
            tip_amount=tip,
            promo=terms,
            now=NOW,
        )

        first = compute_totals(items, **kwargs)
        second = compute_totals(items, **kwargs)

        assert isinstance(first, PriceBreakdown)
        assert first == second
        assert first.total_amount >= 0
        assert first.discount_amount <= first.subtotal
        assert first.total_amount == (
            first.subtotal
            + first.tax_amount
            + first.service_fee
            + first.delivery_fee
            + first.tip_amount
            - first.discount_amount
        )

    @given(subtotal=money, cap=money)
    def test_percentage_discount_never_exceeds_cap(self, subtotal, cap):
        calc = PricingCalculator()
        discount = calc.promo_discount(
            promo(discount_value=Decimal("100"), max_discount=cap), subtotal, NOW
        )
        assert discount <= cap
        assert discount <= subtotal


@pytest.mark.parametrize(
    ("places", "expected"),
    [(2, Decimal("1.23")), (0, Decimal("1")), (3, Decimal("1.235"))],
)
def test_calculator_places(places, expected):
    assert PricingCalculator(places).quantize(Decimal("1.2345")) == expected
