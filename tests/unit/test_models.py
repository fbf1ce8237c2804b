"""
Unit tests for request and read models.

Validates the inbound order request rules and the order query filters.
"""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from order_lifecycle.shared.models import (
    CreateOrderRequest,
    OrderFilters,
    OrderItemRequest,
    OrderStatus,
    OrderType,
    PaymentMethod,
)


def valid_request(**overrides) -> dict:
    data = {
        "type": "DINE_IN",
        "customer_id": "c1",
        "restaurant_id": "r1",
        "payment_method": "STRIPE",
        "table_number": "7",
        "items": [{"menu_item_id": "m1", "name": "Pasta", "price": "12.50", "quantity": 1}],
    }
    data.update(overrides)
    return data


class TestOrderItemRequest:
    def test_valid_item(self):
        item = OrderItemRequest(
            menu_item_id="m1",
            name="Pasta",
            price=Decimal("12.50"),
            quantity=2,
            customizations=[{"name": "Extra cheese", "price": "1.00"}],
        )
        assert item.customizations[0].price == Decimal("1.00")
        assert item.customizations[0].group_name is None

    @pytest.mark.parametrize("price", ["0", "-1.00"])
    def test_price_must_be_positive(self, price):
        with pytest.raises(ValidationError):
            OrderItemRequest(menu_item_id="m1", name="Pasta", price=price, quantity=1)

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            OrderItemRequest(menu_item_id="m1", name="Pasta", price="5", quantity=0)

    def test_item_instructions_length(self):
        with pytest.raises(ValidationError):
            OrderItemRequest(
                menu_item_id="m1",
                name="Pasta",
                price="5",
                quantity=1,
                special_instructions="x" * 501,
            )


class TestCreateOrderRequest:
    def test_valid_dine_in(self):
        request = CreateOrderRequest.model_validate(valid_request())

        assert request.type == OrderType.DINE_IN
        assert request.payment_method == PaymentMethod.STRIPE
        assert request.tip_amount == Decimal("0")

    def test_items_must_not_be_empty(self):
        with pytest.raises(ValidationError, match="items"):
            CreateOrderRequest.model_validate(valid_request(items=[]))

    def test_dine_in_requires_table(self):
        with pytest.raises(ValidationError, match="table number"):
            CreateOrderRequest.model_validate(valid_request(table_number=None))

    def test_pickup_requires_pickup_time(self):
        with pytest.raises(ValidationError, match="pickup time"):
            CreateOrderRequest.model_validate(valid_request(type="PICKUP"))

        request = CreateOrderRequest.model_validate(
            valid_request(type="PICKUP", pickup_time=datetime(2026, 10, 19, 18, tzinfo=UTC))
        )
        assert request.pickup_time.hour == 18

    def test_delivery_requires_address(self):
        with pytest.raises(ValidationError, match="delivery address"):
            CreateOrderRequest.model_validate(valid_request(type="DELIVERY"))

    def test_negative_tip_rejected(self):
        with pytest.raises(ValidationError):
            CreateOrderRequest.model_validate(valid_request(tip_amount="-1"))

    def test_order_instructions_length(self):
        with pytest.raises(ValidationError):
            CreateOrderRequest.model_validate(
                valid_request(special_instructions="x" * 1001)
            )

    def test_unknown_payment_method_rejected(self):
        with pytest.raises(ValidationError):
            CreateOrderRequest.model_validate(valid_request(payment_method="BITCOIN"))


class TestOrderFilters:
    def test_comma_separated_statuses(self):
        filters = OrderFilters(restaurant_id="r1", status="PENDING, ACCEPTED")
        assert filters.status == [OrderStatus.PENDING, OrderStatus.ACCEPTED]

    def test_single_status(self):
        filters = OrderFilters(restaurant_id="r1", status=OrderStatus.READY)
        assert filters.status == [OrderStatus.READY]

    def test_list_of_statuses(self):
        filters = OrderFilters(restaurant_id="r1", status=["READY", "DELIVERED"])
        assert filters.status == [OrderStatus.READY, OrderStatus.DELIVERED]

    def test_empty_status_means_any(self):
        assert OrderFilters(restaurant_id="r1", status="").status is None

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            OrderFilters(restaurant_id="r1", status="LOST")

    def test_restaurant_required(self):
        with pytest.raises(ValidationError):
            OrderFilters()
