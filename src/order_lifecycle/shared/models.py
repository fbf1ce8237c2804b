"""
Core data models for the order lifecycle engine.

This module contains the status enumerations shared by the ORM layer and
the engine, the inbound request models validated at the engine boundary,
and the read models returned to callers.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# ================================
# ENUMERATIONS
# ================================


class OrderStatus(str, Enum):
    """Fulfillment status of an order."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    PREPARING = "PREPARING"
    READY = "READY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


class OrderType(str, Enum):
    """How the order is fulfilled."""

    DINE_IN = "DINE_IN"
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"


class PaymentMethod(str, Enum):
    STRIPE = "STRIPE"
    PAYPAL = "PAYPAL"
    SQUARE = "SQUARE"
    CASH = "CASH"
    APPLE_PAY = "APPLE_PAY"
    GOOGLE_PAY = "GOOGLE_PAY"


class PaymentStatus(str, Enum):
    """Payment ledger state. The engine records it, gateways capture funds."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class StockStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


# Actor identifiers recorded on status history entries
ACTOR_SYSTEM = "SYSTEM"
ACTOR_CUSTOMER = "CUSTOMER"


# ================================
# REQUEST MODELS (ENGINE INPUTS)
# ================================


class Customization(BaseModel):
    """A selected customization option and its price delta."""

    name: str = Field(..., min_length=1, description="Option name")
    group_name: str | None = Field(None, description="Customization group name")
    price: Decimal = Field(Decimal("0"), description="Price delta per unit")


class OrderItemRequest(BaseModel):
    """Line item as supplied by the calling layer (catalog snapshot)."""

    menu_item_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, description="Item name at time of order")
    price: Decimal = Field(..., gt=0, description="Unit price at time of order")
    quantity: int = Field(..., ge=1)
    customizations: list[Customization] = Field(default_factory=list)
    special_instructions: str | None = Field(None, max_length=500)


class CreateOrderRequest(BaseModel):
    """Inbound order creation request."""

    type: OrderType
    customer_id: str = Field(..., min_length=1)
    restaurant_id: str = Field(..., min_length=1)
    items: list[OrderItemRequest] = Field(
        ..., min_length=1, description="Order must contain at least one item"
    )

    # Type-specific fields
    table_number: str | None = None
    pickup_time: datetime | None = None
    delivery_address_id: str | None = None

    payment_method: PaymentMethod
    tip_amount: Decimal = Field(Decimal("0"), ge=0)
    promo_code_id: str | None = None
    special_instructions: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def validate_fulfillment_fields(self):
        """Each fulfillment type needs its own destination detail."""
        if self.type == OrderType.DINE_IN and not self.table_number:
            raise ValueError("Dine-in orders require a table number")
        if self.type == OrderType.PICKUP and self.pickup_time is None:
            raise ValueError("Pickup orders require a pickup time")
        if self.type == OrderType.DELIVERY and not self.delivery_address_id:
            raise ValueError("Delivery orders require a delivery address")
        return self


class OrderFilters(BaseModel):
    """Filters accepted by the order query."""

    restaurant_id: str = Field(..., min_length=1)
    status: list[OrderStatus] | None = None
    type: OrderType | None = None
    customer_id: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def split_status(cls, v: Any) -> Any:
        """Accept a single status, a list, or a comma-separated string."""
        if v is None or v == "":
            return None
        if isinstance(v, (str, OrderStatus)):
            v = str(v.value if isinstance(v, OrderStatus) else v).split(",")
        return [s.strip() if isinstance(s, str) else s for s in v]


# ================================
# READ MODELS (ENGINE OUTPUTS)
# ================================


class _ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CustomerView(_ReadModel):
    id: str
    name: str
    email: str
    total_orders: int
    total_spent: Decimal


class AddressView(_ReadModel):
    id: str
    street: str
    city: str
    state: str
    zip_code: str


class PromoCodeView(_ReadModel):
    id: str
    code: str
    discount_type: DiscountType
    discount_value: Decimal


class MenuItemSnapshotView(_ReadModel):
    id: str
    name: str
    price: Decimal


class OrderItemView(_ReadModel):
    id: str
    menu_item_id: str
    name: str
    price: Decimal
    quantity: int
    customizations: list[Customization]
    special_instructions: str | None
    menu_item: MenuItemSnapshotView | None = None


class StatusHistoryView(_ReadModel):
    id: int
    status: OrderStatus
    note: str | None
    created_by: str
    created_at: datetime


class OrderView(_ReadModel):
    """Fully hydrated order as returned by lifecycle operations."""

    id: str
    order_number: str
    type: OrderType
    status: OrderStatus
    customer_id: str
    restaurant_id: str
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_reference: str | None

    subtotal: Decimal
    tax_amount: Decimal
    service_fee: Decimal
    delivery_fee: Decimal
    tip_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal

    table_number: str | None
    pickup_time: datetime | None
    delivery_address_id: str | None
    estimated_delivery_time: datetime | None
    actual_delivery_time: datetime | None
    special_instructions: str | None
    promo_code_id: str | None
    created_at: datetime
    updated_at: datetime

    customer: CustomerView | None = None
    order_items: list[OrderItemView] = Field(default_factory=list)
    delivery_address: AddressView | None = None
    promo_code: PromoCodeView | None = None
    status_history: list[StatusHistoryView] = Field(default_factory=list)


class Pagination(BaseModel):
    total: int
    page: int
    page_size: int
    total_pages: int


class PaginatedOrders(BaseModel):
    data: list[OrderView]
    pagination: Pagination
