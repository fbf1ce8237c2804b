"""
SQLAlchemy ORM models for the order store.

All models share a single declarative Base so one metadata object creates
the whole schema.
"""

from order_lifecycle.db.models.base import Base, UTCDateTime, new_id, utc_now
from order_lifecycle.db.models.catalog import (
    Address,
    Customer,
    DeliveryZone,
    MenuItem,
    PromoCode,
    Restaurant,
)
from order_lifecycle.db.models.orders import (
    Order,
    OrderItem,
    OrderSequence,
    OrderStatusHistory,
)

__all__ = [
    "Base",
    "UTCDateTime",
    "new_id",
    "utc_now",
    # Reference tables
    "Restaurant",
    "Customer",
    "Address",
    "DeliveryZone",
    "MenuItem",
    "PromoCode",
    # Orders
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "OrderSequence",
]
