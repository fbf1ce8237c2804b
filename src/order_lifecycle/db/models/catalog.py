"""
SQLAlchemy ORM models for the reference tables the order engine reads and
adjusts: restaurants, customers, addresses, delivery zones, menu items and
promo codes.

The engine only mutates the counters on these tables (customer totals,
stock quantity, promo usage) and always through relative updates.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from order_lifecycle.db.models.base import Base, UTCDateTime, new_id, utc_now
from order_lifecycle.shared.models import DiscountType


class Restaurant(Base):
    """
    Restaurant configuration (restaurants).

    Holds the pricing configuration used at order creation: the tax rate as
    a fraction of the subtotal (0.085 for 8.5%) and a flat service fee.
    """

    __tablename__ = "restaurants"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 4), nullable=False, default=Decimal("0"), comment="Fraction, e.g. 0.0850"
    )
    service_fee: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Restaurant(id={self.id}, name='{self.name}', tax_rate={self.tax_rate})>"


class Customer(Base):
    """
    Customer record (customers).

    total_orders and total_spent are a maintained cache of the customer's
    non-cancelled orders; see lifecycle.reconciliation for the recompute.
    """

    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    total_orders: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_spent: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    def __repr__(self) -> str:
        return f"<Customer(id={self.id}, email='{self.email}')>"


class Address(Base):
    """Delivery address (addresses)."""

    __tablename__ = "addresses"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    customer_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    street: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(20), nullable=False, index=True)


class DeliveryZone(Base):
    """
    Delivery zone (delivery_zones).

    A zone covers a list of zip codes for one restaurant and carries the flat
    delivery fee charged for addresses inside it.
    """

    __tablename__ = "delivery_zones"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    restaurant_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    zip_codes: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    delivery_fee: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class MenuItem(Base):
    """
    Menu item (menu_items).

    stock_quantity is only meaningful when track_inventory is set.
    """

    __tablename__ = "menu_items"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    restaurant_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    track_inventory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    stock_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    min_stock_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_menu_items_tracked", "restaurant_id", "track_inventory"),
    )

    def __repr__(self) -> str:
        return (
            f"<MenuItem(id={self.id}, name='{self.name}', "
            f"stock={self.stock_quantity})>"
        )


class PromoCode(Base):
    """
    Promotion code (promo_codes).

    discount_value is a percentage (20 means 20%) for PERCENTAGE codes and an
    amount for FIXED codes. usage_count is incremented once per order that
    actually applied the discount.
    """

    __tablename__ = "promo_codes"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    discount_type: Mapped[DiscountType] = mapped_column(
        Enum(DiscountType, native_enum=False, length=20), nullable=False
    )
    discount_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_discount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    min_order_value: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    valid_from: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
    valid_until: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    usage_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<PromoCode(code='{self.code}', usage={self.usage_count}/{self.usage_limit})>"
