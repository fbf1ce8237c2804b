"""
SQLAlchemy ORM models for orders and their owned records.

Orders are never deleted: cancellation is a status. Order items are
immutable snapshots of the catalog at ordering time, and status history
rows are append-only.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from order_lifecycle.db.models.base import Base, UTCDateTime, new_id, utc_now
from order_lifecycle.db.models.catalog import Address, Customer, MenuItem, PromoCode
from order_lifecycle.shared.models import (
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
)


class Order(Base):
    """
    Order aggregate (orders).

    Monetary columns are stored with two decimal places and satisfy
    total_amount = subtotal + tax_amount + service_fee + delivery_fee
    + tip_amount - discount_amount (floored at zero).

    Relationships are loaded explicitly by the repository (lazy="raise"),
    so every query states which relations it needs.
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    order_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    type: Mapped[OrderType] = mapped_column(
        Enum(OrderType, native_enum=False, length=20), nullable=False
    )
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, length=20),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    customer_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("customers.id"), nullable=False
    )
    restaurant_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("restaurants.id"), nullable=False
    )

    # Payment ledger
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, native_enum=False, length=20), nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, native_enum=False, length=20),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Amounts
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    service_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    delivery_fee: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tip_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Fulfillment metadata
    table_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    pickup_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    delivery_address_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("addresses.id"), nullable=True
    )
    estimated_delivery_time: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    actual_delivery_time: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    promo_code_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("promo_codes.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now
    )

    customer: Mapped[Customer] = relationship(lazy="raise")
    delivery_address: Mapped[Address | None] = relationship(lazy="raise")
    promo_code: Mapped[PromoCode | None] = relationship(lazy="raise")
    order_items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", lazy="raise", order_by="OrderItem.position"
    )
    status_history: Mapped[list["OrderStatusHistory"]] = relationship(
        back_populates="order", lazy="raise", order_by="OrderStatusHistory.id"
    )

    __table_args__ = (
        Index("idx_orders_restaurant_created", "restaurant_id", "created_at"),
        Index("idx_orders_customer", "customer_id"),
        Index("idx_orders_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Order(order_number='{self.order_number}', status={self.status}, "
            f"total={self.total_amount})>"
        )


class OrderItem(Base):
    """
    Order line item snapshot (order_items).

    customizations holds a JSON list of {"name", "group_name", "price"}
    objects; prices are stored as strings to keep their decimal precision.
    """

    __tablename__ = "order_items"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    order_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    menu_item_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("menu_items.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    customizations: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    order: Mapped[Order] = relationship(back_populates="order_items", lazy="raise")
    menu_item: Mapped[MenuItem] = relationship(lazy="raise")

    def __repr__(self) -> str:
        return f"<OrderItem(name='{self.name}', qty={self.quantity}, price={self.price})>"


class OrderStatusHistory(Base):
    """
    Append-only audit trail of order statuses (order_status_history).

    The integer primary key gives insertion order even when two entries
    share a timestamp.
    """

    __tablename__ = "order_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, native_enum=False, length=20), nullable=False
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utc_now
    )

    order: Mapped[Order] = relationship(back_populates="status_history", lazy="raise")

    def __repr__(self) -> str:
        return f"<OrderStatusHistory(order_id={self.order_id}, status={self.status})>"


class OrderSequence(Base):
    """
    Day-scoped order number counter (order_sequences).

    One row per UTC calendar day; last_value is advanced with a single
    upsert so concurrent creators never observe the same value.
    """

    __tablename__ = "order_sequences"

    day: Mapped[str] = mapped_column(String(8), primary_key=True, comment="YYYYMMDD")
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
