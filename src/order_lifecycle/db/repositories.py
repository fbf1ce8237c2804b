"""
Repositories over the order store.

Each repository wraps the session of the unit of work it belongs to and
never commits: transaction boundaries are owned by OrderStore. Counter
columns (stock, promo usage, customer totals) are only changed with
single relative UPDATE statements so concurrent orders touching the same
row cannot lose updates.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, case, func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from order_lifecycle.db.models import (
    Address,
    Customer,
    DeliveryZone,
    MenuItem,
    Order,
    OrderItem,
    OrderSequence,
    OrderStatusHistory,
    PromoCode,
    Restaurant,
)
from order_lifecycle.shared.exceptions import NotFoundError
from order_lifecycle.shared.models import OrderFilters, OrderStatus

logger = logging.getLogger(__name__)

# Relations populated on every order handed back to callers
ORDER_RELATIONS = (
    selectinload(Order.customer),
    selectinload(Order.order_items).selectinload(OrderItem.menu_item),
    selectinload(Order.delivery_address),
    selectinload(Order.promo_code),
    selectinload(Order.status_history),
)


def _escape_like(term: str) -> str:
    """Make LIKE wildcards in user input match literally (escape char is a backslash)."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class _Repository:
    def __init__(self, session: AsyncSession):
        self.session = session


class OrderRepository(_Repository):
    """Order rows and order queries."""

    async def insert(self, order: Order) -> Order:
        self.session.add(order)
        await self.session.flush()
        return order

    async def update(self, order: Order, **values) -> Order:
        for name, value in values.items():
            setattr(order, name, value)
        await self.session.flush()
        return order

    async def find_by_id(
        self,
        order_id: str,
        *,
        for_update: bool = False,
        hydrate: bool = False,
    ) -> Order | None:
        """
        Load one order.

        Args:
            order_id: Order primary key
            for_update: Lock the row for the rest of the transaction
            hydrate: Populate customer, items, address, promo and history,
                     refreshing any copies already in the session
        """
        stmt = select(Order).where(Order.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        if hydrate:
            stmt = stmt.options(*ORDER_RELATIONS).execution_options(
                populate_existing=True
            )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, order_id: str, **kwargs) -> Order:
        """Like find_by_id but raises NotFoundError when the order is missing."""
        order = await self.find_by_id(order_id, **kwargs)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _filtered(self, filters: OrderFilters, stmt: Select) -> Select:
        stmt = stmt.where(Order.restaurant_id == filters.restaurant_id)

        if filters.status:
            stmt = stmt.where(Order.status.in_(filters.status))
        if filters.type is not None:
            stmt = stmt.where(Order.type == filters.type)
        if filters.customer_id:
            stmt = stmt.where(Order.customer_id == filters.customer_id)
        if filters.start_date is not None:
            stmt = stmt.where(Order.created_at >= filters.start_date)
        if filters.end_date is not None:
            stmt = stmt.where(Order.created_at <= filters.end_date)
        if filters.search:
            pattern = f"%{_escape_like(filters.search.strip())}%"
            stmt = stmt.join(Customer, Order.customer_id == Customer.id).where(
                or_(
                    Order.order_number.ilike(pattern, escape="\\"),
                    Customer.name.ilike(pattern, escape="\\"),
                    Customer.email.ilike(pattern, escape="\\"),
                )
            )
        return stmt

    async def find_many(
        self, filters: OrderFilters, offset: int = 0, limit: int = 20
    ) -> list[Order]:
        """Hydrated orders matching the filters, newest first."""
        stmt = (
            self._filtered(filters, select(Order))
            .order_by(
                Order.created_at.desc(),
                func.length(Order.order_number).desc(),
                Order.order_number.desc(),
            )
            .offset(offset)
            .limit(limit)
            .options(*ORDER_RELATIONS)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count(self, filters: OrderFilters) -> int:
        stmt = self._filtered(filters, select(func.count(Order.id)))
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def totals_by_customer(
        self, customer_id: str | None = None
    ) -> dict[str, tuple[int, Decimal]]:
        """
        Order count and spend per customer over all non-cancelled orders.

        Returns:
            Mapping of customer id to (order count, total spent)
        """
        stmt = (
            select(
                Order.customer_id,
                func.count(Order.id),
                func.coalesce(func.sum(Order.total_amount), 0),
            )
            .where(Order.status != OrderStatus.CANCELLED)
            .group_by(Order.customer_id)
        )
        if customer_id is not None:
            stmt = stmt.where(Order.customer_id == customer_id)
        result = await self.session.execute(stmt)
        return {
            row[0]: (int(row[1]), Decimal(str(row[2])))
            for row in result.all()
        }


class OrderItemRepository(_Repository):
    async def insert_many(self, order_id: str, items: Sequence[OrderItem]) -> list[OrderItem]:
        """Attach line item snapshots to an order, keeping their given order."""
        for position, item in enumerate(items):
            item.order_id = order_id
            item.position = position
        self.session.add_all(items)
        await self.session.flush()
        return list(items)

    async def find_by_order(self, order_id: str) -> list[OrderItem]:
        result = await self.session.execute(
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.position)
        )
        return list(result.scalars().all())


class StatusHistoryRepository(_Repository):
    async def insert(
        self,
        order_id: str,
        status: OrderStatus,
        note: str | None,
        created_by: str,
        created_at: datetime | None = None,
    ) -> OrderStatusHistory:
        entry = OrderStatusHistory(
            order_id=order_id, status=status, note=note, created_by=created_by
        )
        if created_at is not None:
            entry.created_at = created_at
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def find_by_order(self, order_id: str) -> list[OrderStatusHistory]:
        """History entries in the order they were recorded."""
        result = await self.session.execute(
            select(OrderStatusHistory)
            .where(OrderStatusHistory.order_id == order_id)
            .order_by(OrderStatusHistory.id)
        )
        return list(result.scalars().all())


class MenuItemRepository(_Repository):
    async def find_by_id(self, menu_item_id: str) -> MenuItem | None:
        return await self.session.get(MenuItem, menu_item_id)

    async def find_many(self, menu_item_ids: Sequence[str]) -> dict[str, MenuItem]:
        if not menu_item_ids:
            return {}
        result = await self.session.execute(
            select(MenuItem).where(MenuItem.id.in_(set(menu_item_ids)))
        )
        return {item.id: item for item in result.scalars().all()}

    async def adjust_stock(self, menu_item_id: str, delta: int) -> int:
        """
        Apply a relative stock change to an inventory-tracked item.

        The result is floored at zero. Items that do not track inventory
        (or have no stock figure) are left untouched.

        Returns:
            Number of rows updated (0 or 1)
        """
        new_stock = MenuItem.stock_quantity + delta
        stmt = (
            update(MenuItem)
            .where(
                MenuItem.id == menu_item_id,
                MenuItem.track_inventory.is_(True),
                MenuItem.stock_quantity.is_not(None),
            )
            .values(stock_quantity=case((new_stock < 0, 0), else_=new_stock))
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount


class CustomerRepository(_Repository):
    async def find_by_id(self, customer_id: str) -> Customer | None:
        return await self.session.get(Customer, customer_id)

    async def list_ids(self) -> list[str]:
        result = await self.session.execute(select(Customer.id).order_by(Customer.id))
        return list(result.scalars().all())

    async def adjust_stats(
        self, customer_id: str, order_delta: int, spend_delta: Decimal
    ) -> None:
        """Relative update of the order count and lifetime spend."""
        stmt = (
            update(Customer)
            .where(Customer.id == customer_id)
            .values(
                total_orders=Customer.total_orders + order_delta,
                total_spent=Customer.total_spent + spend_delta,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            raise NotFoundError("Customer", customer_id)

    async def set_stats(
        self, customer_id: str, total_orders: int, total_spent: Decimal
    ) -> None:
        """Overwrite the cached counters (reconciliation only)."""
        stmt = (
            update(Customer)
            .where(Customer.id == customer_id)
            .values(total_orders=total_orders, total_spent=total_spent)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)


class PromoCodeRepository(_Repository):
    async def find_by_id(
        self, promo_code_id: str, *, for_update: bool = False
    ) -> PromoCode | None:
        stmt = select(PromoCode).where(PromoCode.id == promo_code_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def increment_usage(self, promo_code_id: str) -> None:
        stmt = (
            update(PromoCode)
            .where(PromoCode.id == promo_code_id)
            .values(usage_count=PromoCode.usage_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)


class DeliveryZoneRepository(_Repository):
    async def find_matching_zone(
        self, restaurant_id: str, zip_code: str
    ) -> DeliveryZone | None:
        """First active zone of the restaurant whose zip code list contains zip_code."""
        result = await self.session.execute(
            select(DeliveryZone)
            .where(
                DeliveryZone.restaurant_id == restaurant_id,
                DeliveryZone.is_active.is_(True),
            )
            .order_by(DeliveryZone.name)
        )
        for zone in result.scalars().all():
            if zip_code in (zone.zip_codes or []):
                return zone
        return None


class RestaurantRepository(_Repository):
    async def find_by_id(self, restaurant_id: str) -> Restaurant | None:
        return await self.session.get(Restaurant, restaurant_id)

    async def get(self, restaurant_id: str) -> Restaurant:
        restaurant = await self.find_by_id(restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant", restaurant_id)
        return restaurant

    async def get_tax_rate(self, restaurant_id: str) -> Decimal:
        restaurant = await self.get(restaurant_id)
        return Decimal(restaurant.tax_rate)

    async def get_service_fee(self, restaurant_id: str) -> Decimal:
        restaurant = await self.get(restaurant_id)
        return Decimal(restaurant.service_fee)


class AddressRepository(_Repository):
    async def find_by_id(self, address_id: str) -> Address | None:
        return await self.session.get(Address, address_id)


class SequenceRepository(_Repository):
    """Day-scoped counters backing order numbers."""

    _UPSERT_DIALECTS = {
        "sqlite": sqlite.insert,
        "postgresql": postgresql.insert,
    }

    async def next_value(self, day: datetime) -> int:
        """
        Atomically advance and return the counter for the given day.

        Uses a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING where
        the dialect supports it, otherwise a locked read followed by write.
        """
        key = day.strftime("%Y%m%d")
        dialect = self.session.get_bind().dialect.name
        insert_fn = self._UPSERT_DIALECTS.get(dialect)

        if insert_fn is not None:
            stmt = (
                insert_fn(OrderSequence)
                .values(day=key, last_value=1)
                .on_conflict_do_update(
                    index_elements=[OrderSequence.day],
                    set_={"last_value": OrderSequence.last_value + 1},
                )
                .returning(OrderSequence.last_value)
            )
            result = await self.session.execute(stmt)
            return result.scalar_one()

        result = await self.session.execute(
            select(OrderSequence).where(OrderSequence.day == key).with_for_update()
        )
        sequence = result.scalar_one_or_none()
        if sequence is None:
            sequence = OrderSequence(day=key, last_value=1)
            self.session.add(sequence)
        else:
            sequence.last_value += 1
        await self.session.flush()
        logger.debug(f"Advanced order sequence {key} without upsert ({dialect})")
        return sequence.last_value
