"""
Transactional access to the order store.

OrderStore owns transaction boundaries: every write operation of the
lifecycle engine runs inside one ``transaction()`` block, so all of its
side effects commit together or not at all.

Usage:
    store = OrderStore(session_maker)

    async with store.transaction() as uow:
        order = await uow.orders.get(order_id, for_update=True)
        await uow.status_history.insert(order.id, status, note, actor)
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_lifecycle.db.config import DatabaseConfig
from order_lifecycle.db.repositories import (
    AddressRepository,
    CustomerRepository,
    DeliveryZoneRepository,
    MenuItemRepository,
    OrderItemRepository,
    OrderRepository,
    PromoCodeRepository,
    RestaurantRepository,
    SequenceRepository,
    StatusHistoryRepository,
)
from order_lifecycle.shared.exceptions import ConsistencyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UnitOfWork:
    """Repositories sharing one session and therefore one transaction."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.orders = OrderRepository(session)
        self.order_items = OrderItemRepository(session)
        self.status_history = StatusHistoryRepository(session)
        self.menu_items = MenuItemRepository(session)
        self.customers = CustomerRepository(session)
        self.promo_codes = PromoCodeRepository(session)
        self.delivery_zones = DeliveryZoneRepository(session)
        self.restaurants = RestaurantRepository(session)
        self.addresses = AddressRepository(session)
        self.sequences = SequenceRepository(session)


class OrderStore:
    """Session factory wrapper that hands out units of work."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[UnitOfWork]:
        """
        Run a block in one write transaction.

        Commits when the block completes and rolls back when it raises.
        Errors raised inside the block propagate unchanged; a failed commit
        is reported as ConsistencyError.

        Raises:
            ConsistencyError: If the store rejects the commit
        """
        async with self.session_maker() as session:
            try:
                yield UnitOfWork(session)
            except BaseException:
                await session.rollback()
                raise

            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Order store commit failed: {e}")
                raise ConsistencyError(
                    "Transaction commit failed", operation="commit", original_error=e
                ) from e

    async def run_in_transaction(self, fn: Callable[[UnitOfWork], Awaitable[T]]) -> T:
        """Call ``fn(uow)`` inside ``transaction()`` and return its result."""
        async with self.transaction() as uow:
            return await fn(uow)

    @asynccontextmanager
    async def read(self) -> AsyncIterator[UnitOfWork]:
        """
        Read-only access using a deferred transaction.

        Nothing done through the yielded unit of work is committed. Loaded
        objects are detached with their state intact, so they stay readable
        after the block.
        """
        async with self.session_maker() as session:
            await session.connection(
                execution_options={DatabaseConfig.READ_ONLY_OPTION: True}
            )
            try:
                yield UnitOfWork(session)
            finally:
                # Rollback would expire everything still in the identity map
                session.expunge_all()
                await session.rollback()
