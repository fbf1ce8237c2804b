"""
Database session management and context managers.

Provides async session factories and context managers for automatic
transaction handling against the order store.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from order_lifecycle.db.config import DatabaseConfig
from order_lifecycle.db.engine import get_orders_engine

logger = logging.getLogger(__name__)

# Module-level session maker cache
_orders_session_maker: async_sessionmaker[AsyncSession] | None = None


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create a session factory bound to the given engine.

    Objects are not expired on commit: lifecycle operations hand back
    fully loaded orders after their transaction has committed.

    Example:
        >>> SessionMaker = create_session_maker(engine)
        >>> async with SessionMaker() as session:
        ...     result = await session.execute(select(Order))
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        # Auto-flush before queries to ensure all pending changes are visible
        autoflush=True,
        expire_on_commit=False,
    )


def orders_session_maker() -> async_sessionmaker[AsyncSession]:
    """
    Get or create the session maker for the default order store engine.

    Returns:
        async_sessionmaker configured for the order store
    """
    global _orders_session_maker

    if _orders_session_maker is None:
        _orders_session_maker = create_session_maker(get_orders_engine())
        logger.debug("Created order store session maker")

    return _orders_session_maker


def reset_session_maker() -> None:
    """Forget the cached session maker (used after the engine is disposed)."""
    global _orders_session_maker
    _orders_session_maker = None


@asynccontextmanager
async def get_session(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
    read_only: bool = False,
) -> AsyncIterator[AsyncSession]:
    """
    Context manager for order store sessions with automatic transaction handling.

    This context manager:
    - Creates a new session from the session maker
    - Automatically commits on successful completion
    - Automatically rolls back on exception
    - Ensures proper cleanup

    Args:
        session_maker: Factory to use; defaults to the module-level maker
        read_only: Open the transaction with a deferred BEGIN

    Yields:
        AsyncSession for order store operations

    Raises:
        Any exception from database operations (after rollback)
    """
    SessionMaker = session_maker or orders_session_maker()
    async with SessionMaker() as session:
        try:
            if read_only:
                await session.connection(
                    execution_options={DatabaseConfig.READ_ONLY_OPTION: True}
                )
            yield session
            if read_only:
                await session.rollback()
            else:
                await session.commit()
                logger.debug("Order store session committed successfully")
        except Exception as e:
            await session.rollback()
            logger.error(f"Order store session rolled back due to error: {e}")
            raise
        finally:
            await session.close()
