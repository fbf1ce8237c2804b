"""
Database engine creation and management.

Provides async SQLAlchemy engines with proper SQLite configuration,
pragma enforcement, and transaction begin handling.
"""

import logging

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from order_lifecycle.config.models import DatabaseSettings
from order_lifecycle.db.config import DatabaseConfig

logger = logging.getLogger(__name__)

# Module-level engine cache
_orders_engine: AsyncEngine | None = None


def create_engine(
    db_path: str,
    pragmas: dict[str, str | int] | None = None,
    echo: bool = False,
) -> AsyncEngine:
    """
    Create an async SQLAlchemy engine for SQLite with proper configuration.

    This function creates an engine with:
    - aiosqlite async driver
    - PRAGMA enforcement via connection event listeners
    - BEGIN IMMEDIATE for write transactions, so concurrent writers queue on
      the database lock instead of failing when upgrading a read lock
    - Optional SQL query logging

    Args:
        db_path: Path to SQLite database file, or ":memory:"
        pragmas: Dictionary of PRAGMA settings to apply on each connection.
                If None, uses DatabaseConfig.SQLITE_PRAGMAS
        echo: If True, log all SQL queries (useful for debugging)

    Returns:
        Configured AsyncEngine instance

    Example:
        >>> engine = create_engine("data/orders.db")
        >>> async with engine.begin() as conn:
        ...     await conn.execute(text("SELECT 1"))
    """
    if pragmas is None:
        pragmas = DatabaseConfig.SQLITE_PRAGMAS

    engine_kwargs = {}
    if db_path == ":memory:":
        # A single shared connection keeps the in-memory database alive
        engine_kwargs["poolclass"] = StaticPool

    engine = create_async_engine(
        DatabaseConfig.get_db_url(db_path),
        echo=echo,
        **engine_kwargs,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """
        Set SQLite PRAGMAs on each new connection.

        Also disables the driver's implicit BEGIN so that the "begin"
        listener below controls the transaction mode.
        """
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            for command in DatabaseConfig.get_pragma_commands(pragmas):
                cursor.execute(command)
            logger.debug(f"Applied {len(pragmas)} PRAGMAs to connection for {db_path}")
        except Exception as e:
            logger.error(f"Failed to apply PRAGMAs to {db_path}: {e}")
            raise
        finally:
            cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def begin_transaction(conn):
        """Emit BEGIN IMMEDIATE unless the connection is flagged read-only."""
        if conn.get_execution_options().get(DatabaseConfig.READ_ONLY_OPTION):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    logger.info(f"Created async engine for database: {db_path}")
    return engine


def create_engine_from_settings(settings: DatabaseSettings) -> AsyncEngine:
    """Create an engine for the given database settings."""
    return create_engine(
        db_path=settings.path,
        pragmas=DatabaseConfig.pragmas_for(settings),
        echo=settings.echo,
    )


def get_orders_engine(settings: DatabaseSettings | None = None) -> AsyncEngine:
    """
    Get or create the order store engine (singleton).

    Args:
        settings: Database settings used on first creation; defaults to
                  DatabaseSettings() (environment overrides apply)

    Returns:
        AsyncEngine for the order store
    """
    global _orders_engine

    if _orders_engine is None:
        _orders_engine = create_engine_from_settings(settings or DatabaseSettings())
        logger.info("Initialized order store engine")

    return _orders_engine


async def dispose_engines() -> None:
    """
    Dispose of the cached engine and close connections.

    This function should be called during application shutdown to ensure
    clean closure of all database connections and resources.
    """
    global _orders_engine

    if _orders_engine is not None:
        await _orders_engine.dispose()
        logger.info("Disposed order store engine")
        _orders_engine = None


async def check_engine_health(engine: AsyncEngine) -> bool:
    """
    Check if a database engine is healthy and can execute queries.

    Args:
        engine: AsyncEngine to check

    Returns:
        True if engine is healthy, False otherwise
    """
    try:
        async with engine.connect() as conn:
            conn = await conn.execution_options(
                **{DatabaseConfig.READ_ONLY_OPTION: True}
            )
            result = await conn.execute(text("SELECT 1"))
            result.scalar()
        return True
    except Exception as e:
        logger.error(f"Engine health check failed: {e}")
        return False
