"""
Database initialization and schema management.

Provides utilities for creating the order store schema and handling
initial setup and teardown operations.
"""

import logging
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from order_lifecycle.config.models import DatabaseSettings
from order_lifecycle.db.engine import get_orders_engine
from order_lifecycle.db.models import Base

logger = logging.getLogger(__name__)


def ensure_database_directories(settings: DatabaseSettings | None = None) -> None:
    """
    Ensure the directory holding the order store database exists.

    Example:
        >>> ensure_database_directories()
        >>> # data/ directory now exists
    """
    settings = settings or DatabaseSettings()
    if settings.path == ":memory:":
        return

    db_path = Path(settings.path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Ensured database directory exists: {db_path.parent}")


async def init_database(settings: DatabaseSettings | None = None) -> AsyncEngine:
    """
    Initialize the order store.

    This function:
    1. Ensures the database directory exists
    2. Creates the engine (pragmas applied on connect)
    3. Creates any missing tables
    4. Verifies connectivity

    Returns:
        The initialized AsyncEngine
    """
    logger.info("Initializing order store...")

    ensure_database_directories(settings)
    engine = get_orders_engine(settings)
    await create_all_tables(Base.metadata, engine)

    if not await check_database_integrity(engine):
        raise RuntimeError(f"Order store failed integrity check: {engine.url}")

    logger.info("Order store initialized")
    return engine


async def create_all_tables(metadata, engine: AsyncEngine) -> None:
    """
    Create all tables defined in metadata for a specific engine.

    Args:
        metadata: SQLAlchemy MetaData object containing table definitions
        engine: AsyncEngine to create tables in

    Note:
        This function uses SQLAlchemy's create_all() which is idempotent.
        It will not recreate existing tables.
    """
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info(f"Created all tables for engine: {engine.url}")


async def drop_all_tables(metadata, engine: AsyncEngine) -> None:
    """
    Drop all tables defined in metadata for a specific engine.

    WARNING: This is a destructive operation that will delete all data!
    """
    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    logger.warning(f"Dropped all tables for engine: {engine.url}")


async def reset_database(metadata, engine: AsyncEngine) -> None:
    """
    Reset a database by dropping and recreating all tables.

    WARNING: This is a destructive operation that will delete all data!
    """
    logger.warning(f"Resetting database: {engine.url}")
    await drop_all_tables(metadata, engine)
    await create_all_tables(metadata, engine)
    logger.info(f"Database reset complete: {engine.url}")


async def check_database_integrity(engine: AsyncEngine) -> bool:
    """
    Run SQLite's integrity check.

    Returns:
        True if PRAGMA integrity_check reports "ok"
    """
    async with engine.connect() as conn:
        result = await conn.execute(text("PRAGMA integrity_check"))
        status = result.scalar()

    if status != "ok":
        logger.error(f"Integrity check failed for {engine.url}: {status}")
        return False
    return True
