"""
Database connection, schema and transactional store for the order engine.

Usage:
    from order_lifecycle.db import OrderStore, create_engine, create_session_maker

    engine = create_engine("data/orders.db")
    store = OrderStore(create_session_maker(engine))

    async with store.transaction() as uow:
        order = await uow.orders.get(order_id)
"""

from order_lifecycle.db.config import DatabaseConfig
from order_lifecycle.db.engine import (
    check_engine_health,
    create_engine,
    create_engine_from_settings,
    dispose_engines,
    get_orders_engine,
)
from order_lifecycle.db.init import (
    check_database_integrity,
    create_all_tables,
    drop_all_tables,
    ensure_database_directories,
    init_database,
    reset_database,
)
from order_lifecycle.db.session import (
    create_session_maker,
    get_session,
    orders_session_maker,
    reset_session_maker,
)
from order_lifecycle.db.store import OrderStore, UnitOfWork

__all__ = [
    # Configuration
    "DatabaseConfig",
    # Engine management
    "create_engine",
    "create_engine_from_settings",
    "get_orders_engine",
    "dispose_engines",
    "check_engine_health",
    # Session management
    "create_session_maker",
    "orders_session_maker",
    "reset_session_maker",
    "get_session",
    # Store
    "OrderStore",
    "UnitOfWork",
    # Initialization
    "init_database",
    "ensure_database_directories",
    "create_all_tables",
    "drop_all_tables",
    "reset_database",
    "check_database_integrity",
]
