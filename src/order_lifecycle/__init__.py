"""
Order lifecycle engine.

Creates restaurant orders, prices them, moves them through the
fulfillment state machine and keeps inventory, customer statistics,
promotion usage and status history consistent with every change.
"""

__version__ = "0.1.0"

from order_lifecycle.db.store import OrderStore
from order_lifecycle.lifecycle.manager import OrderLifecycleManager
from order_lifecycle.shared.exceptions import (
    ConsistencyError,
    InvalidTransitionError,
    NotFoundError,
    OrderEngineError,
    ValidationError,
)

__all__ = [
    "OrderLifecycleManager",
    "OrderStore",
    "OrderEngineError",
    "ValidationError",
    "NotFoundError",
    "InvalidTransitionError",
    "ConsistencyError",
]
