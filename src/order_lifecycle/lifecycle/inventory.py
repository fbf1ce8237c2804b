"""
Inventory adjustments for inventory-tracked menu items.

Decrements never block an order: stock is floored at zero and oversold
items show up through stock_status() reporting instead.
"""

import logging
from collections.abc import Iterable

from order_lifecycle.db.models import MenuItem
from order_lifecycle.db.store import UnitOfWork
from order_lifecycle.shared.models import StockStatus

logger = logging.getLogger(__name__)


class InventoryAdjuster:
    """Applies stock changes through the current unit of work."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def decrement(self, menu_item_id: str, quantity: int) -> None:
        updated = await self.uow.menu_items.adjust_stock(menu_item_id, -quantity)
        if updated:
            logger.debug(f"Decremented stock of {menu_item_id} by {quantity}")

    async def restore(self, menu_item_id: str, quantity: int) -> None:
        updated = await self.uow.menu_items.adjust_stock(menu_item_id, quantity)
        if updated:
            logger.debug(f"Restored stock of {menu_item_id} by {quantity}")

    async def decrement_items(self, items: Iterable) -> None:
        """Decrement stock for every (menu_item_id, quantity) line."""
        for item in items:
            await self.decrement(item.menu_item_id, item.quantity)

    async def restore_items(self, items: Iterable) -> None:
        for item in items:
            await self.restore(item.menu_item_id, item.quantity)


def stock_status(menu_item: MenuItem) -> StockStatus | None:
    """
    Stock level bucket for reporting.

    Returns None for items that do not track inventory. An item at or
    below its min_stock_level is LOW_STOCK; zero stock is OUT_OF_STOCK.
    """
    if not menu_item.track_inventory or menu_item.stock_quantity is None:
        return None
    if menu_item.stock_quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if (
        menu_item.min_stock_level is not None
        and menu_item.stock_quantity <= menu_item.min_stock_level
    ):
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK
