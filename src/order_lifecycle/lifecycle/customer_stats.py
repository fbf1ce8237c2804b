"""Customer order count and lifetime spend, kept in step with orders."""

from decimal import Decimal

from order_lifecycle.db.store import UnitOfWork


class CustomerStatsTracker:
    """
    Maintains Customer.total_orders and Customer.total_spent.

    Both methods must run in the transaction of the order mutation they
    accompany. The counters are a cache; reconciliation.py recomputes
    them from orders.
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def record_order_placed(self, customer_id: str, amount: Decimal) -> None:
        await self.uow.customers.adjust_stats(customer_id, 1, amount)

    async def record_order_cancelled(self, customer_id: str, amount: Decimal) -> None:
        await self.uow.customers.adjust_stats(customer_id, -1, -amount)
