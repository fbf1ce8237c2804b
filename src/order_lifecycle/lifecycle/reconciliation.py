"""
Customer statistics reconciliation.

Customer.total_orders and Customer.total_spent are maintained
incrementally by the lifecycle manager. This module recomputes them from
the orders table (every order that is not CANCELLED) and reports, and
optionally corrects, any drift.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from order_lifecycle.db.store import OrderStore
from order_lifecycle.shared.exceptions import NotFoundError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass
class CustomerStatsDrift:
    """Cached versus recomputed statistics for one customer."""

    customer_id: str
    cached_orders: int
    cached_spent: Decimal
    actual_orders: int
    actual_spent: Decimal

    @property
    def has_drift(self) -> bool:
        return (
            self.cached_orders != self.actual_orders
            or self.cached_spent != self.actual_spent
        )


async def reconcile_customer_stats(
    store: OrderStore,
    customer_id: str | None = None,
    apply: bool = False,
) -> list[CustomerStatsDrift]:
    """
    Compare cached customer statistics with the order history.

    Args:
        store: Order store
        customer_id: Restrict to one customer; all customers when None
        apply: Overwrite drifted counters with the recomputed values

    Returns:
        One entry per customer whose statistics drifted

    Raises:
        NotFoundError: If customer_id is given and does not exist
    """
    async with store.transaction() as uow:
        if customer_id is not None:
            if await uow.customers.find_by_id(customer_id) is None:
                raise NotFoundError("Customer", customer_id)
            customer_ids = [customer_id]
        else:
            customer_ids = await uow.customers.list_ids()

        actual = await uow.orders.totals_by_customer(customer_id)

        drifts = []
        for cid in customer_ids:
            customer = await uow.customers.find_by_id(cid)
            orders, spent = actual.get(cid, (0, Decimal("0")))
            drift = CustomerStatsDrift(
                customer_id=cid,
                cached_orders=customer.total_orders,
                cached_spent=Decimal(customer.total_spent).quantize(
                    CENTS, rounding=ROUND_HALF_UP
                ),
                actual_orders=orders,
                actual_spent=spent.quantize(CENTS, rounding=ROUND_HALF_UP),
            )
            if not drift.has_drift:
                continue

            drifts.append(drift)
            logger.warning(
                f"Customer {cid} stats drifted: cached "
                f"{drift.cached_orders}/{drift.cached_spent}, actual "
                f"{drift.actual_orders}/{drift.actual_spent}"
            )
            if apply:
                await uow.customers.set_stats(
                    cid, drift.actual_orders, drift.actual_spent
                )

    if apply and drifts:
        logger.info(f"Corrected statistics for {len(drifts)} customer(s)")
    return drifts
