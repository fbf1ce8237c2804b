"""Integration tests for customer statistics reconciliation."""

from decimal import Decimal

import pytest
from sqlalchemy import update

from order_lifecycle.db.models import Customer
from order_lifecycle.lifecycle.reconciliation import reconcile_customer_stats
from order_lifecycle.shared.exceptions import NotFoundError

pytestmark = pytest.mark.integration


async def set_stats(session_maker, customer_id, total_orders, total_spent):
    async with session_maker() as session:
        await session.execute(
            update(Customer)
            .where(Customer.id == customer_id)
            .values(total_orders=total_orders, total_spent=total_spent)
        )
        await session.commit()


class TestReconcileCustomerStats:
    @pytest.mark.asyncio
    async def test_lifecycle_keeps_stats_consistent(self, manager, make_request, seed, store):
        for _ in range(3):
            await manager.create(make_request(customer_id=seed.other_customer_id))
        order = await manager.create(make_request(customer_id=seed.other_customer_id))
        await manager.cancel(order.id)

        drifts = await reconcile_customer_stats(store, customer_id=seed.other_customer_id)
        assert drifts == []

    @pytest.mark.asyncio
    async def test_detects_drift(self, manager, make_request, seed, store, session_maker):
        await manager.create(make_request(customer_id=seed.other_customer_id))
        await set_stats(session_maker, seed.other_customer_id, 7, Decimal("999.99"))

        drifts = await reconcile_customer_stats(store, customer_id=seed.other_customer_id)

        assert len(drifts) == 1
        drift = drifts[0]
        assert drift.customer_id == seed.other_customer_id
        assert (drift.cached_orders, drift.cached_spent) == (7, Decimal("999.99"))
        assert (drift.actual_orders, drift.actual_spent) == (1, Decimal("24.00"))
        assert drift.has_drift

        async with session_maker() as session:
            customer = await session.get(Customer, seed.other_customer_id)
        assert customer.total_orders == 7

    @pytest.mark.asyncio
    async def test_apply_corrects_drift(self, manager, make_request, seed, store, session_maker):
        await manager.create(make_request(customer_id=seed.other_customer_id))
        await set_stats(session_maker, seed.other_customer_id, 0, Decimal("0"))

        drifts = await reconcile_customer_stats(
            store, customer_id=seed.other_customer_id, apply=True
        )
        assert len(drifts) == 1

        async with session_maker() as session:
            customer = await session.get(Customer, seed.other_customer_id)
        assert (customer.total_orders, customer.total_spent) == (1, Decimal("24.00"))
        assert await reconcile_customer_stats(store, customer_id=seed.other_customer_id) == []

    @pytest.mark.asyncio
    async def test_all_customers(self, seed, store):
        """Jane's seeded counters have no orders behind them; John's are zero."""
        drifts = await reconcile_customer_stats(store)
        assert [d.customer_id for d in drifts] == [seed.customer_id]
        assert (drifts[0].actual_orders, drifts[0].actual_spent) == (0, Decimal("0.00"))

    @pytest.mark.asyncio
    async def test_unknown_customer(self, seed, store):
        with pytest.raises(NotFoundError, match="Customer"):
            await reconcile_customer_stats(store, customer_id="nobody")
