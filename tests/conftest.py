"""
Pytest configuration and fixtures for order lifecycle tests.

Integration fixtures build a fresh on-disk SQLite database per test and
seed one restaurant with its catalog, a customer, a delivery address and
zone, and a set of promo codes.
"""

import sys
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio

# Ensure src/ is on sys.path for local test runs without installation
_SRC = Path(__file__).resolve().parents[1] / "src"
if _SRC.exists() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from order_lifecycle.db.config import DatabaseConfig
from order_lifecycle.db.engine import create_engine
from order_lifecycle.db.init import create_all_tables
from order_lifecycle.db.models import (
    Address,
    Base,
    Customer,
    DeliveryZone,
    MenuItem,
    PromoCode,
    Restaurant,
)
from order_lifecycle.db.session import create_session_maker
from order_lifecycle.db.store import OrderStore
from order_lifecycle.lifecycle.manager import OrderLifecycleManager
from order_lifecycle.shared.models import DiscountType

# Frozen start of the test clock; order numbers are ORD-20261019-NNN
CLOCK_START = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


class TickingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime = CLOCK_START):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


@dataclass
class SeedData:
    restaurant_id: str
    customer_id: str
    other_customer_id: str
    burger_id: str
    fries_id: str
    address_id: str
    far_address_id: str
    percent_promo_id: str
    fixed_promo_id: str
    expired_promo_id: str
    exhausted_promo_id: str


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep developer environment overrides out of tests."""
    monkeypatch.delenv("ORDER_LIFECYCLE_DB_PATH", raising=False)
    monkeypatch.delenv("ORDER_LIFECYCLE_LOG_LEVEL", raising=False)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Async engine over a temporary SQLite file with the full schema."""
    db_engine = create_engine(str(tmp_path / "orders.db"), DatabaseConfig.SQLITE_PRAGMAS)
    await create_all_tables(Base.metadata, db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest.fixture
def store(session_maker) -> OrderStore:
    return OrderStore(session_maker)


@pytest.fixture
def clock_start() -> datetime:
    return CLOCK_START


@pytest.fixture
def clock(clock_start) -> TickingClock:
    return TickingClock(clock_start)


@pytest.fixture
def manager(store, clock) -> OrderLifecycleManager:
    return OrderLifecycleManager(store, clock=clock)


@pytest_asyncio.fixture
async def seed(session_maker) -> SeedData:
    """Reference data shared by integration tests."""
    restaurant = Restaurant(
        name="Bella Vista", tax_rate=Decimal("0.10"), service_fee=Decimal("2.00")
    )
    customer = Customer(
        name="Jane Doe",
        email="jane@example.com",
        total_orders=3,
        total_spent=Decimal("150.00"),
    )
    other_customer = Customer(name="John Smith", email="john@example.com")

    async with session_maker() as session:
        session.add_all([restaurant, customer, other_customer])
        await session.flush()

        burger = MenuItem(
            restaurant_id=restaurant.id,
            name="Burger",
            price=Decimal("10.00"),
            track_inventory=True,
            stock_quantity=20,
            min_stock_level=5,
        )
        fries = MenuItem(
            restaurant_id=restaurant.id,
            name="Fries",
            price=Decimal("3.50"),
            track_inventory=False,
        )
        address = Address(
            customer_id=customer.id,
            street="1 Market St",
            city="San Francisco",
            state="CA",
            zip_code="94103",
        )
        far_address = Address(
            customer_id=customer.id,
            street="9 Rural Rd",
            city="Nowhere",
            state="CA",
            zip_code="99999",
        )
        zone = DeliveryZone(
            restaurant_id=restaurant.id,
            name="Downtown",
            zip_codes=["94103", "94105"],
            delivery_fee=Decimal("4.99"),
        )
        valid_from = CLOCK_START - timedelta(days=1)
        valid_until = CLOCK_START + timedelta(days=30)
        percent_promo = PromoCode(
            code="SAVE20",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("20"),
            max_discount=Decimal("10.00"),
            valid_from=valid_from,
            valid_until=valid_until,
            usage_limit=100,
        )
        fixed_promo = PromoCode(
            code="FIVEOFF",
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("5.00"),
            min_order_value=Decimal("15.00"),
            valid_from=valid_from,
            valid_until=valid_until,
        )
        expired_promo = PromoCode(
            code="SUMMER",
            discount_type=DiscountType.PERCENTAGE,
            discount_value=Decimal("25"),
            valid_from=CLOCK_START - timedelta(days=90),
            valid_until=CLOCK_START - timedelta(days=1),
        )
        exhausted_promo = PromoCode(
            code="ONCE",
            discount_type=DiscountType.FIXED,
            discount_value=Decimal("3.00"),
            valid_from=valid_from,
            valid_until=valid_until,
            usage_limit=1,
            usage_count=1,
        )
        session.add_all(
            [
                burger,
                fries,
                address,
                far_address,
                zone,
                percent_promo,
                fixed_promo,
                expired_promo,
                exhausted_promo,
            ]
        )
        await session.commit()

        return SeedData(
            restaurant_id=restaurant.id,
            customer_id=customer.id,
            other_customer_id=other_customer.id,
            burger_id=burger.id,
            fries_id=fries.id,
            address_id=address.id,
            far_address_id=far_address.id,
            percent_promo_id=percent_promo.id,
            fixed_promo_id=fixed_promo.id,
            expired_promo_id=expired_promo.id,
            exhausted_promo_id=exhausted_promo.id,
        )


@pytest.fixture
def make_request(seed):
    """Factory for order creation payloads against the seeded restaurant."""

    def _make(**overrides) -> dict:
        payload = {
            "type": "DINE_IN",
            "customer_id": seed.customer_id,
            "restaurant_id": seed.restaurant_id,
            "table_number": "12",
            "payment_method": "CASH",
            "items": [
                {
                    "menu_item_id": seed.burger_id,
                    "name": "Burger",
                    "price": "10.00",
                    "quantity": 2,
                }
            ],
        }
        payload.update(overrides)
        return payload

    return _make
