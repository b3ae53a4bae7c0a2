"""
Shared pytest fixtures for the test suite.

Fixtures provide a controllable clock, an order factory and test doubles for
the order store.
"""

import itertools
from datetime import datetime, timedelta, timezone
from typing import List

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from affinity_engine.models import Base
from affinity_engine.schemas.order import LineItem, OrderQuery, OrderRecord
from affinity_engine.services.order_history import (
    InMemoryMenuCatalog,
    InMemoryOrderHistory,
    OrderHistoryProvider,
)

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to"""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class CountingOrderHistory(InMemoryOrderHistory):
    """In-memory history that records every query it answers"""

    def __init__(self, orders=None):
        super().__init__(orders)
        self.queries: List[OrderQuery] = []

    async def find_orders(self, query: OrderQuery) -> List[OrderRecord]:
        self.queries.append(query)
        return await super().find_orders(query)

    @property
    def calls(self) -> int:
        return len(self.queries)


class UnfilteredOrderHistory(OrderHistoryProvider):
    """Misbehaving store that ignores the status filter"""

    def __init__(self, orders):
        self.orders = list(orders)

    async def find_orders(self, query: OrderQuery) -> List[OrderRecord]:
        return list(self.orders)


class FailingOrderHistory(OrderHistoryProvider):
    """Store that is unreachable for the first `failures` queries"""

    def __init__(self, orders=None, failures: int = None):
        self.delegate = InMemoryOrderHistory(orders)
        self.failures = failures
        self.calls = 0

    async def find_orders(self, query: OrderQuery) -> List[OrderRecord]:
        self.calls += 1
        if self.failures is None or self.calls <= self.failures:
            raise ConnectionError("order store unreachable")
        return await self.delegate.find_orders(query)


_order_ids = itertools.count(1)


def make_order(items, customer_id=None, days_ago: float = 0, status: str = "completed",
               order_id: str = None, now: datetime = NOW) -> OrderRecord:
    """
    Build an order snapshot

    Args:
        items: Item ids, or (item_id, quantity) tuples
    """
    lines = []
    for entry in items:
        if isinstance(entry, tuple):
            lines.append(LineItem(item_id=entry[0], quantity=entry[1]))
        else:
            lines.append(LineItem(item_id=entry, quantity=1))

    return OrderRecord(
        id=order_id or f"order-{next(_order_ids)}",
        customer_id=customer_id,
        status=status,
        created_at=now - timedelta(days=days_ago),
        items=lines,
    )


def repeat(count: int, items, **kwargs) -> List[OrderRecord]:
    """`count` identical orders, one minute apart"""
    start = kwargs.pop("days_ago", 0)
    return [
        make_order(items, days_ago=start + idx / 1440, **kwargs)
        for idx in range(count)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def pizza_orders():
    """
    10 orders containing pizza:
    6 with garlic bread, 3 with coke, 1 alone
    """
    return (
        repeat(6, ["pizza", "garlic_bread"])
        + repeat(3, ["pizza", "coke"])
        + repeat(1, ["pizza"])
    )


@pytest.fixture
def pizza_history(pizza_orders):
    return CountingOrderHistory(pizza_orders)


@pytest.fixture
def menu():
    return InMemoryMenuCatalog(["pizza", "garlic_bread", "coke", "dessert"])


@pytest.fixture
def db_session():
    """Create a test database session"""

    # Use in-memory SQLite for tests
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
