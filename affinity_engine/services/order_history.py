"""Read interfaces to the order store and menu catalog"""

import asyncio
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session, selectinload

from ..models import MenuItem, Order, OrderItem
from ..schemas.order import LineItem, OrderQuery, OrderRecord
from ..utils.logging import get_logger

logger = get_logger(__name__)


class OrderHistoryProvider:
    """Base class for order history sources consumed by the engine"""

    async def find_orders(self, query: OrderQuery) -> List[OrderRecord]:
        """
        Return orders matching the query

        Args:
            query: Filter, limit and ordering of the lookup

        Returns:
            Matching orders, newest first when query.newest_first is set
        """
        raise NotImplementedError


class MenuCatalog:
    """Base class for menu catalog sources"""

    async def list_available_item_ids(self) -> List[str]:
        """Return ids of items that can currently be ordered"""
        raise NotImplementedError


class InMemoryOrderHistory(OrderHistoryProvider):
    """
    List-backed order history

    Applies the same query semantics as the SQL provider. Useful for embedding
    the engine next to an order stream and for tests.
    """

    def __init__(self, orders: Optional[Iterable[OrderRecord]] = None):
        self.orders: List[OrderRecord] = list(orders or [])

    def add(self, order: OrderRecord) -> None:
        self.orders.append(order)

    async def find_orders(self, query: OrderQuery) -> List[OrderRecord]:
        item_ids = set(query.item_ids) if query.item_ids is not None else None
        customer_ids = set(query.customer_ids) if query.customer_ids is not None else None

        matched = []
        for order in self.orders:
            if order.status in query.exclude_statuses:
                continue
            if item_ids is not None and not (order.item_ids & item_ids):
                continue
            if query.customer_id is not None and order.customer_id != query.customer_id:
                continue
            if query.exclude_customer_id is not None and (
                order.customer_id is None or order.customer_id == query.exclude_customer_id
            ):
                continue
            if customer_ids is not None and order.customer_id not in customer_ids:
                continue
            matched.append(order)

        if query.newest_first:
            matched.sort(key=lambda o: o.created_at, reverse=True)

        if query.limit is not None:
            matched = matched[:query.limit]

        return matched


class InMemoryMenuCatalog(MenuCatalog):
    """Static list of available item ids"""

    def __init__(self, item_ids: Optional[Iterable[str]] = None):
        self.item_ids: List[str] = list(item_ids or [])

    async def list_available_item_ids(self) -> List[str]:
        return list(self.item_ids)


class SqlOrderHistory(OrderHistoryProvider):
    """
    Order history backed by the orders / order_items tables

    Queries use a synchronous Session. By default they run inline and block
    the event loop for their duration. With offload=True they run in a worker
    thread via asyncio.to_thread, which needs an engine that allows
    cross-thread use (create_db_engine sets check_same_thread=False for SQLite).

    Args:
        db: Session used for every query
        offload: Run queries in a worker thread
    """

    def __init__(self, db: Session, offload: bool = False):
        self.db = db
        self.offload = offload

    async def find_orders(self, query: OrderQuery) -> List[OrderRecord]:
        if self.offload:
            return await asyncio.to_thread(self._find_orders, query)
        return self._find_orders(query)

    def _find_orders(self, query: OrderQuery) -> List[OrderRecord]:
        q = self.db.query(Order).options(selectinload(Order.items))

        if query.exclude_statuses:
            q = q.filter(Order.status.notin_(list(query.exclude_statuses)))

        if query.item_ids is not None:
            q = q.filter(Order.items.any(OrderItem.menu_item_id.in_(query.item_ids)))

        if query.customer_id is not None:
            q = q.filter(Order.customer_id == query.customer_id)

        if query.exclude_customer_id is not None:
            # NULL customer ids are dropped by the comparison as well
            q = q.filter(Order.customer_id != query.exclude_customer_id)

        if query.customer_ids is not None:
            q = q.filter(Order.customer_id.in_(query.customer_ids))

        if query.newest_first:
            q = q.order_by(Order.created_at.desc(), Order.id)

        if query.limit is not None:
            q = q.limit(query.limit)

        orders = q.all()
        logger.debug(f"Fetched {len(orders)} orders from database")

        return [self._to_record(order) for order in orders]

    @staticmethod
    def _to_record(order: Order) -> OrderRecord:
        return OrderRecord(
            id=order.id,
            customer_id=order.customer_id,
            status=order.status,
            created_at=order.created_at,
            items=[
                LineItem(item_id=item.menu_item_id, quantity=item.quantity)
                for item in order.items
            ],
        )


class SqlMenuCatalog(MenuCatalog):
    """
    Menu catalog backed by the menu_items table

    Blocking like SqlOrderHistory unless offload=True.
    """

    def __init__(self, db: Session, offload: bool = False):
        self.db = db
        self.offload = offload

    async def list_available_item_ids(self) -> List[str]:
        if self.offload:
            return await asyncio.to_thread(self._list_available_item_ids)
        return self._list_available_item_ids()

    def _list_available_item_ids(self) -> List[str]:
        rows = (
            self.db.query(MenuItem.id)
            .filter(MenuItem.is_available.is_(True))
            .order_by(MenuItem.id)
            .all()
        )
        return [row.id for row in rows]
