"""Order history schemas"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Set, FrozenSet
from datetime import datetime, timezone
from enum import Enum


class OrderStatus(str, Enum):
    """Order lifecycle states"""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# Orders in these states never feed mining or profiling
EXCLUDED_STATUSES: FrozenSet[str] = frozenset(
    {OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value}
)


class LineItem(BaseModel):
    """A single (item, quantity) entry of an order"""

    item_id: str
    quantity: int = Field(default=1, ge=1)

    class Config:
        frozen = True


class OrderRecord(BaseModel):
    """Read-only snapshot of a historical order"""

    id: str
    customer_id: Optional[str] = None
    status: str = OrderStatus.COMPLETED.value
    created_at: datetime
    items: List[LineItem] = Field(default_factory=list)

    class Config:
        frozen = True

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Naive timestamps are stored as UTC"""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def item_ids(self) -> Set[str]:
        return {line.item_id for line in self.items}

    @property
    def is_countable(self) -> bool:
        return self.status not in EXCLUDED_STATUSES


class OrderQuery(BaseModel):
    """
    Filter for OrderHistoryProvider.find_orders

    Every field set narrows the result; unset fields do not filter.
    """

    item_ids: Optional[List[str]] = None  # Orders containing at least one of these
    customer_id: Optional[str] = None
    exclude_customer_id: Optional[str] = None
    customer_ids: Optional[List[str]] = None
    exclude_statuses: FrozenSet[str] = EXCLUDED_STATUSES
    limit: Optional[int] = Field(default=None, ge=1)
    newest_first: bool = True
