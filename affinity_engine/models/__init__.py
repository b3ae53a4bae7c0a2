"""Database models"""

from .base import Base
from .menu_item import MenuItem
from .order import Order, OrderItem

__all__ = [
    "Base",
    "MenuItem",
    "Order",
    "OrderItem",
]
