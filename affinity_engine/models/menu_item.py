"""Menu item model"""

from sqlalchemy import Column, String, Boolean, Float
from .base import Base, TimestampMixin


class MenuItem(Base, TimestampMixin):
    """Menu catalog table, the source of recommendation candidates"""

    __tablename__ = "menu_items"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), index=True)
    price = Column(Float, default=0.0)
    is_available = Column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self):
        return f"<MenuItem(id={self.id}, name='{self.name}')>"
