"""Database connection and session management for the reference SQL order store"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from ..config import settings
from ..models.base import Base


def create_db_engine(database_url: str = None) -> Engine:
    """
    Create a database engine

    Args:
        database_url: SQLAlchemy URL, defaults to settings.DATABASE_URL
    """
    database_url = database_url or settings.DATABASE_URL

    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the engine"""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """
    Initialize database tables

    Creates all tables defined in models.
    """

    # Import all models to ensure they're registered
    from ..models import MenuItem, Order, OrderItem  # noqa: F401

    Base.metadata.create_all(bind=engine)
