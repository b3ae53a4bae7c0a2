"""Utility modules"""

from .cache import TTLCache, utcnow
from .fallback import with_fallback
from .logging import setup_logging, get_logger

__all__ = ["TTLCache", "utcnow", "with_fallback", "setup_logging", "get_logger"]
