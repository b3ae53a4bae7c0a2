"""Explicit degrade-to-default contract for public scoring operations"""

import inspect
from functools import wraps
from typing import Any, Callable

from .logging import get_logger
from .metrics import record_fallback

logger = get_logger(__name__)


def with_fallback(fallback: Callable[..., Any], operation: str):
    """
    Decorator that turns any exception of a coroutine into a fallback value

    The fallback is called with the same (bound, defaults applied) arguments as
    the wrapped coroutine, so it can depend on the input, e.g. a neutral score
    for every candidate.

    Usage:
        @with_fallback(empty_list, "mine_rules")
        async def mine_rules(self, seed_item_ids):
            ...

    Args:
        fallback: Callable producing the value returned on failure
        operation: Name used in logs and the fallback counter
    """
    def decorator(func: Callable):
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"{operation} failed, returning fallback",
                    operation=operation,
                    error=str(e),
                    exc_info=True
                )
                record_fallback(operation)

                bound = signature.bind(*args, **kwargs)
                bound.apply_defaults()
                return fallback(*bound.args, **bound.kwargs)

        wrapper.fallback = fallback
        return wrapper

    return decorator


def empty_list(*args, **kwargs) -> list:
    return []


def zero(*args, **kwargs) -> float:
    return 0.0
