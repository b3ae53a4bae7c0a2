"""Prometheus metrics for the scoring engine"""

from prometheus_client import Counter, Histogram
from typing import Callable
import time
from functools import wraps

# Cache metrics
cache_hits_total = Counter(
    'affinity_cache_hits_total',
    'Total in-memory cache hits',
    ['cache_type']
)

cache_misses_total = Counter(
    'affinity_cache_misses_total',
    'Total in-memory cache misses',
    ['cache_type']
)

# Degradation metrics
fallbacks_total = Counter(
    'recommendation_fallbacks_total',
    'Operations that degraded to their fallback value',
    ['operation']
)

# Timing metrics
operation_duration_seconds = Histogram(
    'affinity_operation_duration_seconds',
    'Time taken by mining and scoring operations',
    ['operation']
)


def track_duration(operation: str):
    """
    Decorator to track coroutine execution time

    Usage:
        @track_duration("mine_rules")
        async def mine_rules(...):
            pass
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                duration = time.perf_counter() - start_time
                operation_duration_seconds.labels(operation=operation).observe(duration)

        return wrapper

    return decorator


def increment_cache_hit(cache_type: str):
    """Increment cache hit counter"""
    cache_hits_total.labels(cache_type=cache_type).inc()


def increment_cache_miss(cache_type: str):
    """Increment cache miss counter"""
    cache_misses_total.labels(cache_type=cache_type).inc()


def record_fallback(operation: str):
    """Record an operation that returned its fallback value"""
    fallbacks_total.labels(operation=operation).inc()
