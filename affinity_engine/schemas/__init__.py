"""Pydantic schemas for order snapshots and engine output"""

from .order import OrderStatus, EXCLUDED_STATUSES, LineItem, OrderRecord, OrderQuery
from .affinity import AffinityRule, ItemSet, AffinityScore
from .profile import UserProfile, SimilarUser, ItemRecommendation, RecommendationResult

__all__ = [
    "OrderStatus",
    "EXCLUDED_STATUSES",
    "LineItem",
    "OrderRecord",
    "OrderQuery",
    "AffinityRule",
    "ItemSet",
    "AffinityScore",
    "UserProfile",
    "SimilarUser",
    "ItemRecommendation",
    "RecommendationResult",
]
