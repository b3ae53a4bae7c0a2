"""Recommendation services"""

from .order_history import (
    OrderHistoryProvider,
    MenuCatalog,
    InMemoryOrderHistory,
    InMemoryMenuCatalog,
    SqlOrderHistory,
    SqlMenuCatalog,
)
from .affinity_mining import AffinityMiningService, get_complementary_categories
from .collaborative_filtering import (
    BusinessVertical,
    CollaborativeFilteringService,
    calculate_optimal_decay_rate,
)
from .recommendation_engine import RecommendationEngine

__all__ = [
    "OrderHistoryProvider",
    "MenuCatalog",
    "InMemoryOrderHistory",
    "InMemoryMenuCatalog",
    "SqlOrderHistory",
    "SqlMenuCatalog",
    "AffinityMiningService",
    "get_complementary_categories",
    "BusinessVertical",
    "CollaborativeFilteringService",
    "calculate_optimal_decay_rate",
    "RecommendationEngine",
]
