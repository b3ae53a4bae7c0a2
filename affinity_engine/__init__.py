"""Item recommendation scoring engine: affinity rules and temporal-decay collaborative filtering"""

from .services import (
    RecommendationEngine,
    AffinityMiningService,
    CollaborativeFilteringService,
    OrderHistoryProvider,
    MenuCatalog,
    InMemoryOrderHistory,
    InMemoryMenuCatalog,
    SqlOrderHistory,
    SqlMenuCatalog,
)
from .schemas import (
    AffinityRule,
    AffinityScore,
    ItemSet,
    LineItem,
    OrderRecord,
    OrderQuery,
    UserProfile,
    RecommendationResult,
)

__version__ = "1.0.0"

__all__ = [
    "RecommendationEngine",
    "AffinityMiningService",
    "CollaborativeFilteringService",
    "OrderHistoryProvider",
    "MenuCatalog",
    "InMemoryOrderHistory",
    "InMemoryMenuCatalog",
    "SqlOrderHistory",
    "SqlMenuCatalog",
    "AffinityRule",
    "AffinityScore",
    "ItemSet",
    "LineItem",
    "OrderRecord",
    "OrderQuery",
    "UserProfile",
    "RecommendationResult",
]
