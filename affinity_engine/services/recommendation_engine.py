"""Recommendation engine combining rule-based and collaborative scores"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from .affinity_mining import AffinityMiningService
from .collaborative_filtering import CollaborativeFilteringService
from .order_history import MenuCatalog, OrderHistoryProvider
from ..config import settings
from ..schemas.affinity import AffinityRule, AffinityScore, ItemSet
from ..schemas.profile import ItemRecommendation, RecommendationResult, SimilarUser, UserProfile
from ..utils.cache import utcnow
from ..utils.fallback import empty_list, with_fallback
from ..utils.logging import get_logger

logger = get_logger(__name__)


class RecommendationEngine:
    """
    Public entry point of the scoring engine

    Combines the cart-driven affinity score with the customer-driven
    collaborative score:
        final_score = w * collaborative_score + (1 - w) * affinity_score

    - Affinity rules: good at completing a meal for the current cart
    - Collaborative filtering: good at personalizing for returning customers

    Every operation degrades to a neutral or empty result instead of raising.
    """

    def __init__(
        self,
        order_history: OrderHistoryProvider,
        catalog: Optional[MenuCatalog] = None,
        collaborative_weight: float = None,
        clock: Callable[[], datetime] = utcnow,
        **overrides: Any,
    ):
        """
        Initialize recommendation engine

        Args:
            order_history: Source of historical orders
            catalog: Source of candidate items when the caller gives none
            collaborative_weight: Weight of the collaborative score (1-w for
                affinity). If None, uses settings.COLLABORATIVE_WEIGHT
            clock: Returns the current aware datetime, shared by all caches
            overrides: Extra keyword arguments forwarded to the services
                (e.g. min_support, decay_rate)
        """
        self.order_history = order_history
        self.catalog = catalog
        self.collaborative_weight = (
            collaborative_weight
            if collaborative_weight is not None
            else settings.COLLABORATIVE_WEIGHT
        )

        affinity_keys = {
            "min_support", "min_confidence", "max_rules_per_item",
            "sample_size", "lift_cap", "neutral_score",
        }
        collaborative_keys = {
            "decay_rate", "profile_cache_ttl", "similarity_cache_ttl",
            "profile_order_limit", "strong_preference_threshold",
            "recent_preference_score", "neutral_score",
        }
        unknown = set(overrides) - affinity_keys - collaborative_keys
        if unknown:
            raise TypeError(f"Unknown engine options: {', '.join(sorted(unknown))}")

        self.affinity_service = AffinityMiningService(
            order_history,
            catalog,
            clock=clock,
            **{k: v for k, v in overrides.items() if k in affinity_keys},
        )
        self.collaborative_service = CollaborativeFilteringService(
            order_history,
            clock=clock,
            **{k: v for k, v in overrides.items() if k in collaborative_keys},
        )

    # Combined scoring

    @with_fallback(empty_list, "get_recommendations")
    async def get_recommendations(
        self,
        cart_item_ids: Sequence[str],
        customer_id: Optional[str] = None,
        candidate_ids: Optional[Sequence[str]] = None,
        limit: int = 10,
    ) -> List[RecommendationResult]:
        """
        Get combined recommendations

        Args:
            cart_item_ids: Items already chosen (may be empty)
            customer_id: Customer to personalize for (optional)
            candidate_ids: Items to score. If None, every available catalog item
            limit: Number of results to return

        Returns:
            Results sorted by combined score, cart items excluded
        """
        cart = list(dict.fromkeys(cart_item_ids))

        if candidate_ids is None:
            if self.catalog is None:
                logger.warning("No candidates given and no menu catalog configured")
                return []
            candidate_ids = await self.catalog.list_available_item_ids()

        candidates = [item_id for item_id in dict.fromkeys(candidate_ids) if item_id not in cart]
        if not candidates:
            return []

        affinity_scores = await self.affinity_service.calculate_affinity_scores(candidates, cart)
        collaborative_scores = await self.collaborative_service.calculate_scores(
            candidates, customer_id
        )

        rules_by_item: Dict[str, List[AffinityRule]] = {}
        if cart:
            for rule in await self.affinity_service.mine_rules(cart):
                for item_id in rule.consequent:
                    rules_by_item.setdefault(item_id, []).append(rule)

        neutral = self.affinity_service.neutral_score
        results = []
        for item_id in candidates:
            affinity_score = affinity_scores.get(item_id, neutral)
            collaborative_score = collaborative_scores.get(item_id, neutral)

            # Weighted combination
            score = (
                self.collaborative_weight * collaborative_score
                + (1 - self.collaborative_weight) * affinity_score
            )

            results.append(
                RecommendationResult(
                    item_id=item_id,
                    score=min(1.0, max(0.0, score)),
                    affinity_score=affinity_score,
                    collaborative_score=collaborative_score,
                    rules=rules_by_item.get(item_id, []),
                )
            )

        results.sort(key=lambda r: (-r.score, r.item_id))

        logger.debug(
            f"Scored {len(candidates)} candidates",
            cart_size=len(cart),
            personalized=customer_id is not None
        )

        return results[:limit]

    # Rule-based operations

    async def mine_rules(self, seed_item_ids: Sequence[str]) -> List[AffinityRule]:
        return await self.affinity_service.mine_rules(seed_item_ids)

    async def find_frequent_bundles(self, min_size: int = 2, max_size: int = 3) -> List[ItemSet]:
        return await self.affinity_service.find_frequent_bundles(min_size, max_size)

    async def calculate_affinity_scores(
        self, candidate_ids: Sequence[str], cart_item_ids: Sequence[str]
    ) -> Dict[str, float]:
        return await self.affinity_service.calculate_affinity_scores(candidate_ids, cart_item_ids)

    async def get_complete_meal_suggestions(
        self, cart_item_ids: Sequence[str], limit: int = None
    ) -> List[AffinityScore]:
        return await self.affinity_service.get_complete_meal_suggestions(cart_item_ids, limit)

    async def get_also_bought_suggestions(self, item_id: str, limit: int = None) -> List[AffinityScore]:
        return await self.affinity_service.get_also_bought_suggestions(item_id, limit)

    # Collaborative operations

    async def calculate_scores(
        self, candidate_ids: Sequence[str], customer_id: Optional[str] = None
    ) -> Dict[str, float]:
        return await self.collaborative_service.calculate_scores(candidate_ids, customer_id)

    async def get_user_profile(self, customer_id: str) -> UserProfile:
        return await self.collaborative_service.get_user_profile(customer_id)

    async def get_item_similarity(self, item_id_1: str, item_id_2: str) -> float:
        return await self.collaborative_service.get_item_similarity(item_id_1, item_id_2)

    async def find_similar_users(self, customer_id: str, limit: int = 10) -> List[SimilarUser]:
        return await self.collaborative_service.find_similar_users(customer_id, limit)

    async def get_user_based_recommendations(
        self, customer_id: str, limit: int = 10
    ) -> List[ItemRecommendation]:
        return await self.collaborative_service.get_user_based_recommendations(customer_id, limit)

    # Configuration

    def clear_cache(self) -> None:
        """Clear rule, profile and similarity caches"""
        self.affinity_service.clear_cache()
        self.collaborative_service.clear_cache()

    def set_thresholds(self, min_support: float, min_confidence: float) -> None:
        self.affinity_service.set_thresholds(min_support, min_confidence)

    def set_decay_rate(self, rate: float) -> None:
        self.collaborative_service.set_decay_rate(rate)

    def cache_stats(self) -> List[Dict[str, Any]]:
        """Hit/miss statistics of every cache"""
        return [
            self.affinity_service.rules_cache.stats(),
            self.collaborative_service.profile_cache.stats(),
            self.collaborative_service.similarity_cache.stats(),
        ]
