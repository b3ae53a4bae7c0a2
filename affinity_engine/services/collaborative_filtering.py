"""Collaborative Filtering with Temporal Decay

Recent behavior is weighted more than old behavior:
    weight = e^(-λt), t = days since the order

Exponential decay degrades old signal gradually instead of cutting it off at
a window boundary.
"""

import numpy as np
from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from .order_history import OrderHistoryProvider
from ..config import settings
from ..schemas.order import OrderQuery, OrderRecord
from ..schemas.profile import ItemRecommendation, SimilarUser, UserProfile
from ..utils.cache import TTLCache, utcnow
from ..utils.fallback import empty_list, with_fallback, zero
from ..utils.logging import get_logger
from ..utils.metrics import track_duration

logger = get_logger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class BusinessVertical(str, Enum):
    """Business types with known preference drift"""

    FOOD = "food"
    FASHION = "fashion"
    ELECTRONICS = "electronics"
    BOOKS = "books"


DECAY_RATES: Dict[str, float] = {
    BusinessVertical.FOOD.value: 0.1,  # Preferences change weekly, ~7 day half-life
    BusinessVertical.FASHION.value: 0.05,  # Seasonal trends
    BusinessVertical.ELECTRONICS.value: 0.02,  # Stable preferences
    BusinessVertical.BOOKS.value: 0.03,
}
DEFAULT_DECAY_RATE = 0.05


def calculate_optimal_decay_rate(vertical: str) -> float:
    """
    Decay rate (λ) suited to a business vertical

    Higher = more aggressive decay (only recent matters)
    Lower = slower decay (long history matters)
    """
    if isinstance(vertical, BusinessVertical):
        vertical = vertical.value
    return DECAY_RATES.get(vertical, DEFAULT_DECAY_RATE)


def _countable(orders: Iterable[OrderRecord]) -> List[OrderRecord]:
    return [order for order in orders if order.is_countable]


def _normalize(values: Dict[str, float]) -> Dict[str, float]:
    """Scale so the largest entry becomes 1.0"""

    if not values:
        return {}

    max_value = max(values.values())
    if max_value <= 0:
        return {key: 0.0 for key in values}

    return {key: value / max_value for key, value in values.items()}


def _empty_profile(service, customer_id) -> UserProfile:
    return UserProfile(customer_id=customer_id, last_built=service.clock())


def _neutral_scores(service, candidate_ids, customer_id=None) -> Dict[str, float]:
    return {item_id: service.neutral_score for item_id in candidate_ids}


class CollaborativeFilteringService:
    """
    Customer preference profiles and item/user similarity

    Item-item similarity is the Jaccard index of the customer sets that
    ordered each item. User-user similarity is an overlap count against the
    target's preferred items, normalized by the best candidate.
    """

    def __init__(
        self,
        order_history: OrderHistoryProvider,
        decay_rate: float = None,
        profile_cache_ttl: float = None,
        similarity_cache_ttl: float = None,
        profile_order_limit: int = None,
        strong_preference_threshold: float = None,
        recent_preference_score: float = None,
        neutral_score: float = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize collaborative filtering service

        Args:
            order_history: Source of historical orders
            decay_rate: λ of the temporal decay. If None, uses settings.DECAY_RATE
                or the rate of settings.BUSINESS_VERTICAL
            profile_cache_ttl: Seconds a built profile is reused
            similarity_cache_ttl: Seconds an item similarity is reused
            profile_order_limit: Most recent orders used to build a profile
            strong_preference_threshold: Decayed preference above which a
                candidate counts as just bought
            recent_preference_score: Score given to just-bought candidates
            neutral_score: Score for candidates without evidence
            clock: Returns the current aware datetime
        """
        self.order_history = order_history
        self.clock = clock

        if decay_rate is None:
            decay_rate = (
                settings.DECAY_RATE
                if settings.DECAY_RATE is not None
                else calculate_optimal_decay_rate(settings.BUSINESS_VERTICAL)
            )
        self.decay_rate = decay_rate

        self.profile_order_limit = (
            profile_order_limit if profile_order_limit is not None else settings.PROFILE_ORDER_LIMIT
        )
        self.strong_preference_threshold = (
            strong_preference_threshold
            if strong_preference_threshold is not None
            else settings.STRONG_PREFERENCE_THRESHOLD
        )
        self.recent_preference_score = (
            recent_preference_score
            if recent_preference_score is not None
            else settings.RECENT_PREFERENCE_SCORE
        )
        self.neutral_score = neutral_score if neutral_score is not None else settings.NEUTRAL_SCORE
        self.similar_user_order_limit = settings.SIMILAR_USER_ORDER_LIMIT
        self.similar_user_pool = settings.SIMILAR_USER_POOL

        cache_clock = lambda: clock().timestamp()  # noqa: E731
        self.profile_cache: TTLCache[str, UserProfile] = TTLCache(
            "user_profiles",
            ttl=profile_cache_ttl if profile_cache_ttl is not None else settings.PROFILE_CACHE_TTL,
            max_entries=settings.PROFILE_CACHE_MAX_ENTRIES,
            clock=cache_clock,
        )
        self.similarity_cache: TTLCache[tuple, float] = TTLCache(
            "item_similarity",
            ttl=(
                similarity_cache_ttl
                if similarity_cache_ttl is not None
                else settings.SIMILARITY_CACHE_TTL
            ),
            max_entries=settings.SIMILARITY_CACHE_MAX_ENTRIES,
            clock=cache_clock,
        )

    # Scoring

    @with_fallback(_neutral_scores, "calculate_scores")
    async def calculate_scores(
        self, candidate_ids: Sequence[str], customer_id: Optional[str] = None
    ) -> Dict[str, float]:
        """
        Calculate collaborative filtering scores

        Args:
            candidate_ids: Items to score
            customer_id: Customer to personalize for, neutral scores when None

        Returns:
            Dictionary of item_id -> score in [0, 1]
        """
        if not customer_id:
            return {item_id: service.neutral_score for item_id in candidate_ids}

        profile = await self.get_user_profile(customer_id)
        liked_items = profile.recency_weighted_preferences

        scores = {}
        for candidate_id in candidate_ids:
            # Avoid recommending what was just bought
            recent_score = liked_items.get(candidate_id)
            if recent_score is not None and recent_score > self.strong_preference_threshold:
                scores[candidate_id] = self.recent_preference_score
                continue

            total_score = 0.0
            total_weight = 0.0

            for liked_item_id, liked_score in liked_items.items():
                similarity = await self.get_item_similarity(liked_item_id, candidate_id)

                if similarity > 0:
                    total_score += similarity * liked_score
                    total_weight += similarity

            if total_weight > 0:
                scores[candidate_id] = min(1.0, total_score / total_weight)
            else:
                scores[candidate_id] = self.neutral_score

        return scores

    # Profiles

    @with_fallback(_empty_profile, "get_user_profile")
    @track_duration("get_user_profile")
    async def get_user_profile(self, customer_id: str) -> UserProfile:
        """
        Get user profile with temporal decay applied

        Args:
            customer_id: Customer ID

        Returns:
            Profile built from the customer's most recent orders. Unknown
            customers get empty preference maps. Each call returns a private
            copy, the cached profile is never handed out.
        """
        cached = self.profile_cache.get(customer_id)
        if cached is not None:
            return cached.model_copy(deep=True)

        logger.debug(f"Building user profile for customer {customer_id}")

        orders = await self.order_history.find_orders(
            OrderQuery(customer_id=customer_id, limit=self.profile_order_limit, newest_first=True)
        )
        profile = self._build_profile(customer_id, _countable(orders))

        self.profile_cache.set(customer_id, profile)
        return profile.model_copy(deep=True)

    def _build_profile(self, customer_id: str, orders: List[OrderRecord]) -> UserProfile:
        now = self.clock()

        preferences: Dict[str, float] = defaultdict(float)
        recency_weighted: Dict[str, float] = defaultdict(float)

        for order in orders:
            # Future timestamps (clock skew) count as today
            days_ago = max(0.0, (now - order.created_at).total_seconds() / SECONDS_PER_DAY)
            decay_weight = float(np.exp(-self.decay_rate * days_ago))

            for line in order.items:
                preferences[line.item_id] += line.quantity
                recency_weighted[line.item_id] += line.quantity * decay_weight

        return UserProfile(
            customer_id=customer_id,
            preferences=_normalize(preferences),
            recency_weighted_preferences=_normalize(recency_weighted),
            last_built=now,
        )

    # Similarity

    @with_fallback(zero, "get_item_similarity")
    async def get_item_similarity(self, item_id_1: str, item_id_2: str) -> float:
        """
        Jaccard similarity of the customers who ordered each item

        Args:
            item_id_1: First item
            item_id_2: Second item

        Returns:
            Similarity in [0, 1]; 1 for identical items
        """
        if item_id_1 == item_id_2:
            return 1.0

        cached = self.similarity_cache.get((item_id_1, item_id_2))
        if cached is not None:
            return cached

        users_1 = await self._customers_who_ordered(item_id_1)
        users_2 = await self._customers_who_ordered(item_id_2)

        union = users_1 | users_2
        similarity = len(users_1 & users_2) / len(union) if union else 0.0

        # Symmetric, cache both directions
        self.similarity_cache.set((item_id_1, item_id_2), similarity)
        self.similarity_cache.set((item_id_2, item_id_1), similarity)

        return similarity

    async def _customers_who_ordered(self, item_id: str) -> Set[str]:
        orders = await self.order_history.find_orders(
            OrderQuery(item_ids=[item_id], newest_first=False)
        )
        return {
            order.customer_id
            for order in _countable(orders)
            if order.customer_id and item_id in order.item_ids
        }

    @with_fallback(empty_list, "find_similar_users")
    async def find_similar_users(self, customer_id: str, limit: int = 10) -> List[SimilarUser]:
        """
        Find customers who ordered many of the target's preferred items

        The overlap is asymmetric: customers with a broad history are not
        penalized for items the target never ordered.

        Args:
            customer_id: Target customer
            limit: Maximum number of similar customers

        Returns:
            Similar customers, most similar first
        """
        profile = await self.get_user_profile(customer_id)
        user_items = list(profile.preferences)

        if not user_items:
            return []

        orders = await self.order_history.find_orders(
            OrderQuery(
                item_ids=user_items,
                exclude_customer_id=customer_id,
                limit=self.similar_user_order_limit,
            )
        )

        overlaps: Dict[str, int] = defaultdict(int)
        for order in _countable(orders):
            other_id = order.customer_id
            if not other_id or other_id == customer_id:
                continue

            overlaps[other_id] += sum(
                1 for line in order.items if line.item_id in profile.preferences
            )

        if not overlaps:
            return []

        max_overlap = max(overlaps.values())
        results = [
            SimilarUser(
                customer_id=other_id,
                similarity=overlap / max_overlap if max_overlap > 0 else 0.0,
            )
            for other_id, overlap in overlaps.items()
        ]
        results.sort(key=lambda u: (-u.similarity, u.customer_id))

        return results[:limit]

    @with_fallback(empty_list, "get_user_based_recommendations")
    async def get_user_based_recommendations(
        self, customer_id: str, limit: int = 10
    ) -> List[ItemRecommendation]:
        """
        Recommend what similar customers ordered and the target never did

        Args:
            customer_id: Target customer
            limit: Maximum number of recommendations

        Returns:
            Recommendations with scores normalized to the best item, best first
        """
        similar_users = await self.find_similar_users(customer_id, self.similar_user_pool)
        if not similar_users:
            return []

        profile = await self.get_user_profile(customer_id)
        similarity_by_user = {u.customer_id: u.similarity for u in similar_users}

        orders = await self.order_history.find_orders(
            OrderQuery(
                customer_ids=list(similarity_by_user),
                limit=self.similar_user_order_limit,
            )
        )

        item_scores: Dict[str, float] = defaultdict(float)
        for order in _countable(orders):
            similarity = similarity_by_user.get(order.customer_id, 0.0)

            for line in order.items:
                if line.item_id in profile.preferences:
                    continue
                item_scores[line.item_id] += line.quantity * similarity

        if not item_scores:
            return []

        max_score = max(item_scores.values())
        results = [
            ItemRecommendation(item_id=item_id, score=score / max_score if max_score > 0 else 0.0)
            for item_id, score in item_scores.items()
        ]
        results.sort(key=lambda r: (-r.score, r.item_id))

        return results[:limit]

    # Cache and decay management

    def clear_cache(self) -> None:
        """Drop cached profiles and similarities"""
        self.profile_cache.clear()
        self.similarity_cache.clear()
        logger.info("Cleared collaborative filtering caches")

    def set_decay_rate(self, rate: float) -> None:
        """
        Set decay rate (λ)

        Profiles decayed with the old rate are stale, so the profile cache is
        cleared. Negative rates are clamped to 0 (no decay).
        """
        if rate < 0:
            logger.warning("Negative decay rate clamped to 0", rate=rate)
            rate = 0.0

        self.decay_rate = rate
        self.profile_cache.clear()

        logger.info(f"Decay rate set to {rate}")
