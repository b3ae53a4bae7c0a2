"""Cross-item affinity mining: "frequently bought together"

Discovers patterns like:
- {Biryani} => {Raita} (confidence: 0.65)
- {Curry, Naan} => {Rice} (confidence: 0.58)

Key metrics:
- Support: share of sampled orders containing antecedent and consequent
- Confidence: P(consequent | antecedent)
- Lift: confidence / P(consequent), how much the antecedent raises the odds
"""

import itertools
from collections import Counter, defaultdict
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import numpy as np

from .order_history import MenuCatalog, OrderHistoryProvider
from ..config import settings
from ..schemas.affinity import AffinityRule, AffinityScore, ItemSet
from ..schemas.order import OrderQuery, OrderRecord
from ..utils.cache import TTLCache, utcnow
from ..utils.fallback import empty_list, with_fallback
from ..utils.logging import get_logger
from ..utils.metrics import track_duration

logger = get_logger(__name__)


# Domain-specific pairings for food delivery, used when an item category has
# too little order history to mine
COMPLEMENTARY_CATEGORIES: Dict[str, List[str]] = {
    "Main Course": ["Sides", "Bread", "Beverages", "Raita"],
    "Biryani": ["Raita", "Beverages", "Salad"],
    "Pizza": ["Garlic Bread", "Beverages", "Sides"],
    "Curry": ["Naan", "Rice", "Raita", "Papad"],
    "Street Food": ["Chutney", "Beverages"],
    "Desserts": ["Beverages"],
}


def get_complementary_categories(category: str) -> List[str]:
    """Return categories that usually complete a meal with the given one"""
    return list(COMPLEMENTARY_CATEGORIES.get(category, []))


def _countable(orders: Iterable[OrderRecord]) -> List[OrderRecord]:
    return [order for order in orders if order.is_countable]


def _neutral_affinity_scores(service, candidate_ids, cart_item_ids) -> Dict[str, float]:
    cart = set(cart_item_ids)
    return {
        item_id: 0.0 if item_id in cart else service.neutral_score
        for item_id in candidate_ids
    }


class AffinityMiningService:
    """
    Association rule miner and rule-based scorer

    Rules are mined on demand from the most recent orders containing the seed
    items and cached per seed combination until clear_cache() is called.
    """

    def __init__(
        self,
        order_history: OrderHistoryProvider,
        catalog: Optional[MenuCatalog] = None,
        min_support: float = None,
        min_confidence: float = None,
        max_rules_per_item: int = None,
        sample_size: int = None,
        lift_cap: float = None,
        neutral_score: float = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize affinity mining service

        Args:
            order_history: Source of historical orders
            catalog: Source of candidate items for complete-the-meal suggestions
            min_support: Minimum share of sampled orders for a rule
            min_confidence: Minimum P(consequent | antecedent) for a rule
            max_rules_per_item: Rules kept per seed combination
            sample_size: Most recent orders considered per mining run
            lift_cap: Upper bound applied to lift when scoring
            neutral_score: Score for candidates without evidence
            clock: Returns the current aware datetime
        """
        self.order_history = order_history
        self.catalog = catalog
        self.min_support = min_support if min_support is not None else settings.MIN_SUPPORT
        self.min_confidence = (
            min_confidence if min_confidence is not None else settings.MIN_CONFIDENCE
        )
        self.max_rules_per_item = (
            max_rules_per_item if max_rules_per_item is not None else settings.MAX_RULES_PER_ITEM
        )
        self.sample_size = sample_size if sample_size is not None else settings.ORDER_SAMPLE_SIZE
        self.lift_cap = lift_cap if lift_cap is not None else settings.LIFT_CAP
        self.neutral_score = neutral_score if neutral_score is not None else settings.NEUTRAL_SCORE

        # No TTL: mined rules stay valid until clear_cache()
        self.rules_cache: TTLCache[str, List[AffinityRule]] = TTLCache(
            "affinity_rules",
            ttl=None,
            max_entries=settings.RULE_CACHE_MAX_ENTRIES,
            clock=lambda: clock().timestamp(),
        )

    @staticmethod
    def cache_key(item_ids: Iterable[str]) -> str:
        """Sorted, comma-joined item ids"""
        return ",".join(sorted(set(item_ids)))

    # Rule mining

    @with_fallback(empty_list, "mine_rules")
    @track_duration("mine_rules")
    async def mine_rules(self, seed_item_ids: Iterable[str]) -> List[AffinityRule]:
        """
        Mine association rules {seed items} => {other item}

        Args:
            seed_item_ids: Antecedent of interest, typically the cart

        Returns:
            Rules sorted by confidence * lift, best first. Empty when there is
            no seed, no order history, or no pair clears the thresholds.
        """
        seeds = sorted(set(seed_item_ids))
        if not seeds:
            return []

        key = ",".join(seeds)
        cached = self.rules_cache.get(key)
        if cached is not None:
            return list(cached)

        orders = await self.order_history.find_orders(
            OrderQuery(item_ids=seeds, limit=self.sample_size, newest_first=True)
        )
        rules = self._mine(seeds, _countable(orders))

        logger.debug(f"Mined {len(rules)} rules for [{key}] from {len(orders)} orders")

        self.rules_cache.set(key, rules)
        return list(rules)

    def _mine(self, seeds: Sequence[str], orders: List[OrderRecord]) -> List[AffinityRule]:
        """Count co-occurrences and turn surviving pairs into rules"""

        total_orders = len(orders)
        if total_orders == 0:
            return []

        seed_set = set(seeds)
        item_counts: Counter = Counter()
        co_occurrences: Counter = Counter()
        antecedent_count = 0

        for order in orders:
            items_in_order = order.item_ids
            item_counts.update(items_in_order)

            # The whole antecedent must be present
            if not seed_set <= items_in_order:
                continue

            antecedent_count += 1
            co_occurrences.update(items_in_order - seed_set)

        rules = []
        for consequent_id, count in co_occurrences.items():
            # Support: P(A and B)
            support = count / total_orders
            if support < self.min_support:
                continue

            # Confidence: P(B | A)
            confidence = count / antecedent_count if antecedent_count > 0 else 0.0
            if confidence < self.min_confidence:
                continue

            # Lift: confidence / P(B)
            consequent_prob = item_counts[consequent_id] / total_orders
            lift = confidence / consequent_prob if consequent_prob > 0 else 0.0

            rules.append(
                AffinityRule(
                    antecedent=list(seeds),
                    consequent=[consequent_id],
                    support=support,
                    confidence=confidence,
                    lift=lift,
                    order_count=count,
                )
            )

        rules.sort(key=lambda r: (-r.confidence * r.lift, -r.support, r.consequent[0]))
        return rules[:self.max_rules_per_item]

    # Frequent itemsets

    @with_fallback(empty_list, "find_frequent_bundles")
    @track_duration("find_frequent_bundles")
    async def find_frequent_bundles(self, min_size: int = 2, max_size: int = 3) -> List[ItemSet]:
        """
        Find sets of 2-3 items often ordered together, independent of any seed

        Args:
            min_size: Smallest bundle size returned
            max_size: Largest bundle size returned (at most 3)

        Returns:
            Bundles sorted by support, highest first
        """
        orders = await self.order_history.find_orders(
            OrderQuery(limit=self.sample_size, newest_first=True)
        )
        orders = _countable(orders)

        if not orders:
            return []

        return self._find_frequent_itemsets(orders, min_size, max_size)

    def _find_frequent_itemsets(
        self, orders: List[OrderRecord], min_size: int, max_size: int
    ) -> List[ItemSet]:
        """
        Simplified Apriori

        Pairs and triples are both generated from the frequent single items,
        not from surviving pairs.
        """
        total_orders = len(orders)
        # Absolute floor keeps tiny datasets from producing meaningless bundles
        min_support_count = max(3, total_orders * self.min_support)

        item_counts: Counter = Counter()
        for order in orders:
            item_counts.update(order.item_ids)

        frequent_items = sorted(
            item_id for item_id, count in item_counts.items() if count >= min_support_count
        )
        if not frequent_items:
            return []

        matrix = self._build_incidence_matrix(orders, frequent_items)

        itemsets = []
        for size in (2, 3):
            if size < min_size or size > max_size:
                continue

            for combo in itertools.combinations(range(len(frequent_items)), size):
                count = int(np.all(matrix[:, list(combo)], axis=1).sum())

                if count >= min_support_count:
                    itemsets.append(
                        ItemSet(
                            items=[frequent_items[idx] for idx in combo],
                            support=count / total_orders,
                            count=count,
                        )
                    )

        itemsets.sort(key=lambda s: s.support, reverse=True)
        return itemsets

    @staticmethod
    def _build_incidence_matrix(orders: List[OrderRecord], item_ids: List[str]) -> np.ndarray:
        """Boolean order x item matrix restricted to item_ids"""

        item_id_to_idx = {item_id: idx for idx, item_id in enumerate(item_ids)}
        matrix = np.zeros((len(orders), len(item_ids)), dtype=bool)

        for order_idx, order in enumerate(orders):
            for item_id in order.item_ids:
                item_idx = item_id_to_idx.get(item_id)
                if item_idx is not None:
                    matrix[order_idx, item_idx] = True

        return matrix

    # Scoring

    @with_fallback(_neutral_affinity_scores, "calculate_affinity_scores")
    async def calculate_affinity_scores(
        self, candidate_ids: Sequence[str], cart_item_ids: Sequence[str]
    ) -> Dict[str, float]:
        """
        Score candidates against the rules mined for the current cart

        Args:
            candidate_ids: Items to score
            cart_item_ids: Items already chosen

        Returns:
            Dictionary of item_id -> score in [0, 1]. Cart items score 0,
            candidates without a matching rule score neutral.
        """
        cart = set(cart_item_ids)
        if not cart:
            return {item_id: self.neutral_score for item_id in candidate_ids}

        rules = await self.mine_rules(cart)
        rules_by_consequent = self._index_by_consequent(rules)

        scores = {}
        for item_id in candidate_ids:
            # Never recommend what's already chosen
            if item_id in cart:
                scores[item_id] = 0.0
                continue

            matching_rules = rules_by_consequent.get(item_id)
            if not matching_rules:
                scores[item_id] = self.neutral_score
                continue

            best_score = max(
                rule.confidence * min(rule.lift, self.lift_cap) for rule in matching_rules
            )
            scores[item_id] = min(1.0, best_score)

        return scores

    @with_fallback(empty_list, "get_complete_meal_suggestions")
    async def get_complete_meal_suggestions(
        self, cart_item_ids: Sequence[str], limit: int = None
    ) -> List[AffinityScore]:
        """
        Suggest complementary items for the current cart

        Args:
            cart_item_ids: Items already chosen
            limit: Maximum number of suggestions

        Returns:
            Above-neutral suggestions with their contributing rules, best first
        """
        limit = limit if limit is not None else settings.COMPLETE_MEAL_LIMIT

        cart = list(dict.fromkeys(cart_item_ids))
        if not cart:
            return []

        if self.catalog is None:
            logger.warning("No menu catalog configured, cannot list meal candidates")
            return []

        candidate_ids = await self.catalog.list_available_item_ids()
        scores = await self.calculate_affinity_scores(candidate_ids, cart)
        rules = await self.mine_rules(cart)

        return self._rank_suggestions(scores, rules, limit)

    @with_fallback(empty_list, "get_also_bought_suggestions")
    async def get_also_bought_suggestions(
        self, item_id: str, limit: int = None
    ) -> List[AffinityScore]:
        """
        "Customers who bought this also bought"

        Args:
            item_id: Item being viewed
            limit: Maximum number of suggestions

        Returns:
            Above-neutral suggestions with their contributing rules, best first
        """
        limit = limit if limit is not None else settings.ALSO_BOUGHT_LIMIT

        rules = await self.mine_rules([item_id])
        candidate_ids = list(
            dict.fromkeys(consequent for rule in rules for consequent in rule.consequent)
        )
        scores = await self.calculate_affinity_scores(candidate_ids, [item_id])
        scores.pop(item_id, None)

        return self._rank_suggestions(scores, rules, limit)

    def _rank_suggestions(
        self, scores: Dict[str, float], rules: List[AffinityRule], limit: int
    ) -> List[AffinityScore]:
        """Keep above-neutral scores, attach rules, sort best first"""

        rules_by_consequent = self._index_by_consequent(rules)

        results = [
            AffinityScore(item_id=item_id, score=score, rules=rules_by_consequent.get(item_id, []))
            for item_id, score in scores.items()
            if score > self.neutral_score
        ]
        results.sort(key=lambda r: (-r.score, r.item_id))

        return results[:limit]

    @staticmethod
    def _index_by_consequent(rules: List[AffinityRule]) -> Dict[str, List[AffinityRule]]:
        index = defaultdict(list)
        for rule in rules:
            for item_id in rule.consequent:
                index[item_id].append(rule)
        return index

    # Cache and threshold management

    def clear_cache(self) -> None:
        """Drop all cached rules"""
        self.rules_cache.clear()
        logger.info("Cleared affinity rule cache")

    def set_thresholds(self, min_support: float, min_confidence: float) -> None:
        """
        Set minimum support and confidence

        Values are clamped into [0, 1]. Cached rules were filtered with the old
        thresholds, so the rule cache is cleared.
        """
        clamped_support = min(1.0, max(0.0, min_support))
        clamped_confidence = min(1.0, max(0.0, min_confidence))

        if clamped_support != min_support or clamped_confidence != min_confidence:
            logger.warning(
                "Thresholds out of range, clamped to [0, 1]",
                min_support=min_support,
                min_confidence=min_confidence
            )

        self.min_support = clamped_support
        self.min_confidence = clamped_confidence
        self.rules_cache.clear()

        logger.info(
            f"Affinity thresholds set: support={self.min_support}, "
            f"confidence={self.min_confidence}"
        )
