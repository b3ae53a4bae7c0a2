"""Tests for the Recommendation Engine facade"""

import pytest

from affinity_engine.services.order_history import InMemoryMenuCatalog
from affinity_engine.services.recommendation_engine import RecommendationEngine

from conftest import CountingOrderHistory, FailingOrderHistory, make_order, repeat


@pytest.fixture
def engine(pizza_history, menu, clock):
    return RecommendationEngine(pizza_history, menu, clock=clock)


async def test_combined_scores_without_customer(engine):
    """Test combined score = w * collaborative + (1 - w) * affinity"""

    results = await engine.get_recommendations(["pizza"])

    by_item = {r.item_id: r for r in results}
    assert "pizza" not in by_item

    garlic = by_item["garlic_bread"]
    assert garlic.affinity_score == pytest.approx(0.6)
    assert garlic.collaborative_score == 0.5
    assert garlic.score == pytest.approx(0.6 * 0.5 + 0.4 * 0.6)
    assert [rule.consequent for rule in garlic.rules] == [["garlic_bread"]]

    assert [r.item_id for r in results] == ["garlic_bread", "dessert", "coke"]


async def test_candidates_and_limit(engine):
    """Test explicit candidate list and limit"""

    results = await engine.get_recommendations(
        ["pizza"], candidate_ids=["coke", "pizza", "dessert"], limit=1
    )

    assert [r.item_id for r in results] == ["dessert"]


async def test_empty_cart_and_no_customer_is_neutral(engine):
    """Test every candidate is neutral without any context"""

    results = await engine.get_recommendations([])

    assert len(results) == 4
    assert all(r.score == pytest.approx(0.5) for r in results)


async def test_personalized_recommendations(clock):
    """Test customer context changes the ranking"""

    orders = repeat(6, ["pizza", "garlic_bread"]) + [
        make_order(["pizza", "coke"], customer_id="t", days_ago=20),
        make_order(["coke", "wings"], customer_id="u1", days_ago=1),
        make_order(["pizza", "wings"], customer_id="u2", days_ago=1),
    ]
    engine = RecommendationEngine(
        CountingOrderHistory(orders),
        InMemoryMenuCatalog(["pizza", "garlic_bread", "coke", "wings"]),
        clock=clock,
    )

    results = await engine.get_recommendations([], customer_id="t")
    by_item = {r.item_id: r for r in results}

    # pizza and coke are t's strongest recent preferences
    assert by_item["pizza"].collaborative_score == 0.3
    assert by_item["coke"].collaborative_score == 0.3
    assert by_item["wings"].collaborative_score != 0.5
    for result in results:
        assert 0 <= result.score <= 1


async def test_store_failure_degrades_to_neutral(menu, clock):
    """Test unreachable store never raises"""

    engine = RecommendationEngine(FailingOrderHistory(), menu, clock=clock)

    results = await engine.get_recommendations(["pizza"], customer_id="t")

    assert {r.item_id for r in results} == {"garlic_bread", "coke", "dessert"}
    assert all(r.score == pytest.approx(0.5) for r in results)


async def test_no_catalog_and_no_candidates(pizza_history, clock):
    """Test missing candidate source returns nothing"""

    engine = RecommendationEngine(pizza_history, clock=clock)

    assert await engine.get_recommendations(["pizza"]) == []


async def test_delegated_operations(engine):
    """Test the public surface delegates to the services"""

    assert len(await engine.mine_rules(["pizza"])) == 2
    assert await engine.find_frequent_bundles() != []
    assert (await engine.calculate_affinity_scores(["coke"], []))["coke"] == 0.5
    assert [s.item_id for s in await engine.get_complete_meal_suggestions(["pizza"])] == ["garlic_bread"]
    assert [s.item_id for s in await engine.get_also_bought_suggestions("pizza", 3)] == ["garlic_bread"]
    assert await engine.calculate_scores(["coke"]) == {"coke": 0.5}
    assert (await engine.get_user_profile("ghost")).preferences == {}
    assert await engine.get_item_similarity("pizza", "pizza") == 1.0
    assert await engine.find_similar_users("ghost") == []
    assert await engine.get_user_based_recommendations("ghost") == []


async def test_clear_cache_and_configuration(engine, pizza_history):
    """Test cache clearing and configuration setters"""

    await engine.mine_rules(["pizza"])
    await engine.get_user_profile("ghost")

    engine.clear_cache()
    stats = {s["name"]: s for s in engine.cache_stats()}
    assert stats["affinity_rules"]["size"] == 0
    assert stats["user_profiles"]["size"] == 0

    engine.set_thresholds(0.01, 0.5)
    assert [r.consequent[0] for r in await engine.mine_rules(["pizza"])] == ["garlic_bread"]

    engine.set_decay_rate(0.02)
    assert engine.collaborative_service.decay_rate == 0.02


def test_service_overrides(pizza_history):
    """Test keyword overrides reach the right service"""

    engine = RecommendationEngine(
        pizza_history, min_support=0.2, decay_rate=0.3, neutral_score=0.4
    )

    assert engine.affinity_service.min_support == 0.2
    assert engine.collaborative_service.decay_rate == 0.3
    assert engine.affinity_service.neutral_score == 0.4
    assert engine.collaborative_service.neutral_score == 0.4

    with pytest.raises(TypeError):
        RecommendationEngine(pizza_history, not_an_option=1)
