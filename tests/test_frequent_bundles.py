"""Tests for frequent itemset (bundle) mining"""

import pytest

from affinity_engine.services.affinity_mining import AffinityMiningService
from affinity_engine.services.order_history import InMemoryOrderHistory

from conftest import FailingOrderHistory, UnfilteredOrderHistory, repeat


@pytest.fixture
def bundle_history():
    """
    11 orders:
    5x {a, b, c}, 3x {a, b}, 2x {a, d}, 1x {e}
    """
    return InMemoryOrderHistory(
        repeat(5, ["a", "b", "c"])
        + repeat(3, ["a", "b"])
        + repeat(2, ["a", "d"])
        + repeat(1, ["e"])
    )


def _by_items(itemsets):
    return {tuple(s.items): s for s in itemsets}


async def test_zero_orders_returns_empty():
    """Test empty history gives no bundles"""

    service = AffinityMiningService(InMemoryOrderHistory([]))

    assert await service.find_frequent_bundles() == []


async def test_frequent_pairs_and_triples(bundle_history):
    """Test bundle counts and support"""

    service = AffinityMiningService(bundle_history)
    bundles = _by_items(await service.find_frequent_bundles())

    assert set(bundles) == {("a", "b"), ("a", "c"), ("b", "c"), ("a", "b", "c")}

    assert bundles[("a", "b")].count == 8
    assert bundles[("a", "b")].support == pytest.approx(8 / 11)
    assert bundles[("a", "b", "c")].count == 5
    assert bundles[("a", "b", "c")].support == pytest.approx(5 / 11)


async def test_absolute_floor_excludes_rare_items(bundle_history):
    """Test items seen in fewer than 3 orders never form bundles"""

    service = AffinityMiningService(bundle_history, min_support=0.0)
    bundles = await service.find_frequent_bundles()

    # d appears twice, e once
    for bundle in bundles:
        assert "d" not in bundle.items
        assert "e" not in bundle.items


async def test_tiny_dataset_returns_empty():
    """Test two matching orders are not enough"""

    service = AffinityMiningService(InMemoryOrderHistory(repeat(2, ["x", "y"])))

    assert await service.find_frequent_bundles() == []


async def test_support_is_antimonotone(bundle_history):
    """Test a triple never has more support than its pairs"""

    service = AffinityMiningService(bundle_history)
    bundles = _by_items(await service.find_frequent_bundles())

    triple = bundles[("a", "b", "c")]
    for pair in [("a", "b"), ("a", "c"), ("b", "c")]:
        assert triple.support <= bundles[pair].support


async def test_sorted_by_support(bundle_history):
    """Test bundles are sorted by support, highest first"""

    service = AffinityMiningService(bundle_history)
    bundles = await service.find_frequent_bundles()

    supports = [b.support for b in bundles]
    assert supports == sorted(supports, reverse=True)
    assert bundles[0].items == ["a", "b"]


async def test_size_bounds(bundle_history):
    """Test min_size and max_size restrict bundle sizes"""

    service = AffinityMiningService(bundle_history)

    pairs_only = await service.find_frequent_bundles(max_size=2)
    assert pairs_only
    assert all(len(b.items) == 2 for b in pairs_only)

    triples_only = await service.find_frequent_bundles(min_size=3)
    assert [b.items for b in triples_only] == [["a", "b", "c"]]


async def test_percentage_threshold_above_floor():
    """Test min_support raises the bar above the absolute floor"""

    orders = repeat(4, ["a", "b"]) + repeat(96, ["c", "d"])
    service = AffinityMiningService(InMemoryOrderHistory(orders), min_support=0.05)

    bundles = _by_items(await service.find_frequent_bundles())

    # 4 < 100 * 0.05
    assert ("a", "b") not in bundles
    assert ("c", "d") in bundles


async def test_excluded_statuses_not_counted():
    """Test cancelled orders do not contribute"""

    orders = repeat(3, ["a", "b"]) + repeat(5, ["a", "b"], status="refunded")
    service = AffinityMiningService(UnfilteredOrderHistory(orders))

    bundles = await service.find_frequent_bundles()

    assert len(bundles) == 1
    assert bundles[0].count == 3
    assert bundles[0].support == pytest.approx(1.0)


async def test_store_failure_returns_empty():
    """Test failure degrades to no bundles"""

    service = AffinityMiningService(FailingOrderHistory())

    assert await service.find_frequent_bundles() == []
