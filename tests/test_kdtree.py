import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from xodr2engine.core.entities import Point
from xodr2engine.kdtree.core import (
    KDTree,
    KDTreeFlags,
    KDTreeParam,
    KDTreeQueryError,
    SearchResult,
    nearest_points,
)


def _points(*entries):
    return [Point(x=x, y=y, id=point_id) for x, y, point_id in entries]


def test_single_point_query_returns_true_euclidean_distance():
    tree = KDTree()
    tree.init(_points((3.0, 4.0, "p")))

    results = tree.search(0.0, 0.0, 1)

    assert results == [SearchResult("p", 3.0, 4.0, pytest.approx(5.0))]


def test_nearest_first_then_equidistant_ties():
    tree = KDTree()
    tree.init(_points((0.0, 0.0, "a"), (10.0, 0.0, "b"), (0.0, 10.0, "c"), (30.0, 30.0, "far")))

    results = nearest_points(tree, 1.0, 1.0, 2)

    assert [r.id for r in results][0] == "a"
    assert results[0].dist == pytest.approx(math.sqrt(2.0))
    assert results[1].id in {"b", "c"}
    assert results[1].dist == pytest.approx(math.sqrt(82.0))


def test_k_larger_than_index_fails():
    tree = KDTree()
    tree.init(_points((0.0, 0.0, "a"), (1.0, 0.0, "b")))

    with pytest.raises(KDTreeQueryError):
        tree.search(0.0, 0.0, 3)


def test_non_positive_k_fails():
    tree = KDTree()
    tree.init(_points((0.0, 0.0, "a")))

    with pytest.raises(KDTreeQueryError):
        tree.search(0.0, 0.0, 0)


def test_query_before_build_fails():
    tree = KDTree()

    assert tree.size == 0
    with pytest.raises(KDTreeQueryError):
        tree.search(0.0, 0.0, 1)


def test_empty_build_has_no_points():
    tree = KDTree()
    tree.init([])

    assert tree.size == 0
    with pytest.raises(KDTreeQueryError):
        tree.search(0.0, 0.0, 1)


def test_rebuild_replaces_previous_points():
    tree = KDTree()
    tree.init(_points((0.0, 0.0, "old")))
    tree.init(_points((5.0, 5.0, "new"), (6.0, 6.0, "newer")))

    assert tree.size == 2
    assert tree.search(0.0, 0.0, 1)[0].id == "new"


@pytest.mark.parametrize(
    "param",
    [
        KDTreeParam(),
        KDTreeParam(flags=KDTreeFlags.NONE, leaf_max_size=1),
        KDTreeParam(flags=KDTreeFlags.BALANCED, leaf_max_size=4),
        KDTreeParam(flags=KDTreeFlags.COMPACT, leaf_max_size=32),
    ],
)
def test_results_match_brute_force(param):
    rng = np.random.default_rng(7)
    coords = rng.uniform(-100.0, 100.0, size=(500, 2))
    samples = [Point(x=float(x), y=float(y), id=f"p{i}") for i, (x, y) in enumerate(coords)]
    tree = KDTree()
    tree.init(samples, param)

    for qx, qy in rng.uniform(-120.0, 120.0, size=(20, 2)):
        results = tree.search(qx, qy, 5)
        dists = np.hypot(coords[:, 0] - qx, coords[:, 1] - qy)
        expected = np.sort(dists)[:5]

        assert [r.dist for r in results] == pytest.approx(list(expected))
        assert [r.dist for r in results] == sorted(r.dist for r in results)
        for r in results:
            idx = int(r.id[1:])
            assert (r.x, r.y) == (coords[idx, 0], coords[idx, 1])


def test_concurrent_queries_share_the_index():
    samples = [Point(x=float(i), y=0.0, id=str(i)) for i in range(1000)]
    tree = KDTree()
    tree.init(samples)

    def query(i):
        return tree.search(float(i) + 0.1, 0.0, 1)[0].id

    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(query, range(200)))

    assert ids == [str(i) for i in range(200)]
