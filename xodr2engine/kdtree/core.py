"""k-d tree over sampled lane centerline points."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Sequence

import numpy as np
from scipy.spatial import cKDTree

from xodr2engine.kdtree.rwlock import RWLock


LOG = logging.getLogger("kdtree")


class KDTreeFlags(enum.IntFlag):
    NONE = 0
    # Split at the median instead of the midpoint of the bounding box.
    BALANCED = 1
    # Shrink node boxes to the points they hold.
    COMPACT = 2


@dataclass
class KDTreeParam:
    flags: KDTreeFlags = KDTreeFlags.BALANCED | KDTreeFlags.COMPACT
    leaf_max_size: int = 10


class SearchResult(NamedTuple):
    id: str
    x: float
    y: float
    dist: float


class KDTreeQueryError(ValueError):
    """Raised when a query cannot be answered by the current index."""


class KDTree:
    """Build-once, read-many nearest neighbour index over ``(x, y, id)`` samples.

    :meth:`init` replaces the whole index under the write side of a
    reader/writer lock; :meth:`search` runs under the read side, so queries
    never observe a half-built index and may run concurrently with each other.
    """

    def __init__(self) -> None:
        self._lock = RWLock()
        self._tree: Optional[cKDTree] = None
        self._coords = np.empty((0, 2), dtype=np.float64)
        self._ids: List[str] = []

    def init(self, samples: Iterable, param: Optional[KDTreeParam] = None) -> None:
        """Index ``samples`` (objects exposing ``x``, ``y`` and ``id``)."""

        param = param or KDTreeParam()
        with self._lock.write_locked():
            ids: List[str] = []
            rows: List[Sequence[float]] = []
            for point in samples:
                rows.append((point.x, point.y))
                ids.append(point.id)
            coords = np.asarray(rows, dtype=np.float64).reshape(-1, 2)

            if len(coords):
                tree = cKDTree(
                    coords,
                    leafsize=param.leaf_max_size,
                    balanced_tree=bool(param.flags & KDTreeFlags.BALANCED),
                    compact_nodes=bool(param.flags & KDTreeFlags.COMPACT),
                )
            else:
                tree = None

            self._coords = coords
            self._ids = ids
            self._tree = tree
        LOG.info("kdtree built over %d points", len(ids))

    @property
    def size(self) -> int:
        with self._lock.read_locked():
            return len(self._ids)

    def search(self, x: float, y: float, num_closest: int) -> List[SearchResult]:
        """Return the ``num_closest`` indexed points nearest to ``(x, y)``.

        Results are ordered by ascending Euclidean distance.
        """

        with self._lock.read_locked():
            count = len(self._ids)
            if num_closest < 1:
                raise KDTreeQueryError(f"num_closest must be positive, got {num_closest}")
            if num_closest > count:
                raise KDTreeQueryError(
                    f"requested {num_closest} nearest points but only {count} are indexed"
                )

            dists, indices = self._tree.query((float(x), float(y)), k=num_closest)
            dists = np.atleast_1d(dists)
            indices = np.atleast_1d(indices)

            results: List[SearchResult] = []
            for dist, idx in zip(dists, indices):
                px, py = self._coords[idx]
                results.append(SearchResult(self._ids[idx], float(px), float(py), float(dist)))
            return results


def nearest_points(kdtree: KDTree, x: float, y: float, k: int) -> List[SearchResult]:
    """Query helper for planning/localization consumers."""

    return kdtree.search(x, y, k)
