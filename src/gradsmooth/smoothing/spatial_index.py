"""
Nearest-neighbor indexing of point clouds.

The smoothing engine talks to its index through the small ``NeighborIndex``
capability (build, rebuild, query_knn). Two implementations are provided, both
backed by scikit-learn's ``NearestNeighbors``:

- ``KDTreeIndex``: k-d tree with a configurable leaf size. O(n log n) build,
  O(log n) expected per query on well-distributed data.
- ``BruteForceIndex``: exhaustive search; no build cost, useful for small clouds.
"""

from __future__ import annotations

import logging
import time
from typing import Literal, Optional, Protocol, Tuple, runtime_checkable

import numpy as np
from sklearn.neighbors import NearestNeighbors

from ..exceptions import IndexBuildError

logger = logging.getLogger(__name__)


@runtime_checkable
class NeighborIndex(Protocol):
    """Capability interface the smoother needs from a spatial index."""

    @property
    def size(self) -> int: ...

    def build(self, points: np.ndarray) -> None: ...

    def rebuild(self, points: np.ndarray) -> None: ...

    def query_knn(self, points: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]: ...


class _SklearnIndex:
    """Shared scikit-learn backed implementation of ``NeighborIndex``."""

    algorithm: str = "auto"

    def __init__(self, leaf_size: int = 30):
        if leaf_size < 1:
            raise IndexBuildError(f"leaf_size must be at least 1, got {leaf_size}")
        self.leaf_size = int(leaf_size)
        self._model: Optional[NearestNeighbors] = None
        self._n_points = 0
        self._dimension = 0

    @property
    def size(self) -> int:
        """Number of indexed points (0 before the first build)."""
        return self._n_points

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def is_built(self) -> bool:
        return self._model is not None

    def build(self, points: np.ndarray) -> None:
        """
        Build the index over ``points``.

        Args:
            points: (N, D) array of coordinates

        Raises:
            IndexBuildError: If the point set is empty, not 2-D or not finite
        """
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2:
            raise IndexBuildError(f"Expected an (N, D) array, got shape {points.shape}")
        if points.shape[0] == 0:
            raise IndexBuildError("Cannot build a spatial index over an empty point set")
        if points.shape[1] == 0:
            raise IndexBuildError("Cannot build a spatial index over zero-dimensional points")
        if not np.isfinite(points).all():
            raise IndexBuildError("Point set contains non-finite coordinates")

        t0 = time.time()
        model = NearestNeighbors(algorithm=self.algorithm, leaf_size=self.leaf_size)
        model.fit(points)
        self._model = model
        self._n_points, self._dimension = points.shape
        logger.debug(
            "Built %s index over %d points in %.4f s",
            self.algorithm, self._n_points, time.time() - t0,
        )

    def rebuild(self, points: np.ndarray) -> None:
        """Replace the indexed point set with ``points``."""
        self.build(points)

    def query_knn(self, points: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Find the ``k`` nearest indexed points of each query point.

        Args:
            points: (D,) single query point or (M, D) query points
            k: Number of neighbors

        Returns:
            (distances, indices), nearest-first. Shape (k,) for a single query
            point, (M, k) otherwise.

        Raises:
            IndexBuildError: If the index is not built or k is out of range
        """
        if self._model is None:
            raise IndexBuildError("Spatial index has not been built")
        if k <= 0 or k > self._n_points:
            raise IndexBuildError(
                f"Requested {k} neighbors from an index holding {self._n_points} points"
            )
        query = np.asarray(points, dtype=np.float64)
        single = query.ndim == 1
        if single:
            query = query[None, :]
        if query.ndim != 2 or query.shape[1] != self._dimension:
            raise IndexBuildError(
                f"Query points of shape {np.shape(points)} do not match index dimension {self._dimension}"
            )
        if query.shape[0] == 0:
            return np.empty((0, k)), np.empty((0, k), dtype=np.intp)

        distances, indices = self._model.kneighbors(query, n_neighbors=k, return_distance=True)
        if single:
            return distances[0], indices[0]
        return distances, indices


class KDTreeIndex(_SklearnIndex):
    """
    k-d tree index.

    Larger leaves trade query cost for build cost.
    """

    algorithm = "kd_tree"

    def __init__(self, max_leaf_size: int = 10):
        super().__init__(leaf_size=max_leaf_size)


class BruteForceIndex(_SklearnIndex):
    """Exhaustive-search index."""

    algorithm = "brute"


def create_spatial_index(
    backend: Literal["kd_tree", "brute"] = "kd_tree",
    max_leaf_size: int = 10,
) -> NeighborIndex:
    """
    Create an (unbuilt) spatial index for the given backend.

    Args:
        backend: 'kd_tree' or 'brute'
        max_leaf_size: Leaf capacity for the k-d tree backend

    Returns:
        Index instance implementing ``NeighborIndex``
    """
    if backend == "kd_tree":
        return KDTreeIndex(max_leaf_size=max_leaf_size)
    if backend == "brute":
        return BruteForceIndex()
    raise IndexBuildError(f"Unknown spatial index backend '{backend}'")
