"""
Per-point neighborhood assignment.

A point's neighbor set holds the indices of its ``k`` nearest *other* points
(the point itself is never its own neighbor), ordered nearest-first, together
with the corresponding distances.

Two modes:
- locked: neighbor sets are computed once against the input cloud and reused
  for every iteration; only the distances follow the evolving coordinates.
- unlocked: the index is rebuilt from the current positions at the start of
  each iteration and neighbor sets are recomputed, so identities can drift.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..exceptions import IndexBuildError
from .spatial_index import NeighborIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NeighborSets:
    """
    Neighbor sets for a contiguous block of points.

    Attributes:
        indices: (M, k) neighbor indices into the full cloud, nearest-first
        distances: (M, k) distances to those neighbors
        start: Row of the first point in the block
    """

    indices: np.ndarray
    distances: np.ndarray
    start: int = 0

    def __len__(self) -> int:
        return int(self.indices.shape[0])

    @property
    def k(self) -> int:
        return int(self.indices.shape[1])

    @property
    def stop(self) -> int:
        return self.start + len(self)

    def rows(self, start: int, stop: int) -> "NeighborSets":
        """Slice out the neighbor sets of global rows ``start:stop``."""
        lo, hi = start - self.start, stop - self.start
        return NeighborSets(self.indices[lo:hi], self.distances[lo:hi], start=start)

    @staticmethod
    def concatenate(blocks: list["NeighborSets"]) -> "NeighborSets":
        """Join contiguous blocks (ordered by ``start``) into one set."""
        blocks = sorted(blocks, key=lambda b: b.start)
        return NeighborSets(
            np.concatenate([b.indices for b in blocks], axis=0),
            np.concatenate([b.distances for b in blocks], axis=0),
            start=blocks[0].start,
        )


def _drop_self(indices: np.ndarray, distances: np.ndarray, rows: np.ndarray):
    """Remove each row's own index from a (M, k+1) query result."""
    m, k_plus_one = indices.shape
    is_self = indices == rows[:, None]
    repeated = is_self.sum(axis=1) > 1
    if repeated.any():
        row = int(rows[np.argmax(repeated)])
        raise IndexBuildError(
            f"Neighbor query for point {row} returned the point itself more than once "
            f"(distances: {distances[np.argmax(repeated)]})"
        )
    # A coincident duplicate can push the point itself past k+1; drop the
    # farthest neighbor instead so every row keeps exactly k entries.
    missing = ~is_self.any(axis=1)
    is_self[missing, -1] = True
    keep = ~is_self
    k = k_plus_one - 1
    return indices[keep].reshape(m, k), distances[keep].reshape(m, k)


class NeighborhoodAssigner:
    """
    Computes and optionally freezes per-point neighbor sets.

    The assigner owns the spatial index: it builds it from the input cloud,
    and (when unlocked) rebuilds it from the current positions each iteration.
    ``assign`` only reads the index, so workers may call it concurrently for
    disjoint row ranges.
    """

    def __init__(self, index: NeighborIndex, num_neighbors: int, lock_neighbors: bool = False):
        self.index = index
        self.num_neighbors = int(num_neighbors)
        self.lock_neighbors = bool(lock_neighbors)
        self._frozen: Optional[NeighborSets] = None

    @property
    def frozen(self) -> Optional[NeighborSets]:
        """Neighbor sets computed against the input cloud (locked mode only)."""
        return self._frozen

    def initialize(self, points: np.ndarray) -> None:
        """Build the index over the input cloud; freeze neighbor sets if locked."""
        self.index.build(points)
        logger.debug("Successfully populated spatial index with %d points", self.index.size)
        if self.lock_neighbors:
            self._frozen = self.assign(points)
            logger.debug("Locked neighbor sets for %d points", len(self._frozen))

    def refresh(self, current: np.ndarray) -> None:
        """
        Prepare the index for a new iteration.

        Unlocked: rebuild the index from ``current``. Locked: nothing to do.
        Must be called by the orchestrating thread, outside worker execution.
        """
        if self.lock_neighbors:
            return
        self.index.rebuild(current)

    def assign(self, points: np.ndarray, start: int = 0, stop: Optional[int] = None) -> NeighborSets:
        """
        Query the index for the neighbor sets of rows ``start:stop`` of ``points``.

        Args:
            points: (N, D) coordinates the index was built from
            start: First row
            stop: One past the last row (default: N)

        Returns:
            NeighborSets for the requested rows
        """
        stop = points.shape[0] if stop is None else stop
        rows = np.arange(start, stop)
        distances, indices = self.index.query_knn(points[start:stop], self.num_neighbors + 1)
        indices, distances = _drop_self(indices, distances, rows)
        return NeighborSets(indices, distances, start=start)

    def neighbors_for_rows(self, current: np.ndarray, start: int, stop: int) -> NeighborSets:
        """
        Neighbor sets used for rows ``start:stop`` in the current iteration.

        Locked mode returns the frozen identities with distances measured
        against ``current``; unlocked mode queries the freshly rebuilt index.
        """
        if not self.lock_neighbors:
            return self.assign(current, start, stop)
        if self._frozen is None:
            raise RuntimeError("Neighbor sets are locked but were never initialized")
        frozen = self._frozen.rows(start, stop)
        offsets = current[frozen.indices] - current[start:stop, None, :]
        distances = np.linalg.norm(offsets, axis=2)
        return NeighborSets(frozen.indices, distances, start=start)
