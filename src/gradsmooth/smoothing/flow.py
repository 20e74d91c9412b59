"""
Gradient flow integration.

Each iteration moves every point by one explicit Euler step along its DTM
gradient components:

    next = current + step_size_normal * normal [+ step_size_tangent * tangent]

The tangent term is omitted when ``normal_projection`` is set. All points of
iteration t+1 are computed from the positions of iteration t: workers read the
``current`` buffer and write disjoint rows of the ``next`` buffer, which the
orchestrating thread swaps in once every worker is done.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np
from pydantic import ValidationError

from ..acceleration import PointParallelExecutor, format_progress
from ..exceptions import ConfigurationError, FlowDivergenceError, IndexBuildError
from ..utils.config import SmoothingConfig
from .gradient import GradientComponents, GradientEstimator
from .local_geometry import LocalGeometryEstimator
from .neighborhoods import NeighborhoodAssigner, NeighborSets
from .spatial_index import NeighborIndex, create_spatial_index

logger = logging.getLogger(__name__)

# Rows handled per vectorized block inside a worker range
BLOCK_SIZE = 4096

# Headroom below the overflow bound so eigen-solvers never see extreme magnitudes
POSITION_MARGIN = 1e-6


class SmootherState(Enum):
    LOADED = "loaded"
    INDEX_BUILT = "index_built"
    NEIGHBORS_ASSIGNED = "neighbors_assigned"
    ITERATING = "iterating"
    DONE = "done"


@dataclass
class PositionBuffers:
    """Two generations of the coordinate array."""

    current: np.ndarray
    next: np.ndarray

    @classmethod
    def from_cloud(cls, cloud: np.ndarray) -> "PositionBuffers":
        return cls(current=cloud.copy(), next=np.empty_like(cloud))

    def swap(self) -> None:
        self.current, self.next = self.next, self.current


@dataclass(frozen=True)
class IterationSnapshot:
    """
    State handed to the iteration callback after each iteration's barrier.

    Attributes:
        iteration: Zero-based iteration number
        neighbors: Neighbor sets used for every point in this iteration
        previous: (n, d) positions the iteration read from
        positions: (n, d) positions the iteration produced
        n_degenerate: Number of points that used the identity frame fallback
    """

    iteration: int
    neighbors: NeighborSets
    previous: np.ndarray
    positions: np.ndarray
    n_degenerate: int

    @property
    def displacement(self) -> np.ndarray:
        return self.positions - self.previous


IterationCallback = Callable[[IterationSnapshot], None]


class FlowIntegrator:
    """Explicit (forward Euler) update with constant step sizes."""

    def __init__(self, step_size_normal: float, step_size_tangent: float = 0.0, normal_projection: bool = False):
        self.step_size_normal = float(step_size_normal)
        self.step_size_tangent = float(step_size_tangent)
        self.normal_projection = bool(normal_projection)

    @classmethod
    def from_config(cls, config: SmoothingConfig) -> "FlowIntegrator":
        return cls(config.step_size_normal, config.step_size_tangent, config.normal_projection)

    def step(self, current: np.ndarray, components: GradientComponents) -> np.ndarray:
        """Return the next position(s) for ``current``."""
        out = np.empty_like(current, dtype=np.float64)
        self.step_into(out, current, components)
        return out

    def step_into(self, out: np.ndarray, current: np.ndarray, components: GradientComponents) -> None:
        """Write the next position(s) for ``current`` into ``out``."""
        out[...] = current + self.step_size_normal * components.normal
        if not self.normal_projection:
            out += self.step_size_tangent * components.tangent


def _position_limit(dimension: int, num_neighbors: int) -> float:
    """Largest coordinate magnitude for which squared distances and covariance sums stay finite."""
    bound = np.sqrt(np.finfo(np.float64).max / (4.0 * dimension * (num_neighbors + 1)))
    return float(POSITION_MARGIN * bound)


def _check_positions(positions: np.ndarray, iteration: int, limit: float) -> None:
    peak = float(np.max(np.abs(positions)))
    if not np.isfinite(peak):
        raise FlowDivergenceError(
            f"Iteration {iteration} produced non-finite positions; reduce the step sizes"
        )
    if peak > limit:
        raise FlowDivergenceError(
            f"Iteration {iteration} moved a point to magnitude {peak:.3g} (limit {limit:.3g}); "
            f"reduce the step sizes"
        )


def _as_cloud(initial_cloud: Any) -> np.ndarray:
    cloud = np.asarray(initial_cloud, dtype=np.float64)
    if cloud.ndim != 2:
        raise IndexBuildError(f"Expected an (n, d) point cloud, got shape {cloud.shape}")
    if cloud.shape[0] == 0:
        raise IndexBuildError("Cannot smooth an empty point cloud")
    return cloud


class GradientFlowSmoother:
    """
    Orchestrates a smoothing run.

    State machine: LOADED -> INDEX_BUILT -> NEIGHBORS_ASSIGNED ->
    ITERATING(0..T) -> DONE. When neighbors are not locked, INDEX_BUILT and
    NEIGHBORS_ASSIGNED are re-entered at the start of every iteration after the
    first; the neighbor queries themselves run inside the workers against the
    index rebuilt for that iteration. ``history`` records every state entered
    by the last ``smooth`` call.

    Example:
        smoother = GradientFlowSmoother(SmoothingConfig(num_neighbors=8, iterations=5))
        evolved = smoother.smooth(points)
    """

    def __init__(self, config: SmoothingConfig, index: Optional[NeighborIndex] = None):
        config.check()
        self.config = config
        self.index = index if index is not None else create_spatial_index(
            config.index_backend, config.max_leaf_size
        )
        self.assigner = NeighborhoodAssigner(self.index, config.num_neighbors, config.lock_neighbors)
        self.gradient_estimator = GradientEstimator(config.num_neighbors, config.normal_projection)
        self.integrator = FlowIntegrator.from_config(config)
        self.geometry: Optional[LocalGeometryEstimator] = None
        self.state = SmootherState.LOADED
        self.history: List[SmootherState] = [SmootherState.LOADED]

    def _enter(self, state: SmootherState) -> None:
        self.state = state
        self.history.append(state)

    def _process_range(
        self,
        buffers: PositionBuffers,
        start: int,
        stop: int,
        results: Dict[int, Tuple[NeighborSets, int]],
    ) -> None:
        """Worker body: update rows [start, stop) of ``buffers.next``."""
        current = buffers.current
        blocks = []
        n_degenerate = 0
        for lo in range(start, stop, BLOCK_SIZE):
            hi = min(lo + BLOCK_SIZE, stop)
            neighbors = self.assigner.neighbors_for_rows(current, lo, hi)
            frames = self.geometry.estimate_batch(current[neighbors.indices])
            components = self.gradient_estimator.estimate_batch(current[lo:hi], frames)
            self.integrator.step_into(buffers.next[lo:hi], current[lo:hi], components)
            blocks.append(neighbors)
            n_degenerate += frames.n_degenerate
        # Each worker owns its own key
        results[start] = (NeighborSets.concatenate(blocks), n_degenerate)

    def smooth(self, initial_cloud: Any, iteration_callback: Optional[IterationCallback] = None) -> np.ndarray:
        """
        Run the gradient flow for ``config.iterations`` steps.

        Args:
            initial_cloud: (n, d) array-like point cloud; it is never modified
            iteration_callback: Optional callable receiving an IterationSnapshot
                after each iteration

        Returns:
            (n, d) evolved point cloud

        Raises:
            ConfigurationError: If the configuration is invalid for this cloud
            IndexBuildError: If the cloud is empty or cannot be indexed
            FlowDivergenceError: If the positions blow up during the flow
        """
        cfg = self.config
        cloud = _as_cloud(initial_cloud)
        n_points, dimension = cloud.shape
        cfg.validate_for(n_points, dimension)
        self.geometry = LocalGeometryEstimator(dimension, cfg.codimension)
        self.state = SmootherState.LOADED
        self.history = [SmootherState.LOADED]
        limit = _position_limit(dimension, cfg.num_neighbors)

        logger.info(
            f"Smoothing {n_points} points in {dimension}D: k={cfg.num_neighbors}, "
            f"codimension={cfg.codimension}, iterations={cfg.iterations}, "
            f"steps=({cfg.step_size_normal}, {cfg.step_size_tangent}), "
            f"normal_projection={cfg.normal_projection}, lock_neighbors={cfg.lock_neighbors}, "
            f"threads={cfg.num_threads}"
        )

        logger.info("Building spatial index (%s, leaf size %d)", cfg.index_backend, cfg.max_leaf_size)
        self.assigner.initialize(cloud)
        self._enter(SmootherState.INDEX_BUILT)
        self._enter(SmootherState.NEIGHBORS_ASSIGNED)

        buffers = PositionBuffers.from_cloud(cloud)
        start_time = time.time()
        total_degenerate = 0

        with PointParallelExecutor(n_workers=cfg.num_threads) as executor:
            for iteration in range(cfg.iterations):
                if iteration > 0 and not cfg.lock_neighbors:
                    # Single-threaded rebuild between barriers
                    self.assigner.refresh(buffers.current)
                    self._enter(SmootherState.INDEX_BUILT)
                    logger.debug(f"Iteration {iteration}: rebuilt spatial index from current positions")
                    self._enter(SmootherState.NEIGHBORS_ASSIGNED)

                self._enter(SmootherState.ITERATING)
                results: Dict[int, Tuple[NeighborSets, int]] = {}
                executor.run_iteration(
                    lambda start, stop: self._process_range(buffers, start, stop, results),
                    n_points,
                )
                buffers.swap()
                _check_positions(buffers.current, iteration, limit)

                n_degenerate = sum(count for _, count in results.values())
                total_degenerate += n_degenerate
                if n_degenerate:
                    logger.warning(
                        f"Iteration {iteration}: {n_degenerate} degenerate neighborhoods used identity frames"
                    )

                if iteration_callback is not None:
                    iteration_callback(
                        IterationSnapshot(
                            iteration=iteration,
                            neighbors=NeighborSets.concatenate([nbrs for nbrs, _ in results.values()]),
                            previous=buffers.next.copy(),
                            positions=buffers.current.copy(),
                            n_degenerate=n_degenerate,
                        )
                    )

                completed = iteration + 1
                if completed % 10 == 0 or completed == cfg.iterations:
                    logger.info("Progress: " + format_progress(cfg.iterations, start_time, completed))

        self._enter(SmootherState.DONE)
        logger.info(
            f"Smoothing complete: {cfg.iterations} iterations in {time.time() - start_time:.2f}s "
            f"({total_degenerate} degenerate frame fallbacks)"
        )
        return buffers.current


def smooth(
    initial_cloud: Any,
    configuration: Union[SmoothingConfig, Mapping[str, Any]],
    iteration_callback: Optional[IterationCallback] = None,
    index: Optional[NeighborIndex] = None,
) -> np.ndarray:
    """
    Smooth a point cloud by distance-to-measure gradient flow.

    Args:
        initial_cloud: (n, d) array-like point cloud
        configuration: SmoothingConfig or a mapping of its fields
        iteration_callback: Optional per-iteration observer
        index: Optional NeighborIndex implementation (default from the config)

    Returns:
        (n, d) evolved point cloud; the input is left unchanged
    """
    if not isinstance(configuration, SmoothingConfig):
        try:
            configuration = SmoothingConfig.model_validate(dict(configuration))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid smoothing configuration: {e}") from e
    return GradientFlowSmoother(configuration, index=index).smooth(initial_cloud, iteration_callback)
