"""
Smoothing Engine

Distance-to-measure gradient flow on point clouds:
- spatial_index.py: NeighborIndex capability with k-d tree and brute-force backends
- neighborhoods.py: per-point neighbor sets, locked or refreshed every iteration
- local_geometry.py: PCA tangent/normal frames with identity fallback
- gradient.py: empirical DTM gradient and its normal/tangent split
- flow.py: explicit Euler integrator, double-buffered orchestration and smooth()
"""

from .spatial_index import (
    NeighborIndex,
    KDTreeIndex,
    BruteForceIndex,
    create_spatial_index,
)
from .neighborhoods import NeighborSets, NeighborhoodAssigner
from .local_geometry import LocalFrame, LocalFrames, LocalGeometryEstimator
from .gradient import GradientComponents, GradientEstimator
from .flow import (
    FlowIntegrator,
    GradientFlowSmoother,
    IterationSnapshot,
    PositionBuffers,
    SmootherState,
    smooth,
)

__all__ = [
    # Spatial indexing
    "NeighborIndex",
    "KDTreeIndex",
    "BruteForceIndex",
    "create_spatial_index",
    # Neighborhoods
    "NeighborSets",
    "NeighborhoodAssigner",
    # Local geometry
    "LocalFrame",
    "LocalFrames",
    "LocalGeometryEstimator",
    # Gradient
    "GradientComponents",
    "GradientEstimator",
    # Flow
    "FlowIntegrator",
    "GradientFlowSmoother",
    "IterationSnapshot",
    "PositionBuffers",
    "SmootherState",
    "smooth",
]
