"""
GradSmooth Package

Point cloud smoothing via distance-to-measure gradient flows. Each point is
moved along the estimated gradient of the empirical distance to measure,
optionally restricted to the normal directions of the manifold the cloud was
sampled from. Works in any ambient dimension.
"""

__version__ = "0.1.0"

from .exceptions import (
    GradSmoothError,
    ConfigurationError,
    IndexBuildError,
    NumericalDegeneracy,
    BoundaryIOError,
    FlowDivergenceError,
)
from .utils.config import SmoothingConfig, AppConfig, load_config
from .smoothing import GradientFlowSmoother, IterationSnapshot, smooth
from .preprocessing import PointCloudLoader
from .utils.export import save_point_cloud

__all__ = [
    "GradSmoothError",
    "ConfigurationError",
    "IndexBuildError",
    "NumericalDegeneracy",
    "BoundaryIOError",
    "FlowDivergenceError",
    "SmoothingConfig",
    "AppConfig",
    "load_config",
    "GradientFlowSmoother",
    "IterationSnapshot",
    "smooth",
    "PointCloudLoader",
    "save_point_cloud",
]
