"""
Error types raised by the smoothing engine and its boundary services.

Global failures (configuration, index construction, I/O) abort a run and are
surfaced to the caller. Per-point numerical problems are absorbed by the
estimators with a documented fallback and never abort a run.
"""


class GradSmoothError(Exception):
    """Base class for all gradsmooth errors."""


class ConfigurationError(GradSmoothError, ValueError):
    """Invalid run parameters, detected before any indexing or iteration."""


class IndexBuildError(GradSmoothError):
    """The spatial index cannot be built or cannot answer the requested query."""


class NumericalDegeneracy(GradSmoothError):
    """
    Rank-deficient local covariance at an individual point.

    Raised internally by the local geometry estimator and handled there by
    falling back to the identity frame.
    """


class BoundaryIOError(GradSmoothError, OSError):
    """Failure while loading or saving a point cloud."""


class FlowDivergenceError(GradSmoothError, ArithmeticError):
    """Positions left the representable range; the step sizes are too large."""
