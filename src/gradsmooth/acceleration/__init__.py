"""
Acceleration Module

This module provides the parallel execution infrastructure used by the
smoothing engine:
- Static partitioning of points into disjoint per-worker ranges
- Thread-pool execution with one barrier per iteration
"""

from .parallel_executor import PointParallelExecutor, format_progress

__all__ = [
    "PointParallelExecutor",
    "format_progress",
]
