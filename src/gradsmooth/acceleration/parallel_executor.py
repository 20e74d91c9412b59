"""
Parallel execution infrastructure for per-point processing.

Provides PointParallelExecutor, which statically partitions the points of a
cloud into disjoint contiguous ranges and runs one worker call per range on a
fixed-size thread pool. Returning from ``run_iteration`` is the iteration
barrier: every range has been written before the caller continues.
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

RangeWorker = Callable[[int, int], None]


def _worker_wrapper(start: int, stop: int, worker_fn: RangeWorker) -> Tuple[int, Optional[BaseException]]:
    """
    Run ``worker_fn`` on one point range and capture any error.

    Returns:
        Tuple of (start, exception or None)
    """
    try:
        worker_fn(start, stop)
        return (start, None)
    except Exception as e:
        logger.error(f"Worker error on points [{start}, {stop}): {type(e).__name__}: {e}")
        return (start, e)


class PointParallelExecutor:
    """
    Thread-parallel executor for per-point work with static partitioning.

    Each worker receives a half-open row range ``[start, stop)`` and must write
    only to those rows of the output buffer, so no locking is needed inside an
    iteration.

    Example:
        with PointParallelExecutor(n_workers=4) as executor:
            executor.run_iteration(lambda start, stop: ..., n_points)
    """

    def __init__(self, n_workers: Optional[int] = None):
        """
        Initialize parallel executor.

        Args:
            n_workers: Number of worker threads. If None, uses cpu_count - 1
                to leave one core for coordination. Minimum is 1.
        """
        if n_workers is None:
            n_workers = max(1, (os.cpu_count() or 1) - 1)
        else:
            n_workers = max(1, int(n_workers))

        self.n_workers = n_workers
        self._pool: Optional[ThreadPoolExecutor] = None

        logger.debug(
            f"Initialized PointParallelExecutor with {self.n_workers} workers "
            f"(total CPUs: {os.cpu_count()})"
        )

    def __enter__(self) -> "PointParallelExecutor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Shut the thread pool down (a no-op when it was never started)."""
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def partition(self, n_points: int) -> List[Tuple[int, int]]:
        """
        Split ``n_points`` rows into at most ``n_workers`` contiguous ranges.

        Ranges are disjoint, cover every row exactly once, and differ in size
        by at most one. Empty ranges are omitted.
        """
        if n_points <= 0:
            return []
        n_parts = min(self.n_workers, n_points)
        bounds = np.linspace(0, n_points, n_parts + 1).astype(int)
        return [(int(a), int(b)) for a, b in zip(bounds[:-1], bounds[1:]) if b > a]

    def run_iteration(self, worker_fn: RangeWorker, n_points: int) -> None:
        """
        Run ``worker_fn(start, stop)`` over all ranges and wait for completion.

        Args:
            worker_fn: Callable processing rows ``[start, stop)``
            n_points: Total number of rows

        Raises:
            RuntimeError: If any worker fails (chained to the first failure)
        """
        ranges = self.partition(n_points)
        if not ranges:
            logger.warning("No points to process")
            return

        # If only 1 worker or 1 range, use sequential processing (no pool overhead)
        if self.n_workers == 1 or len(ranges) == 1:
            for start, stop in ranges:
                try:
                    worker_fn(start, stop)
                except Exception as e:
                    logger.error(f"Error processing points [{start}, {stop}): {e}", exc_info=True)
                    raise RuntimeError(f"Point processing failed: {e}") from e
            return

        if self._pool is None:
            self._pool = ThreadPoolExecutor(max_workers=self.n_workers, thread_name_prefix="gradsmooth")

        futures = [self._pool.submit(_worker_wrapper, start, stop, worker_fn) for start, stop in ranges]
        # Barrier: all ranges finish before the caller swaps buffers
        outcomes = [f.result() for f in futures]

        errors = [(start, err) for start, err in outcomes if err is not None]
        if errors:
            error_msg = f"{len(errors)} point ranges failed out of {len(ranges)}"
            logger.error(error_msg)
            for start, err in errors[:5]:  # Log first 5 errors
                logger.error(f"  Range starting at {start}: {type(err).__name__}: {err}")
            raise RuntimeError(error_msg) from errors[0][1]


def format_progress(total: int, start_time: float, completed: int) -> str:
    """Format a progress line: completed/total, rate and ETA."""
    elapsed = max(time.time() - start_time, 1e-12)
    rate = completed / elapsed
    eta = (total - completed) / rate if rate > 0 else 0.0
    return (
        f"{completed}/{total} iterations ({100 * completed / max(total, 1):.1f}%) - "
        f"Rate: {rate:.2f} it/s - ETA: {eta:.1f}s"
    )
