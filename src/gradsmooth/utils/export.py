"""
Export utilities for smoothing results.

Writes evolved point clouds back to NumPy ``.npy`` arrays with the same
(n, d) shape as the input.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np

from ..exceptions import BoundaryIOError

logger = logging.getLogger(__name__)


def save_point_cloud(output_path: Union[str, Path], points: np.ndarray) -> Path:
    """
    Save a point cloud to a ``.npy`` file.

    Parent directories are created as needed.

    Args:
        output_path: Destination path (must end in .npy)
        points: (n, d) array of coordinates

    Returns:
        Path of the written file

    Raises:
        BoundaryIOError: If the path or array is invalid or the write fails
    """
    output_path = Path(output_path)
    if output_path.suffix.lower() != ".npy":
        raise BoundaryIOError(f"Unsupported output format: {output_path.suffix}")

    points = np.asarray(points)
    if points.ndim != 2:
        raise BoundaryIOError(f"Expected an (n, d) array, got shape {points.shape}")

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        np.save(output_path, points, allow_pickle=False)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to save point cloud to {output_path}: {e}")
        raise BoundaryIOError(f"Could not write {output_path}: {e}") from e

    logger.info(f"Saved {points.shape[0]} points to {output_path}")
    return output_path
