"""
Point Cloud Data Loader

This module handles loading and initial validation of point cloud arrays.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np

from ..exceptions import BoundaryIOError

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = ['.npy']


class PointCloudLoader:
    """
    A class for loading point clouds stored as NumPy arrays.

    Features:
    - ``.npy`` files holding an (n, d) array of coordinates
    - Shape and finiteness validation
    - Metadata extraction without reading the whole array
    """

    def __init__(self, *, mmap: bool = False):
        """
        Initialize the point cloud loader.

        Args:
            mmap: If True, memory-map the file while validating (the returned
                array is always an in-memory float64 copy)
        """
        self.mmap = mmap

    def _check_path(self, file_path: Path) -> None:
        if not file_path.exists():
            raise BoundaryIOError(f"File not found: {file_path}")
        if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise BoundaryIOError(f"Unsupported file format: {file_path.suffix}")

    def load(self, file_path: Union[str, Path]) -> np.ndarray:
        """
        Load a point cloud file.

        Args:
            file_path: Path to the .npy file

        Returns:
            (n, d) float64 array of coordinates

        Raises:
            BoundaryIOError: If the file is missing, unsupported, unreadable,
                or does not hold a finite non-empty (n, d) array
        """
        file_path = Path(file_path)
        self._check_path(file_path)

        logger.info(f"Loading point cloud data from {file_path}")

        try:
            raw = np.load(file_path, mmap_mode='r' if self.mmap else None, allow_pickle=False)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading point cloud data from {file_path}: {e}")
            raise BoundaryIOError(f"Could not read {file_path}: {e}") from e

        if raw.ndim != 2:
            raise BoundaryIOError(f"Expected an (n, d) array in {file_path}, got shape {raw.shape}")
        if raw.shape[0] == 0 or raw.shape[1] == 0:
            raise BoundaryIOError(f"Point cloud in {file_path} is empty (shape {raw.shape})")
        if not np.issubdtype(raw.dtype, np.number) or np.issubdtype(raw.dtype, np.complexfloating):
            raise BoundaryIOError(f"Point cloud in {file_path} has non-real dtype {raw.dtype}")

        points = np.array(raw, dtype=np.float64)
        if not np.isfinite(points).all():
            raise BoundaryIOError(f"Invalid coordinates in file: {file_path}")

        logger.info(f"Loaded {points.shape[0]} points of dimension {points.shape[1]}")
        return points

    def get_metadata(self, file_path: Union[str, Path]) -> dict:
        """
        Extract metadata from a point cloud file without loading it.

        Args:
            file_path: Path to the .npy file

        Returns:
            Dictionary with file_path, num_points, dimension and dtype
        """
        file_path = Path(file_path)
        self._check_path(file_path)
        try:
            header = np.load(file_path, mmap_mode='r', allow_pickle=False)
        except (OSError, ValueError) as e:
            raise BoundaryIOError(f"Could not read {file_path}: {e}") from e

        shape = header.shape
        return {
            'file_path': str(file_path),
            'num_points': int(shape[0]) if len(shape) > 0 else 0,
            'dimension': int(shape[1]) if len(shape) > 1 else 0,
            'dtype': str(header.dtype),
        }
