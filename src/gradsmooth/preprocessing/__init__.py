"""
Point Cloud Data Preprocessing Module

This module contains the loader that brings point clouds into memory:
- Data loading and validation
- Metadata inspection
"""

from .loader import PointCloudLoader

__all__ = [
    "PointCloudLoader",
]
