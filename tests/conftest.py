"""Shared fixtures for gradsmooth tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).parent.parent / "src"))

from gradsmooth.smoothing.spatial_index import KDTreeIndex


class SpyIndex(KDTreeIndex):
    """k-d tree index that counts builds and rebuilds."""

    def __init__(self, max_leaf_size: int = 10):
        super().__init__(max_leaf_size=max_leaf_size)
        self.build_calls = 0
        self.rebuild_calls = 0

    def build(self, points):
        self.build_calls += 1
        super().build(points)

    def rebuild(self, points):
        self.rebuild_calls += 1
        KDTreeIndex.build(self, points)


@pytest.fixture
def spy_index():
    return SpyIndex()


@pytest.fixture
def five_point_cloud():
    """Four coplanar corners of the unit square plus one point above the plane."""
    return np.array([
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [1.0, 1.0, 0.0],
        [0.5, 0.5, 0.1],
    ])


@pytest.fixture
def noisy_sphere():
    """300 points near the unit sphere in R^3."""
    rng = np.random.default_rng(7)
    v = rng.standard_normal(size=(300, 3))
    v /= np.linalg.norm(v, axis=1, keepdims=True)
    return v + 0.03 * rng.standard_normal(size=v.shape)


@pytest.fixture
def noisy_circle():
    """200 points near the unit circle in R^2."""
    rng = np.random.default_rng(11)
    theta = rng.uniform(0.0, 2 * np.pi, size=200)
    pts = np.column_stack([np.cos(theta), np.sin(theta)])
    return pts + 0.05 * rng.standard_normal(size=pts.shape)
