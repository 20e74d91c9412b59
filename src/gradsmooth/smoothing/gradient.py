"""
Empirical distance-to-measure (DTM) gradient estimation.

The cloud is treated as an empirical measure with mass 1/n per sample. With
bandwidth ``k`` the DTM at a location is the mean squared distance to its ``k``
nearest neighbors, and the descent direction at a sample ``p`` is taken as

    g(p) = (2 / k) * (centroid_k(p) - p)

which points from ``p`` towards the centroid of its neighbors. ``g`` is then
split with the local frame into a normal and a tangent component.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..exceptions import ConfigurationError
from .local_geometry import LocalFrame, LocalFrames


@dataclass(frozen=True)
class GradientComponents:
    """Normal and tangent parts of the DTM gradient, each shaped like the points."""

    normal: np.ndarray
    tangent: np.ndarray

    @property
    def total(self) -> np.ndarray:
        return self.normal + self.tangent


class GradientEstimator:
    """
    Computes the DTM descent direction and splits it with a local frame.

    With ``normal_projection`` the gradient is projected onto the normal
    subspace only and the tangent component is always zero.
    """

    def __init__(self, num_neighbors: int, normal_projection: bool = False):
        if num_neighbors <= 0:
            raise ConfigurationError(f"num_neighbors must be positive, got {num_neighbors}")
        self.num_neighbors = int(num_neighbors)
        self.normal_projection = bool(normal_projection)
        self._scale = 2.0 / self.num_neighbors

    def raw_gradient(self, point: np.ndarray, neighbor_coords: np.ndarray) -> np.ndarray:
        """
        DTM descent direction at ``point``.

        Args:
            point: (d,) or (m, d) query point(s)
            neighbor_coords: (k, d) or (m, k, d) neighbor coordinates

        Returns:
            Gradient vector(s) shaped like ``point``
        """
        centroid = np.asarray(neighbor_coords, dtype=np.float64).mean(axis=-2)
        return self._scale * (centroid - point)

    def decompose(self, gradient: np.ndarray, frame: LocalFrame) -> GradientComponents:
        """Split a single gradient vector with a single frame."""
        normal = frame.normal @ (frame.normal.T @ gradient)
        if self.normal_projection:
            tangent = np.zeros_like(gradient)
        else:
            tangent = frame.tangent @ (frame.tangent.T @ gradient)
        return GradientComponents(normal=normal, tangent=tangent)

    def estimate(self, point: np.ndarray, neighbor_coords: np.ndarray, frame: LocalFrame) -> GradientComponents:
        """Gradient components at a single point."""
        return self.decompose(self.raw_gradient(point, neighbor_coords), frame)

    def estimate_batch(self, points: np.ndarray, frames: LocalFrames) -> GradientComponents:
        """
        Gradient components for a block of points.

        The frame centroids are the neighbor centroids, so no neighbor
        coordinates are needed here.

        Args:
            points: (m, d) current positions of the block
            frames: LocalFrames estimated from the block's neighborhoods

        Returns:
            GradientComponents with (m, d) arrays
        """
        gradient = self._scale * (frames.centroids - points)
        # Coefficients of the gradient in each point's eigenbasis
        coeffs = np.einsum("mij,mi->mj", frames.basis, gradient)
        normal = np.einsum("mij,mj->mi", frames.basis, np.where(frames.tangent_mask, 0.0, coeffs))
        if self.normal_projection:
            tangent = np.zeros_like(gradient)
        else:
            tangent = np.einsum("mij,mj->mi", frames.basis, np.where(frames.tangent_mask, coeffs, 0.0))
        return GradientComponents(normal=normal, tangent=tangent)
