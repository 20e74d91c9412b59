"""
Local tangent/normal frame estimation.

For a neighborhood of ``k`` points in ``d`` dimensions the covariance of the
neighbor coordinates about their centroid is eigen-decomposed. Eigenvalues are
sorted in descending order:

- the eigenvectors of the largest ``d - c`` eigenvalues span the tangent
  subspace (directions of greatest spread, along the sampled manifold);
- the eigenvectors of the smallest ``c`` eigenvalues span the normal subspace.

When the split is ambiguous (all neighbors coincide, or the eigenvalues on both
sides of the split are tied) the frame falls back to the identity with every
direction treated as tangent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from ..exceptions import ConfigurationError, NumericalDegeneracy

logger = logging.getLogger(__name__)

# Relative tolerance on the eigenvalue gap across the tangent/normal split
SPLIT_RTOL = 1e-10


@dataclass(frozen=True)
class LocalFrame:
    """
    Orthonormal frame at one point.

    Attributes:
        centroid: (d,) neighborhood centroid the frame is anchored at
        tangent: (d, d - c) tangent basis vectors as columns
        normal: (d, c) normal basis vectors as columns (d, 0) when degenerate
        degenerate: True when the identity fallback was used
    """

    centroid: np.ndarray
    tangent: np.ndarray
    normal: np.ndarray
    degenerate: bool = False

    @property
    def basis(self) -> np.ndarray:
        """Full (d, d) basis, tangent columns first."""
        return np.concatenate([self.tangent, self.normal], axis=1)


@dataclass(frozen=True)
class LocalFrames:
    """
    Frames for a block of ``m`` points.

    ``basis[i]`` holds eigenvectors as columns in descending eigenvalue order;
    ``tangent_mask[i, j]`` tells whether column ``j`` belongs to the tangent
    subspace. Degenerate rows carry the identity basis with every column tangent.
    """

    centroids: np.ndarray
    basis: np.ndarray
    tangent_mask: np.ndarray
    degenerate: np.ndarray

    def __len__(self) -> int:
        return int(self.centroids.shape[0])

    @property
    def n_degenerate(self) -> int:
        return int(np.count_nonzero(self.degenerate))

    def frame(self, i: int) -> LocalFrame:
        """Extract the frame of row ``i``."""
        mask = self.tangent_mask[i]
        return LocalFrame(
            centroid=self.centroids[i],
            tangent=self.basis[i][:, mask],
            normal=self.basis[i][:, ~mask],
            degenerate=bool(self.degenerate[i]),
        )


class LocalGeometryEstimator:
    """PCA-based tangent/normal frame estimation."""

    def __init__(self, dimension: int, codimension: int):
        if not 0 < codimension < dimension:
            raise ConfigurationError(
                f"codimension must satisfy 0 < c < d, got c={codimension}, d={dimension}"
            )
        self.dimension = int(dimension)
        self.codimension = int(codimension)
        self.n_tangent = self.dimension - self.codimension

    def _covariance(self, neighbor_coords: np.ndarray):
        centroids = neighbor_coords.mean(axis=-2)
        centered = neighbor_coords - centroids[..., None, :]
        k = neighbor_coords.shape[-2]
        cov = np.einsum("...ki,...kj->...ij", centered, centered) / k
        return centroids, cov

    def _ambiguous(self, eigenvalues: np.ndarray) -> np.ndarray:
        # eigenvalues sorted descending along the last axis
        largest = np.maximum(eigenvalues[..., 0], 0.0)
        gap = eigenvalues[..., self.n_tangent - 1] - eigenvalues[..., self.n_tangent]
        return gap <= SPLIT_RTOL * largest

    def _split(self, centroid: np.ndarray, eigenvalues: np.ndarray, eigenvectors: np.ndarray) -> LocalFrame:
        if self._ambiguous(eigenvalues):
            raise NumericalDegeneracy(
                f"Eigenvalue split at index {self.n_tangent} is ambiguous: {eigenvalues}"
            )
        return LocalFrame(
            centroid=centroid,
            tangent=eigenvectors[:, : self.n_tangent],
            normal=eigenvectors[:, self.n_tangent:],
        )

    def identity_frame(self, centroid: np.ndarray) -> LocalFrame:
        """Fallback frame treating all directions as tangent."""
        return LocalFrame(
            centroid=centroid,
            tangent=np.eye(self.dimension),
            normal=np.zeros((self.dimension, 0)),
            degenerate=True,
        )

    def estimate(self, neighbor_coords: np.ndarray) -> LocalFrame:
        """
        Estimate the frame of a single neighborhood.

        Args:
            neighbor_coords: (k, d) coordinates of the neighbors

        Returns:
            LocalFrame, or the identity fallback for a degenerate neighborhood
        """
        neighbor_coords = np.asarray(neighbor_coords, dtype=np.float64)
        centroid, cov = self._covariance(neighbor_coords)
        w, V = np.linalg.eigh(cov)
        order = np.argsort(w)[::-1]
        try:
            return self._split(centroid, w[order], V[:, order])
        except NumericalDegeneracy as e:
            logger.debug("Falling back to identity frame: %s", e)
            return self.identity_frame(centroid)

    def estimate_batch(self, neighbor_coords: np.ndarray) -> LocalFrames:
        """
        Estimate frames for a block of neighborhoods.

        Args:
            neighbor_coords: (m, k, d) neighbor coordinates

        Returns:
            LocalFrames for the block
        """
        neighbor_coords = np.asarray(neighbor_coords, dtype=np.float64)
        m, _, d = neighbor_coords.shape
        centroids, cov = self._covariance(neighbor_coords)

        # eigh returns ascending eigenvalues; flip to descending
        w, V = np.linalg.eigh(cov)
        w = w[:, ::-1]
        V = V[:, :, ::-1]

        degenerate = self._ambiguous(w)
        tangent_mask = np.zeros((m, d), dtype=bool)
        tangent_mask[:, : self.n_tangent] = True
        if degenerate.any():
            V = V.copy()
            V[degenerate] = np.eye(d)
            tangent_mask[degenerate] = True
            logger.debug("%d of %d neighborhoods are degenerate; using identity frames", int(degenerate.sum()), m)

        return LocalFrames(
            centroids=centroids,
            basis=np.ascontiguousarray(V),
            tangent_mask=tangent_mask,
            degenerate=degenerate,
        )
