"""
Unit tests for PCA-based local frame estimation.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).parent.parent / "src"))

from gradsmooth.exceptions import ConfigurationError
from gradsmooth.smoothing.local_geometry import LocalGeometryEstimator


@pytest.fixture
def planar_patch():
    """Noisy samples of the z = 0 plane with more spread in x than in y."""
    rng = np.random.default_rng(3)
    xy = rng.uniform(-1.0, 1.0, size=(40, 2)) * np.array([2.0, 1.0])
    z = 1e-3 * rng.standard_normal(40)
    return np.column_stack([xy, z])


class TestEstimate:
    """Test suite for single-neighborhood estimation."""

    def test_plane_normal(self, planar_patch):
        """The normal of a flat patch is the z axis."""
        frame = LocalGeometryEstimator(dimension=3, codimension=1).estimate(planar_patch)

        assert not frame.degenerate
        assert frame.tangent.shape == (3, 2)
        assert frame.normal.shape == (3, 1)
        assert abs(frame.normal[2, 0]) == pytest.approx(1.0, abs=1e-4)
        # Largest spread comes first
        assert abs(frame.tangent[0, 0]) == pytest.approx(1.0, abs=1e-2)
        np.testing.assert_allclose(frame.centroid, planar_patch.mean(axis=0))

    def test_orthonormal_basis(self, planar_patch):
        frame = LocalGeometryEstimator(3, 1).estimate(planar_patch)
        basis = frame.basis
        np.testing.assert_allclose(basis.T @ basis, np.eye(3), atol=1e-12)

    def test_line_in_3d(self):
        """A 1-manifold in R^3 has one tangent and two normal directions."""
        t = np.linspace(-1.0, 1.0, 15)
        line = np.column_stack([t, 2 * t, np.zeros_like(t)])
        line[::2, 2] += 1e-3
        line[1::3, 0] -= 2e-3

        frame = LocalGeometryEstimator(3, 2).estimate(line)

        assert frame.tangent.shape == (3, 1)
        assert frame.normal.shape == (3, 2)
        direction = np.array([1.0, 2.0, 0.0]) / np.sqrt(5.0)
        assert abs(direction @ frame.tangent[:, 0]) == pytest.approx(1.0, abs=1e-4)

    def test_coincident_neighbors_use_identity(self):
        """All neighbors at one location fall back to the identity frame."""
        coords = np.tile([[1.0, 2.0, 3.0]], (6, 1))

        frame = LocalGeometryEstimator(3, 1).estimate(coords)

        assert frame.degenerate
        np.testing.assert_array_equal(frame.tangent, np.eye(3))
        assert frame.normal.shape == (3, 0)

    def test_tied_split_uses_identity(self):
        """Square corners with c=2 tie the two largest eigenvalues."""
        corners = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 1.0, 0.0]])

        frame = LocalGeometryEstimator(3, 2).estimate(corners)

        assert frame.degenerate
        assert frame.tangent.shape == (3, 3)

    def test_square_corners_codimension_one(self):
        """The same corners with c=1 give a well-defined z normal."""
        corners = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [1.0, 1.0, 0.0]])

        frame = LocalGeometryEstimator(3, 1).estimate(corners)

        assert not frame.degenerate
        np.testing.assert_allclose(np.abs(frame.normal[:, 0]), [0.0, 0.0, 1.0], atol=1e-12)

    @pytest.mark.parametrize("dimension,codimension", [(3, 0), (3, 3), (2, 5)])
    def test_invalid_codimension(self, dimension, codimension):
        with pytest.raises(ConfigurationError):
            LocalGeometryEstimator(dimension, codimension)


class TestEstimateBatch:
    """Batched estimation agrees with the single-neighborhood path."""

    def test_matches_single(self, planar_patch):
        rng = np.random.default_rng(5)
        blocks = np.stack([planar_patch[rng.choice(40, 8, replace=False)] for _ in range(6)])
        estimator = LocalGeometryEstimator(3, 1)

        frames = estimator.estimate_batch(blocks)

        assert len(frames) == 6
        assert frames.n_degenerate == 0
        for i in range(6):
            single = estimator.estimate(blocks[i])
            batched = frames.frame(i)
            np.testing.assert_allclose(batched.centroid, single.centroid)
            # Compare projectors, eigenvector signs are arbitrary
            np.testing.assert_allclose(
                batched.normal @ batched.normal.T, single.normal @ single.normal.T, atol=1e-10
            )

    def test_degenerate_rows(self, planar_patch):
        coincident = np.tile([[0.5, 0.5, 0.5]], (8, 1))
        blocks = np.stack([planar_patch[:8], coincident, planar_patch[8:16]])

        frames = LocalGeometryEstimator(3, 1).estimate_batch(blocks)

        np.testing.assert_array_equal(frames.degenerate, [False, True, False])
        assert frames.n_degenerate == 1
        np.testing.assert_array_equal(frames.basis[1], np.eye(3))
        assert frames.tangent_mask[1].all()
        np.testing.assert_array_equal(frames.tangent_mask[0], [True, True, False])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
