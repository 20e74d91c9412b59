"""
Tests for point cloud loading and export.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).parent.parent / "src"))

from gradsmooth.exceptions import BoundaryIOError
from gradsmooth.preprocessing.loader import PointCloudLoader
from gradsmooth.utils.export import save_point_cloud


@pytest.fixture
def sample_points():
    """Generate sample point cloud data."""
    rng = np.random.default_rng(42)
    return rng.uniform(0, 100, (100, 3))


class TestPointCloudLoader:
    """Test cases for the PointCloudLoader class."""

    def test_load_valid_file(self, tmp_path, sample_points):
        path = tmp_path / "cloud.npy"
        np.save(path, sample_points)

        points = PointCloudLoader().load(path)

        assert points.dtype == np.float64
        np.testing.assert_array_equal(points, sample_points)

    def test_integer_array_converted(self, tmp_path):
        path = tmp_path / "ints.npy"
        np.save(path, np.arange(12, dtype=np.int32).reshape(4, 3))

        points = PointCloudLoader(mmap=True).load(str(path))

        assert points.dtype == np.float64
        assert points.shape == (4, 3)

    def test_missing_file(self, tmp_path):
        with pytest.raises(BoundaryIOError, match="not found"):
            PointCloudLoader().load(tmp_path / "missing.npy")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "cloud.txt"
        path.write_text("0 0 0\n")
        with pytest.raises(BoundaryIOError, match="Unsupported"):
            PointCloudLoader().load(path)

    def test_wrong_rank(self, tmp_path):
        path = tmp_path / "flat.npy"
        np.save(path, np.arange(6.0))
        with pytest.raises(BoundaryIOError, match="shape"):
            PointCloudLoader().load(path)

    def test_empty_array(self, tmp_path):
        path = tmp_path / "empty.npy"
        np.save(path, np.empty((0, 3)))
        with pytest.raises(BoundaryIOError, match="empty"):
            PointCloudLoader().load(path)

    def test_non_finite(self, tmp_path, sample_points):
        sample_points[3, 1] = np.inf
        path = tmp_path / "inf.npy"
        np.save(path, sample_points)
        with pytest.raises(BoundaryIOError, match="Invalid coordinates"):
            PointCloudLoader().load(path)

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "corrupt.npy"
        path.write_bytes(b"not a numpy file")
        with pytest.raises(BoundaryIOError, match="Could not read"):
            PointCloudLoader().load(path)

    def test_boundary_error_is_os_error(self, tmp_path):
        with pytest.raises(OSError):
            PointCloudLoader().load(tmp_path / "missing.npy")

    def test_get_metadata(self, tmp_path, sample_points):
        path = tmp_path / "cloud.npy"
        np.save(path, sample_points.astype(np.float32))

        meta = PointCloudLoader().get_metadata(path)

        assert meta["num_points"] == 100
        assert meta["dimension"] == 3
        assert meta["dtype"] == "float32"
        assert meta["file_path"] == str(path)


class TestSavePointCloud:
    def test_round_trip(self, tmp_path, sample_points):
        out = save_point_cloud(tmp_path / "nested" / "dir" / "out.npy", sample_points)

        assert out.exists()
        np.testing.assert_array_equal(np.load(out), sample_points)

    def test_rejects_other_formats(self, tmp_path, sample_points):
        with pytest.raises(BoundaryIOError, match="Unsupported output format"):
            save_point_cloud(tmp_path / "out.csv", sample_points)

    def test_rejects_wrong_rank(self, tmp_path):
        with pytest.raises(BoundaryIOError):
            save_point_cloud(tmp_path / "out.npy", np.zeros(3))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
