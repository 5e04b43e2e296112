"""Tests for SparseMap and MapPoint."""

import numpy as np
import pytest

from monovo.frontend.sparse_map import MapPoint, SparseMap


class TestMapPoint:
    """Test suite for MapPoint."""

    def test_default_direction(self):
        point = MapPoint(position=[1.0, 2.0])
        np.testing.assert_array_equal(point.direction, [1.0, 0.0])
        assert point.feature_points == []

    def test_invalid_position(self):
        with pytest.raises(ValueError, match="Position must be"):
            MapPoint(position=[1.0, 2.0, 3.0])


class TestSparseMap:
    """Test suite for SparseMap accumulation."""

    def test_starts_with_origin(self):
        sparse_map = SparseMap()

        assert len(sparse_map) == 1
        origin = sparse_map.points[0]
        np.testing.assert_array_equal(origin.position, [0.0, 0.0])
        np.testing.assert_array_equal(origin.direction, [1.0, 0.0])
        assert sparse_map.num_batches == 0
        assert sparse_map.get_all_positions().shape == (0, 3)

    def test_record_pose_appends(self):
        sparse_map = SparseMap()
        sparse_map.record_pose(1.5, -2.0)
        sparse_map.record_pose(3.0, -4.0, direction=np.array([0.0, 1.0]))

        np.testing.assert_array_equal(
            sparse_map.trajectory, [[0.0, 0.0], [1.5, -2.0], [3.0, -4.0]]
        )
        np.testing.assert_array_equal(sparse_map.points[2].direction, [0.0, 1.0])

    def test_record_points_kept_verbatim(self):
        sparse_map = SparseMap()
        batch = np.arange(12, dtype=np.float64).reshape(4, 3)

        sparse_map.record_points(batch)
        sparse_map.record_points(batch)

        assert sparse_map.num_batches == 2
        assert sparse_map.num_points == 8
        np.testing.assert_array_equal(sparse_map.point_batches[1], batch)
        np.testing.assert_array_equal(
            sparse_map.get_all_positions(), np.vstack([batch, batch])
        )

    def test_recorded_batch_is_copied(self):
        sparse_map = SparseMap()
        batch = np.zeros((2, 3))
        sparse_map.record_points(batch)
        batch[0, 0] = 5.0

        assert sparse_map.point_batches[0][0, 0] == 0.0

    def test_empty_batch(self):
        sparse_map = SparseMap()
        sparse_map.record_points(np.empty((0, 3)))

        assert sparse_map.num_batches == 1
        assert sparse_map.num_points == 0

    def test_bad_batch_shape(self):
        with pytest.raises(ValueError, match="Nx3"):
            SparseMap().record_points(np.zeros((4, 2)))

