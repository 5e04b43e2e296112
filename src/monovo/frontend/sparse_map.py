"""Trajectory samples and accumulated point cloud."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

ORIGIN = (0.0, 0.0)
INITIAL_HEADING = (1.0, 0.0)


@dataclass
class MapPoint:
    """One trajectory sample on the top-down (x, z) plane.

    Attributes:
        position: 2D position (camera x, camera z) in the first camera's frame
        feature_points: Image points associated with the sample; not
            populated by the pipeline
        direction: 2D heading vector on the same plane
    """

    position: np.ndarray  # (2,) float64
    feature_points: list[np.ndarray] = field(default_factory=list)
    direction: np.ndarray = field(
        default_factory=lambda: np.array(INITIAL_HEADING, dtype=np.float64)
    )

    def __post_init__(self) -> None:
        """Ensure arrays are proper types."""
        self.position = np.asarray(self.position, dtype=np.float64).flatten()
        self.direction = np.asarray(self.direction, dtype=np.float64).flatten()

        if self.position.shape != (2,):
            raise ValueError(f"Position must be (2,), got {self.position.shape}")
        if self.direction.shape != (2,):
            raise ValueError(f"Direction must be (2,), got {self.direction.shape}")


class SparseMap:
    """Append-only trajectory and point cloud of a VO run.

    Nothing is ever merged, filtered or removed: every trajectory sample and
    every triangulated batch is kept exactly as recorded. The map starts
    with a single MapPoint at the origin facing ``(1, 0)``.
    """

    def __init__(self) -> None:
        self._points: list[MapPoint] = []
        self._batches: list[np.ndarray] = []
        self._add_origin()

    def _add_origin(self) -> None:
        self._points.append(
            MapPoint(position=np.array(ORIGIN), direction=np.array(INITIAL_HEADING))
        )

    def record_pose(
        self, x: float, y: float, direction: np.ndarray | None = None
    ) -> MapPoint:
        """Append a trajectory sample.

        Args:
            x: Camera x coordinate
            y: Camera depth (z) coordinate, shown as y on the top-down plane
            direction: Optional 2D heading; defaults to the initial heading

        Returns:
            The newly created MapPoint
        """
        if direction is None:
            direction = np.array(INITIAL_HEADING)

        point = MapPoint(position=np.array([x, y]), direction=direction)
        self._points.append(point)
        return point

    def record_points(self, points_3d: np.ndarray) -> None:
        """Append a batch of triangulated points verbatim.

        Args:
            points_3d: Nx3 array of points (N may be zero)
        """
        batch = np.asarray(points_3d, dtype=np.float64)
        if batch.size == 0:
            batch = np.empty((0, 3), dtype=np.float64)
        if batch.ndim != 2 or batch.shape[1] != 3:
            raise ValueError(f"Points must be Nx3, got {batch.shape}")
        self._batches.append(batch.copy())

    @property
    def points(self) -> list[MapPoint]:
        return list(self._points)

    @property
    def trajectory(self) -> np.ndarray:
        """Return Mx2 array of trajectory positions, origin first."""
        return np.array([p.position for p in self._points], dtype=np.float64)

    @property
    def point_batches(self) -> list[np.ndarray]:
        return [batch.copy() for batch in self._batches]

    def get_all_positions(self) -> np.ndarray:
        """Return every recorded 3D point as one Kx3 array."""
        if len(self._batches) == 0:
            return np.empty((0, 3), dtype=np.float64)
        return np.concatenate(self._batches, axis=0)

    @property
    def num_batches(self) -> int:
        return len(self._batches)

    @property
    def num_points(self) -> int:
        """Return the total number of 3D points across all batches."""
        return sum(len(batch) for batch in self._batches)

    def __len__(self) -> int:
        """Return number of trajectory samples (origin included)."""
        return len(self._points)
