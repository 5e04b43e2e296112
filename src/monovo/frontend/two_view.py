"""Two-view geometry: relative pose recovery and triangulation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import cv2
import numpy as np

from .pose import SE3

logger = logging.getLogger(__name__)

# Five-point algorithm minimum
MIN_POSE_POINTS = 5


class PoseRecoveryError(RuntimeError):
    """Relative pose could not be recovered from the correspondences.

    Raised for degenerate epipolar geometry: too few or collinear
    correspondences, no essential matrix, or no point passing the
    cheirality check.
    """


@dataclass
class RelativePose:
    """Result of essential matrix decomposition.

    Attributes:
        rotation: 3x3 rotation from the first to the second camera
        translation: (3,) unit-norm translation (monocular, up to scale)
        num_inliers: Correspondences passing RANSAC and the cheirality check
        inliers: (N,) bool mask over the input correspondences
    """

    rotation: np.ndarray
    translation: np.ndarray
    num_inliers: int
    inliers: np.ndarray

    @property
    def transform(self) -> SE3:
        return SE3.from_Rt(self.rotation, self.translation)


class TwoViewGeometry:
    """Essential matrix pose recovery and linear triangulation via OpenCV."""

    def __init__(
        self,
        ransac_prob: float = 0.999,
        ransac_threshold: float = 1.0,
        min_w: float = 1e-12,
    ) -> None:
        """Initialize geometry service.

        Args:
            ransac_prob: RANSAC confidence for cv2.findEssentialMat
            ransac_threshold: RANSAC inlier threshold in pixels
            min_w: Homogeneous coordinates with ``|w|`` at or below this are
                treated as points at infinity and dropped
        """
        self._ransac_prob = ransac_prob
        self._ransac_threshold = ransac_threshold
        self._min_w = min_w

    def estimate_relative_pose(
        self,
        points1: np.ndarray,
        points2: np.ndarray,
        camera_matrix: np.ndarray,
    ) -> RelativePose:
        """Recover the rigid motion between two views.

        Args:
            points1: Nx2 pixel coordinates in the first (reference) view
            points2: Nx2 pixel coordinates in the second view
            camera_matrix: 3x3 intrinsic matrix K

        Returns:
            RelativePose with R, t such that ``x2 = R @ x1 + t``

        Raises:
            PoseRecoveryError: If the geometry is degenerate
        """
        p1 = np.asarray(points1, dtype=np.float64).reshape(-1, 2)
        p2 = np.asarray(points2, dtype=np.float64).reshape(-1, 2)
        K = np.asarray(camera_matrix, dtype=np.float64)

        if p1.shape[0] != p2.shape[0]:
            raise ValueError(
                f"Point count mismatch: {p1.shape[0]} vs {p2.shape[0]}"
            )
        if p1.shape[0] < MIN_POSE_POINTS:
            raise PoseRecoveryError(
                f"Need at least {MIN_POSE_POINTS} correspondences, got {p1.shape[0]}"
            )

        try:
            E, mask = cv2.findEssentialMat(
                p1,
                p2,
                cameraMatrix=K,
                method=cv2.RANSAC,
                prob=self._ransac_prob,
                threshold=self._ransac_threshold,
            )
        except cv2.error as e:
            raise PoseRecoveryError(f"findEssentialMat failed: {e}") from e

        if E is None or E.shape[0] < 3 or not np.isfinite(E).all():
            raise PoseRecoveryError("No essential matrix found")

        # Several solutions may come back stacked vertically; take the first
        if E.shape[0] > 3:
            E = E[:3, :3]

        try:
            retval, R, t, pose_mask = cv2.recoverPose(E, p1, p2, K, mask=mask)
        except cv2.error as e:
            raise PoseRecoveryError(f"recoverPose failed: {e}") from e

        num_inliers = int(retval)
        if num_inliers <= 0:
            raise PoseRecoveryError("No correspondence passed the cheirality check")
        if not np.isfinite(R).all() or not np.isfinite(t).all():
            raise PoseRecoveryError("recoverPose returned non-finite values")

        inliers = np.asarray(pose_mask).reshape(-1) > 0
        return RelativePose(
            rotation=np.asarray(R, dtype=np.float64),
            translation=np.asarray(t, dtype=np.float64).reshape(3),
            num_inliers=num_inliers,
            inliers=inliers,
        )

    def triangulate(
        self,
        P1: np.ndarray,
        P2: np.ndarray,
        points1: np.ndarray,
        points2: np.ndarray,
        camera_matrix: np.ndarray | None = None,
    ) -> np.ndarray:
        """Triangulate correspondences seen from two camera poses.

        Args:
            P1: 3x4 pose of the first camera ([R | t] form)
            P2: 3x4 pose of the second camera
            points1: Nx2 pixel coordinates in the first view
            points2: Nx2 pixel coordinates in the second view
            camera_matrix: Optional intrinsics; when given the projection
                matrices used are ``K @ P1`` and ``K @ P2``

        Returns:
            Mx3 Euclidean points (M <= N); points whose homogeneous
            coordinate is zero are dropped
        """
        P1 = np.asarray(P1, dtype=np.float64)
        P2 = np.asarray(P2, dtype=np.float64)
        if P1.shape != (3, 4) or P2.shape != (3, 4):
            raise ValueError(
                f"Projection matrices must be 3x4, got {P1.shape} and {P2.shape}"
            )

        p1 = np.asarray(points1, dtype=np.float64).reshape(-1, 2)
        p2 = np.asarray(points2, dtype=np.float64).reshape(-1, 2)
        if p1.shape[0] != p2.shape[0]:
            raise ValueError(
                f"Point count mismatch: {p1.shape[0]} vs {p2.shape[0]}"
            )
        if p1.shape[0] == 0:
            return np.empty((0, 3), dtype=np.float64)

        if camera_matrix is not None:
            K = np.asarray(camera_matrix, dtype=np.float64)
            P1 = K @ P1
            P2 = K @ P2

        # cv2.triangulatePoints expects 2xN
        points_4d = cv2.triangulatePoints(P1, P2, p1.T, p2.T)
        return self.dehomogenize(points_4d)

    def dehomogenize(self, points_4d: np.ndarray) -> np.ndarray:
        """Divide 4xN homogeneous points by w, dropping degenerate ones.

        Returns:
            Mx3 array of finite Euclidean points
        """
        points_4d = np.asarray(points_4d, dtype=np.float64)
        w = points_4d[3]

        valid = np.isfinite(points_4d).all(axis=0) & (np.abs(w) > self._min_w)
        num_dropped = int(np.count_nonzero(~valid))
        if num_dropped:
            logger.debug("Dropped %d degenerate points (w ~ 0)", num_dropped)

        points_3d = (points_4d[:3, valid] / w[valid]).T
        finite = np.isfinite(points_3d).all(axis=1)
        return points_3d[finite]
