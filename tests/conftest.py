"""Shared fixtures: synthetic images, synthetic two-view scenes and fakes."""

import cv2
import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from monovo.frontend.feature_detector import Features
from monovo.frontend.feature_matcher import MatchSet
from monovo.frontend.two_view import PoseRecoveryError, RelativePose
from monovo.video_reader import Frame

NUM_FAKE_FEATURES = 64


class ListFrameSource:
    """Frame source handing out a fixed list of frames, then None."""

    def __init__(self, frames: list[Frame]) -> None:
        self._frames = list(frames)
        self.num_pulled = 0

    def get_next_frame(self) -> Frame | None:
        if not self._frames:
            return None
        self.num_pulled += 1
        return self._frames.pop(0)


def make_tagged_frames(tags) -> list[Frame]:
    """Create tiny frames whose pixel value identifies them."""
    return [
        Frame(index=int(tag), image=np.full((8, 8), tag, dtype=np.uint8))
        for tag in tags
    ]


class FakeDetector:
    """Detector producing features tagged with the frame's pixel value."""

    def __init__(self) -> None:
        self.calls: list[int] = []

    def detect(self, image: np.ndarray) -> Features:
        tag = int(image[0, 0])
        self.calls.append(tag)
        keypoints = tuple(
            cv2.KeyPoint(float(i), float(tag), 1.0) for i in range(NUM_FAKE_FEATURES)
        )
        descriptors = np.full((NUM_FAKE_FEATURES, 32), tag, dtype=np.uint8)
        return Features(keypoints=keypoints, descriptors=descriptors)


class FakeMatcher:
    """Matcher returning a scripted number of matches per candidate tag.

    ``pair_counts`` keyed by (reference tag, candidate tag) take precedence.
    """

    def __init__(
        self,
        counts: dict[int, int],
        default: int = 0,
        pair_counts: dict[tuple[int, int], int] | None = None,
    ) -> None:
        self._counts = counts
        self._default = default
        self._pair_counts = pair_counts or {}

    def match(self, reference: Features, candidate: Features) -> MatchSet:
        ref_tag = int(reference.descriptors[0, 0])
        tag = int(candidate.descriptors[0, 0])
        count = self._pair_counts.get((ref_tag, tag), self._counts.get(tag, self._default))
        n = min(count, NUM_FAKE_FEATURES)
        return MatchSet(
            query_indices=np.arange(n, dtype=np.int32),
            train_indices=np.arange(n, dtype=np.int32),
            distances=np.zeros(n, dtype=np.float32),
        )


class FakeGeometry:
    """Geometry service with a constant relative motion.

    Calls listed in ``fail_on`` (0-based) raise PoseRecoveryError.
    """

    def __init__(
        self,
        translation=(0.5, 0.0, 1.0),
        points_per_step: int = 10,
        fail_on: tuple[int, ...] = (),
    ) -> None:
        self._translation = np.asarray(translation, dtype=np.float64)
        self._points_per_step = points_per_step
        self._fail_on = set(fail_on)
        self.num_pose_calls = 0
        self.triangulated_pairs: list[tuple[np.ndarray, np.ndarray]] = []

    def estimate_relative_pose(self, points1, points2, camera_matrix) -> RelativePose:
        call = self.num_pose_calls
        self.num_pose_calls += 1
        if call in self._fail_on:
            raise PoseRecoveryError("scripted failure")
        return RelativePose(
            rotation=np.eye(3),
            translation=self._translation.copy(),
            num_inliers=len(points1),
            inliers=np.ones(len(points1), dtype=bool),
        )

    def triangulate(self, P1, P2, points1, points2, camera_matrix=None) -> np.ndarray:
        self.triangulated_pairs.append((P1.copy(), P2.copy()))
        return np.full((self._points_per_step, 3), len(self.triangulated_pairs), dtype=np.float64)


@pytest.fixture
def camera_matrix() -> np.ndarray:
    return np.array(
        [[500.0, 0.0, 320.0], [0.0, 500.0, 240.0], [0.0, 0.0, 1.0]],
        dtype=np.float64,
    )


@pytest.fixture
def textured_image() -> np.ndarray:
    """Random blurred texture that ORB finds plenty of corners in."""
    rng = np.random.default_rng(42)
    noise = rng.integers(0, 256, size=(480, 640), dtype=np.uint8)
    return cv2.GaussianBlur(noise, (3, 3), 0)


def project(K: np.ndarray, points_cam: np.ndarray) -> np.ndarray:
    """Pinhole projection of Nx3 camera-frame points to Nx2 pixels."""
    uvw = (K @ points_cam.T).T
    return uvw[:, :2] / uvw[:, 2:3]


@pytest.fixture
def synthetic_scene(camera_matrix):
    """Two calibrated views of a random point cloud.

    Returns:
        Dict with points_3d (Nx3, first camera frame), R and t (second
        camera: x2 = R @ x1 + t), and pixel observations pts1, pts2
    """
    rng = np.random.default_rng(7)
    n = 120
    points_3d = np.column_stack(
        [
            rng.uniform(-2.0, 2.0, n),
            rng.uniform(-1.5, 1.5, n),
            rng.uniform(4.0, 8.0, n),
        ]
    )
    R = Rotation.from_euler("xyz", [2.0, -4.0, 1.0], degrees=True).as_matrix()
    t = np.array([0.6, 0.05, 0.1])

    pts1 = project(camera_matrix, points_3d)
    pts2 = project(camera_matrix, (R @ points_3d.T).T + t)

    return {"points_3d": points_3d, "R": R, "t": t, "pts1": pts1, "pts2": pts2}
