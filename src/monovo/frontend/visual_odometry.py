"""Monocular visual odometry pipeline driver."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator

import numpy as np

from ..camera import CameraIntrinsics, ConfigurationError, load_camera_matrix
from ..config import VOConfig
from ..video_reader import Frame, FrameSource, ImageSequenceReader, VideoReader
from .feature_detector import FeatureDetector, Features
from .feature_matcher import FeatureMatcher
from .frame_pool import FramePool
from .match_resolver import MatchResolver, Resolution
from .pose import PoseChain
from .sparse_map import SparseMap
from .two_view import PoseRecoveryError, TwoViewGeometry

logger = logging.getLogger(__name__)


class StepStatus(Enum):
    """Outcome of a single pipeline step."""

    INITIALIZING = "INITIALIZING"  # first accepted step, no points recorded
    OK = "OK"
    DEGRADED = "DEGRADED"  # accepted with fewer than min_matches
    FAILED = "FAILED"  # pose recovery failed, pose retained


@dataclass
class VOTiming:
    """Timing breakdown for a single step."""

    resolve_ms: float = 0.0
    pose_ms: float = 0.0
    triangulation_ms: float = 0.0
    total_ms: float = 0.0


@dataclass
class VOStep:
    """Output of the pipeline for one step."""

    step_id: int
    frame: Frame
    reference_frame: Frame
    status: StepStatus
    projection: np.ndarray  # 3x4, absolute
    num_matches: int
    initial_match_count: int
    consumed: int
    num_points: int = 0
    pose_inliers: int = 0
    timing: VOTiming = field(default_factory=VOTiming)
    # Nx2 pixel correspondences (reference frame, this frame)
    reference_points: np.ndarray = field(default_factory=lambda: np.empty((0, 2)))
    current_points: np.ndarray = field(default_factory=lambda: np.empty((0, 2)))

    @property
    def position(self) -> np.ndarray:
        """Return the translation column of the absolute projection."""
        return self.projection[:, 3].copy()

    @property
    def is_accepted(self) -> bool:
        return self.status != StepStatus.FAILED


class MonocularVO:
    """Frame-pool based monocular visual odometry.

    Each step:
    1. Shift the frame pool by the frames used last step and refill it
    2. Resolve a frame with enough matches to the reference frame
    3. Recover the relative pose (essential matrix) and chain it on
    4. Triangulate the correspondences and record the map update
    5. Make the accepted frame the new reference

    A pose recovery failure only affects its own step: the pose, reference
    frame and map stay as they were, and the pool still moves on.
    """

    def __init__(
        self,
        source: FrameSource,
        camera_matrix: np.ndarray,
        resolver: MatchResolver | None = None,
        geometry: TwoViewGeometry | None = None,
        pool_size: int = 5,
    ) -> None:
        """Initialize pipeline.

        Args:
            source: Frame source; None from it ends the run
            camera_matrix: 3x3 intrinsic matrix K
            resolver: Match sufficiency resolver (also provides the feature
                extractor used for the reference frame)
            geometry: Two-view geometry service
            pool_size: Frame pool capacity
        """
        intrinsics = CameraIntrinsics.from_matrix(camera_matrix)
        logger.debug(
            "Camera intrinsics: fx=%.1f, fy=%.1f, cx=%.1f, cy=%.1f",
            intrinsics.fx,
            intrinsics.fy,
            intrinsics.cx,
            intrinsics.cy,
        )

        self._source = source
        self._intrinsics = intrinsics
        self._camera_matrix = np.asarray(camera_matrix, dtype=np.float64)
        self._resolver = resolver or MatchResolver()
        self._geometry = geometry or TwoViewGeometry()
        self._pool = FramePool(pool_size)

        # State
        self._chain = PoseChain()
        self._map = SparseMap()
        self._reference_frame: Frame | None = None
        self._reference_features: Features | None = None
        self._pending_consumed: int = 0
        self._step_id: int = 0
        self._num_accepted: int = 0
        self._num_failed: int = 0
        self._is_initialized: bool = False
        self._is_finished: bool = False

    @classmethod
    def from_config(
        cls, config: VOConfig, source: FrameSource | None = None
    ) -> MonocularVO:
        """Build the pipeline from a VOConfig.

        Args:
            config: Pipeline configuration
            source: Optional frame source; by default opened from
                ``config.video_path`` (a video file, or a directory holding
                an EuRoC-style ``cam0`` folder)

        Raises:
            ConfigurationError: If no calibration file is configured or the
                calibration is malformed
            FileNotFoundError: If the video path doesn't exist
        """
        if config.camera_matrix_path is None:
            raise ConfigurationError("camera_matrix_path is not set")
        camera_matrix = load_camera_matrix(config.camera_matrix_path)

        if source is None:
            if config.video_path is None:
                raise ConfigurationError("video_path is not set")
            source = open_frame_source(config.video_path)

        resolver = MatchResolver(
            detector=FeatureDetector(n_features=config.n_features),
            matcher=FeatureMatcher(ratio_threshold=config.ratio_threshold),
            min_matches=config.min_matches,
        )
        geometry = TwoViewGeometry(
            ransac_prob=config.ransac_prob,
            ransac_threshold=config.ransac_threshold,
        )
        return cls(
            source=source,
            camera_matrix=camera_matrix,
            resolver=resolver,
            geometry=geometry,
            pool_size=config.pool_size,
        )

    def initialize(self) -> bool:
        """Take the first frame of the source as the reference.

        Returns:
            False if the source is empty
        """
        frame = self._source.get_next_frame()
        if frame is None:
            logger.info("Frame source is empty")
            self._is_finished = True
            return False

        self._reference_frame = frame
        self._reference_features = self._resolver.detector.detect(frame.image)
        self._is_initialized = True
        logger.debug(
            "Initialized with frame #%d (%d features)",
            frame.index,
            len(self._reference_features),
        )
        return True

    def step(self) -> VOStep | None:
        """Run one pipeline iteration.

        Returns:
            VOStep for the iteration, or None at end of stream
        """
        if self._is_finished:
            return None
        if not self._is_initialized and not self.initialize():
            return None

        self._pool.shift(self._pending_consumed)
        self._pending_consumed = 0
        if not self._pool.refill(self._source):
            logger.info(
                "End of stream after %d steps (%d frames left unprocessed)",
                self._step_id,
                len(self._pool),
            )
            self._is_finished = True
            return None

        timing = VOTiming()
        t_start = time.perf_counter()
        step_id = self._step_id
        self._step_id += 1

        t0 = time.perf_counter()
        resolution = self._resolver.resolve(self._reference_features, self._pool)
        timing.resolve_ms = (time.perf_counter() - t0) * 1000
        self._pending_consumed = resolution.consumed

        pts_ref, pts_cur = resolution.matches.matched_points(
            self._reference_features, resolution.features
        )

        t0 = time.perf_counter()
        try:
            relative = self._geometry.estimate_relative_pose(
                pts_ref, pts_cur, self._camera_matrix
            )
        except PoseRecoveryError as e:
            timing.pose_ms = (time.perf_counter() - t0) * 1000
            timing.total_ms = (time.perf_counter() - t_start) * 1000
            self._num_failed += 1
            logger.warning(
                "Step %d: pose recovery failed for frame #%d against #%d: %s",
                step_id,
                resolution.frame.index,
                self._reference_frame.index,
                e,
            )
            return self._make_step(
                step_id, resolution, StepStatus.FAILED, timing, (pts_ref, pts_cur)
            )
        timing.pose_ms = (time.perf_counter() - t0) * 1000

        P_prev = self._chain.projection
        P_new = self._chain.advance(relative.transform)

        t0 = time.perf_counter()
        points_3d = self._geometry.triangulate(
            P_prev, P_new, pts_ref, pts_cur, self._camera_matrix
        )
        timing.triangulation_ms = (time.perf_counter() - t0) * 1000

        # The first pair has no real baseline yet, its points are not kept
        if self._num_accepted == 0:
            status = StepStatus.INITIALIZING
        else:
            self._map.record_points(points_3d)
            status = StepStatus.OK if resolution.sufficient else StepStatus.DEGRADED
        self._num_accepted += 1

        self._map.record_pose(P_new[0, 3], P_new[2, 3])

        vo_step = self._make_step(
            step_id,
            resolution,
            status,
            timing,
            (pts_ref, pts_cur),
            num_points=len(points_3d),
            pose_inliers=relative.num_inliers,
        )

        self._reference_frame = resolution.frame
        self._reference_features = resolution.features

        timing.total_ms = (time.perf_counter() - t_start) * 1000
        logger.debug(
            "Step %d: frame #%d, %s, %d matches, %d points",
            step_id,
            resolution.frame.index,
            status.value,
            resolution.num_matches,
            len(points_3d),
        )
        return vo_step

    def _make_step(
        self,
        step_id: int,
        resolution: Resolution,
        status: StepStatus,
        timing: VOTiming,
        matched_points: tuple[np.ndarray, np.ndarray],
        num_points: int = 0,
        pose_inliers: int = 0,
    ) -> VOStep:
        return VOStep(
            step_id=step_id,
            frame=resolution.frame,
            reference_frame=self._reference_frame,
            status=status,
            projection=self._chain.projection,
            num_matches=resolution.num_matches,
            initial_match_count=resolution.initial_match_count,
            consumed=resolution.consumed,
            num_points=num_points,
            pose_inliers=pose_inliers,
            timing=timing,
            reference_points=matched_points[0],
            current_points=matched_points[1],
        )

    def iter_steps(
        self,
        max_steps: int | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> Iterator[VOStep]:
        """Yield steps until end of stream, max_steps, or should_stop().

        Args:
            max_steps: Optional limit on the number of steps
            should_stop: Checked once per iteration before stepping
        """
        count = 0
        while max_steps is None or count < max_steps:
            if should_stop is not None and should_stop():
                logger.info("Stop requested after %d steps", count)
                return

            vo_step = self.step()
            if vo_step is None:
                return

            count += 1
            yield vo_step

    def run(
        self,
        max_steps: int | None = None,
        should_stop: Callable[[], bool] | None = None,
    ) -> int:
        """Process the stream to completion.

        Returns:
            Number of steps processed
        """
        return sum(1 for _ in self.iter_steps(max_steps, should_stop))

    def get_trajectory(self) -> list[np.ndarray]:
        """Return every absolute projection, starting with [I | 0]."""
        return self._chain.history

    def get_trajectory_positions(self) -> np.ndarray:
        """Return Nx3 translation columns of every projection."""
        return np.array([P[:, 3] for P in self._chain.history], dtype=np.float64)

    def get_map(self) -> SparseMap:
        return self._map

    @property
    def camera_matrix(self) -> np.ndarray:
        return self._camera_matrix.copy()

    @property
    def intrinsics(self) -> CameraIntrinsics:
        return self._intrinsics

    @property
    def current_projection(self) -> np.ndarray:
        return self._chain.projection

    @property
    def reference_frame(self) -> Frame | None:
        return self._reference_frame

    @property
    def frame_pool(self) -> FramePool:
        return self._pool

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    @property
    def is_finished(self) -> bool:
        return self._is_finished

    @property
    def num_steps(self) -> int:
        return self._step_id

    @property
    def num_accepted(self) -> int:
        return self._num_accepted

    @property
    def num_failed(self) -> int:
        return self._num_failed


def open_frame_source(path: str | Path) -> FrameSource:
    """Open a video file, or an image sequence when given a directory."""
    path = Path(path)
    if path.is_dir():
        return ImageSequenceReader(str(path))
    return VideoReader(str(path))
