"""Descriptor matching between a reference frame and a candidate frame."""

from dataclasses import dataclass

import cv2
import numpy as np

from .feature_detector import Features


@dataclass(frozen=True)
class MatchSet:
    """Correspondences between a reference feature set and a candidate one.

    Attributes:
        query_indices: Indices into the reference frame's keypoints
        train_indices: Indices into the candidate frame's keypoints
        distances: Hamming distances between matched descriptors

    No query index appears twice.
    """

    query_indices: np.ndarray  # (N,) int
    train_indices: np.ndarray  # (N,) int
    distances: np.ndarray  # (N,) float32

    @classmethod
    def empty(cls) -> "MatchSet":
        return cls(
            query_indices=np.empty(0, dtype=np.int32),
            train_indices=np.empty(0, dtype=np.int32),
            distances=np.empty(0, dtype=np.float32),
        )

    def __len__(self) -> int:
        return len(self.query_indices)

    def matched_points(
        self, reference: Features, candidate: Features
    ) -> tuple[np.ndarray, np.ndarray]:
        """Look up the pixel coordinates of each correspondence.

        Args:
            reference: Features the query indices refer to
            candidate: Features the train indices refer to

        Returns:
            Tuple of (reference_points, candidate_points), each Nx2 float64
        """
        if len(self) == 0:
            empty = np.empty((0, 2), dtype=np.float64)
            return empty, empty.copy()

        pts_ref = reference.points[self.query_indices].astype(np.float64)
        pts_cand = candidate.points[self.train_indices].astype(np.float64)
        return pts_ref, pts_cand


class FeatureMatcher:
    """Brute-force Hamming matcher with Lowe's ratio test.

    A correspondence is kept only if its best distance is strictly below
    ``ratio_threshold`` times the second-best distance, which rejects
    ambiguous matches. A descriptor with a single neighbour has nothing to
    compare against and is kept as is.
    """

    def __init__(
        self,
        ratio_threshold: float = 0.75,
        max_hamming_distance: int | None = None,
    ) -> None:
        """Initialize matcher.

        Args:
            ratio_threshold: Lowe's ratio test threshold in (0, 1]
            max_hamming_distance: Optional absolute distance cap (ORB max is 256)
        """
        if not 0.0 < ratio_threshold <= 1.0:
            raise ValueError(f"ratio_threshold must be in (0, 1], got {ratio_threshold}")

        # knnMatch cannot be combined with crossCheck
        self._bf_matcher = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=False)
        self._ratio_threshold = ratio_threshold
        self._max_distance = max_hamming_distance

    def match(self, reference: Features, candidate: Features) -> MatchSet:
        """Match reference descriptors against candidate descriptors.

        Args:
            reference: Features of the reference frame (query side)
            candidate: Features of the candidate frame (train side)

        Returns:
            MatchSet of ratio-test survivors
        """
        if (
            len(reference) == 0
            or len(candidate) == 0
            or reference.descriptors is None
            or candidate.descriptors is None
        ):
            return MatchSet.empty()

        knn_matches = self._bf_matcher.knnMatch(
            reference.descriptors,
            candidate.descriptors,
            k=2,
        )

        query_indices = []
        train_indices = []
        distances = []

        for match_pair in knn_matches:
            if len(match_pair) == 0:
                continue

            best = match_pair[0]
            if len(match_pair) >= 2:
                if not best.distance < self._ratio_threshold * match_pair[1].distance:
                    continue

            if self._max_distance is not None and best.distance > self._max_distance:
                continue

            query_indices.append(best.queryIdx)
            train_indices.append(best.trainIdx)
            distances.append(best.distance)

        if len(query_indices) == 0:
            return MatchSet.empty()

        return MatchSet(
            query_indices=np.array(query_indices, dtype=np.int32),
            train_indices=np.array(train_indices, dtype=np.int32),
            distances=np.array(distances, dtype=np.float32),
        )

    @property
    def ratio_threshold(self) -> float:
        return self._ratio_threshold
