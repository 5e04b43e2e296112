"""Match sufficiency search over the frame pool.

Frame-to-frame matching fails now and then (motion blur, occlusion, fast
turns). When the newest frame in the pool does not share enough
correspondences with the reference frame, the resolver walks back through
the older buffered frames and settles on the most recent one that does.

The result also says how many frames from the front of the pool are used
up, which is exactly how far :meth:`FramePool.shift` must advance before
the next refill.

A degraded step leaves its frame in the pool as the new reference, so a
later search can pair the reference with itself. Those correspondences have
no parallax and pose recovery rejects them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..video_reader import Frame
from .feature_detector import FeatureDetector, Features
from .feature_matcher import FeatureMatcher, MatchSet
from .frame_pool import FramePool

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Outcome of a match sufficiency search.

    Attributes:
        matches: Correspondences between the reference and the chosen frame
        consumed: Number of frames to drop from the front of the pool
        frame: The chosen frame
        features: Features of the chosen frame
        pool_index: Index of the chosen frame in the pool
        sufficient: False if no frame reached the minimum match count and
            the tail frame's match set was kept as a fallback
        initial_match_count: Match count against the tail frame
        candidates_checked: Number of pool frames examined
    """

    matches: MatchSet
    consumed: int
    frame: Frame
    features: Features
    pool_index: int
    sufficient: bool
    initial_match_count: int
    candidates_checked: int

    @property
    def num_matches(self) -> int:
        return len(self.matches)


class MatchResolver:
    """Picks the frame to pair with the reference for pose recovery."""

    def __init__(
        self,
        detector: FeatureDetector | None = None,
        matcher: FeatureMatcher | None = None,
        min_matches: int = 20,
    ) -> None:
        """Initialize resolver.

        Args:
            detector: Feature extractor applied to every examined frame
            matcher: Descriptor matcher (reference is the query side)
            min_matches: Correspondences needed to accept a frame
        """
        if min_matches < 1:
            raise ValueError(f"min_matches must be >= 1, got {min_matches}")
        self._detector = detector or FeatureDetector()
        self._matcher = matcher or FeatureMatcher()
        self._min_matches = min_matches

    def resolve(self, reference: Features, pool: FramePool) -> Resolution:
        """Find the newest pool frame with enough matches to the reference.

        The tail frame is tried first and taken if sufficient, consuming the
        whole pool. Otherwise frames are tried from the second newest back to
        the oldest; the first sufficient one wins and consumes everything up
        to and including itself. If none suffices the tail match set is
        returned with ``sufficient=False`` and the consumed count left by the
        last examined frame.

        Args:
            reference: Features of the current reference frame
            pool: Non-empty frame pool

        Returns:
            Resolution describing the chosen frame

        Raises:
            ValueError: If the pool is empty
        """
        if len(pool) == 0:
            raise ValueError("Cannot resolve matches against an empty frame pool")

        tail_index = len(pool) - 1
        tail_frame = pool[tail_index]
        tail_features = self._detector.detect(tail_frame.image)
        tail_matches = self._matcher.match(reference, tail_features)
        initial_count = len(tail_matches)

        consumed = len(pool)
        if initial_count >= self._min_matches:
            return Resolution(
                matches=tail_matches,
                consumed=consumed,
                frame=tail_frame,
                features=tail_features,
                pool_index=tail_index,
                sufficient=True,
                initial_match_count=initial_count,
                candidates_checked=1,
            )

        checked = 1
        for index in range(len(pool) - 2, -1, -1):
            candidate = pool[index]
            features = self._detector.detect(candidate.image)
            matches = self._matcher.match(reference, features)
            consumed = index + 1
            checked += 1

            if len(matches) >= self._min_matches:
                logger.info(
                    "Matches %d -> %d using pool frame %d (frame #%d)",
                    initial_count,
                    len(matches),
                    index,
                    candidate.index,
                )
                return Resolution(
                    matches=matches,
                    consumed=consumed,
                    frame=candidate,
                    features=features,
                    pool_index=index,
                    sufficient=True,
                    initial_match_count=initial_count,
                    candidates_checked=checked,
                )

        logger.warning(
            "Only %d matches (< %d) after scanning %d frames; keeping frame #%d",
            initial_count,
            self._min_matches,
            checked,
            tail_frame.index,
        )
        return Resolution(
            matches=tail_matches,
            consumed=consumed,
            frame=tail_frame,
            features=tail_features,
            pool_index=tail_index,
            sufficient=False,
            initial_match_count=initial_count,
            candidates_checked=checked,
        )

    @property
    def min_matches(self) -> int:
        return self._min_matches

    @property
    def detector(self) -> FeatureDetector:
        return self._detector

    @property
    def matcher(self) -> FeatureMatcher:
        return self._matcher
