"""ORB feature extraction for monocular visual odometry."""

from dataclasses import dataclass

import cv2
import numpy as np


@dataclass(frozen=True)
class Features:
    """Keypoints and descriptors extracted from one frame.

    Attributes:
        keypoints: Tuple of OpenCV KeyPoint objects
        descriptors: Nx32 array of ORB binary descriptors (uint8), or None if no features
    """

    keypoints: tuple[cv2.KeyPoint, ...]
    descriptors: np.ndarray | None

    @classmethod
    def empty(cls) -> "Features":
        return cls(keypoints=(), descriptors=None)

    @property
    def points(self) -> np.ndarray:
        """Return Nx2 array of keypoint (x, y) coordinates."""
        if len(self.keypoints) == 0:
            return np.empty((0, 2), dtype=np.float32)
        return np.array([kp.pt for kp in self.keypoints], dtype=np.float32)

    def __len__(self) -> int:
        return len(self.keypoints)


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert a BGR (or BGRA) image to single channel; grayscale passes through."""
    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0]
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    raise ValueError(f"Unsupported image shape {image.shape}")


class FeatureDetector:
    """ORB keypoint detector and descriptor extractor.

    Every frame the pipeline looks at, whether the newest pool frame or an
    older candidate examined during the match sufficiency search, goes
    through :meth:`detect`.
    """

    def __init__(
        self,
        n_features: int = 500,
        scale_factor: float = 1.2,
        n_levels: int = 8,
        edge_threshold: int = 31,
        fast_threshold: int = 20,
    ) -> None:
        """Initialize ORB detector.

        Args:
            n_features: Maximum number of features to retain (sorted by score)
            scale_factor: Pyramid decimation ratio (>1.0)
            n_levels: Number of pyramid levels
            edge_threshold: Border margin (pixels) where features are not detected
            fast_threshold: Threshold for FAST corner detection
        """
        self._orb = cv2.ORB_create(
            nfeatures=n_features,
            scaleFactor=scale_factor,
            nlevels=n_levels,
            edgeThreshold=edge_threshold,
            fastThreshold=fast_threshold,
        )
        self._n_features = n_features

    def detect(self, image: np.ndarray) -> Features:
        """Extract ORB keypoints and descriptors.

        Args:
            image: Grayscale or BGR uint8 image

        Returns:
            Features of the image (empty when nothing was detected)
        """
        keypoints, descriptors = self._orb.detectAndCompute(to_grayscale(image), None)

        if keypoints is None or descriptors is None:
            return Features.empty()

        return Features(keypoints=tuple(keypoints), descriptors=descriptors)

    @property
    def n_features(self) -> int:
        return self._n_features
