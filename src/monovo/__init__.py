"""monovo - monocular visual odometry with a frame-pool match search."""

__version__ = "0.1.0"

# Re-export main classes for convenient imports
from .camera import CameraIntrinsics, ConfigurationError, load_camera_matrix
from .config import VOConfig
from .video_reader import Frame, ImageSequenceReader, VideoReader
from .frontend import (
    SE3,
    FeatureDetector,
    FeatureMatcher,
    Features,
    FramePool,
    MapPoint,
    MatchResolver,
    MatchSet,
    MonocularVO,
    PoseChain,
    PoseRecoveryError,
    RelativePose,
    Resolution,
    SparseMap,
    StepStatus,
    TwoViewGeometry,
    VOStep,
    VOTiming,
)
from .visualization import RerunVisualizer

__all__ = [
    "__version__",
    # Frame sources
    "Frame",
    "VideoReader",
    "ImageSequenceReader",
    # Configuration
    "VOConfig",
    "CameraIntrinsics",
    "ConfigurationError",
    "load_camera_matrix",
    # Pipeline
    "MonocularVO",
    "VOStep",
    "VOTiming",
    "StepStatus",
    # Frame pool / resolver
    "FramePool",
    "MatchResolver",
    "Resolution",
    # Features
    "FeatureDetector",
    "Features",
    "FeatureMatcher",
    "MatchSet",
    # Geometry
    "TwoViewGeometry",
    "RelativePose",
    "PoseRecoveryError",
    "SE3",
    "PoseChain",
    # Map
    "MapPoint",
    "SparseMap",
    # Visualization
    "RerunVisualizer",
]
