"""Frontend components of the monocular VO pipeline.

- FramePool: sliding buffer of recent frames
- MatchResolver: match sufficiency search over the pool
- PoseChain / SE3: absolute pose accumulation
- SparseMap: trajectory samples and triangulated points
- TwoViewGeometry: essential matrix pose recovery and triangulation
- MonocularVO: the pipeline driver
"""

from .feature_detector import FeatureDetector, Features
from .feature_matcher import FeatureMatcher, MatchSet
from .frame_pool import FramePool
from .match_resolver import MatchResolver, Resolution
from .pose import SE3, PoseChain, compose_projection
from .sparse_map import MapPoint, SparseMap
from .two_view import PoseRecoveryError, RelativePose, TwoViewGeometry
from .visual_odometry import MonocularVO, StepStatus, VOStep, VOTiming

__all__ = [
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
    # Pose
    "SE3",
    "PoseChain",
    "compose_projection",
    # Map
    "MapPoint",
    "SparseMap",
]
