"""Pipeline configuration loaded from YAML."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path

import yaml

from .camera import ConfigurationError


@dataclass
class VOConfig:
    """Tunable parameters of the monocular VO pipeline.

    Attributes:
        pool_size: Number of frames buffered for the match sufficiency search
        min_matches: Correspondences required before a frame is accepted
            without searching further back in the pool
        ratio_threshold: Lowe's ratio test threshold for descriptor matching
        n_features: Maximum number of ORB features per frame
        ransac_prob: Confidence for essential matrix RANSAC
        ransac_threshold: RANSAC inlier threshold (pixels)
        max_steps: Stop after this many pipeline steps (None = until end of stream)
        camera_matrix_path: Calibration file with the 3x3 intrinsic matrix
        video_path: Video file (or EuRoC-style sequence root) to process
        visualize: Stream the map to a rerun viewer while running
    """

    pool_size: int = 5
    min_matches: int = 20
    ratio_threshold: float = 0.75
    n_features: int = 500
    ransac_prob: float = 0.999
    ransac_threshold: float = 1.0
    max_steps: int | None = None
    camera_matrix_path: str | None = None
    video_path: str | None = None
    visualize: bool = True

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check parameter ranges.

        Raises:
            ConfigurationError: If any parameter is out of range
        """
        if self.pool_size < 1:
            raise ConfigurationError(f"pool_size must be >= 1, got {self.pool_size}")
        if self.min_matches < 1:
            raise ConfigurationError(
                f"min_matches must be >= 1, got {self.min_matches}"
            )
        if not 0.0 < self.ratio_threshold <= 1.0:
            raise ConfigurationError(
                f"ratio_threshold must be in (0, 1], got {self.ratio_threshold}"
            )
        if self.n_features < 1:
            raise ConfigurationError(f"n_features must be >= 1, got {self.n_features}")
        if not 0.0 < self.ransac_prob < 1.0:
            raise ConfigurationError(
                f"ransac_prob must be in (0, 1), got {self.ransac_prob}"
            )
        if self.ransac_threshold <= 0:
            raise ConfigurationError(
                f"ransac_threshold must be positive, got {self.ransac_threshold}"
            )
        if self.max_steps is not None and self.max_steps < 0:
            raise ConfigurationError(f"max_steps must be >= 0, got {self.max_steps}")

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> VOConfig:
        """Load configuration from a YAML mapping.

        Relative ``camera_matrix_path`` and ``video_path`` entries are
        resolved against the directory holding the YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigurationError: If the document is not a mapping, has unknown
                keys, or holds out-of-range values
        """
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(path, "r") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {yaml_path}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {yaml_path} must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown config keys in {yaml_path}: {', '.join(unknown)}"
            )

        for key in ("camera_matrix_path", "video_path"):
            value = data.get(key)
            if value is not None and not Path(value).is_absolute():
                data[key] = str(path.parent / value)

        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigurationError(f"Invalid value in {yaml_path}: {e}") from e

    def to_dict(self) -> dict:
        return asdict(self)
