"""Camera intrinsics and calibration file loading."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import yaml


class ConfigurationError(ValueError):
    """Calibration or configuration data is missing or malformed."""


@dataclass
class CameraIntrinsics:
    """Camera intrinsic parameters (pinhole model)."""

    fx: float  # Focal length x (pixels)
    fy: float  # Focal length y (pixels)
    cx: float  # Principal point x (pixels)
    cy: float  # Principal point y (pixels)

    def to_matrix(self) -> np.ndarray:
        """Return 3x3 camera intrinsic matrix K."""
        return np.array(
            [[self.fx, 0.0, self.cx], [0.0, self.fy, self.cy], [0.0, 0.0, 1.0]],
            dtype=np.float64,
        )

    @classmethod
    def from_matrix(cls, K: np.ndarray) -> CameraIntrinsics:
        K = np.asarray(K, dtype=np.float64)
        if K.shape != (3, 3):
            raise ConfigurationError(f"Camera matrix must be 3x3, got {K.shape}")
        return cls(fx=K[0, 0], fy=K[1, 1], cx=K[0, 2], cy=K[1, 2])


def load_camera_matrix(path: str | Path) -> np.ndarray:
    """Read a 3x3 camera matrix from a calibration file.

    Supported formats:
        - Plain text: 9 whitespace separated numbers, row major
        - YAML with ``camera_matrix`` as a 3x3 nested list or as a
          mapping with a 9-element ``data`` list (OpenCV style)
        - YAML with EuRoC ``intrinsics: [fu, fv, cu, cv]``

    Args:
        path: Path to the calibration file

    Returns:
        3x3 float64 intrinsic matrix K

    Raises:
        ConfigurationError: If the file is missing or its data is incomplete
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(
            f"Path: {path}\nCalibration file was not opened."
        )

    if path.suffix.lower() in (".yaml", ".yml"):
        values = _parse_yaml_calibration(path)
    else:
        values = _parse_text_calibration(path)

    K = np.asarray(values, dtype=np.float64).reshape(3, 3)
    if not np.isfinite(K).all():
        raise ConfigurationError(f"Camera matrix contains non-finite values: {path}")
    if K[0, 0] <= 0 or K[1, 1] <= 0:
        raise ConfigurationError(f"Focal lengths must be positive in {path}")
    return K


def _parse_text_calibration(path: Path) -> list[float]:
    try:
        tokens = path.read_text().split()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read calibration file {path}") from e

    if len(tokens) < 9:
        raise ConfigurationError(
            f"Camera matrix was not filled full: expected 9 values, "
            f"got {len(tokens)} in {path}"
        )

    try:
        return [float(token) for token in tokens[:9]]
    except ValueError as e:
        raise ConfigurationError(f"Invalid number in camera matrix file {path}") from e


def _parse_yaml_calibration(path: Path) -> list[float]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read calibration file {path}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Calibration file {path} must contain a mapping")

    if "camera_matrix" in data:
        matrix = data["camera_matrix"]
        if isinstance(matrix, dict):
            matrix = matrix.get("data")
        values = np.asarray(matrix, dtype=object).flatten().tolist() if matrix else []
    elif "intrinsics" in data:
        intrinsics = data["intrinsics"]
        if not isinstance(intrinsics, list) or len(intrinsics) != 4:
            raise ConfigurationError(f"Invalid intrinsics in {path}")
        try:
            fu, fv, cu, cv = (float(v) for v in intrinsics)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid intrinsics in {path}") from e
        values = CameraIntrinsics(fx=fu, fy=fv, cx=cu, cy=cv).to_matrix().flatten().tolist()
    else:
        raise ConfigurationError(
            f"No 'camera_matrix' or 'intrinsics' entry found in {path}"
        )

    if len(values) != 9:
        raise ConfigurationError(
            f"Camera matrix was not filled full: expected 9 values, "
            f"got {len(values)} in {path}"
        )

    try:
        return [float(v) for v in values]
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid number in camera matrix in {path}") from e
