"""Rigid transforms and the absolute pose chain.

The pipeline expresses every camera as a 3x4 projection matrix in the frame
of the very first camera (``P_0 = [I | 0]``). Each accepted step recovers a
relative rigid motion ``[R | t]`` between consecutive reference frames and
chains it on:

    P_t = P_(t-1) @ [[R, t], [0, 0, 0, 1]]

truncated back to 3x4.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class SE3:
    """Rigid body transformation (rotation + translation).

    Attributes:
        rotation: 3x3 orthonormal rotation matrix (det = +1)
        translation: 3D translation vector
    """

    rotation: np.ndarray  # 3x3 rotation matrix
    translation: np.ndarray  # (3,) translation vector

    def __post_init__(self) -> None:
        """Validate and normalize inputs."""
        self.rotation = np.asarray(self.rotation, dtype=np.float64)
        self.translation = np.asarray(self.translation, dtype=np.float64).flatten()

        if self.rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got {self.rotation.shape}")
        if self.translation.shape != (3,):
            raise ValueError(
                f"Translation must be (3,), got {self.translation.shape}"
            )

    @classmethod
    def from_Rt(cls, R: np.ndarray, t: np.ndarray) -> SE3:
        """Create SE3 from rotation matrix and translation vector.

        Args:
            R: 3x3 rotation matrix
            t: 3D translation vector (any shape that flattens to 3, e.g. the
                3x1 column returned by cv2.recoverPose)
        """
        return cls(rotation=R, translation=t)

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> SE3:
        """Create SE3 from a 4x4 homogeneous or 3x4 projection matrix."""
        T = np.asarray(T)
        if T.shape not in ((4, 4), (3, 4)):
            raise ValueError(f"Transform must be 4x4 or 3x4, got {T.shape}")
        return cls(rotation=T[:3, :3], translation=T[:3, 3])

    def to_matrix(self) -> np.ndarray:
        """Convert to 4x4 homogeneous transformation matrix [[R, t], [0, 1]]."""
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    def to_projection(self) -> np.ndarray:
        """Return the 3x4 matrix [R | t]."""
        return self.to_matrix()[:3, :]

    def compose(self, other: SE3) -> SE3:
        """Compose with another transformation: ``self @ other``."""
        R = self.rotation @ other.rotation
        t = self.rotation @ other.translation + self.translation
        return SE3(rotation=R, translation=t)

    def __matmul__(self, other: SE3) -> SE3:
        return self.compose(other)


def compose_projection(P_prev: np.ndarray, R: np.ndarray, t: np.ndarray) -> np.ndarray:
    """Chain a relative motion onto an absolute projection matrix.

    Args:
        P_prev: Previous absolute 3x4 (or 4x4) projection matrix
        R: 3x3 relative rotation
        t: Relative translation (3, or 3x1)

    Returns:
        New absolute 3x4 projection matrix ``P_prev @ [R|t; 0 0 0 1]``
    """
    P_prev = np.asarray(P_prev, dtype=np.float64)
    if P_prev.shape not in ((3, 4), (4, 4)):
        raise ValueError(f"Projection must be 3x4 or 4x4, got {P_prev.shape}")

    return (SE3.from_matrix(P_prev) @ SE3.from_Rt(R, t)).to_projection()


class PoseChain:
    """Running absolute camera pose, advanced by relative motions.

    The chain is never re-anchored: the pose at step t always results from
    the full unbroken product of every relative motion since ``P_0``.
    """

    def __init__(self, initial: np.ndarray | None = None) -> None:
        """Initialize the chain.

        Args:
            initial: Optional starting 3x4 projection; defaults to [I | 0]
        """
        if initial is None:
            initial = np.eye(3, 4, dtype=np.float64)
        initial = np.asarray(initial, dtype=np.float64)
        if initial.shape != (3, 4):
            raise ValueError(f"Initial projection must be 3x4, got {initial.shape}")

        self._initial = initial.copy()
        self._history: list[np.ndarray] = [initial.copy()]

    def advance(self, relative: SE3 | tuple[np.ndarray, np.ndarray]) -> np.ndarray:
        """Compose one relative motion onto the current pose.

        Args:
            relative: Relative motion as SE3 or an (R, t) tuple

        Returns:
            The new absolute 3x4 projection matrix
        """
        if isinstance(relative, SE3):
            R, t = relative.rotation, relative.translation
        else:
            R, t = relative

        P_new = compose_projection(self._history[-1], R, t)
        self._history.append(P_new)
        return P_new.copy()

    @property
    def projection(self) -> np.ndarray:
        """Return the current absolute 3x4 projection matrix."""
        return self._history[-1].copy()

    @property
    def position(self) -> np.ndarray:
        """Return the translation column of the current projection."""
        return self._history[-1][:, 3].copy()

    @property
    def history(self) -> list[np.ndarray]:
        """Return every projection so far, starting with the initial one."""
        return [P.copy() for P in self._history]

    @property
    def num_steps(self) -> int:
        """Return how many relative motions have been chained."""
        return len(self._history) - 1

    def reset(self) -> None:
        self._history = [self._initial.copy()]
