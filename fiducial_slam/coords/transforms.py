"""SE(3) rigid transforms for fiducial and observer poses.

Poses are rigid transformations (rotation + translation) stored as a unit
quaternion and a translation vector. A pose T maps points expressed in the
child frame into the parent frame:

    x_parent = R(q) @ x_child + t

Key functions:
    - se3_compose: Compose two poses (T1 ∘ T2)
    - se3_inverse: Invert a pose (T⁻¹)
    - se3_relative: Relative pose T1⁻¹ ∘ T2
    - se3_apply: Transform points by a pose

Author: Navigation Engineer
Date: 2024
"""

from dataclasses import dataclass, field

import numpy as np

from fiducial_slam.coords.rotations import (
    euler_to_quat,
    quat_conjugate,
    quat_multiply,
    quat_normalize,
    quat_to_euler,
    quat_to_rotation_matrix,
    rotation_matrix_to_quat,
)


@dataclass(eq=False)
class Pose3:
    """
    SE(3) pose: translation plus unit-quaternion rotation.

    Attributes:
        translation: Position of the child frame origin in the parent frame,
            shape (3,), meters.
        rotation: Orientation of the child frame, quaternion [qw, qx, qy, qz].
            Normalized on construction so the rotation never carries scale.

    Examples:
        >>> # Fiducial 1 m ahead of the map origin, rotated 90° about z
        >>> p = Pose3.from_euler(1.0, 0.0, 0.0, 0.0, 0.0, np.pi / 2)
        >>> p.euler()  # [0, 0, 1.5708]
    """

    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.array([1.0, 0.0, 0.0, 0.0]))

    def __post_init__(self) -> None:
        """Validate shapes and normalize the rotation."""
        self.translation = np.array(self.translation, dtype=np.float64).reshape(-1)
        self.rotation = np.array(self.rotation, dtype=np.float64).reshape(-1)
        if self.translation.shape != (3,):
            raise ValueError(
                f"translation must have shape (3,), got {self.translation.shape}"
            )
        if self.rotation.shape != (4,):
            raise ValueError(f"rotation must have shape (4,), got {self.rotation.shape}")
        if not np.all(np.isfinite(self.translation)):
            raise ValueError(f"translation must be finite, got {self.translation}")
        if not np.all(np.isfinite(self.rotation)):
            raise ValueError(f"rotation must be finite, got {self.rotation}")
        self.rotation = quat_normalize(self.rotation)

    @classmethod
    def identity(cls) -> "Pose3":
        """Identity pose (origin, no rotation)."""
        return cls()

    @classmethod
    def from_euler(
        cls, x: float, y: float, z: float, roll: float, pitch: float, yaw: float
    ) -> "Pose3":
        """Create a pose from a translation and roll/pitch/yaw in radians."""
        return cls(np.array([x, y, z]), euler_to_quat(roll, pitch, yaw))

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> "Pose3":
        """Create a pose from a 4x4 homogeneous matrix."""
        return se3_from_matrix(T)

    def euler(self) -> np.ndarray:
        """Rotation as [roll, pitch, yaw] in radians."""
        return quat_to_euler(self.rotation)

    def rotation_matrix(self) -> np.ndarray:
        return quat_to_rotation_matrix(self.rotation)

    def to_matrix(self) -> np.ndarray:
        """4x4 homogeneous matrix."""
        return se3_to_matrix(self)

    def copy(self) -> "Pose3":
        return Pose3(self.translation.copy(), self.rotation.copy())

    def __repr__(self) -> str:
        t = self.translation
        r = np.rad2deg(self.euler())
        return (
            f"Pose3(t=[{t[0]:.4f}, {t[1]:.4f}, {t[2]:.4f}], "
            f"rpy_deg=[{r[0]:.2f}, {r[1]:.2f}, {r[2]:.2f}])"
        )


def se3_compose(p1: Pose3, p2: Pose3) -> Pose3:
    """
    Compose two poses: T = p1 ∘ p2.

    Chains frames: if p1 is A→B and p2 is B→C, the result is A→C.

        R = R1 @ R2
        t = R1 @ t2 + t1

    Examples:
        >>> a = Pose3.from_euler(1, 0, 0, 0, 0, np.pi / 2)
        >>> b = Pose3.from_euler(1, 0, 0, 0, 0, 0)
        >>> se3_compose(a, b).translation  # [1, 1, 0]
    """
    translation = p1.rotation_matrix() @ p2.translation + p1.translation
    rotation = quat_multiply(p1.rotation, p2.rotation)
    return Pose3(translation, rotation)


def se3_inverse(p: Pose3) -> Pose3:
    """
    Invert a pose: p ∘ p⁻¹ = identity.

        R⁻¹ = Rᵀ
        t⁻¹ = -Rᵀ @ t
    """
    rotation = quat_conjugate(p.rotation)
    translation = -(quat_to_rotation_matrix(rotation) @ p.translation)
    return Pose3(translation, rotation)


def se3_relative(p1: Pose3, p2: Pose3) -> Pose3:
    """Relative pose of p2 seen from p1: p1⁻¹ ∘ p2."""
    return se3_compose(se3_inverse(p1), p2)


def se3_apply(p: Pose3, points: np.ndarray) -> np.ndarray:
    """
    Transform points from the child frame into the parent frame.

    Args:
        p: Pose.
        points: Array of shape (3,) or (N, 3).

    Returns:
        Transformed points with the same shape as the input.
    """
    points = np.asarray(points, dtype=np.float64)
    R = p.rotation_matrix()
    if points.ndim == 1:
        if points.shape != (3,):
            raise ValueError(f"points must have shape (3,) or (N, 3), got {points.shape}")
        return R @ points + p.translation
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError(f"points must have shape (3,) or (N, 3), got {points.shape}")
    return points @ R.T + p.translation


def se3_to_matrix(p: Pose3) -> np.ndarray:
    T = np.eye(4)
    T[:3, :3] = p.rotation_matrix()
    T[:3, 3] = p.translation
    return T


def se3_from_matrix(T: np.ndarray) -> Pose3:
    """
    Build a pose from a 4x4 homogeneous matrix.

    Raises:
        ValueError: If T is not 4x4.
    """
    T = np.asarray(T, dtype=np.float64)
    if T.shape != (4, 4):
        raise ValueError(f"Expected 4x4 matrix, got shape {T.shape}")
    return Pose3(T[:3, 3].copy(), rotation_matrix_to_quat(T[:3, :3]))


def translation_norm_sq(p: Pose3) -> float:
    """Squared length of the translation component."""
    return float(np.dot(p.translation, p.translation))
