"""Quaternion and Euler angle utilities for fiducial poses.

Conventions:
- Quaternions: [qw, qx, qy, qz] where qw is the scalar part
- Euler angles: [roll, pitch, yaw] in radians (ZYX/3-2-1 convention),
  the same order the map file stores in degrees
- Rotation matrices: 3x3 numpy arrays with v_parent = R @ v_child

Author: Navigation Engineer
Date: 2024
"""

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.transform import Rotation


def _check_quat(q: NDArray[np.float64]) -> None:
    if q.shape != (4,):
        raise ValueError(f"Expected 4-element quaternion, got shape {q.shape}")


def quat_normalize(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Normalize quaternion to unit norm.

    Raises:
        ValueError: If q is not a 4-element array or has zero norm.
    """
    q = np.asarray(q, dtype=np.float64)
    _check_quat(q)
    norm = np.linalg.norm(q)
    if norm < 1e-12:
        raise ValueError("Cannot normalize a zero quaternion")
    return q / norm


def quat_conjugate(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Conjugate (inverse for unit quaternions)."""
    _check_quat(q)
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=np.float64)


def quat_multiply(
    q1: NDArray[np.float64], q2: NDArray[np.float64]
) -> NDArray[np.float64]:
    """Hamilton product q1 ⊗ q2.

    The result applies q2 first, then q1, matching R(q1 ⊗ q2) = R(q1) @ R(q2).

    Args:
        q1: Left quaternion [qw, qx, qy, qz].
        q2: Right quaternion [qw, qx, qy, qz].

    Returns:
        Product quaternion (not renormalized).
    """
    _check_quat(q1)
    _check_quat(q2)
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2

    return np.array(
        [
            w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
            w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
            w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
            w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
        ],
        dtype=np.float64,
    )


def quat_from_axis_angle(axis: NDArray[np.float64], angle: float) -> NDArray[np.float64]:
    """Unit quaternion for a rotation of ``angle`` radians about ``axis``.

    Example:
        >>> q = quat_from_axis_angle(np.array([0.0, 0.0, 1.0]), np.pi / 2)
        >>> # q ≈ [0.7071, 0, 0, 0.7071]
    """
    axis = np.asarray(axis, dtype=np.float64)
    if axis.shape != (3,):
        raise ValueError(f"Expected 3-element axis, got shape {axis.shape}")
    norm = np.linalg.norm(axis)
    if norm < 1e-12:
        raise ValueError("Rotation axis must be non-zero")
    axis = axis / norm
    half = 0.5 * angle
    return np.concatenate([[np.cos(half)], np.sin(half) * axis])


def quat_from_rotvec(rvec: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert a Rodrigues rotation vector (OpenCV ``rvec``) to a quaternion.

    Returns:
        Unit quaternion [qw, qx, qy, qz].
    """
    rvec = np.asarray(rvec, dtype=np.float64).reshape(-1)
    if rvec.shape != (3,):
        raise ValueError(f"Expected 3-element rotation vector, got shape {rvec.shape}")
    # scipy is scalar-last
    x, y, z, w = Rotation.from_rotvec(rvec).as_quat()
    return np.array([w, x, y, z], dtype=np.float64)


def quat_slerp(
    q1: NDArray[np.float64], q2: NDArray[np.float64], t: float
) -> NDArray[np.float64]:
    """Spherical linear interpolation from q1 (t=0) to q2 (t=1).

    Interpolates along the shortest arc: q2 is negated when the two
    quaternions lie in opposite hemispheres. Nearly identical inputs fall
    back to normalized linear interpolation.

    Args:
        q1: Start quaternion [qw, qx, qy, qz].
        q2: End quaternion [qw, qx, qy, qz].
        t: Interpolation fraction, normally in [0, 1].

    Returns:
        Unit quaternion.

    Example:
        >>> q0 = np.array([1.0, 0.0, 0.0, 0.0])
        >>> q1 = quat_from_axis_angle(np.array([0.0, 0.0, 1.0]), np.pi / 2)
        >>> q_half = quat_slerp(q0, q1, 0.5)  # 45° about z
    """
    q1 = quat_normalize(q1)
    q2 = quat_normalize(q2)

    dot = float(np.dot(q1, q2))
    if dot < 0.0:
        q2 = -q2
        dot = -dot

    if dot > 1.0 - 1e-10:
        return quat_normalize(q1 + t * (q2 - q1))

    theta = np.arccos(min(dot, 1.0))
    sin_theta = np.sin(theta)
    s1 = np.sin((1.0 - t) * theta) / sin_theta
    s2 = np.sin(t * theta) / sin_theta

    return quat_normalize(s1 * q1 + s2 * q2)


def euler_to_quat(
    roll: float,
    pitch: float,
    yaw: float,
) -> NDArray[np.float64]:
    """Convert roll-pitch-yaw Euler angles (ZYX convention) to a unit quaternion.

    Args:
        roll: Roll angle in radians (rotation about x-axis).
        pitch: Pitch angle in radians (rotation about y-axis).
        yaw: Yaw angle in radians (rotation about z-axis).

    Returns:
        Unit quaternion as numpy array [qw, qx, qy, qz].
    """
    cr = np.cos(roll / 2.0)
    sr = np.sin(roll / 2.0)
    cp = np.cos(pitch / 2.0)
    sp = np.sin(pitch / 2.0)
    cy = np.cos(yaw / 2.0)
    sy = np.sin(yaw / 2.0)

    qw = cr * cp * cy + sr * sp * sy
    qx = sr * cp * cy - cr * sp * sy
    qy = cr * sp * cy + sr * cp * sy
    qz = cr * cp * sy - sr * sp * cy

    return np.array([qw, qx, qy, qz], dtype=np.float64)


def quat_to_euler(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert a unit quaternion to roll-pitch-yaw Euler angles (ZYX convention).

    Pitch is clamped at ±90° so that near-gimbal-lock inputs stay finite.

    Returns:
        Euler angles as numpy array [roll, pitch, yaw] in radians.

    Raises:
        ValueError: If q is not a 4-element array.
    """
    _check_quat(q)

    qw, qx, qy, qz = q

    roll = np.arctan2(2.0 * (qw * qx + qy * qz), 1.0 - 2.0 * (qx * qx + qy * qy))

    sin_pitch = np.clip(2.0 * (qw * qy - qz * qx), -1.0, 1.0)
    pitch = np.arcsin(sin_pitch)

    yaw = np.arctan2(2.0 * (qw * qz + qx * qy), 1.0 - 2.0 * (qy * qy + qz * qz))

    return np.array([roll, pitch, yaw], dtype=np.float64)


def quat_to_rotation_matrix(q: NDArray[np.float64]) -> NDArray[np.float64]:
    """Convert a unit quaternion to a 3x3 rotation matrix.

    Raises:
        ValueError: If q is not a 4-element array.
    """
    _check_quat(q)

    qw, qx, qy, qz = q

    return np.array(
        [
            [
                1.0 - 2.0 * (qy * qy + qz * qz),
                2.0 * (qx * qy - qw * qz),
                2.0 * (qx * qz + qw * qy),
            ],
            [
                2.0 * (qx * qy + qw * qz),
                1.0 - 2.0 * (qx * qx + qz * qz),
                2.0 * (qy * qz - qw * qx),
            ],
            [
                2.0 * (qx * qz - qw * qy),
                2.0 * (qy * qz + qw * qx),
                1.0 - 2.0 * (qx * qx + qy * qy),
            ],
        ],
        dtype=np.float64,
    )


def rotation_matrix_to_quat(R: NDArray[np.float64]) -> NDArray[np.float64]:
    """Extract a unit quaternion from a rotation matrix (Shepperd's method).

    Raises:
        ValueError: If R is not a 3x3 matrix.
    """
    if R.shape != (3, 3):
        raise ValueError(f"Expected 3x3 matrix, got shape {R.shape}")

    trace = np.trace(R)

    if trace > 0:
        s = 0.5 / np.sqrt(trace + 1.0)
        q = [0.25 / s, (R[2, 1] - R[1, 2]) * s, (R[0, 2] - R[2, 0]) * s, (R[1, 0] - R[0, 1]) * s]
    elif R[0, 0] > R[1, 1] and R[0, 0] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[0, 0] - R[1, 1] - R[2, 2])
        q = [(R[2, 1] - R[1, 2]) / s, 0.25 * s, (R[0, 1] + R[1, 0]) / s, (R[0, 2] + R[2, 0]) / s]
    elif R[1, 1] > R[2, 2]:
        s = 2.0 * np.sqrt(1.0 + R[1, 1] - R[0, 0] - R[2, 2])
        q = [(R[0, 2] - R[2, 0]) / s, (R[0, 1] + R[1, 0]) / s, 0.25 * s, (R[1, 2] + R[2, 1]) / s]
    else:
        s = 2.0 * np.sqrt(1.0 + R[2, 2] - R[0, 0] - R[1, 1])
        q = [(R[1, 0] - R[0, 1]) / s, (R[0, 2] + R[2, 0]) / s, (R[1, 2] + R[2, 1]) / s, 0.25 * s]

    return quat_normalize(np.array(q, dtype=np.float64))
