"""Rotation representations and rigid transforms used by fiducial poses.

This module provides:
- Conversions between quaternions, rotation matrices and roll-pitch-yaw
  Euler angles
- Quaternion algebra (product, conjugate, slerp) for pose fusion
- Pose3, the SE(3) pose type, and its composition/inversion operations
"""

from fiducial_slam.coords.rotations import (
    euler_to_quat,
    quat_conjugate,
    quat_from_axis_angle,
    quat_from_rotvec,
    quat_multiply,
    quat_normalize,
    quat_slerp,
    quat_to_euler,
    quat_to_rotation_matrix,
    rotation_matrix_to_quat,
)
from fiducial_slam.coords.transforms import (
    Pose3,
    se3_apply,
    se3_compose,
    se3_from_matrix,
    se3_inverse,
    se3_relative,
    se3_to_matrix,
    translation_norm_sq,
)

__all__ = [
    # Rotations
    "euler_to_quat",
    "quat_to_euler",
    "quat_to_rotation_matrix",
    "rotation_matrix_to_quat",
    "quat_normalize",
    "quat_conjugate",
    "quat_multiply",
    "quat_from_axis_angle",
    "quat_from_rotvec",
    "quat_slerp",
    # Rigid transforms
    "Pose3",
    "se3_compose",
    "se3_inverse",
    "se3_relative",
    "se3_apply",
    "se3_to_matrix",
    "se3_from_matrix",
    "translation_norm_sq",
]
