"""
Synthetic fiducial scenes: ground-truth layouts, camera paths and detections.

The forward model inverts the observation convention used by the map
engine. For a fiducial with true map pose F and a camera with true map pose
C, the camera pose seen from the fiducial is

    T_fid_cam = F⁻¹ ∘ C

and the detector reports it in its native axes, i.e. with the frame
correction removed:

    T_detected = T_fid_cam ∘ FRAME_CORRECTION⁻¹

Observation.from_detection() re-applies the correction, so noise-free
simulated observations reproduce T_fid_cam exactly.

Author: Navigation Engineer
Date: 2024
"""

from typing import Dict, List, Mapping, Optional, Union

import numpy as np

from fiducial_slam.coords.rotations import euler_to_quat, quat_from_rotvec, quat_multiply
from fiducial_slam.coords.transforms import Pose3, se3_compose, se3_inverse, se3_relative
from fiducial_slam.slam.fiducial import Fiducial
from fiducial_slam.slam.observation import FRAME_CORRECTION, Observation


def make_fiducial_ring(
    n_fiducials: int,
    radius: float = 2.0,
    height: float = 2.5,
    first_id: int = 1,
) -> Dict[int, Pose3]:
    """
    Ceiling-mounted fiducials evenly spaced on a circle, facing down.

    Args:
        n_fiducials: Number of fiducials.
        radius: Circle radius (meters).
        height: Ceiling height (meters).
        first_id: Id of the first fiducial; ids are consecutive.

    Returns:
        Dictionary of fiducial id to true map pose.
    """
    if n_fiducials <= 0:
        raise ValueError(f"n_fiducials must be positive, got {n_fiducials}")

    fiducials = {}
    for k in range(n_fiducials):
        theta = 2.0 * np.pi * k / n_fiducials
        fiducials[first_id + k] = Pose3(
            np.array([radius * np.cos(theta), radius * np.sin(theta), height]),
            euler_to_quat(np.pi, 0.0, theta),
        )
    return fiducials


def make_circular_trajectory(
    n_frames: int,
    radius: float = 1.5,
    height: float = 0.3,
    n_laps: float = 1.0,
) -> List[Pose3]:
    """
    Camera poses moving counter-clockwise around a circle, heading tangent.

    Returns:
        List of n_frames camera poses in the map frame.
    """
    if n_frames <= 0:
        raise ValueError(f"n_frames must be positive, got {n_frames}")

    poses = []
    for k in range(n_frames):
        theta = 2.0 * np.pi * n_laps * k / n_frames
        poses.append(
            Pose3(
                np.array([radius * np.cos(theta), radius * np.sin(theta), height]),
                euler_to_quat(0.0, 0.0, theta + np.pi / 2.0),
            )
        )
    return poses


def simulate_observations(
    fiducials: Mapping[int, Pose3],
    camera_pose: Pose3,
    max_range: float = 3.0,
    translation_std: float = 0.0,
    rotation_std: float = 0.0,
    base_error: float = 1e-3,
    range_error: float = 1e-3,
    rng: Optional[np.random.Generator] = None,
) -> List[Observation]:
    """
    Detections of all fiducials within range of the camera.

    Args:
        fiducials: True fiducial poses keyed by id.
        camera_pose: True camera pose in the map frame.
        max_range: Maximum detection distance (meters).
        translation_std: Std of additive translation noise (meters).
        rotation_std: Std of rotation-vector noise (radians).
        base_error: Constant part of the reported object error.
        range_error: Object error growth per squared meter of distance.
        rng: Random generator for the noise. If None, uses
             np.random.default_rng().

    Returns:
        Observations ordered by fiducial id.
    """
    if rng is None:
        rng = np.random.default_rng()

    correction_inv = se3_inverse(FRAME_CORRECTION)
    observations = []

    for fid in sorted(fiducials):
        T_fid_cam = se3_relative(fiducials[fid], camera_pose)
        distance = float(np.linalg.norm(T_fid_cam.translation))
        if distance > max_range:
            continue

        translation = T_fid_cam.translation
        rotation = T_fid_cam.rotation
        if translation_std > 0:
            translation = translation + rng.normal(0.0, translation_std, 3)
        if rotation_std > 0:
            rotation = quat_multiply(rotation, quat_from_rotvec(rng.normal(0.0, rotation_std, 3)))

        detected = se3_compose(Pose3(translation, rotation), correction_inv)
        observations.append(
            Observation.from_detection(
                fid,
                detected.rotation,
                detected.translation,
                image_error=0.0,
                object_error=base_error + range_error * distance**2,
            )
        )

    return observations


def _as_pose(item: Union[Pose3, Fiducial]) -> Pose3:
    return item.pose if isinstance(item, Fiducial) else item


def relative_pose_errors(
    estimated: Mapping[int, Union[Pose3, Fiducial]],
    truth: Mapping[int, Pose3],
    origin_id: int,
) -> Dict[int, float]:
    """
    Translation error of each fiducial relative to the origin fiducial.

    The map frame chosen during bootstrap is arbitrary, so poses are compared
    after expressing both the estimate and the truth in the origin
    fiducial's frame.

    Returns:
        Dictionary of fiducial id to position error (meters) for every id
        present in both inputs.
    """
    est_origin = _as_pose(estimated[origin_id])
    true_origin = truth[origin_id]

    errors = {}
    for fid in sorted(set(estimated) & set(truth)):
        rel_est = se3_relative(est_origin, _as_pose(estimated[fid]))
        rel_true = se3_relative(true_origin, truth[fid])
        errors[fid] = float(np.linalg.norm(rel_est.translation - rel_true.translation))
    return errors


def camera_pose_error(
    estimated_camera: Pose3,
    true_camera: Pose3,
    estimated_origin: Pose3,
    true_origin: Pose3,
) -> float:
    """Camera position error (meters), both poses expressed in the origin fiducial frame."""
    rel_est = se3_relative(estimated_origin, estimated_camera)
    rel_true = se3_relative(true_origin, true_camera)
    return float(np.linalg.norm(rel_est.translation - rel_true.translation))
