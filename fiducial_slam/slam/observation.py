"""Fiducial observations produced by the marker detector.

An observation relates the camera and one fiducial in a single frame. The
detector reports the fiducial pose in its own axis convention (ArUco: y
forward, x right). The map uses the ROS convention (x forward, y left), so
every detection is composed with a fixed 90° twist about z before it is
stored:

    camera_to_fiducial = T_detected ∘ Rz(90°)
    fiducial_to_camera = camera_to_fiducial⁻¹

camera_to_fiducial maps camera-frame points into the fiducial frame, i.e. it
is the camera pose seen from the fiducial. Composing a fiducial's map pose
with it gives the camera pose in the map.

Author: Navigation Engineer
Date: 2024
"""

import warnings
from collections import Counter
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from fiducial_slam.coords.rotations import quat_from_axis_angle, quat_from_rotvec
from fiducial_slam.coords.transforms import Pose3, se3_compose, se3_inverse

# ArUco -> ROS axis correction: 90° about z
FRAME_CORRECTION = Pose3(np.zeros(3), quat_from_axis_angle(np.array([0.0, 0.0, 1.0]), np.pi / 2))


@dataclass(frozen=True, eq=False)
class Observation:
    """
    One detection of one fiducial in one frame.

    Attributes:
        fiducial_id: Identity of the observed fiducial.
        camera_to_fiducial: Camera pose in the fiducial frame (ROS axes).
        fiducial_to_camera: Exact inverse of camera_to_fiducial.
        image_error: Reprojection error reported by the detector (pixels).
        object_error: Detector error in object space, used directly as the
            measurement variance.

    Use Observation.from_detection() or Observation.from_rvec_tvec() rather
    than the constructor so that the frame correction and the inverse are
    always applied consistently.
    """

    fiducial_id: int
    camera_to_fiducial: Pose3
    fiducial_to_camera: Pose3
    image_error: float
    object_error: float

    def __post_init__(self) -> None:
        """Validate error terms."""
        for name in ("image_error", "object_error"):
            value = getattr(self, name)
            if not np.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be finite and non-negative, got {value}")

    @classmethod
    def from_detection(
        cls,
        fiducial_id: int,
        rotation: np.ndarray,
        translation: np.ndarray,
        image_error: float,
        object_error: float,
    ) -> "Observation":
        """
        Build an observation from a raw detector transform.

        Args:
            fiducial_id: Marker id.
            rotation: Detected rotation as quaternion [qw, qx, qy, qz].
            translation: Detected translation, shape (3,).
            image_error: Detector image-space error.
            object_error: Detector object-space error (variance proxy).

        Returns:
            Observation with both transform directions precomputed.

        Example:
            >>> obs = Observation.from_detection(
            ...     7, np.array([1.0, 0.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.5]),
            ...     image_error=0.3, object_error=0.01)
        """
        detected = Pose3(translation, rotation)
        camera_to_fiducial = se3_compose(detected, FRAME_CORRECTION)
        return cls(
            fiducial_id=int(fiducial_id),
            camera_to_fiducial=camera_to_fiducial,
            fiducial_to_camera=se3_inverse(camera_to_fiducial),
            image_error=float(image_error),
            object_error=float(object_error),
        )

    @classmethod
    def from_rvec_tvec(
        cls,
        fiducial_id: int,
        rvec: np.ndarray,
        tvec: np.ndarray,
        image_error: float,
        object_error: float,
    ) -> "Observation":
        """Build an observation from an OpenCV-style rotation vector and translation."""
        return cls.from_detection(
            fiducial_id,
            quat_from_rotvec(rvec),
            np.asarray(tvec, dtype=np.float64).reshape(-1),
            image_error,
            object_error,
        )


def validate_frame(observations: Sequence[Observation]) -> bool:
    """
    Check that no fiducial id repeats within one frame.

    Repeated ids are not rejected; the frame is still processed in order.

    Returns:
        True if all ids are distinct.

    Warns:
        RuntimeWarning: If an id appears more than once.
    """
    counts = Counter(o.fiducial_id for o in observations)
    repeated = sorted(fid for fid, n in counts.items() if n > 1)
    if repeated:
        warnings.warn(
            f"Fiducial ids {repeated} observed more than once in the same frame",
            RuntimeWarning,
        )
        return False
    return True
