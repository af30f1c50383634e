"""
Simulation utilities for generating synthetic fiducial detections.

Modules:
    fiducial_scene: Fiducial layouts, camera trajectories, detections in the
        detector's native convention, and frame-independent error metrics
"""

from fiducial_slam.sim.fiducial_scene import (
    camera_pose_error,
    make_circular_trajectory,
    make_fiducial_ring,
    relative_pose_errors,
    simulate_observations,
)

__all__ = [
    "make_fiducial_ring",
    "make_circular_trajectory",
    "simulate_observations",
    "relative_pose_errors",
    "camera_pose_error",
]
