"""Fiducial SLAM examples.

Examples:
    - example_fiducial_slam.py: Map a ring of ceiling fiducials from a moving
      camera and localize the camera every frame

Dependencies:
    - fiducial_slam.slam: Map engine and persistence
    - fiducial_slam.sim: Synthetic detections
    - matplotlib: Visualization
    - tqdm: Frame progress
"""

__version__ = "0.1.0"

__all__ = []
