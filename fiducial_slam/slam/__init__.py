"""Fiducial SLAM: incremental landmark mapping and observer localization.

This is NOT a full SLAM framework. It provides:
    - Observation: normalized marker detections (frame-corrected transforms)
    - Fiducial: map node with pose, variance, observation count and links
    - FiducialMap: bootstrap/tracking engine producing the map and the
      per-frame observer pose
    - load_map / save_map: line-oriented text persistence of the map

Example usage:
    >>> from fiducial_slam.slam import FiducialMap, MapConfig, Observation
    >>> engine = FiducialMap(MapConfig(map_file=None))
    >>> obs = Observation.from_detection(
    ...     5, np.array([1.0, 0, 0, 0]), np.array([0.0, 0.0, 1.0]), 0.1, 0.01)
    >>> result = engine.update([obs], time=0.0)
    >>> result['mode']  # MapMode.INITIALIZING

Author: Navigation Engineer
Date: 2024
"""

from .fiducial import Fiducial
from .map import FiducialMap, find_closest_observation
from .map_io import format_fiducial_line, load_map, parse_fiducial_line, save_map
from .observation import FRAME_CORRECTION, Observation, validate_frame
from .types import MapConfig, MapEntry, MapMode, PoseEstimate, default_map_file

__all__ = [
    # Types
    "MapConfig",
    "MapEntry",
    "MapMode",
    "PoseEstimate",
    "default_map_file",
    # Observations
    "Observation",
    "FRAME_CORRECTION",
    "validate_frame",
    # Map
    "Fiducial",
    "FiducialMap",
    "find_closest_observation",
    # Persistence
    "load_map",
    "save_map",
    "format_fiducial_line",
    "parse_fiducial_line",
]
