"""Type definitions and configuration for the fiducial map engine.

Key types:
    - MapMode: Bootstrap / tracking state of the engine
    - PoseEstimate: Observer pose with its fused variance
    - MapEntry: Per-fiducial map snapshot record handed to the transport layer
    - MapConfig: Map file locations and estimation parameters

Author: Navigation Engineer
Date: 2024
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from fiducial_slam.coords.transforms import Pose3
from fiducial_slam.fusion.pose_fusion import DEFAULT_VARIANCE_STRATEGY, VARIANCE_STRATEGIES


def default_map_file() -> Path:
    """Default map location under the user's ROS configuration area."""
    return Path.home() / ".ros" / "slam" / "map.txt"


class MapMode(Enum):
    """Two-state machine of the map engine.

    INITIALIZING: the origin fiducial is being observed and fused, nothing
        else is mapped yet.
    TRACKING: the origin is anchored; the map grows through co-observations
        and the observer pose is estimated every frame.
    """

    INITIALIZING = "initializing"
    TRACKING = "tracking"


@dataclass
class PoseEstimate:
    """
    Observer pose estimate for one frame.

    Attributes:
        pose: Camera pose in the map frame.
        variance: Fused scalar variance of the estimate.
        n_fiducials: Number of mapped fiducials that contributed.
    """

    pose: Pose3
    variance: float
    n_fiducials: int = 1


@dataclass(frozen=True)
class MapEntry:
    """
    Map snapshot record for one fiducial.

    Attributes:
        fiducial_id: Fiducial identity.
        x, y, z: Position in the map frame (meters).
        rx, ry, rz: Roll, pitch and yaw in radians.
    """

    fiducial_id: int
    x: float
    y: float
    z: float
    rx: float
    ry: float
    rz: float


@dataclass(frozen=True)
class MapConfig:
    """
    Configuration of the fiducial map engine.

    Attributes:
        map_file: Where the map is loaded from and saved to. None disables
            persistence entirely.
        initial_map_file: Optional seed map loaded at startup instead of
            map_file. Saves still go to map_file.
        variance_strategy: Name of the variance combination used when fusing
            fiducial poses ('harmonic' or 'overlap').
        init_frames: Number of bootstrap frames before the origin fiducial is
            anchored.
        min_reference_variance: Floor on the reference fiducial's variance
            when it is used to place a co-observed fiducial.
        publish_period: Minimum time between marker re-publications of the
            same fiducial (seconds).

    Example:
        >>> cfg = MapConfig(map_file="/tmp/map.txt", variance_strategy="harmonic")
        >>> cfg_no_io = MapConfig(map_file=None)
    """

    map_file: Optional[Union[str, Path]] = field(default_factory=default_map_file)
    initial_map_file: Optional[Union[str, Path]] = None
    variance_strategy: str = DEFAULT_VARIANCE_STRATEGY
    init_frames: int = 10
    min_reference_variance: float = 1e-5
    publish_period: float = 1.0

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.variance_strategy not in VARIANCE_STRATEGIES:
            raise ValueError(
                f"Unknown variance strategy '{self.variance_strategy}'. "
                f"Choose from {sorted(VARIANCE_STRATEGIES)}"
            )
        if self.init_frames <= 0:
            raise ValueError(f"init_frames must be positive, got {self.init_frames}")
        if self.min_reference_variance < 0:
            raise ValueError(
                f"min_reference_variance must be non-negative, "
                f"got {self.min_reference_variance}"
            )
        if self.publish_period < 0:
            raise ValueError(
                f"publish_period must be non-negative, got {self.publish_period}"
            )
