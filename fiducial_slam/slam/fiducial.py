"""Fiducial map node: pose estimate, uncertainty and adjacency.

Author: Navigation Engineer
Date: 2024
"""

from dataclasses import dataclass, field
from typing import Optional, Set

import numpy as np

from fiducial_slam.coords.transforms import Pose3
from fiducial_slam.fusion.pose_fusion import (
    MIN_VARIANCE,
    VarianceStrategy,
    fuse_poses,
    harmonic_variance,
)
from fiducial_slam.slam.types import MapEntry


@dataclass(eq=False)
class Fiducial:
    """
    A mapped fiducial.

    Attributes:
        fiducial_id: Unique key within the map.
        pose: Fiducial pose in the map frame.
        variance: Scalar uncertainty of pose. 0 means anchored: the fiducial
            defines the map frame and is never fused again.
        num_observations: Number of fusion updates applied.
        links: Ids of fiducials co-observed with this one.
        last_published: Time of the last marker publication (seconds).
    """

    fiducial_id: int
    pose: Pose3
    variance: float
    num_observations: int = 0
    links: Set[int] = field(default_factory=set)
    last_published: float = 0.0

    def __post_init__(self) -> None:
        if not np.isfinite(self.variance) or self.variance < 0:
            raise ValueError(
                f"variance must be finite and non-negative, got {self.variance}"
            )

    @property
    def is_anchored(self) -> bool:
        return self.variance == 0.0

    def anchor(self) -> None:
        """Fix this fiducial permanently."""
        self.variance = 0.0

    def link(self, other_id: int) -> None:
        if other_id != self.fiducial_id:
            self.links.add(int(other_id))

    def update(
        self,
        new_pose: Pose3,
        new_variance: float,
        variance_strategy: Optional[VarianceStrategy] = None,
    ) -> bool:
        """
        Fuse a new estimate of this fiducial's pose.

        Args:
            new_pose: New pose estimate in the map frame.
            new_variance: Variance of the new estimate. Floored at
                MIN_VARIANCE.
            variance_strategy: Variance combination; harmonic if None.

        Returns:
            False if the fiducial is anchored and nothing changed, else True.
        """
        if self.is_anchored:
            return False

        strategy = variance_strategy or harmonic_variance
        new_variance = max(float(new_variance), MIN_VARIANCE)

        old_mean = self.pose.translation.copy()
        self.pose = fuse_poses(self.pose, self.variance, new_pose, new_variance)
        self.num_observations += 1

        self.variance = float(
            strategy(
                self.pose.translation,
                old_mean,
                self.variance,
                new_pose.translation,
                new_variance,
            )
        )
        return True

    def to_entry(self) -> MapEntry:
        """Snapshot record with Euler angles in radians."""
        x, y, z = self.pose.translation
        rx, ry, rz = self.pose.euler()
        return MapEntry(
            fiducial_id=self.fiducial_id,
            x=float(x),
            y=float(y),
            z=float(z),
            rx=float(rx),
            ry=float(ry),
            rz=float(rz),
        )
