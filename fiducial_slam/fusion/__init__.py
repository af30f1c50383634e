"""Pose fusion primitives.

This package provides the inverse-variance weighted combination of two pose
estimates (translation blend + quaternion slerp) and the pluggable
strategies that compute the variance of the fused estimate.
"""

from fiducial_slam.fusion.pose_fusion import (
    DEFAULT_VARIANCE_STRATEGY,
    MIN_VARIANCE,
    OVERLAP_VARIANCE_BOUNDS,
    VARIANCE_STRATEGIES,
    VarianceStrategy,
    fuse_poses,
    get_variance_strategy,
    harmonic_variance,
    overlap_variance,
)

__all__ = [
    "fuse_poses",
    "harmonic_variance",
    "overlap_variance",
    "get_variance_strategy",
    "VarianceStrategy",
    "VARIANCE_STRATEGIES",
    "DEFAULT_VARIANCE_STRATEGY",
    "MIN_VARIANCE",
    "OVERLAP_VARIANCE_BOUNDS",
]
