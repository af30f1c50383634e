"""Uncertainty-weighted pose fusion and variance combination.

A pose estimate carries a single scalar variance. Two estimates of the same
pose are fused with inverse-variance weights:

    t = (var_a * t_b + var_b * t_a) / (var_a + var_b)
    q = slerp(q_a, q_b, var_a / (var_a + var_b))

so the estimate with the smaller variance dominates. The variance of the
fused estimate is produced by a selectable combination strategy:

    harmonic: max(1 / (1/var_a + 1/var_b), MIN_VARIANCE)
    overlap:  sqrt(2π) var_a var_b exp(d_a / (2 var_a) + d_b / (2 var_b)),
              clamped to OVERLAP_VARIANCE_BOUNDS

The overlap strategy accounts for how far each input mean lies from the
fused mean. It does not converge well in practice and is only used when
explicitly requested.

Author: Navigation Engineer
Date: 2024
"""

from typing import Callable, Dict

import numpy as np

from fiducial_slam.coords.rotations import quat_slerp
from fiducial_slam.coords.transforms import Pose3

# Lower bound on any combined variance; 0 is reserved for anchored fiducials
MIN_VARIANCE = 1e-6

OVERLAP_VARIANCE_BOUNDS = (1e-3, 100.0)

# (fused_mean, mean_a, var_a, mean_b, var_b) -> combined variance
VarianceStrategy = Callable[[np.ndarray, np.ndarray, float, np.ndarray, float], float]


def fuse_poses(pose_a: Pose3, var_a: float, pose_b: Pose3, var_b: float) -> Pose3:
    """
    Fuse two estimates of the same pose using their variances as weights.

    Args:
        pose_a: Current estimate.
        var_a: Variance of pose_a.
        pose_b: New estimate.
        var_b: Variance of pose_b.

    Returns:
        Fused pose. The rotation is interpolated from pose_a towards pose_b
        by var_a / (var_a + var_b) and renormalized.

    Raises:
        ValueError: If either variance is negative or both are zero.

    Example:
        >>> a = Pose3.from_euler(0, 0, 0, 0, 0, 0)
        >>> b = Pose3.from_euler(2, 0, 0, 0, 0, 0)
        >>> fuse_poses(a, 1.0, b, 1.0).translation  # [1, 0, 0]
    """
    if var_a < 0 or var_b < 0:
        raise ValueError(f"Variances must be non-negative, got {var_a}, {var_b}")
    total = var_a + var_b
    if total <= 0:
        raise ValueError("Cannot fuse two poses whose variances sum to zero")

    translation = (var_a * pose_b.translation + var_b * pose_a.translation) / total
    rotation = quat_slerp(pose_a.rotation, pose_b.rotation, var_a / total)

    return Pose3(translation, rotation)


def harmonic_variance(
    fused_mean: np.ndarray,
    mean_a: np.ndarray,
    var_a: float,
    mean_b: np.ndarray,
    var_b: float,
) -> float:
    """
    Combine two variances as independent Gaussian measurements.

    Ignores how much the two estimates actually overlap, which keeps the
    result cheap and monotonically shrinking. The means are accepted only
    so that both strategies share one signature.

    Returns:
        max(1 / (1/var_a + 1/var_b), MIN_VARIANCE)
    """
    if var_a <= 0 or var_b <= 0:
        return MIN_VARIANCE
    return max(1.0 / (1.0 / var_a + 1.0 / var_b), MIN_VARIANCE)


def overlap_variance(
    fused_mean: np.ndarray,
    mean_a: np.ndarray,
    var_a: float,
    mean_b: np.ndarray,
    var_b: float,
) -> float:
    """
    Combine two variances taking the overlap of the estimates into account.

    Estimates that disagree (means far from the fused mean relative to their
    variances) produce a larger combined variance.

    Returns:
        Combined variance clamped to OVERLAP_VARIANCE_BOUNDS.

    Raises:
        ValueError: If either variance is not positive.
    """
    if var_a <= 0 or var_b <= 0:
        raise ValueError(f"Variances must be positive, got {var_a}, {var_b}")

    fused_mean = np.asarray(fused_mean, dtype=np.float64)
    d_a = float(np.sum((np.asarray(mean_a) - fused_mean) ** 2))
    d_b = float(np.sum((np.asarray(mean_b) - fused_mean) ** 2))

    lower, upper = OVERLAP_VARIANCE_BOUNDS
    exponent = d_a / (2.0 * var_a) + d_b / (2.0 * var_b)
    # exp overflows long before the upper clamp matters
    if exponent > 700.0:
        return upper

    var = np.sqrt(2.0 * np.pi) * var_a * var_b * np.exp(exponent)
    return float(np.clip(var, lower, upper))


VARIANCE_STRATEGIES: Dict[str, VarianceStrategy] = {
    "harmonic": harmonic_variance,
    "overlap": overlap_variance,
}

DEFAULT_VARIANCE_STRATEGY = "harmonic"


def get_variance_strategy(name: str = DEFAULT_VARIANCE_STRATEGY) -> VarianceStrategy:
    """
    Look up a variance combination strategy by name.

    Raises:
        ValueError: If the name is not registered.
    """
    try:
        return VARIANCE_STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown variance strategy '{name}'. "
            f"Choose from {sorted(VARIANCE_STRATEGIES)}"
        ) from None
