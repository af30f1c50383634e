"""Unit tests for fiducial_slam.fusion.pose_fusion.

Covers the weighted pose blend, both variance combination strategies and
the strategy registry.
"""

import unittest

import numpy as np

from fiducial_slam.coords import Pose3, quat_from_axis_angle
from fiducial_slam.fusion import (
    MIN_VARIANCE,
    OVERLAP_VARIANCE_BOUNDS,
    fuse_poses,
    get_variance_strategy,
    harmonic_variance,
    overlap_variance,
)


class TestFusePoses(unittest.TestCase):
    """Test suite for fuse_poses."""

    def test_equal_variance_midpoint(self) -> None:
        a = Pose3(np.array([0.0, 0.0, 0.0]))
        b = Pose3(np.array([2.0, 0.0, 0.0]), quat_from_axis_angle(np.array([0.0, 0.0, 1.0]), 0.4))

        fused = fuse_poses(a, 1.0, b, 1.0)

        np.testing.assert_allclose(fused.translation, [1.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(fused.euler(), [0.0, 0.0, 0.2], atol=1e-12)

    def test_weights_favor_lower_variance(self) -> None:
        a = Pose3(np.array([0.0, 0.0, 0.0]))
        b = Pose3(np.array([4.0, 0.0, 0.0]))

        # var_a = 3, var_b = 1 -> t = (3*4 + 1*0) / 4 = 3
        fused = fuse_poses(a, 3.0, b, 1.0)
        np.testing.assert_allclose(fused.translation, [3.0, 0.0, 0.0], atol=1e-12)

    def test_rotation_fraction(self) -> None:
        z = np.array([0.0, 0.0, 1.0])
        a = Pose3(np.zeros(3), quat_from_axis_angle(z, 0.0))
        b = Pose3(np.zeros(3), quat_from_axis_angle(z, 1.0))

        # slerp fraction var_a / (var_a + var_b) = 0.25
        fused = fuse_poses(a, 1.0, b, 3.0)
        np.testing.assert_allclose(fused.euler(), [0.0, 0.0, 0.25], atol=1e-12)

    def test_identical_poses(self) -> None:
        p = Pose3.from_euler(1.0, -2.0, 0.5, 0.1, 0.2, 0.3)
        fused = fuse_poses(p, 0.02, p, 0.02)
        np.testing.assert_allclose(fused.translation, p.translation, atol=1e-12)
        self.assertAlmostEqual(abs(np.dot(fused.rotation, p.rotation)), 1.0, places=12)

    def test_zero_total_variance_raises(self) -> None:
        p = Pose3.identity()
        with self.assertRaises(ValueError):
            fuse_poses(p, 0.0, p, 0.0)

    def test_negative_variance_raises(self) -> None:
        p = Pose3.identity()
        with self.assertRaises(ValueError):
            fuse_poses(p, -1.0, p, 1.0)


class TestVarianceStrategies(unittest.TestCase):
    """Test suite for harmonic and overlap variance combination."""

    def setUp(self) -> None:
        self.zero = np.zeros(3)

    def test_harmonic_equal_variance_halves(self) -> None:
        v = harmonic_variance(self.zero, self.zero, 0.04, self.zero, 0.04)
        self.assertAlmostEqual(v, 0.02, places=15)

    def test_harmonic_formula(self) -> None:
        v = harmonic_variance(self.zero, self.zero, 1.0, self.zero, 3.0)
        self.assertAlmostEqual(v, 0.75, places=15)

    def test_harmonic_floor(self) -> None:
        v = harmonic_variance(self.zero, self.zero, 1e-7, self.zero, 1e-7)
        self.assertEqual(v, MIN_VARIANCE)

    def test_overlap_clamped_low(self) -> None:
        v = overlap_variance(self.zero, self.zero, 0.01, self.zero, 0.01)
        self.assertEqual(v, OVERLAP_VARIANCE_BOUNDS[0])

    def test_overlap_clamped_high(self) -> None:
        far = np.array([10.0, 0.0, 0.0])
        v = overlap_variance(self.zero, far, 0.01, -far, 0.01)
        self.assertEqual(v, OVERLAP_VARIANCE_BOUNDS[1])

    def test_overlap_grows_with_disagreement(self) -> None:
        near = overlap_variance(self.zero, np.array([0.1, 0, 0]), 1.0, np.array([-0.1, 0, 0]), 1.0)
        far = overlap_variance(self.zero, np.array([1.0, 0, 0]), 1.0, np.array([-1.0, 0, 0]), 1.0)
        self.assertGreater(far, near)

    def test_overlap_formula(self) -> None:
        mean_a = np.array([0.5, 0.0, 0.0])
        mean_b = np.array([-0.5, 0.0, 0.0])
        expected = np.sqrt(2.0 * np.pi) * 1.0 * 2.0 * np.exp(0.25 / 2.0 + 0.25 / 4.0)
        v = overlap_variance(self.zero, mean_a, 1.0, mean_b, 2.0)
        self.assertAlmostEqual(v, expected, places=12)

    def test_registry(self) -> None:
        self.assertIs(get_variance_strategy(), harmonic_variance)
        self.assertIs(get_variance_strategy("harmonic"), harmonic_variance)
        self.assertIs(get_variance_strategy("overlap"), overlap_variance)

    def test_registry_unknown(self) -> None:
        with self.assertRaises(ValueError):
            get_variance_strategy("kalman")


if __name__ == "__main__":
    unittest.main()
