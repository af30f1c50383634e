"""Unit tests for quaternion and Euler angle utilities.

Test cases include:
- Euler <-> quaternion conversions for known angles
- Hamilton product against rotation matrix products
- Slerp endpoints, midpoint and shortest-path behavior
- Rotation vector input
"""

import unittest

import numpy as np

from fiducial_slam.coords.rotations import (
    euler_to_quat,
    quat_conjugate,
    quat_from_axis_angle,
    quat_from_rotvec,
    quat_multiply,
    quat_normalize,
    quat_slerp,
    quat_to_euler,
    quat_to_rotation_matrix,
    rotation_matrix_to_quat,
)

Z_AXIS = np.array([0.0, 0.0, 1.0])


class TestEulerQuaternion(unittest.TestCase):
    """Test cases for Euler angle / quaternion conversion."""

    def test_identity(self) -> None:
        q = euler_to_quat(0.0, 0.0, 0.0)
        np.testing.assert_allclose(q, [1.0, 0.0, 0.0, 0.0], atol=1e-12)

    def test_90_degree_yaw(self) -> None:
        q = euler_to_quat(0.0, 0.0, np.pi / 2.0)
        expected = np.array([np.cos(np.pi / 4), 0.0, 0.0, np.sin(np.pi / 4)])
        np.testing.assert_allclose(q, expected, atol=1e-12)

    def test_euler_round_trip(self) -> None:
        angles = np.array([0.3, -0.4, 2.5])
        recovered = quat_to_euler(euler_to_quat(*angles))
        np.testing.assert_allclose(recovered, angles, atol=1e-12)

    def test_invalid_shape_raises(self) -> None:
        with self.assertRaises(ValueError):
            quat_to_euler(np.array([1.0, 0.0, 0.0]))


class TestQuaternionAlgebra(unittest.TestCase):
    """Test cases for quaternion product, conjugate and normalization."""

    def test_product_matches_matrix_product(self) -> None:
        q1 = euler_to_quat(0.1, 0.2, 0.3)
        q2 = euler_to_quat(-0.5, 0.4, 1.2)

        R = quat_to_rotation_matrix(quat_multiply(q1, q2))
        expected = quat_to_rotation_matrix(q1) @ quat_to_rotation_matrix(q2)
        np.testing.assert_allclose(R, expected, atol=1e-12)

    def test_conjugate_is_inverse(self) -> None:
        q = euler_to_quat(0.7, -0.2, 0.9)
        product = quat_multiply(q, quat_conjugate(q))
        np.testing.assert_allclose(product, [1.0, 0.0, 0.0, 0.0], atol=1e-12)

    def test_normalize(self) -> None:
        q = quat_normalize(np.array([2.0, 0.0, 0.0, 0.0]))
        np.testing.assert_allclose(q, [1.0, 0.0, 0.0, 0.0])

    def test_normalize_zero_raises(self) -> None:
        with self.assertRaises(ValueError):
            quat_normalize(np.zeros(4))

    def test_axis_angle_rotates_x_to_y(self) -> None:
        q = quat_from_axis_angle(Z_AXIS, np.pi / 2.0)
        v = quat_to_rotation_matrix(q) @ np.array([1.0, 0.0, 0.0])
        np.testing.assert_allclose(v, [0.0, 1.0, 0.0], atol=1e-12)

    def test_rotvec_matches_axis_angle(self) -> None:
        rvec = np.array([0.0, 0.0, 0.8])
        np.testing.assert_allclose(
            quat_from_rotvec(rvec), quat_from_axis_angle(Z_AXIS, 0.8), atol=1e-12
        )

    def test_matrix_round_trip(self) -> None:
        q = euler_to_quat(2.8, 0.1, -2.9)
        recovered = rotation_matrix_to_quat(quat_to_rotation_matrix(q))
        # q and -q are the same rotation
        self.assertAlmostEqual(abs(np.dot(recovered, q)), 1.0, places=10)


class TestSlerp(unittest.TestCase):
    """Test cases for spherical linear interpolation."""

    def setUp(self) -> None:
        self.q0 = np.array([1.0, 0.0, 0.0, 0.0])
        self.q1 = quat_from_axis_angle(Z_AXIS, np.pi / 2.0)

    def test_endpoints(self) -> None:
        np.testing.assert_allclose(quat_slerp(self.q0, self.q1, 0.0), self.q0, atol=1e-12)
        np.testing.assert_allclose(quat_slerp(self.q0, self.q1, 1.0), self.q1, atol=1e-12)

    def test_midpoint(self) -> None:
        q_half = quat_slerp(self.q0, self.q1, 0.5)
        np.testing.assert_allclose(q_half, quat_from_axis_angle(Z_AXIS, np.pi / 4.0), atol=1e-12)

    def test_result_is_unit(self) -> None:
        q = quat_slerp(euler_to_quat(0.1, 0.2, 0.3), euler_to_quat(1.0, -0.5, 2.0), 0.37)
        self.assertAlmostEqual(np.linalg.norm(q), 1.0, places=12)

    def test_shortest_path(self) -> None:
        # -q1 is the same rotation; interpolation must not take the long way
        q_half = quat_slerp(self.q0, -self.q1, 0.5)
        expected = quat_from_axis_angle(Z_AXIS, np.pi / 4.0)
        self.assertAlmostEqual(abs(np.dot(q_half, expected)), 1.0, places=12)

    def test_identical_inputs(self) -> None:
        q = euler_to_quat(0.2, 0.1, -0.3)
        np.testing.assert_allclose(quat_slerp(q, q, 0.6), q, atol=1e-12)


if __name__ == "__main__":
    unittest.main()
