"""Tests for synthetic fiducial scenes and end-to-end mapping on them."""

import numpy as np
import pytest

from fiducial_slam.coords import Pose3, se3_relative
from fiducial_slam.sim import (
    camera_pose_error,
    make_circular_trajectory,
    make_fiducial_ring,
    relative_pose_errors,
    simulate_observations,
)
from fiducial_slam.slam import FiducialMap, MapConfig, MapMode


class TestSceneGeneration:
    """Test suite for layouts and trajectories."""

    def test_ring_layout(self):
        ring = make_fiducial_ring(6, radius=2.0, height=2.5, first_id=10)
        assert sorted(ring) == list(range(10, 16))
        for pose in ring.values():
            assert np.hypot(*pose.translation[:2]) == pytest.approx(2.0)
            assert pose.translation[2] == pytest.approx(2.5)

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            make_fiducial_ring(0)
        with pytest.raises(ValueError):
            make_circular_trajectory(0)

    def test_trajectory_length(self):
        poses = make_circular_trajectory(50, radius=1.5)
        assert len(poses) == 50
        np.testing.assert_allclose(poses[0].translation[:2], [1.5, 0.0], atol=1e-12)


class TestSimulatedObservations:
    """Test suite for the detection forward model."""

    def test_noise_free_reproduces_relative_pose(self):
        ring = make_fiducial_ring(8)
        camera = make_circular_trajectory(8)[0]

        observations = simulate_observations(ring, camera)

        assert len(observations) >= 2
        for obs in observations:
            expected = se3_relative(ring[obs.fiducial_id], camera)
            np.testing.assert_allclose(
                obs.camera_to_fiducial.translation, expected.translation, atol=1e-12
            )
            assert abs(np.dot(obs.camera_to_fiducial.rotation, expected.rotation)) == pytest.approx(1.0)

    def test_range_limit_and_order(self):
        ring = make_fiducial_ring(8)
        observations = simulate_observations(ring, Pose3.identity(), max_range=0.5)
        assert observations == []

        camera = make_circular_trajectory(8)[2]
        ids = [o.fiducial_id for o in simulate_observations(ring, camera)]
        assert ids == sorted(ids)

    def test_object_error_grows_with_range(self):
        ring = {1: Pose3(np.array([0.0, 0.0, 1.0])), 2: Pose3(np.array([0.0, 0.0, 2.0]))}
        obs = simulate_observations(ring, Pose3.identity())
        assert obs[0].object_error < obs[1].object_error

    def test_noise_is_seeded(self):
        ring = make_fiducial_ring(8)
        camera = make_circular_trajectory(8)[0]
        a = simulate_observations(ring, camera, translation_std=0.05, rng=np.random.default_rng(3))
        b = simulate_observations(ring, camera, translation_std=0.05, rng=np.random.default_rng(3))
        np.testing.assert_array_equal(
            a[0].camera_to_fiducial.translation, b[0].camera_to_fiducial.translation
        )


class TestEndToEnd:
    """Run the engine on a noise-free scene and compare with ground truth."""

    def test_noise_free_map_is_exact(self):
        ring = make_fiducial_ring(8)
        cameras = make_circular_trajectory(160, n_laps=2.0)
        engine = FiducialMap(MapConfig(map_file=None))

        estimates = []
        for k, camera in enumerate(cameras):
            result = engine.update(simulate_observations(ring, camera), time=0.1 * k)
            estimates.append(result["pose_est"])

        assert engine.mode is MapMode.TRACKING
        assert sorted(engine.fiducials) == sorted(ring)

        errors = relative_pose_errors(engine.fiducials, ring, engine.origin_id)
        assert max(errors.values()) < 1e-6

        est_origin = engine.fiducials[engine.origin_id].pose
        true_origin = ring[engine.origin_id]
        last = estimates[-1]
        assert last is not None
        assert camera_pose_error(last.pose, cameras[-1], est_origin, true_origin) < 1e-6

    def test_links_follow_covisibility(self):
        ring = make_fiducial_ring(8)
        engine = FiducialMap(MapConfig(map_file=None))
        for camera in make_circular_trajectory(160, n_laps=2.0):
            engine.update(simulate_observations(ring, camera))

        for fid, f in engine.fiducials.items():
            for other in f.links:
                assert fid in engine.fiducials[other].links

    def test_noisy_map_is_close(self):
        rng = np.random.default_rng(42)
        ring = make_fiducial_ring(8)
        engine = FiducialMap(MapConfig(map_file=None))
        for camera in make_circular_trajectory(240, n_laps=2.0):
            obs = simulate_observations(
                ring, camera, translation_std=0.005, rotation_std=0.002, rng=rng
            )
            engine.update(obs)

        errors = relative_pose_errors(engine.fiducials, ring, engine.origin_id)
        assert len(errors) == 8
        assert max(errors.values()) < 0.5
