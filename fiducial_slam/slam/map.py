"""Fiducial map engine: bootstrap, incremental mapping and observer pose.

Each frame the engine receives the set of fiducials seen by the camera and
runs one of two modes:

    INITIALIZING: the nearest fiducial becomes the origin; its pose is fused
        over the first frames and then anchored (variance 0), fixing the map
        frame.
    TRACKING: for every ordered pair of co-observed fiducials whose first
        member is mapped, the second is placed (or refined) through the
        first, and the observer pose is fused from all mapped fiducials in
        view.

There is no global optimization: every update is a local, sequential
inverse-variance fusion, so the cost per frame is O(k²) in the number of
fiducials in view.

Author: Navigation Engineer
Date: 2024
"""

import itertools
import warnings
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from fiducial_slam.coords.transforms import Pose3, se3_compose, translation_norm_sq
from fiducial_slam.fusion.pose_fusion import (
    MIN_VARIANCE,
    fuse_poses,
    get_variance_strategy,
    harmonic_variance,
)
from fiducial_slam.slam import map_io
from fiducial_slam.slam.fiducial import Fiducial
from fiducial_slam.slam.observation import Observation, validate_frame
from fiducial_slam.slam.types import MapConfig, MapEntry, MapMode, PoseEstimate


def find_closest_observation(observations: List[Observation]) -> int:
    """
    Index of the observation nearest to the camera.

    Distance is the squared translation of camera_to_fiducial. Ties resolve
    to the first observation in input order.

    Returns:
        Index into observations, or -1 if the list is empty.
    """
    closest_idx = -1
    smallest = None
    for i, obs in enumerate(observations):
        d = translation_norm_sq(obs.camera_to_fiducial)
        if smallest is None or d < smallest:
            smallest = d
            closest_idx = i
    return closest_idx


class FiducialMap:
    """
    Incremental fiducial map with observer pose estimation.

    Attributes:
        config: Engine configuration (MapConfig).
        fiducials: Mapped fiducials keyed by id.
        frame_number: Number of frames processed.
        mode: Current MapMode.
        origin_id: Id of the fiducial chosen as origin during bootstrap, or
            None before bootstrap has started.
        bootstrap_start_frame: Frame number in which the origin was inserted.
        pose_estimate: Observer pose estimate of the last frame, or None.

    Example:
        >>> engine = FiducialMap(MapConfig(map_file="/tmp/map.txt"))
        >>> for frame_obs, t in frames:
        ...     result = engine.update(frame_obs, t)
        ...     if result['pose_est'] is not None:
        ...         print(result['pose_est'].pose)
    """

    def __init__(self, config: Optional[MapConfig] = None, load: bool = True):
        """
        Initialize the engine and load the persisted map.

        Args:
            config: Engine configuration. Defaults to MapConfig().
            load: If True, seed the map from config.initial_map_file when set,
                otherwise from config.map_file.
        """
        self.config = config if config is not None else MapConfig()
        self.fiducials: Dict[int, Fiducial] = {}
        self.frame_number = 0
        self.origin_id: Optional[int] = None
        self.bootstrap_start_frame: Optional[int] = None
        self.pose_estimate: Optional[PoseEstimate] = None
        self.mode = MapMode.INITIALIZING

        self._variance_strategy = get_variance_strategy(self.config.variance_strategy)
        self._touched: Set[int] = set()

        if load:
            seed = self.config.initial_map_file or self.config.map_file
            if seed is not None:
                self.load_map(seed)

    @classmethod
    def from_fiducials(
        cls, fiducials: Iterable[Fiducial], config: Optional[MapConfig] = None
    ) -> "FiducialMap":
        """Create an engine seeded with existing fiducials (no file is read)."""
        engine = cls(config, load=False)
        for fiducial in fiducials:
            engine.fiducials[fiducial.fiducial_id] = fiducial
        if engine.fiducials:
            engine.mode = MapMode.TRACKING
        return engine

    def update(self, observations: Iterable[Observation], time: float = 0.0) -> Dict:
        """
        Process one frame of observations.

        Args:
            observations: Observations of this frame, in detector order.
            time: Frame timestamp (seconds), used for marker throttling.

        Returns:
            Dictionary with:
                - 'frame': Frame number
                - 'mode': MapMode after processing the frame
                - 'pose_est': PoseEstimate, or None if no mapped fiducial
                  was in view (always None while initializing)
                - 'map': List[MapEntry] snapshot of the whole map
                - 'markers': Fiducials due for (re)publication
        """
        observations = list(observations)
        self.frame_number += 1
        self._touched = set()

        validate_frame(observations)

        if observations and not self.fiducials:
            self.mode = MapMode.INITIALIZING

        pose_est = None
        if self.mode is MapMode.INITIALIZING:
            self._auto_init(observations)
        else:
            self.update_map(observations)
            pose_est = self.update_pose(observations)

        self.pose_estimate = pose_est

        return {
            "frame": self.frame_number,
            "mode": self.mode,
            "pose_est": pose_est,
            "map": self.map_snapshot(),
            "markers": self.markers_due(time),
        }

    def _auto_init(self, observations: List[Observation]) -> None:
        """Bootstrap step: pick, refine and finally anchor the origin fiducial."""
        if not self.fiducials:
            idx = find_closest_observation(observations)
            if idx < 0:
                warnings.warn(
                    "Could not find a fiducial to initialize the map from",
                    RuntimeWarning,
                )
                return

            obs = observations[idx]
            self.origin_id = obs.fiducial_id
            self.bootstrap_start_frame = self.frame_number
            self.fiducials[obs.fiducial_id] = Fiducial(
                fiducial_id=obs.fiducial_id,
                pose=obs.camera_to_fiducial.copy(),
                variance=max(obs.object_error, MIN_VARIANCE),
            )
            self._touched.add(obs.fiducial_id)
        else:
            origin = self.fiducials.get(self.origin_id)
            for obs in observations:
                if origin is not None and obs.fiducial_id == self.origin_id:
                    origin.update(
                        obs.camera_to_fiducial, obs.object_error, self._variance_strategy
                    )
                    self._touched.add(obs.fiducial_id)

        if self._bootstrap_complete():
            self.fiducials[self.origin_id].anchor()
            self.mode = MapMode.TRACKING

    def _bootstrap_complete(self) -> bool:
        if self.bootstrap_start_frame is None or self.origin_id not in self.fiducials:
            return False
        n_frames = self.frame_number - self.bootstrap_start_frame + 1
        return n_frames > self.config.init_frames

    def update_map(self, observations: List[Observation]) -> None:
        """
        Place or refine co-observed fiducials through already mapped ones.

        For every ordered pair (o1, o2) with o1 mapped, the pose of o2 in the
        map is predicted as pose(o1) ∘ T_fid1_cam ∘ T_cam_fid2 with variance
        err1 + err2 + max(var(o1), min_reference_variance). Unmapped o2 are
        inserted (and the map saved), mapped ones are fused. Anchored
        fiducials are never modified. Links are recorded in both directions.
        """
        anchored = {fid for fid, f in self.fiducials.items() if f.is_anchored}

        for o1, o2 in itertools.permutations(observations, 2):
            if o1.fiducial_id == o2.fiducial_id:
                continue

            reference = self.fiducials.get(o1.fiducial_id)
            if reference is None:
                warnings.warn(f"No map entry for fiducial {o1.fiducial_id}", RuntimeWarning)
                continue

            if o2.fiducial_id in anchored:
                continue

            T_fid1_fid2 = se3_compose(o1.camera_to_fiducial, o2.fiducial_to_camera)
            T_map_fid2 = se3_compose(reference.pose, T_fid1_fid2)

            variance = (
                o1.object_error
                + o2.object_error
                + max(reference.variance, self.config.min_reference_variance)
            )
            variance = max(variance, MIN_VARIANCE)

            target = self.fiducials.get(o2.fiducial_id)
            if target is None:
                target = Fiducial(o2.fiducial_id, T_map_fid2, variance)
                self.fiducials[o2.fiducial_id] = target
                self.save_map()
            else:
                target.update(T_map_fid2, variance, self._variance_strategy)

            reference.link(o2.fiducial_id)
            target.link(o1.fiducial_id)
            self._touched.update((o1.fiducial_id, o2.fiducial_id))

    def update_pose(self, observations: List[Observation]) -> Optional[PoseEstimate]:
        """
        Estimate the observer pose from all mapped fiducials in view.

        Each mapped fiducial gives a candidate pose(fid) ∘ T_fid_cam with
        variance var(fid) + object_error. Candidates are fused sequentially
        in observation order with harmonic variance combination, independent
        of the map's variance strategy.

        Returns:
            PoseEstimate, or None if no observed fiducial is mapped.
        """
        estimate: Optional[PoseEstimate] = None

        for obs in observations:
            fiducial = self.fiducials.get(obs.fiducial_id)
            if fiducial is None:
                continue

            candidate = se3_compose(fiducial.pose, obs.camera_to_fiducial)
            variance = max(fiducial.variance + obs.object_error, MIN_VARIANCE)

            if estimate is None:
                estimate = PoseEstimate(candidate, variance, 1)
                continue

            fused = fuse_poses(estimate.pose, estimate.variance, candidate, variance)
            fused_variance = harmonic_variance(
                fused.translation,
                estimate.pose.translation,
                estimate.variance,
                candidate.translation,
                variance,
            )
            estimate = PoseEstimate(fused, fused_variance, estimate.n_fiducials + 1)

        return estimate

    def map_snapshot(self) -> List[MapEntry]:
        """Immutable per-fiducial records of the current map, sorted by id."""
        return [self.fiducials[fid].to_entry() for fid in sorted(self.fiducials)]

    def markers_due(self, now: float) -> List[Fiducial]:
        """
        Fiducials whose visualization markers should be (re)published.

        A fiducial is due if it changed during the last frame or if it has
        not been published for config.publish_period seconds. Returned
        fiducials are stamped with now.
        """
        due = []
        for fid in sorted(self.fiducials):
            fiducial = self.fiducials[fid]
            stale = now - fiducial.last_published > self.config.publish_period
            if fid in self._touched or stale:
                fiducial.last_published = now
                due.append(fiducial)
        return due

    def save_map(self, path: Optional[Union[str, Path]] = None) -> bool:
        """
        Persist the whole map.

        Args:
            path: Destination; defaults to config.map_file.

        Returns:
            True on success. False if persistence is disabled or the file
            could not be written (a RuntimeWarning is issued).
        """
        path = path if path is not None else self.config.map_file
        if path is None:
            return False
        try:
            map_io.save_map(self.fiducials, path)
        except OSError as e:
            warnings.warn(f"Could not save map to {path}: {e}", RuntimeWarning)
            return False
        return True

    def load_map(self, path: Optional[Union[str, Path]] = None) -> bool:
        """
        Merge fiducials from a map file into the map.

        A missing or unreadable file is not an error: a RuntimeWarning is
        issued and the map is left unchanged. One-sided links in the file
        are made symmetric between mapped fiducials.

        Returns:
            True if the file was read.
        """
        path = path if path is not None else self.config.map_file
        if path is None:
            return False
        try:
            loaded = map_io.load_map(path)
        except OSError as e:
            warnings.warn(f"Could not load map from {path}: {e}", RuntimeWarning)
            return False

        self.fiducials.update(loaded)
        for fid, fiducial in self.fiducials.items():
            for other in fiducial.links:
                if other in self.fiducials:
                    self.fiducials[other].link(fid)
        if self.fiducials and self.origin_id is None:
            self.mode = MapMode.TRACKING
        return True
