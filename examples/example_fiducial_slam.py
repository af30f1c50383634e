"""Fiducial SLAM example: build a fiducial map and localize the camera.

This example demonstrates the complete fiducial mapping pipeline:
    1. Lay out ceiling fiducials on a ring (ground truth)
    2. Move a camera around a circle and simulate noisy detections
    3. Bootstrap the map from the nearest fiducial and anchor it
    4. Grow the map from co-observed fiducials and fuse repeated sightings
    5. Estimate the camera pose every frame
    6. Save the map file and visualize the results

Usage:
    python -m examples.example_fiducial_slam
    python -m examples.example_fiducial_slam --frames 400 --noise 0.02
    python -m examples.example_fiducial_slam --variance-strategy overlap
    python -m examples.example_fiducial_slam --initial-map-file seed.txt

Author: Navigation Engineer
Date: 2024
"""

import argparse
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
from tqdm import tqdm

from fiducial_slam.coords import se3_compose, se3_relative
from fiducial_slam.fusion import VARIANCE_STRATEGIES
from fiducial_slam.sim import (
    camera_pose_error,
    make_circular_trajectory,
    make_fiducial_ring,
    relative_pose_errors,
    simulate_observations,
)
from fiducial_slam.slam import FiducialMap, MapConfig, MapMode


def run_simulation(
    n_frames: int = 240,
    n_fiducials: int = 8,
    noise: float = 0.01,
    seed: int = 42,
    map_file: Optional[str] = None,
    initial_map_file: Optional[str] = None,
    variance_strategy: str = "harmonic",
    frame_rate: float = 10.0,
) -> Dict:
    """Run the engine over a simulated camera trajectory.

    Args:
        n_frames: Number of frames (two laps around the ring).
        n_fiducials: Number of ceiling fiducials.
        noise: Detection noise; translation std in meters, rotation std in
            radians.
        seed: Random seed.
        map_file: Map file to save to (None disables saving).
        initial_map_file: Optional seed map.
        variance_strategy: Variance combination for map fusion.
        frame_rate: Frames per second, used for timestamps.

    Returns:
        Dictionary with the engine, ground truth and per-frame results.
    """
    rng = np.random.default_rng(seed)

    true_fiducials = make_fiducial_ring(n_fiducials)
    true_cameras = make_circular_trajectory(n_frames, n_laps=2.0)

    config = MapConfig(
        map_file=map_file,
        initial_map_file=initial_map_file,
        variance_strategy=variance_strategy,
    )
    engine = FiducialMap(config)

    estimates: List = []
    n_observed: List[int] = []
    for k in tqdm(range(n_frames), desc="Processing frames", unit="frame"):
        obs = simulate_observations(
            true_fiducials,
            true_cameras[k],
            translation_std=noise,
            rotation_std=noise,
            rng=rng,
        )
        result = engine.update(obs, time=k / frame_rate)
        estimates.append(result["pose_est"])
        n_observed.append(len(obs))

    return {
        "engine": engine,
        "true_fiducials": true_fiducials,
        "true_cameras": true_cameras,
        "estimates": estimates,
        "n_observed": n_observed,
    }


def summarize(results: Dict) -> Dict:
    """Compute map and camera errors relative to the origin fiducial."""
    engine: FiducialMap = results["engine"]
    true_fiducials = results["true_fiducials"]

    origin_id = engine.origin_id
    if origin_id is None or origin_id not in engine.fiducials:
        anchored = [fid for fid, f in engine.fiducials.items() if f.is_anchored]
        origin_id = anchored[0] if anchored else None

    map_errors = {}
    camera_errors = np.full(len(results["estimates"]), np.nan)
    if origin_id is not None and origin_id in true_fiducials:
        map_errors = relative_pose_errors(engine.fiducials, true_fiducials, origin_id)
        est_origin = engine.fiducials[origin_id].pose
        true_origin = true_fiducials[origin_id]
        for k, est in enumerate(results["estimates"]):
            if est is not None:
                camera_errors[k] = camera_pose_error(
                    est.pose, results["true_cameras"][k], est_origin, true_origin
                )

    return {"origin_id": origin_id, "map_errors": map_errors, "camera_errors": camera_errors}


def plot_results(results: Dict, summary: Dict, output_file: Path) -> None:
    """Plot the estimated map against ground truth and the camera error."""
    engine: FiducialMap = results["engine"]
    fig, axes = plt.subplots(1, 2, figsize=(16, 7))

    ax1 = axes[0]
    true_xy = np.array([p.translation[:2] for p in results["true_fiducials"].values()])
    ax1.scatter(true_xy[:, 0], true_xy[:, 1], c="green", marker="s", s=80, label="True fiducials")

    origin_id = summary["origin_id"]
    if origin_id is not None and origin_id in results["true_fiducials"]:
        # Express the estimated map in the true frame through the origin fiducial
        true_origin = results["true_fiducials"][origin_id]
        est_origin = engine.fiducials[origin_id].pose
        aligned = {
            fid: se3_compose(true_origin, se3_relative(est_origin, f.pose))
            for fid, f in engine.fiducials.items()
        }
        est_xy = np.array([p.translation[:2] for p in aligned.values()])
        ax1.scatter(est_xy[:, 0], est_xy[:, 1], c="blue", marker="x", s=80, label="Estimated fiducials")
        for fid, f in engine.fiducials.items():
            for other in f.links:
                if fid < other and other in aligned:
                    p0, p1 = aligned[fid].translation, aligned[other].translation
                    ax1.plot([p0[0], p1[0]], [p0[1], p1[1]], "b:", linewidth=1, alpha=0.5)
            ax1.annotate(str(fid), aligned[fid].translation[:2], fontsize=9)

    cam_xy = np.array([p.translation[:2] for p in results["true_cameras"]])
    ax1.plot(cam_xy[:, 0], cam_xy[:, 1], "g-", linewidth=2, alpha=0.5, label="Camera (truth)")

    ax1.set_xlabel("X [m]", fontsize=12)
    ax1.set_ylabel("Y [m]", fontsize=12)
    ax1.set_title("Fiducial Map", fontsize=14, fontweight="bold")
    ax1.legend(fontsize=10)
    ax1.grid(True, alpha=0.3)
    ax1.axis("equal")

    ax2 = axes[1]
    ax2.plot(summary["camera_errors"], "b-", linewidth=2, alpha=0.8)
    ax2.set_xlabel("Frame", fontsize=12)
    ax2.set_ylabel("Camera Position Error [m]", fontsize=12)
    ax2.set_title("Observer Pose Error", fontsize=14, fontweight="bold")
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    output_file.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_file, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"\n[OK] Saved figure: {output_file}")


def main():
    """Main entry point with CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="Fiducial SLAM: map ceiling fiducials and localize the camera",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Simulated run without persistence (default)
  python -m examples.example_fiducial_slam

  # Save the map where the localization node expects it
  python -m examples.example_fiducial_slam --map-file ~/.ros/slam/map.txt

  # Start from a previously saved map
  python -m examples.example_fiducial_slam --initial-map-file seed_map.txt
        """,
    )
    parser.add_argument("--frames", type=int, default=240, help="Number of frames")
    parser.add_argument("--fiducials", type=int, default=8, help="Number of fiducials")
    parser.add_argument("--noise", type=float, default=0.01, help="Detection noise std")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--map-file", type=str, default=None, help="Map file to save")
    parser.add_argument(
        "--initial-map-file", type=str, default=None, help="Seed map loaded at startup"
    )
    parser.add_argument(
        "--variance-strategy",
        choices=sorted(VARIANCE_STRATEGIES),
        default="harmonic",
        help="Variance combination used for map fusion",
    )
    parser.add_argument("--no-plot", action="store_true", help="Skip the figure")
    parser.add_argument(
        "--output",
        type=str,
        default="examples/figs/fiducial_slam_results.png",
        help="Figure output path",
    )
    args = parser.parse_args()

    print("=" * 70)
    print("FIDUCIAL SLAM EXAMPLE")
    print("=" * 70)
    print(f"  Frames: {args.frames}")
    print(f"  Fiducials: {args.fiducials}")
    print(f"  Noise: {args.noise}")
    print(f"  Variance strategy: {args.variance_strategy}")
    print()

    results = run_simulation(
        n_frames=args.frames,
        n_fiducials=args.fiducials,
        noise=args.noise,
        seed=args.seed,
        map_file=args.map_file,
        initial_map_file=args.initial_map_file,
        variance_strategy=args.variance_strategy,
    )
    summary = summarize(results)
    engine: FiducialMap = results["engine"]

    print("\n" + "-" * 70)
    print("Results:")
    print(f"  Mode: {engine.mode.value}")
    print(f"  Origin fiducial: {summary['origin_id']}")
    print(f"  Mapped fiducials: {len(engine.fiducials)} / {args.fiducials}")
    for fid, err in summary["map_errors"].items():
        f = engine.fiducials[fid]
        print(
            f"    {fid:3d}: error={err:.4f} m  var={f.variance:.2e}  "
            f"obs={f.num_observations}  links={sorted(f.links)}"
        )
    camera_errors = summary["camera_errors"]
    if np.any(np.isfinite(camera_errors)):
        print(f"  Camera RMSE: {np.sqrt(np.nanmean(camera_errors ** 2)):.4f} m")
    if engine.mode is MapMode.INITIALIZING:
        print("  [WARN] Map never left initialization")

    if args.map_file and engine.save_map():
        print(f"  Map saved to: {args.map_file}")

    if not args.no_plot:
        print("\n" + "-" * 70)
        print("Generating plots...")
        plot_results(results, summary, Path(args.output))

    print("\n" + "=" * 70)
    print("FIDUCIAL SLAM COMPLETE!")
    print("=" * 70)


if __name__ == "__main__":
    main()
