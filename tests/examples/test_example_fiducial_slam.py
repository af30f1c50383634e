"""Smoke tests for the fiducial SLAM example script.

Verifies that the example runs end to end, saves a map file and produces
a figure. Uses the Agg backend to avoid display requirements.

Author: Navigation Engineer
Date: 2024
"""

import os
import subprocess
import sys
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

import matplotlib
import numpy as np

matplotlib.use("Agg")

from examples.example_fiducial_slam import plot_results, run_simulation, summarize
from fiducial_slam.slam import load_map


class TestExampleFiducialSlamInline(unittest.TestCase):
    """Run the example functions in-process."""

    def test_run_and_summarize(self) -> None:
        results = run_simulation(n_frames=80, noise=0.0, seed=1)
        summary = summarize(results)

        engine = results["engine"]
        self.assertEqual(len(engine.fiducials), 8)
        self.assertIsNotNone(summary["origin_id"])
        self.assertLess(max(summary["map_errors"].values()), 1e-6)

    def test_plot_written(self) -> None:
        results = run_simulation(n_frames=40, noise=0.01, seed=2)
        summary = summarize(results)
        with TemporaryDirectory() as tmp:
            output = Path(tmp) / "figs" / "result.png"
            plot_results(results, summary, output)
            self.assertTrue(output.exists())

    def test_plot_with_origin_outside_simulation(self) -> None:
        # origin taken from a seed map whose id is not a simulated fiducial
        results = run_simulation(n_frames=20, noise=0.0, seed=3)
        summary = {
            "origin_id": 99,
            "map_errors": {},
            "camera_errors": np.full(len(results["estimates"]), np.nan),
        }
        with TemporaryDirectory() as tmp:
            output = Path(tmp) / "result.png"
            plot_results(results, summary, output)
            self.assertTrue(output.exists())


class TestExampleFiducialSlamRuns(unittest.TestCase):
    """Smoke test: the example script should run as a module."""

    def setUp(self) -> None:
        self.python_exe = sys.executable
        self.workspace_root = Path(__file__).parent.parent.parent

    def test_cli_saves_map(self) -> None:
        env = dict(os.environ, MPLBACKEND="Agg")
        with TemporaryDirectory() as tmp:
            map_file = Path(tmp) / "map.txt"
            result = subprocess.run(
                [
                    self.python_exe,
                    "-m",
                    "examples.example_fiducial_slam",
                    "--frames",
                    "60",
                    "--no-plot",
                    "--map-file",
                    str(map_file),
                ],
                cwd=self.workspace_root,
                env=env,
                capture_output=True,
                text=True,
                timeout=120,
            )

            self.assertEqual(
                result.returncode, 0, f"Script failed:\nSTDOUT:\n{result.stdout}\nSTDERR:\n{result.stderr}"
            )
            self.assertIn("FIDUCIAL SLAM COMPLETE", result.stdout)
            self.assertTrue(map_file.exists())
            self.assertGreater(len(load_map(map_file)), 1)


if __name__ == "__main__":
    unittest.main()
