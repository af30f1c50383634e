"""Load and save fiducial maps in the line-oriented text format.

One line per fiducial, whitespace separated:

    <id> <tx> <ty> <tz> <roll_deg> <pitch_deg> <yaw_deg> <variance> <num_obs> [<link_id> ...]

The first nine fields are mandatory; the link list may be empty. Lines that
do not parse are skipped without failing the whole file.

Author: Navigation Engineer
Date: 2024
"""

from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import numpy as np

from fiducial_slam.coords.rotations import euler_to_quat
from fiducial_slam.coords.transforms import Pose3
from fiducial_slam.slam.fiducial import Fiducial

N_FIXED_FIELDS = 9


def format_fiducial_line(fiducial: Fiducial) -> str:
    """
    Serialize one fiducial to a map file line (including the newline).

    Translation and variance use Python's round-trip float representation,
    Euler angles are written in degrees with six decimals.
    """
    tx, ty, tz = (float(v) for v in fiducial.pose.translation)
    roll, pitch, yaw = np.rad2deg(fiducial.pose.euler())
    fields = [
        str(fiducial.fiducial_id),
        repr(tx),
        repr(ty),
        repr(tz),
        f"{roll:.6f}",
        f"{pitch:.6f}",
        f"{yaw:.6f}",
        repr(float(fiducial.variance)),
        str(fiducial.num_observations),
    ]
    fields.extend(str(link) for link in sorted(fiducial.links))
    return " ".join(fields) + "\n"


def parse_fiducial_line(line: str) -> Optional[Fiducial]:
    """
    Parse one map file line.

    Returns:
        The fiducial, or None if the line is blank or malformed.
    """
    tokens = line.split()
    if len(tokens) < N_FIXED_FIELDS:
        return None

    try:
        fiducial_id = int(tokens[0])
        tx, ty, tz, roll, pitch, yaw, variance = (float(t) for t in tokens[1:8])
        num_observations = int(tokens[8])
        links = {int(t) for t in tokens[N_FIXED_FIELDS:]}
    except ValueError:
        return None

    values = np.array([tx, ty, tz, roll, pitch, yaw, variance])
    if not np.all(np.isfinite(values)) or variance < 0 or num_observations < 0:
        return None

    rotation = euler_to_quat(np.deg2rad(roll), np.deg2rad(pitch), np.deg2rad(yaw))
    return Fiducial(
        fiducial_id=fiducial_id,
        pose=Pose3(np.array([tx, ty, tz]), rotation),
        variance=variance,
        num_observations=num_observations,
        links=links,
    )


def save_map(fiducials: Mapping[int, Fiducial], path: Union[str, Path]) -> None:
    """
    Write the whole map to disk, overwriting any previous file.

    Args:
        fiducials: Map of fiducial id to fiducial.
        path: Destination file; parent directories are created.

    Raises:
        OSError: If the file cannot be written.

    Example:
        >>> save_map(engine.fiducials, '~/.ros/slam/map.txt')
    """
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [format_fiducial_line(fiducials[fid]) for fid in sorted(fiducials)]
    with open(path, "w", encoding="utf-8") as f:
        f.writelines(lines)


def load_map(path: Union[str, Path]) -> Dict[int, Fiducial]:
    """
    Read a map file.

    Args:
        path: Map file to read.

    Returns:
        Dictionary of fiducial id to fiducial. Malformed lines are skipped.

    Raises:
        FileNotFoundError: If the file does not exist.
        OSError: If the file cannot be read.
    """
    path = Path(path).expanduser()

    fiducials: Dict[int, Fiducial] = {}
    # undecodable bytes become U+FFFD so the line fails to parse and is skipped
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            fiducial = parse_fiducial_line(line)
            if fiducial is not None:
                fiducials[fiducial.fiducial_id] = fiducial

    return fiducials
