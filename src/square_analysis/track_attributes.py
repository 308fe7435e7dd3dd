# %%
"""Per-track kinetic attributes derived from trajectory geometry."""

import logging

import numpy as np
import pandas as pd

from .records import TRACK_COLUMNS

LOGGER = logging.getLogger(__name__)

ID_COLUMNS = ("track_id", "particle")


# %%
def _empty_attributes(n_spots: int) -> dict:
    return {
        "n_spots": n_spots,
        "n_gaps": 0,
        "longest_gap": 0,
        "duration": np.nan,
        "displacement": np.nan,
        "total_distance": np.nan,
        "confinement_ratio": np.nan,
        "diffusion_coefficient": np.nan,
        "diffusion_coefficient_ext": np.nan,
        "max_speed": np.nan,
        "median_speed": np.nan,
    }


def calculate_track_attributes(samples, dt: float) -> dict:
    """Compute displacement, path length and diffusion coefficients of one track.

    Parameters
    ----------
    samples : array-like or pd.DataFrame
        Samples of one track, either an (n, 3) array of (frame, x, y) or a
        DataFrame with 'frame', 'x' and 'y' columns. Order does not matter.
    dt : float
        Time between frames in seconds.

    Returns
    -------
    dict
        Keys: n_spots, n_gaps, longest_gap, duration, displacement,
        total_distance, confinement_ratio, diffusion_coefficient,
        diffusion_coefficient_ext, max_speed, median_speed.
        With fewer than 2 samples every derived value is NaN.
    """
    if isinstance(samples, pd.DataFrame):
        data = samples[["frame", "x", "y"]].to_numpy(dtype=float)
    else:
        data = np.asarray(samples, dtype=float).reshape(-1, 3)

    n_spots = len(data)
    if n_spots < 2:
        return _empty_attributes(n_spots)

    data = data[np.argsort(data[:, 0], kind="stable")]
    frames, x, y = data[:, 0], data[:, 1], data[:, 2]

    # Step-relative and first-point-relative displacements
    dx, dy = np.diff(x), np.diff(y)
    dx0, dy0 = x[1:] - x[0], y[1:] - y[0]
    steps = np.hypot(dx, dy)
    n_steps = len(steps)

    total_distance = float(steps.sum())
    displacement = float(np.hypot(x[-1] - x[0], y[-1] - y[0]))

    diffusion_coefficient = np.nan
    diffusion_coefficient_ext = np.nan
    if n_steps > 0 and dt > 0:
        msd = np.sum(dx0**2 + dy0**2) / n_steps
        msd_ext = np.sum(dx**2 + dy**2) / n_steps
        diffusion_coefficient = round(float(msd / (4.0 * dt)), 2)
        diffusion_coefficient_ext = round(float(msd_ext / (4.0 * dt)), 2)

    confinement_ratio = displacement / total_distance if total_distance > 0 else np.nan

    # Gaps are frame jumps larger than one
    frame_steps = np.diff(frames)
    gaps = frame_steps[frame_steps > 1] - 1

    speeds = np.array([])
    duration = np.nan
    if dt > 0:
        valid = frame_steps > 0
        speeds = steps[valid] / (frame_steps[valid] * dt)
        duration = float((frames[-1] - frames[0]) * dt)

    return {
        "n_spots": n_spots,
        "n_gaps": int(len(gaps)),
        "longest_gap": int(gaps.max()) if len(gaps) > 0 else 0,
        "duration": duration,
        "displacement": displacement,
        "total_distance": total_distance if total_distance != 0.0 else np.nan,
        "confinement_ratio": confinement_ratio,
        "diffusion_coefficient": diffusion_coefficient,
        "diffusion_coefficient_ext": diffusion_coefficient_ext,
        "max_speed": float(speeds.max()) if len(speeds) > 0 else np.nan,
        "median_speed": float(np.median(speeds)) if len(speeds) > 0 else np.nan,
    }


# %%
def _id_column(trajectories: pd.DataFrame) -> str:
    for column in ID_COLUMNS:
        if column in trajectories.columns:
            return column
    raise ValueError(f"Trajectories must have one of the columns {ID_COLUMNS}")


def compute_track_table(
    trajectories: pd.DataFrame,
    recording_name: str,
    dt: float,
    location: str = "centroid",
) -> pd.DataFrame:
    """Reduce linked trajectory samples to one track record per track.

    Parameters
    ----------
    trajectories : pd.DataFrame
        Long-format samples with 'frame', 'x', 'y' (physical units) and a
        'track_id' or 'particle' column.
    recording_name : str
        Name of the recording the tracks belong to.
    dt : float
        Time between frames in seconds.
    location : str, optional
        Representative position: "centroid" (mean of samples, default) or
        "first" (first sample).

    Returns
    -------
    pd.DataFrame
        Track records with columns in TRACK_COLUMNS order. 'Square Number'
        and 'Label Number' are -1 until tracks are assigned to squares.
    """
    if trajectories.empty:
        return pd.DataFrame(columns=TRACK_COLUMNS)

    for column in ("frame", "x", "y"):
        if column not in trajectories.columns:
            raise ValueError(f"Trajectories must have '{column}' column")
    if location not in ("centroid", "first"):
        raise ValueError(f"Unknown location: {location}. Use 'centroid' or 'first'.")

    id_column = _id_column(trajectories)
    rows = []
    n_short = 0

    for track_id, group in trajectories.groupby(id_column, sort=True):
        group = group.sort_values("frame", kind="stable")
        attributes = calculate_track_attributes(group, dt)

        if attributes["n_spots"] < 2:
            n_short += 1
            LOGGER.debug("Recording %s, track %s: fewer than 2 samples", recording_name, track_id)

        if location == "first":
            x_location, y_location = group["x"].iloc[0], group["y"].iloc[0]
        else:
            x_location, y_location = group["x"].mean(), group["y"].mean()

        rows.append({
            "Unique Key": f"{recording_name}-{track_id}",
            "Recording Name": recording_name,
            "Track Id": int(track_id),
            "Number of Spots": attributes["n_spots"],
            "Number of Gaps": attributes["n_gaps"],
            "Longest Gap": attributes["longest_gap"],
            "Track Duration": attributes["duration"],
            "Track X Location": float(x_location),
            "Track Y Location": float(y_location),
            "Track Displacement": attributes["displacement"],
            "Track Max Speed": attributes["max_speed"],
            "Track Median Speed": attributes["median_speed"],
            "Diffusion Coefficient": attributes["diffusion_coefficient"],
            "Diffusion Coefficient Ext": attributes["diffusion_coefficient_ext"],
            "Total Distance": attributes["total_distance"],
            "Confinement Ratio": attributes["confinement_ratio"],
            "Square Number": -1,
            "Label Number": -1,
        })

    if n_short > 0:
        LOGGER.warning(
            "Recording %s: %d of %d tracks have fewer than 2 samples",
            recording_name, n_short, len(rows),
        )

    return pd.DataFrame(rows, columns=TRACK_COLUMNS)
