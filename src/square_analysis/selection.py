# %%
"""Visibility filter over squares and recording-level attributes."""

import logging

import numpy as np
import pandas as pd

from .aggregation import calculate_density
from .decay_fit import TauStatus, calculate_tau
from .records import Square

LOGGER = logging.getLogger(__name__)


# %%
def _passes(square: Square, min_density_ratio: float, max_variability: float, min_r_squared: float) -> bool:
    if square.manually_excluded or square.image_excluded:
        return False
    r_squared = square.statistic("r_squared")
    return bool(
        square.statistic("density_ratio") >= min_density_ratio
        and square.statistic("variability") <= max_variability
        and not np.isnan(r_squared)
        and r_squared >= min_r_squared
    )


def _is_neighbour(a: Square, b: Square, mode: str) -> bool:
    dr = abs(a.row - b.row)
    dc = abs(a.col - b.col)
    if mode == "Relaxed":
        return dr <= 1 and dc <= 1 and dr + dc > 0
    return dr + dc == 1


def apply_visibility_filter(
    squares: list[Square],
    min_density_ratio: float,
    max_variability: float,
    min_r_squared: float,
    neighbour_mode: str = "Free",
) -> int:
    """Mark the squares that pass the quality thresholds as selected.

    Parameters
    ----------
    squares : list[Square]
        Finalized squares of one recording.
    min_density_ratio : float
        Minimum density ratio.
    max_variability : float
        Maximum variability.
    min_r_squared : float
        Minimum R squared (a NaN R squared never passes).
    neighbour_mode : str, optional
        "Free" (default), "Relaxed" (a selected square needs a selected
        edge or corner neighbour) or "Strict" (edge neighbour only).

    Returns
    -------
    int
        Number of selected squares.
    """
    mode = neighbour_mode.capitalize()

    for square in squares:
        square.selected = _passes(square, min_density_ratio, max_variability, min_r_squared)

    if mode == "Free":
        return sum(sq.selected for sq in squares)

    candidates = [sq for sq in squares if sq.selected]
    keep = {
        sq.square_number
        for sq in candidates
        if any(other is not sq and _is_neighbour(sq, other, mode) for other in candidates)
    }
    for square in candidates:
        square.selected = square.square_number in keep

    LOGGER.debug("Neighbour mode %s: %d / %d squares retained", mode, len(keep), len(candidates))
    return len(keep)


def assign_label_numbers(squares: list[Square], tracks: pd.DataFrame | None = None) -> pd.DataFrame | None:
    """Number the selected squares 0, 1, ... in row-major order.

    Unselected squares get label -1. When a track table is given, a copy with
    each track's 'Label Number' taken from its square is returned.
    """
    label = 0
    labels = {}
    for square in sorted(squares, key=lambda sq: sq.square_number):
        if square.selected:
            square.label_number = label
            label += 1
        else:
            square.label_number = -1
        labels[square.square_number] = square.label_number

    if tracks is None:
        return None

    tracks = tracks.copy()
    tracks["Label Number"] = tracks["Square Number"].map(labels).fillna(-1).astype(int)
    return tracks


# %%
def calculate_recording_attributes(recording, config) -> dict:
    """Tau, R squared and density over the tracks of the selected squares.

    Parameters
    ----------
    recording : Recording
        Recording with finalized, filtered squares.
    config : SquareConfig
        Analysis parameters.

    Returns
    -------
    dict
        tau, r_squared, density, n_selected_squares. The values are also
        stored on the recording.
    """
    selected = recording.selected_squares
    track_ids = [track_id for sq in selected for track_id in sq.track_ids]
    durations = recording.tracks.loc[recording.tracks["Track Id"].isin(track_ids), "Track Duration"]

    result = calculate_tau(
        durations,
        min_tracks=config.min_tracks_for_tau,
        min_r_squared=config.min_required_r_squared,
    )
    if result.status == TauStatus.SUCCESS:
        recording.tau = float(round(result.tau))
        recording.r_squared = round(result.r_squared, 3)
    else:
        recording.tau = np.nan
        recording.r_squared = np.nan

    if selected:
        recording.density = calculate_density(
            len(track_ids),
            config.square_area * len(selected),
            config.recording_duration,
            config.concentration,
        )
    else:
        recording.density = np.nan

    return {
        "tau": recording.tau,
        "r_squared": recording.r_squared,
        "density": recording.density,
        "n_selected_squares": len(selected),
    }
