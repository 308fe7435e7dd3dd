# %%
"""Per-square statistics: density, variability, tau and track summaries."""

import logging

import numpy as np
import pandas as pd

from .config import InvalidConfiguration
from .decay_fit import TauResult, TauStatus, calculate_tau
from .records import Square, SquareStatistics

LOGGER = logging.getLogger(__name__)

TRACK_FRACTION = 0.1


# %%
def calculate_density(
    n_tracks: int,
    area: float,
    duration: float,
    concentration: float = 1.0,
) -> float:
    """Tracks per unit area per second, divided by the probe concentration."""
    if area <= 0 or duration <= 0 or concentration <= 0:
        raise InvalidConfiguration("Area, duration and concentration must be positive")
    return n_tracks / area / duration / concentration


def calculate_density_ratio(density: float, background_density: float) -> float:
    """Density relative to the background; NaN without a usable background."""
    if background_density is None or not np.isfinite(background_density) or background_density == 0:
        return np.nan
    return density / background_density


def calculate_variability(
    x,
    y,
    square: Square,
    granularity: int = 10,
) -> float:
    """Coefficient of variation of track counts over a granularity x granularity sub-grid.

    Parameters
    ----------
    x, y : array-like
        Locations of the tracks in the square.
    square : Square
        The square, for its bounding box.
    granularity : int, optional
        Number of sub-cells along each axis (default: 10).

    Returns
    -------
    float
        Population standard deviation divided by the mean of the sub-cell
        counts. 0 means evenly spread; NaN when there are no tracks.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if len(x) == 0:
        return np.nan

    width = square.x1 - square.x0
    height = square.y1 - square.y0
    xi = np.floor((x - square.x0) / width * granularity).astype(np.int64)
    yi = np.floor((y - square.y0) / height * granularity).astype(np.int64)

    # Points on the closed outer edge of the grid belong to the last sub-cell
    xi = np.clip(xi, 0, granularity - 1)
    yi = np.clip(yi, 0, granularity - 1)

    counts = np.zeros((granularity, granularity))
    np.add.at(counts, (yi, xi), 1)

    mean = counts.mean()
    if mean == 0:
        return np.nan
    return float(counts.std() / mean)


# %%
def median_long_track_duration(durations, fraction: float = TRACK_FRACTION) -> float:
    """Median duration of the longest ``fraction`` of tracks (at least one)."""
    durations = np.asarray(durations, dtype=float)
    durations = np.sort(durations[np.isfinite(durations)])
    if len(durations) == 0:
        return np.nan
    n = max(int(round(fraction * len(durations))), 1)
    return float(np.median(durations[-n:]))


def median_short_track_duration(durations, fraction: float = TRACK_FRACTION) -> float:
    """Median duration of the shortest ``fraction`` of tracks (at least one)."""
    durations = np.asarray(durations, dtype=float)
    durations = np.sort(durations[np.isfinite(durations)])
    if len(durations) == 0:
        return np.nan
    n = max(int(round(fraction * len(durations))), 1)
    return float(np.median(durations[:n]))


def _summary(column: pd.Series, how: str) -> float:
    if how == "sum":
        return float(column.sum(min_count=1))
    value = getattr(column, how)()
    return float(value) if pd.notna(value) else np.nan


# %%
def aggregate_square(
    tracks: pd.DataFrame,
    square: Square,
    min_tracks: int,
    duration: float,
    background_density: float,
    background_density_ori: float = np.nan,
    concentration: float = 1.0,
    granularity: int = 10,
    min_r_squared: float = 0.0,
    recording_name: str = "",
) -> tuple[SquareStatistics, TauResult]:
    """Compute the statistics of one square from its tracks.

    Parameters
    ----------
    tracks : pd.DataFrame
        Track records of the tracks inside the square.
    square : Square
        The square (bounding box and number).
    min_tracks : int
        Squares with fewer tracks get NaN for every statistic but the count.
    duration : float
        Recording duration in seconds.
    background_density : float
        Background estimate used for the density ratio.
    background_density_ori : float, optional
        Background from the lowest-squares method, for 'Density Ratio Ori'.
    concentration : float, optional
        Probe concentration divisor for the density (default: 1.0).
    granularity : int, optional
        Sub-grid size for the variability (default: 10).
    min_r_squared : float, optional
        Minimum R squared for tau to be reported.
    recording_name : str, optional
        Used for log messages.

    Returns
    -------
    stats : SquareStatistics
    tau_result : TauResult
    """
    n_tracks = len(tracks)

    if n_tracks == 0 or n_tracks < min_tracks:
        LOGGER.debug(
            "Recording %s, square %d: %d tracks, below threshold %d",
            recording_name, square.square_number, n_tracks, min_tracks,
        )
        return (
            SquareStatistics(n_tracks=n_tracks),
            TauResult(np.nan, np.nan, TauStatus.INSUFFICIENT_POINTS, n_tracks),
        )

    durations = tracks["Track Duration"]
    tau_result = calculate_tau(durations, min_tracks=min_tracks, min_r_squared=min_r_squared)

    if tau_result.status == TauStatus.NO_FIT:
        LOGGER.warning(
            "Recording %s, square %d: no decay fit for %d tracks",
            recording_name, square.square_number, n_tracks,
        )
    elif tau_result.status == TauStatus.RSQUARED_TOO_LOW:
        LOGGER.debug(
            "Recording %s, square %d: decay fit rejected, R squared below %.2f",
            recording_name, square.square_number, min_r_squared,
        )

    density = calculate_density(n_tracks, square.area, duration, concentration)

    stats = SquareStatistics(
        n_tracks=n_tracks,
        variability=calculate_variability(
            tracks["Track X Location"], tracks["Track Y Location"], square, granularity
        ),
        density=density,
        density_ratio=calculate_density_ratio(density, background_density),
        density_ratio_ori=calculate_density_ratio(density, background_density_ori),
        tau=float(round(tau_result.tau)) if np.isfinite(tau_result.tau) else np.nan,
        r_squared=round(tau_result.r_squared, 3) if np.isfinite(tau_result.r_squared) else np.nan,
        median_diffusion_coefficient=_summary(tracks["Diffusion Coefficient"], "median"),
        median_diffusion_coefficient_ext=_summary(tracks["Diffusion Coefficient Ext"], "median"),
        median_long_track_duration=median_long_track_duration(durations),
        median_short_track_duration=median_short_track_duration(durations),
        median_displacement=_summary(tracks["Track Displacement"], "median"),
        max_displacement=_summary(tracks["Track Displacement"], "max"),
        total_displacement=_summary(tracks["Track Displacement"], "sum"),
        median_max_speed=_summary(tracks["Track Max Speed"], "median"),
        max_max_speed=_summary(tracks["Track Max Speed"], "max"),
        median_median_speed=_summary(tracks["Track Median Speed"], "median"),
        max_median_speed=_summary(tracks["Track Median Speed"], "max"),
        max_track_duration=_summary(durations, "max"),
        total_track_duration=_summary(durations, "sum"),
        median_track_duration=_summary(durations, "median"),
    )
    return stats, tau_result
