# %%
"""Grid partitioning of the field of view and assignment of tracks to squares.

Squares use half-open intervals [left, right) on both axes, except the last
column and last row, which are closed on the outer edge. Every point of
[0, W] x [0, H] therefore falls into exactly one square.
"""

import logging

import numpy as np
import pandas as pd

from .config import InvalidConfiguration
from .records import Square

LOGGER = logging.getLogger(__name__)

# Points beyond W or H by less than this (relative to the field size) are
# treated as lying on the outer edge.
EDGE_TOLERANCE = 1e-9


# %%
def _check_resolution(n) -> int:
    if n < 1 or int(n) != n:
        raise InvalidConfiguration(f"Grid resolution must be an integer >= 1, got {n!r}")
    return int(n)


def square_bounds(index, size: float, n: int):
    """Lower and upper bound of square ``index`` along one axis."""
    return index * size / n, (index + 1) * size / n


def generate_squares(
    width: float,
    height: float,
    n: int,
    recording_name: str = "",
) -> list[Square]:
    """Partition the field of view into n x n squares, row-major.

    Parameters
    ----------
    width, height : float
        Field of view in physical units.
    n : int
        Number of squares along each axis (>= 1).
    recording_name : str, optional
        Name of the owning recording, used for the square keys.

    Returns
    -------
    list[Square]
        n * n squares; square_number = row * n + col.
    """
    n = _check_resolution(n)
    if not (width > 0 and height > 0):
        raise InvalidConfiguration(f"Field of view must be positive, got {width} x {height}")

    squares = []
    for row in range(n):
        y0, y1 = square_bounds(row, height, n)
        if row == n - 1:
            y1 = height
        for col in range(n):
            x0, x1 = square_bounds(col, width, n)
            if col == n - 1:
                x1 = width
            squares.append(Square(
                recording_name=recording_name,
                square_number=row * n + col,
                row=row,
                col=col,
                x0=x0,
                y0=y0,
                x1=x1,
                y1=y1,
            ))
    return squares


# %%
def _locate_axis(values: np.ndarray, size: float, n: int) -> np.ndarray:
    """Index along one axis, -1 for values outside [0, size]."""
    tolerance = EDGE_TOLERANCE * size
    finite = np.where(np.isfinite(values), values, 0.0)
    index = np.clip(np.floor(finite / (size / n)), 0, n - 1).astype(np.int64)

    # Align with the square bounds so rounding in the division never moves a
    # point across an edge.
    lower, upper = square_bounds(index, size, n)
    index = np.where((finite < lower) & (index > 0), index - 1, index)
    lower, upper = square_bounds(index, size, n)
    index = np.where((finite >= upper) & (index < n - 1), index + 1, index)

    outside = (values < 0) | (values > size + tolerance) | ~np.isfinite(values)
    return np.where(outside, -1, index)


def locate_squares(
    x,
    y,
    width: float,
    height: float,
    n: int,
) -> tuple[np.ndarray, np.ndarray]:
    """Row and column of the square containing each point.

    Parameters
    ----------
    x, y : array-like
        Point coordinates in physical units.
    width, height : float
        Field of view.
    n : int
        Grid resolution.

    Returns
    -------
    rows, cols : np.ndarray
        Square indices per point; both are -1 for points outside the field.
    """
    n = _check_resolution(n)
    x = np.atleast_1d(np.asarray(x, dtype=float))
    y = np.atleast_1d(np.asarray(y, dtype=float))

    cols = _locate_axis(x, width, n)
    rows = _locate_axis(y, height, n)

    outside = (cols < 0) | (rows < 0)
    return np.where(outside, -1, rows), np.where(outside, -1, cols)


def assign_tracks_to_squares(
    tracks: pd.DataFrame,
    squares: list[Square],
    width: float,
    height: float,
    n: int,
    recording_name: str = "",
) -> tuple[pd.DataFrame, int]:
    """Bucket tracks into squares by their representative location.

    Each square's ``track_ids`` is replaced by the ids of the tracks inside
    it. Tracks outside the field of view stay unassigned.

    Parameters
    ----------
    tracks : pd.DataFrame
        Track records with 'Track Id', 'Track X Location', 'Track Y Location'.
    squares : list[Square]
        Squares from generate_squares for the same width, height and n.
    width, height : float
        Field of view.
    n : int
        Grid resolution.
    recording_name : str, optional
        Used for log messages.

    Returns
    -------
    tracks : pd.DataFrame
        Copy of the input with 'Square Number' set (-1 when excluded).
    n_excluded : int
        Number of tracks outside the field of view.

    Raises
    ------
    ValueError
        If a location column is missing or a track id occurs twice.
    """
    n = _check_resolution(n)
    if len(squares) != n * n:
        raise ValueError(f"Expected {n * n} squares, got {len(squares)}")
    for column in ("Track Id", "Track X Location", "Track Y Location"):
        if column not in tracks.columns:
            raise ValueError(f"Tracks must have '{column}' column")

    # Squares refer to their tracks by id
    duplicated = tracks["Track Id"].duplicated(keep=False)
    if duplicated.any():
        raise ValueError(
            f"Recording {recording_name}: duplicate track ids "
            f"{sorted(tracks.loc[duplicated, 'Track Id'].unique().tolist())[:10]}"
        )

    tracks = tracks.copy()
    rows, cols = locate_squares(
        tracks["Track X Location"].to_numpy(),
        tracks["Track Y Location"].to_numpy(),
        width,
        height,
        n,
    )
    square_numbers = np.where(rows < 0, -1, rows * n + cols)
    tracks["Square Number"] = square_numbers

    for square in squares:
        square.track_ids = []
    track_ids = tracks["Track Id"].to_numpy()
    for track_id, square_number in zip(track_ids, square_numbers):
        if square_number >= 0:
            squares[square_number].track_ids.append(int(track_id))

    excluded = square_numbers < 0
    n_excluded = int(excluded.sum())
    if n_excluded > 0:
        LOGGER.warning(
            "Recording %s: %d of %d tracks outside the field of view were excluded (track ids %s)",
            recording_name,
            n_excluded,
            len(tracks),
            track_ids[excluded][:10].tolist(),
        )

    LOGGER.debug(
        "Recording %s: %d tracks assigned to %d squares",
        recording_name, len(tracks) - n_excluded, len(squares),
    )
    return tracks, n_excluded
