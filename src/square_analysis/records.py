# %%
"""Track, square and recording records with their fixed table schemas."""

from dataclasses import dataclass, field, fields

import numpy as np
import pandas as pd

# %%
# =============================================================================
# Table schemas (column order is part of the exchange format)
# =============================================================================

TRACK_COLUMNS = [
    "Unique Key",
    "Recording Name",
    "Track Id",
    "Number of Spots",
    "Number of Gaps",
    "Longest Gap",
    "Track Duration",
    "Track X Location",
    "Track Y Location",
    "Track Displacement",
    "Track Max Speed",
    "Track Median Speed",
    "Diffusion Coefficient",
    "Diffusion Coefficient Ext",
    "Total Distance",
    "Confinement Ratio",
    "Square Number",
    "Label Number",
]

SQUARE_COLUMNS = [
    "Unique Key",
    "Recording Name",
    "Square Number",
    "Row Number",
    "Column Number",
    "Label Number",
    "Cell ID",
    "Selected",
    "Square Manually Excluded",
    "Image Excluded",
    "X0",
    "Y0",
    "X1",
    "Y1",
    "Number of Tracks",
    "Variability",
    "Density",
    "Density Ratio",
    "Density Ratio Ori",
    "Tau",
    "R Squared",
    "Median Diffusion Coefficient",
    "Median Diffusion Coefficient Ext",
    "Median Long Track Duration",
    "Median Short Track Duration",
    "Median Displacement",
    "Max Displacement",
    "Total Displacement",
    "Median Max Speed",
    "Max Max Speed",
    "Median Median Speed",
    "Max Median Speed",
    "Max Track Duration",
    "Total Track Duration",
    "Median Track Duration",
]

RECORDING_COLUMNS = [
    "Recording Name",
    "Number of Tracks",
    "Number of Excluded Tracks",
    "Number of Squares",
    "Background Method",
    "Number of Squares in Background",
    "Number of Tracks in Background",
    "Background Density",
    "Number of Selected Squares",
    "Tau",
    "R Squared",
    "Density",
    "Status",
]


# %%
@dataclass(frozen=True)
class SquareStatistics:
    """Aggregate statistics of one square, frozen once computed.

    Every float that could not be computed is NaN; ``n_tracks`` is always set.
    """

    n_tracks: int
    variability: float = np.nan
    density: float = np.nan
    density_ratio: float = np.nan
    density_ratio_ori: float = np.nan
    tau: float = np.nan
    r_squared: float = np.nan
    median_diffusion_coefficient: float = np.nan
    median_diffusion_coefficient_ext: float = np.nan
    median_long_track_duration: float = np.nan
    median_short_track_duration: float = np.nan
    median_displacement: float = np.nan
    max_displacement: float = np.nan
    total_displacement: float = np.nan
    median_max_speed: float = np.nan
    max_max_speed: float = np.nan
    median_median_speed: float = np.nan
    max_median_speed: float = np.nan
    max_track_duration: float = np.nan
    total_track_duration: float = np.nan
    median_track_duration: float = np.nan

    def numeric_fields(self) -> dict[str, float]:
        """Return all float statistics by field name."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "n_tracks"}


# %%
@dataclass
class Square:
    """One cell of the N x N grid laid over a recording's field of view.

    A square keeps the ids of its tracks, not copies; the track table of the
    recording stays the single owner of track data. ``stats`` is written once
    per pass by :meth:`finalize`. Afterwards only ``cell_id`` and the
    selection flags may change.
    """

    recording_name: str
    square_number: int
    row: int
    col: int
    x0: float
    y0: float
    x1: float
    y1: float
    track_ids: list = field(default_factory=list)
    label_number: int = -1
    cell_id: int = 0  # 0 = no cell assigned
    selected: bool = False
    manually_excluded: bool = False
    image_excluded: bool = False
    stats: SquareStatistics | None = None

    @property
    def unique_key(self) -> str:
        return f"{self.recording_name}-{self.square_number}"

    @property
    def n_tracks(self) -> int:
        return len(self.track_ids)

    @property
    def area(self) -> float:
        return (self.x1 - self.x0) * (self.y1 - self.y0)

    def finalize(self, stats: SquareStatistics) -> None:
        """Attach the computed statistics; a square is finalized only once."""
        if self.stats is not None:
            raise RuntimeError(f"Statistics of square {self.unique_key} are already final")
        self.stats = stats

    def statistic(self, name: str) -> float:
        """Return a statistic by field name, NaN while not finalized."""
        if self.stats is None:
            return np.nan
        return getattr(self.stats, name)


# %%
@dataclass
class Recording:
    """One recording: its track table, its squares and recording-level results.

    ``tracks`` follows :data:`TRACK_COLUMNS`. ``squares`` holds the N * N
    squares of the current grid resolution and is replaced, never resized,
    when the resolution changes.
    """

    name: str
    tracks: pd.DataFrame
    squares: list = field(default_factory=list)
    n_excluded_tracks: int = 0
    background: object | None = None
    tau: float = np.nan
    r_squared: float = np.nan
    density: float = np.nan
    status: str = "pending"

    @property
    def n_tracks(self) -> int:
        return len(self.tracks)

    @property
    def selected_squares(self) -> list:
        return [sq for sq in self.squares if sq.selected]

    def tracks_of(self, square: Square) -> pd.DataFrame:
        """Return the rows of the track table that belong to ``square``."""
        if not square.track_ids:
            return self.tracks.iloc[0:0]
        return self.tracks[self.tracks["Track Id"].isin(square.track_ids)]
