# %%
"""Fixed-schema tables for tracks, squares and recordings, and CSV export."""

from pathlib import Path

import numpy as np
import pandas as pd

from .records import RECORDING_COLUMNS, SQUARE_COLUMNS, TRACK_COLUMNS

# Square table column for each SquareStatistics field
STATISTIC_COLUMNS = {
    "n_tracks": "Number of Tracks",
    "variability": "Variability",
    "density": "Density",
    "density_ratio": "Density Ratio",
    "density_ratio_ori": "Density Ratio Ori",
    "tau": "Tau",
    "r_squared": "R Squared",
    "median_diffusion_coefficient": "Median Diffusion Coefficient",
    "median_diffusion_coefficient_ext": "Median Diffusion Coefficient Ext",
    "median_long_track_duration": "Median Long Track Duration",
    "median_short_track_duration": "Median Short Track Duration",
    "median_displacement": "Median Displacement",
    "max_displacement": "Max Displacement",
    "total_displacement": "Total Displacement",
    "median_max_speed": "Median Max Speed",
    "max_max_speed": "Max Max Speed",
    "median_median_speed": "Median Median Speed",
    "max_median_speed": "Max Median Speed",
    "max_track_duration": "Max Track Duration",
    "total_track_duration": "Total Track Duration",
    "median_track_duration": "Median Track Duration",
}

TRACK_INT_COLUMNS = ["Track Id", "Number of Spots", "Number of Gaps", "Longest Gap", "Square Number", "Label Number"]

NA_REP = "NaN"


# %%
def tracks_to_table(recording) -> pd.DataFrame:
    """Track table of a recording in TRACK_COLUMNS order with integer counts."""
    tracks = recording.tracks.reindex(columns=TRACK_COLUMNS)
    if tracks.empty:
        return tracks
    tracks = tracks.copy()
    for column in TRACK_INT_COLUMNS:
        tracks[column] = tracks[column].fillna(-1).astype(int)
    return tracks.sort_values("Track Id", kind="stable").reset_index(drop=True)


def squares_to_table(recording) -> pd.DataFrame:
    """Square table of a recording in SQUARE_COLUMNS order.

    Statistics of squares that were never finalized are NaN, except the
    track count.
    """
    rows = []
    for square in recording.squares:
        row = {
            "Unique Key": square.unique_key,
            "Recording Name": recording.name,
            "Square Number": square.square_number,
            "Row Number": square.row,
            "Column Number": square.col,
            "Label Number": square.label_number,
            "Cell ID": square.cell_id,
            "Selected": square.selected,
            "Square Manually Excluded": square.manually_excluded,
            "Image Excluded": square.image_excluded,
            "X0": square.x0,
            "Y0": square.y0,
            "X1": square.x1,
            "Y1": square.y1,
        }
        for name, column in STATISTIC_COLUMNS.items():
            row[column] = square.n_tracks if name == "n_tracks" else square.statistic(name)
        rows.append(row)

    return pd.DataFrame(rows, columns=SQUARE_COLUMNS)


def recording_summary(recordings: list) -> pd.DataFrame:
    """One row of recording-level results per recording."""
    rows = []
    for recording in recordings:
        background = recording.background
        rows.append({
            "Recording Name": recording.name,
            "Number of Tracks": recording.n_tracks,
            "Number of Excluded Tracks": recording.n_excluded_tracks,
            "Number of Squares": len(recording.squares),
            "Background Method": background.method if background is not None else "",
            "Number of Squares in Background": background.n_squares if background is not None else 0,
            "Number of Tracks in Background": background.n_tracks if background is not None else 0,
            "Background Density": background.density if background is not None else np.nan,
            "Number of Selected Squares": len(recording.selected_squares),
            "Tau": recording.tau,
            "R Squared": recording.r_squared,
            "Density": recording.density,
            "Status": recording.status,
        })
    return pd.DataFrame(rows, columns=RECORDING_COLUMNS)


# %%
def export_results(
    recordings: list,
    output_dir: str | Path,
    prefix: str = "",
) -> dict[str, Path]:
    """Export tracks, squares and recording summaries to CSV files.

    Parameters
    ----------
    recordings : list[Recording]
        Processed recordings.
    output_dir : str or Path
        Output directory.
    prefix : str, optional
        Filename prefix (e.g., experiment name).

    Returns
    -------
    dict[str, Path]
        Dictionary with paths to exported files.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    prefix = f"{prefix}_" if prefix else ""

    tables = {
        "tracks": [tracks_to_table(r) for r in recordings],
        "squares": [squares_to_table(r) for r in recordings],
    }
    columns = {"tracks": TRACK_COLUMNS, "squares": SQUARE_COLUMNS}

    paths = {}
    for name, frames in tables.items():
        frames = [f for f in frames if not f.empty]
        table = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(columns=columns[name])
        path = output_dir / f"{prefix}{name}.csv"
        table.to_csv(path, index=False, na_rep=NA_REP)
        paths[name] = path

    summary_path = output_dir / f"{prefix}recordings.csv"
    recording_summary(recordings).to_csv(summary_path, index=False, na_rep=NA_REP)
    paths["recordings"] = summary_path

    return paths


def load_tracks_csv(path: str | Path) -> pd.DataFrame:
    """Load a track table written by export_results or the tracking step.

    Raises
    ------
    ValueError
        If the file lacks the location columns needed for assignment.
    """
    tracks = pd.read_csv(path)
    for column in ("Track Id", "Track X Location", "Track Y Location"):
        if column not in tracks.columns:
            raise ValueError(f"{Path(path).name}: missing '{column}' column")
    return tracks


def list_track_files(directory: str | Path) -> list[Path]:
    """List all CSV files in a directory, sorted by name."""
    directory = Path(directory)
    return sorted(directory.glob("*.csv"))
