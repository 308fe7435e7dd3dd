# %%
"""Batch square generation for all recordings.

Processes every track CSV in the data directory using parameters from
config.py. Each file is either a track table (with 'Track Id') or linked
trajectory samples (with 'frame', 'x', 'y' and 'track_id' or 'particle').

Uses multiprocessing to process recordings in parallel.
"""

import logging
import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")  # Non-interactive backend for multiprocessing
import pandas as pd

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from square_analysis import export_results, list_track_files, process_recordings
from square_analysis.plotting import plot_square_grid

from config import (
    DATA_DIR,
    OUTPUT_DIR,
    PLOT_GRID,
    get_square_config,
)

logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

# %%
# =============================================================================
# Configuration
# =============================================================================

MAX_WORKERS = None  # Number of parallel workers (set to None for auto)
EXPERIMENT_NAME = DATA_DIR.name

config = get_square_config()

# %%
# =============================================================================
# List Files
# =============================================================================

track_files = list_track_files(DATA_DIR)
print(f"Found {len(track_files)} track files in {DATA_DIR}")
for f in track_files[:5]:
    print(f"  {f.name}")
if len(track_files) > 5:
    print(f"  ... and {len(track_files) - 5} more")

print(f"\nGrid: {config.n_squares_per_side} x {config.n_squares_per_side} squares")
print(f"Background: {config.background_method} ({config.background_sample_size} squares)")
print(f"Neighbour mode: {config.neighbour_mode}")
print(f"Parallel workers: {MAX_WORKERS or 'auto'}")

# %%
# =============================================================================
# Process All Recordings (Parallel)
# =============================================================================

if __name__ == "__main__":
    print(f"\n=== Processing All Recordings ===")
    data = {f.stem: pd.read_csv(f) for f in track_files}

    recordings = process_recordings(
        data,
        config,
        max_workers=MAX_WORKERS,
        plot_dir=OUTPUT_DIR / "tau_fits" if config.plot_fits else None,
    )

    paths = export_results(recordings, OUTPUT_DIR / "squares", prefix=EXPERIMENT_NAME)
    for name, path in paths.items():
        print(f"Saved {name}: {path}")

    # %%
    # =============================================================================
    # Summary
    # =============================================================================

    summary_df = pd.read_csv(paths["recordings"])

    print(f"\n=== Processing Summary ===")
    print(f"Total recordings: {len(summary_df)}")
    print(f"Successful: {(summary_df['Status'] == 'success').sum()}")
    print(f"Errors: {summary_df['Status'].str.startswith('error').sum()}")

    # %%
    # Aggregate statistics
    print(f"\n=== Aggregate Statistics ===")
    successful = summary_df[summary_df["Status"] == "success"]

    if len(successful) > 0:
        print(f"Total tracks: {successful['Number of Tracks'].sum():.0f}")
        print(f"Excluded tracks: {successful['Number of Excluded Tracks'].sum():.0f}")
        print(f"Selected squares: {successful['Number of Selected Squares'].sum():.0f}")
        print(f"Mean tau across recordings: {successful['Tau'].mean():.0f} ms")
        print(f"Mean background density: {successful['Background Density'].mean():.4f}")
    else:
        print("No successful recordings to analyze")

    # %%
    # Trajectories with the selected squares
    if PLOT_GRID:
        grid_dir = OUTPUT_DIR / "02_batch_processing"
        for recording in recordings:
            samples = data[recording.name]
            if recording.status != "success" or "frame" not in samples.columns:
                continue
            plot_square_grid(
                samples,
                recording,
                config.image_width,
                config.image_height,
                grid_dir / f"{recording.name}_squares.png",
            )
        print(f"\nImages saved to: {grid_dir}")

    # %%
    # Show summary table
    print(f"\n=== Summary Table ===")
    display_cols = ["Recording Name", "Number of Tracks", "Number of Selected Squares", "Tau", "Status"]
    print(summary_df[display_cols].to_string())

    # %%
    print(f"\n=== Batch Processing Complete ===")
