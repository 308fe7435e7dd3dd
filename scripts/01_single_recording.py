# %%
"""Square generation for a single recording.

This script performs:
1. Track table construction (from trajectory samples if needed)
2. Grid partitioning and track assignment
3. Background estimate and per-square statistics
4. Visibility filter
5. Visualization
6. Export results

Configure parameters in config.py before running.
"""

import logging
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from square_analysis import (
    build_recording,
    export_results,
    generate_squares_for_recording,
    list_track_files,
    squares_to_table,
)
from square_analysis.plotting import plot_square_grid, plot_tau_fit

from config import DATA_DIR, get_output_dir, get_square_config

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

# %%
# =============================================================================
# File Selection
# =============================================================================

FILE_NUMBER = 0  # Change this to process different recordings

track_file = list_track_files(DATA_DIR)[FILE_NUMBER]
OUT_DIR = get_output_dir(__file__)
config = get_square_config()

# %%
# =============================================================================
# Load Data
# =============================================================================

print(f"Loading {track_file}...")
data = pd.read_csv(track_file)
recording = build_recording(track_file.stem, data, config)

print(f"Loaded {recording.n_tracks} tracks")
print(f"Field of view: {config.image_width:.2f} x {config.image_height:.2f} um")
print(f"Recording duration: {config.recording_duration:.1f} s")

# %%
# =============================================================================
# Generate Squares
# =============================================================================

recording = generate_squares_for_recording(recording, config)
squares_df = squares_to_table(recording)

print(f"\nSquares: {len(recording.squares)}")
print(f"Excluded tracks: {recording.n_excluded_tracks}")
print(f"Background density: {recording.background.density:.4f} ({recording.background.method})")
print(f"Selected squares: {len(recording.selected_squares)}")
print(f"Recording tau: {recording.tau:.0f} ms, R squared: {recording.r_squared:.3f}")

# %%
# =============================================================================
# Square Statistics
# =============================================================================

fitted = squares_df.dropna(subset=["Tau"])
print(f"\nSquares with a tau: {len(fitted)}")
if len(fitted) > 0:
    print(f"Tau: {fitted['Tau'].median():.0f} ms (median), {fitted['Tau'].min():.0f}-{fitted['Tau'].max():.0f} ms")
    print(f"Density ratio: {fitted['Density Ratio'].median():.2f} (median)")

# %%
# Density ratio map
ratio_map = squares_df["Density Ratio"].to_numpy().reshape(config.n_squares_per_side, -1)

fig, ax = plt.subplots(figsize=(7, 6))
im = ax.imshow(ratio_map, cmap="viridis")
ax.set_title(f"{recording.name} - density ratio per square")
plt.colorbar(im, ax=ax, label="Density ratio")
plt.tight_layout()
plt.savefig(OUT_DIR / f"{recording.name}_density_ratio.png", dpi=150)
plt.show()

# %%
# Tau fit of the busiest square
busiest = max(recording.squares, key=lambda sq: sq.n_tracks)
plot_tau_fit(
    recording.tracks_of(busiest)["Track Duration"],
    None,
    OUT_DIR / f"{recording.name}-{busiest.square_number}_tau.png",
    title=f"Square {busiest.square_number} ({busiest.n_tracks} tracks)",
)

# %%
# Trajectories with the selected squares
if "frame" in data.columns:
    plot_square_grid(
        data, recording, config.image_width, config.image_height,
        OUT_DIR / f"{recording.name}_squares.png",
    )

# %%
# =============================================================================
# Export Results
# =============================================================================

paths = export_results([recording], OUT_DIR, prefix=recording.name)
for name, path in paths.items():
    print(f"Saved {name}: {path}")

print(f"\nTracks per selected square: {np.mean([sq.n_tracks for sq in recording.selected_squares] or [np.nan]):.1f}")
