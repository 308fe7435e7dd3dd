# %%
"""Shared configuration for square generation scripts."""

from pathlib import Path

from square_analysis import SquareConfig

# =============================================================================
# Paths
# =============================================================================

ROOT_DIR = Path(__file__).parent.parent
DATA_DIR = ROOT_DIR / "data" / "tracks"  # one track or trajectory CSV per recording
OUTPUT_DIR = ROOT_DIR / "output"


def get_output_dir(script_file: str) -> Path:
    """Get output directory for a script (creates subfolder based on script name)."""
    script_name = Path(script_file).stem
    out_dir = OUTPUT_DIR / script_name
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir

# =============================================================================
# Grid
# =============================================================================

N_SQUARES_PER_SIDE = 20  # 400 squares per recording

# =============================================================================
# Square Selection
# =============================================================================

MIN_TRACKS_FOR_TAU = 20  # Squares with fewer tracks get no statistics
MIN_REQUIRED_R_SQUARED = 0.1
MIN_REQUIRED_DENSITY_RATIO = 2.0
MAX_ALLOWABLE_VARIABILITY = 10.0
NEIGHBOUR_MODE = "Free"  # "Free", "Relaxed" or "Strict"

# =============================================================================
# Background
# =============================================================================

BACKGROUND_METHOD = "random"  # "random", "sigma_clip" or "lowest"
BACKGROUND_SAMPLE_SIZE = 60
BACKGROUND_SEED = 0

# =============================================================================
# Physical Parameters
# =============================================================================

PIXEL_SIZE = 0.1603251  # um/pixel
N_PIXELS = 512
FRAME_INTERVAL = 0.05  # seconds
N_FRAMES = 2000

# =============================================================================
# Visualization
# =============================================================================

PLOT_FITS = False  # One tau-fit plot per square (slow for large batches)
PLOT_GRID = True  # Trajectories with the selected squares outlined

# =============================================================================
# Helper function
# =============================================================================


def get_square_config() -> SquareConfig:
    """Build the analysis parameters from the values above."""
    return SquareConfig(
        n_squares_per_side=N_SQUARES_PER_SIDE,
        frame_interval=FRAME_INTERVAL,
        n_frames=N_FRAMES,
        pixel_size=PIXEL_SIZE,
        n_pixels_x=N_PIXELS,
        n_pixels_y=N_PIXELS,
        min_tracks_for_tau=MIN_TRACKS_FOR_TAU,
        min_required_r_squared=MIN_REQUIRED_R_SQUARED,
        min_required_density_ratio=MIN_REQUIRED_DENSITY_RATIO,
        max_allowable_variability=MAX_ALLOWABLE_VARIABILITY,
        neighbour_mode=NEIGHBOUR_MODE,
        background_sample_size=BACKGROUND_SAMPLE_SIZE,
        background_seed=BACKGROUND_SEED,
        background_method=BACKGROUND_METHOD,
        plot_fits=PLOT_FITS,
    ).validate()
