"""Square generation and statistics for single-particle tracking recordings."""

__version__ = "0.1.0"

from .aggregation import (
    aggregate_square,
    calculate_density,
    calculate_density_ratio,
    calculate_variability,
    median_long_track_duration,
    median_short_track_duration,
)
from .background import BackgroundEstimate, estimate_background_density
from .cache import SquareCache
from .cells import CellAssignmentManager
from .config import InvalidConfiguration, SquareConfig
from .decay_fit import (
    DecayFitResult,
    TauResult,
    TauStatus,
    calculate_tau,
    duration_histogram,
    fit_exponential_decay,
    mono_exp,
)
from .grid import assign_tracks_to_squares, generate_squares, locate_squares
from .io_utils import (
    export_results,
    list_track_files,
    load_tracks_csv,
    recording_summary,
    squares_to_table,
    tracks_to_table,
)
from .pipeline import build_recording, generate_squares_for_recording, process_recordings
from .records import (
    RECORDING_COLUMNS,
    SQUARE_COLUMNS,
    TRACK_COLUMNS,
    Recording,
    Square,
    SquareStatistics,
)
from .selection import apply_visibility_filter, assign_label_numbers, calculate_recording_attributes
from .track_attributes import calculate_track_attributes, compute_track_table

__all__ = [
    # config
    "SquareConfig",
    "InvalidConfiguration",
    # records
    "Square",
    "SquareStatistics",
    "Recording",
    "TRACK_COLUMNS",
    "SQUARE_COLUMNS",
    "RECORDING_COLUMNS",
    # track_attributes
    "calculate_track_attributes",
    "compute_track_table",
    # decay_fit
    "mono_exp",
    "fit_exponential_decay",
    "duration_histogram",
    "calculate_tau",
    "DecayFitResult",
    "TauResult",
    "TauStatus",
    # grid
    "generate_squares",
    "locate_squares",
    "assign_tracks_to_squares",
    # background
    "estimate_background_density",
    "BackgroundEstimate",
    # aggregation
    "calculate_density",
    "calculate_density_ratio",
    "calculate_variability",
    "median_long_track_duration",
    "median_short_track_duration",
    "aggregate_square",
    # selection
    "apply_visibility_filter",
    "assign_label_numbers",
    "calculate_recording_attributes",
    # pipeline
    "build_recording",
    "generate_squares_for_recording",
    "process_recordings",
    # cache / cells
    "SquareCache",
    "CellAssignmentManager",
    # io_utils
    "tracks_to_table",
    "squares_to_table",
    "recording_summary",
    "export_results",
    "load_tracks_csv",
    "list_track_files",
]
