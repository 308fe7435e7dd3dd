# %%
"""Square generation for whole recordings and batches of recordings.

Within a recording the work runs in two phases separated by a barrier:

1. squares, track assignment and raw density per square
2. background estimate, then per-square statistics, selection and labels

Recordings are independent and are processed in parallel.
"""

import logging
import threading
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path

import numpy as np
import pandas as pd
from tqdm import tqdm

from .aggregation import aggregate_square, calculate_density
from .background import estimate_background_density
from .config import SquareConfig
from .grid import assign_tracks_to_squares, generate_squares
from .plotting import plot_tau_fit
from .records import TRACK_COLUMNS, Recording
from .selection import apply_visibility_filter, assign_label_numbers, calculate_recording_attributes
from .track_attributes import compute_track_table

LOGGER = logging.getLogger(__name__)


# %%
def build_recording(name: str, data: pd.DataFrame, config: SquareConfig) -> Recording:
    """Wrap a track table, or trajectory samples, as a Recording.

    Parameters
    ----------
    name : str
        Recording name.
    data : pd.DataFrame
        Either track records (with 'Track Id') or long-format samples with
        'frame', 'x', 'y' and 'track_id' or 'particle'.
    config : SquareConfig
        Analysis parameters (frame interval and location mode are used).

    Returns
    -------
    Recording
    """
    if "Track Id" in data.columns:
        tracks = data.reindex(columns=TRACK_COLUMNS).copy()
        tracks["Recording Name"] = name
    else:
        tracks = compute_track_table(data, name, config.frame_interval, location=config.location)
    return Recording(name=name, tracks=tracks.reset_index(drop=True))


def generate_squares_for_recording(
    recording: Recording,
    config: SquareConfig,
    plot_dir: str | Path | None = None,
) -> Recording:
    """Build the squares of one recording and compute all their statistics.

    Any squares from an earlier pass are replaced.

    Parameters
    ----------
    recording : Recording
        Recording with its track table.
    config : SquareConfig
        Analysis parameters.
    plot_dir : str or Path, optional
        Where tau-fit plots go when ``config.plot_fits`` is set.

    Returns
    -------
    Recording
        The same recording, with squares, updated track table and
        recording-level attributes.
    """
    config.validate()
    name = recording.name
    n = config.n_squares_per_side
    width, height = config.image_width, config.image_height

    # Phase 1: geometry, assignment, raw counts
    squares = generate_squares(width, height, n, recording_name=name)
    tracks, n_excluded = assign_tracks_to_squares(recording.tracks, squares, width, height, n, name)
    recording.squares = squares
    recording.tracks = tracks
    recording.n_excluded_tracks = n_excluded

    counts = np.array([sq.n_tracks for sq in squares])
    densities = np.array([
        calculate_density(sq.n_tracks, sq.area, config.recording_duration, config.concentration)
        for sq in squares
    ])
    square_numbers = [sq.square_number for sq in squares]

    # Barrier: the background needs every square's raw density
    background = estimate_background_density(
        densities,
        square_numbers,
        counts,
        sample_size=config.background_sample_size,
        seed=config.background_seed,
        method=config.background_method,
    )
    background_ori = estimate_background_density(densities, square_numbers, counts, method="lowest")
    recording.background = background
    LOGGER.info(
        "Recording %s: background density %.4f (%s, %d squares)",
        name, background.density, background.method, background.n_squares,
    )

    # Phase 2: per-square statistics
    by_square = dict(tuple(tracks.groupby("Square Number")))
    empty = tracks.iloc[0:0]

    for square in squares:
        square_tracks = by_square.get(square.square_number, empty)
        stats, tau_result = aggregate_square(
            square_tracks,
            square,
            min_tracks=config.min_tracks_for_tau,
            duration=config.recording_duration,
            background_density=background.density,
            background_density_ori=background_ori.density,
            concentration=config.concentration,
            granularity=config.variability_granularity,
            min_r_squared=config.min_required_r_squared,
            recording_name=name,
        )
        square.finalize(stats)

        if config.plot_fits and plot_dir is not None and square.n_tracks >= max(config.min_tracks_for_tau, 1):
            plot_tau_fit(
                square_tracks["Track Duration"],
                tau_result,
                Path(plot_dir) / f"{name}-{square.square_number}_tau.png",
                title=f"{name} square {square.square_number}",
            )

    apply_visibility_filter(
        squares,
        config.min_required_density_ratio,
        config.max_allowable_variability,
        config.min_required_r_squared,
        config.neighbour_mode,
    )
    recording.tracks = assign_label_numbers(squares, recording.tracks)
    calculate_recording_attributes(recording, config)
    recording.status = "success"

    LOGGER.info(
        "Recording %s: %d tracks, %d excluded, %d of %d squares selected",
        name, recording.n_tracks, n_excluded, len(recording.selected_squares), len(squares),
    )
    return recording


# %%
def _process_one(name: str, data: pd.DataFrame, config: SquareConfig, plot_dir) -> Recording:
    try:
        recording = build_recording(name, data, config)
        return generate_squares_for_recording(recording, config, plot_dir=plot_dir)
    except Exception as e:
        LOGGER.exception("Recording %s failed", name)
        return Recording(name=name, tracks=pd.DataFrame(columns=TRACK_COLUMNS), status=f"error: {str(e)[:50]}")


def process_recordings(
    recordings: dict[str, pd.DataFrame],
    config: SquareConfig,
    max_workers: int | None = None,
    cancel_event: threading.Event | None = None,
    plot_dir: str | Path | None = None,
    show_progress: bool = True,
) -> list[Recording]:
    """Generate squares for many recordings.

    Parameters
    ----------
    recordings : dict[str, pd.DataFrame]
        Recording name to track table or trajectory samples.
    config : SquareConfig
        Analysis parameters, validated once for the whole batch.
    max_workers : int, optional
        Number of worker processes (None for auto, 1 to run in-process).
    cancel_event : threading.Event, optional
        When set, no further recordings are started.
    plot_dir : str or Path, optional
        Directory for tau-fit plots.
    show_progress : bool, optional
        Whether to show a progress bar (default: True).

    Returns
    -------
    list[Recording]
        Processed recordings in input order. A recording that raised carries
        status "error: ..."; cancelled recordings are left out.
    """
    config.validate()
    names = list(recordings)
    results = {}

    def cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    if cancelled():
        LOGGER.warning("Cancelled before any of %d recordings started", len(names))
        return []

    if max_workers == 1:
        iterator = tqdm(names, desc="Generating squares") if show_progress else names
        for name in iterator:
            if cancelled():
                LOGGER.warning("Cancelled after %d of %d recordings", len(results), len(names))
                break
            results[name] = _process_one(name, recordings[name], config, plot_dir)
    else:
        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(_process_one, name, recordings[name], config, plot_dir): name
                for name in names
            }
            completed = as_completed(futures)
            if show_progress:
                completed = tqdm(completed, total=len(futures), desc="Generating squares")

            for future in completed:
                if future.cancelled():
                    continue
                results[futures[future]] = future.result()
                if cancelled():
                    n_dropped = sum(f.cancel() for f in futures)
                    LOGGER.warning("Cancelled, %d recordings not started", n_dropped)
                    break

        # Recordings that were already running when the batch was cancelled
        for future, name in futures.items():
            if name not in results and not future.cancelled():
                results[name] = future.result()

    return [results[name] for name in names if name in results]
