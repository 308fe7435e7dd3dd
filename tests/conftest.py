import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def decay_histogram():
    """Track-duration histogram with a known single-exponential fit."""
    durations = np.arange(0.0, 5.0, 0.5)
    frequencies = np.array([2000, 1200, 750, 500, 300, 200, 150, 100, 70, 50], dtype=float)
    return {
        "durations": durations,
        "frequencies": frequencies,
        "tau_ms": 997.0879,
        "r_squared": 0.99954,
    }


@pytest.fixture
def small_config():
    """5 x 5 grid over a 40 um field, thresholds low enough for synthetic data."""
    from square_analysis import SquareConfig

    return SquareConfig(
        n_squares_per_side=5,
        pixel_size=0.1,
        n_pixels_x=400,
        n_pixels_y=400,
        frame_interval=0.05,
        n_frames=2000,
        min_tracks_for_tau=5,
        min_required_r_squared=0.1,
        min_required_density_ratio=1.0,
        background_sample_size=10,
    )


def _random_walks(rng, n_tracks, width, height, centre=None, spread=None):
    rows = []
    for track_id in range(n_tracks):
        n_samples = 2 + rng.geometric(0.15)
        first_frame = rng.integers(0, 1800)
        if centre is None:
            x0, y0 = rng.uniform(1.0, width - 1.0), rng.uniform(1.0, height - 1.0)
        else:
            x0, y0 = rng.normal(centre, spread, size=2)
        steps = rng.normal(0.0, 0.05, size=(n_samples, 2))
        steps[0] = 0.0
        path = np.array([x0, y0]) + np.cumsum(steps, axis=0)
        path[:, 0] = np.clip(path[:, 0], 0.0, width)
        path[:, 1] = np.clip(path[:, 1], 0.0, height)
        for i, (x, y) in enumerate(path):
            rows.append({"track_id": track_id, "frame": first_frame + i, "x": x, "y": y})
    return pd.DataFrame(rows)


@pytest.fixture
def synthetic_samples(small_config):
    """Long-format random-walk samples spread uniformly over the field."""
    rng = np.random.default_rng(42)
    return _random_walks(rng, 400, small_config.image_width, small_config.image_height)


@pytest.fixture
def clustered_samples(small_config):
    """Uniform background plus a dense cluster in the centre square."""
    rng = np.random.default_rng(7)
    width, height = small_config.image_width, small_config.image_height
    background = _random_walks(rng, 150, width, height)
    cluster = _random_walks(rng, 300, width, height, centre=width / 2, spread=1.0)
    cluster["track_id"] += background["track_id"].max() + 1
    return pd.concat([background, cluster], ignore_index=True)


@pytest.fixture
def track_table(synthetic_samples, small_config):
    from square_analysis import compute_track_table

    return compute_track_table(synthetic_samples, "rec-1", small_config.frame_interval)
