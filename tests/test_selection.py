"""Tests for the visibility filter, label numbers and recording attributes."""

import numpy as np
import pandas as pd
import pytest


def _grid(passing, n=3, **stats):
    """n x n finalized squares; the squares in ``passing`` pass every threshold."""
    from square_analysis import SquareStatistics, generate_squares

    squares = generate_squares(30.0, 30.0, n, recording_name="rec")
    for square in squares:
        good = square.square_number in passing
        square.finalize(SquareStatistics(
            n_tracks=30,
            density_ratio=stats.get("density_ratio", 5.0 if good else 1.0),
            variability=stats.get("variability", 1.0),
            r_squared=stats.get("r_squared", 0.9),
        ))
    return squares


def test_free_mode_selects_every_passing_square():
    from square_analysis import apply_visibility_filter

    squares = _grid({0, 4, 8})
    n_selected = apply_visibility_filter(squares, 2.0, 10.0, 0.1, "Free")

    assert n_selected == 3
    assert [sq.square_number for sq in squares if sq.selected] == [0, 4, 8]


def test_relaxed_mode_accepts_corner_neighbours():
    from square_analysis import apply_visibility_filter

    squares = _grid({0, 4, 8, 2})
    # Square 2 touches square 4 only at a corner; all four remain
    assert apply_visibility_filter(squares, 2.0, 10.0, 0.1, "Relaxed") == 4

    squares = _grid({0, 2})
    assert apply_visibility_filter(squares, 2.0, 10.0, 0.1, "Relaxed") == 0


def test_strict_mode_needs_an_edge_neighbour():
    from square_analysis import apply_visibility_filter

    squares = _grid({0, 1, 8})
    n_selected = apply_visibility_filter(squares, 2.0, 10.0, 0.1, "strict")

    assert n_selected == 2
    assert [sq.square_number for sq in squares if sq.selected] == [0, 1]


def test_excluded_and_unfitted_squares_are_never_selected():
    from square_analysis import apply_visibility_filter

    squares = _grid({0, 1, 2})
    squares[1].manually_excluded = True
    squares[2].image_excluded = True
    assert apply_visibility_filter(squares, 2.0, 10.0, 0.1) == 1

    squares = _grid({0}, r_squared=np.nan)
    assert apply_visibility_filter(squares, 2.0, 10.0, 0.0) == 0

    squares = _grid({0}, variability=12.0)
    assert apply_visibility_filter(squares, 2.0, 10.0, 0.1) == 0


def test_filter_does_not_touch_statistics():
    from square_analysis import apply_visibility_filter

    squares = _grid({0, 4})
    before = [sq.stats for sq in squares]
    apply_visibility_filter(squares, 2.0, 10.0, 0.1, "Strict")

    assert [sq.stats for sq in squares] == before


def test_label_numbers_follow_row_major_order():
    from square_analysis import apply_visibility_filter, assign_label_numbers

    squares = _grid({7, 2, 5})
    apply_visibility_filter(squares, 2.0, 10.0, 0.1)
    tracks = pd.DataFrame({"Track Id": [1, 2, 3, 4], "Square Number": [5, 0, 7, -1]})

    labelled = assign_label_numbers(squares, tracks)

    assert [sq.label_number for sq in squares] == [-1, -1, 0, -1, -1, 1, -1, 2, -1]
    assert labelled["Label Number"].tolist() == [1, -1, 2, -1]
    assert "Label Number" not in tracks.columns


def test_recording_attributes_use_selected_squares(decay_histogram, small_config):
    from square_analysis import Recording, apply_visibility_filter, calculate_recording_attributes

    durations = np.repeat(decay_histogram["durations"], decay_histogram["frequencies"].astype(int))
    n = len(durations)
    squares = _grid({4})
    squares[4].track_ids = list(range(n))
    squares[0].track_ids = [n, n + 1]
    apply_visibility_filter(squares, 2.0, 10.0, 0.1)

    tracks = pd.DataFrame({
        "Track Id": np.arange(n + 2),
        "Track Duration": np.concatenate([durations, [99.0, 99.0]]),
    })
    recording = Recording(name="rec", tracks=tracks, squares=squares)

    result = calculate_recording_attributes(recording, small_config)

    assert result["n_selected_squares"] == 1
    assert recording.tau == pytest.approx(997.0)
    assert recording.r_squared == pytest.approx(1.0, abs=1e-3)
    assert recording.density == pytest.approx(
        n / small_config.square_area / small_config.recording_duration
    )


def test_recording_without_selected_squares_has_nan_attributes(small_config):
    from square_analysis import Recording, calculate_recording_attributes

    recording = Recording(name="rec", tracks=pd.DataFrame({"Track Id": [], "Track Duration": []}),
                          squares=_grid(set()))
    calculate_recording_attributes(recording, small_config)

    assert np.isnan(recording.tau)
    assert np.isnan(recording.density)
