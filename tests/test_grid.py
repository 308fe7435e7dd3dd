"""Tests for grid partitioning and assignment of tracks to squares."""

import logging

import numpy as np
import pandas as pd
import pytest


@pytest.mark.parametrize("n", [1, 2, 5, 20])
def test_squares_tile_the_field_of_view(n):
    from square_analysis import generate_squares

    width, height = 82.0864512, 61.3
    squares = generate_squares(width, height, n, recording_name="rec")

    assert len(squares) == n * n
    assert [sq.square_number for sq in squares] == list(range(n * n))
    assert sum(sq.area for sq in squares) == pytest.approx(width * height)

    by_position = {(sq.row, sq.col): sq for sq in squares}
    for (row, col), sq in by_position.items():
        assert sq.square_number == row * n + col
        if col + 1 < n:
            assert sq.x1 == by_position[(row, col + 1)].x0
            assert sq.y0 == by_position[(row, col + 1)].y0
        if row + 1 < n:
            assert sq.y1 == by_position[(row + 1, col)].y0

    assert min(sq.x0 for sq in squares) == 0.0
    assert min(sq.y0 for sq in squares) == 0.0
    assert max(sq.x1 for sq in squares) == width
    assert max(sq.y1 for sq in squares) == height


@pytest.mark.parametrize("n", [0, -3])
def test_generate_squares_rejects_bad_resolution(n):
    from square_analysis import InvalidConfiguration, generate_squares

    with pytest.raises(InvalidConfiguration):
        generate_squares(10.0, 10.0, n)


def test_unique_key_joins_recording_and_square_number():
    from square_analysis import generate_squares

    squares = generate_squares(10.0, 10.0, 2, recording_name="exp1-rec3")
    assert squares[3].unique_key == "exp1-rec3-3"


@pytest.mark.parametrize("n", [1, 3, 7, 20])
def test_every_in_bounds_point_lands_in_exactly_one_square(n):
    from square_analysis import generate_squares, locate_squares

    width, height = 82.0864512, 82.0864512
    squares = generate_squares(width, height, n)

    # Grid lines, both outer edges and random interior points
    edges = np.array([sq.x0 for sq in squares[:n]] + [width])
    rng = np.random.default_rng(0)
    x = np.concatenate([edges, rng.uniform(0, width, 200), [0.0, width, width, 0.0]])
    y = np.concatenate([edges[::-1], rng.uniform(0, height, 200), [0.0, height, 0.0, height]])

    rows, cols = locate_squares(x, y, width, height, n)

    assert np.all(rows >= 0) and np.all(cols >= 0)
    for xi, yi, row, col in zip(x, y, rows, cols):
        containing = [
            sq for sq in squares
            if (sq.x0 <= xi < sq.x1 or (sq.col == n - 1 and xi == sq.x1))
            and (sq.y0 <= yi < sq.y1 or (sq.row == n - 1 and yi == sq.y1))
        ]
        assert len(containing) == 1
        assert (containing[0].row, containing[0].col) == (row, col)


def test_interior_grid_line_belongs_to_the_next_square():
    from square_analysis import generate_squares, locate_squares

    squares = generate_squares(10.0, 10.0, 4)
    x_line = squares[2].x0

    rows, cols = locate_squares([x_line], [0.0], 10.0, 10.0, 4)
    assert (rows[0], cols[0]) == (0, 2)


def test_points_outside_the_field_are_not_located():
    from square_analysis import locate_squares

    rows, cols = locate_squares([-0.1, 10.5, np.nan, 5.0], [5.0, 5.0, 5.0, np.inf], 10.0, 10.0, 4)
    assert rows.tolist() == [-1, -1, -1, -1]
    assert cols.tolist() == [-1, -1, -1, -1]


def test_assign_tracks_to_squares_reports_excluded_tracks(caplog):
    from square_analysis import assign_tracks_to_squares, generate_squares

    tracks = pd.DataFrame({
        "Track Id": [0, 1, 2, 3, 4],
        "Track X Location": [1.0, 9.0, 10.0, -2.0, np.nan],
        "Track Y Location": [1.0, 1.0, 10.0, 3.0, 3.0],
    })
    squares = generate_squares(10.0, 10.0, 2, recording_name="rec")

    with caplog.at_level(logging.WARNING, logger="square_analysis.grid"):
        assigned, n_excluded = assign_tracks_to_squares(tracks, squares, 10.0, 10.0, 2, "rec")

    assert n_excluded == 2
    assert assigned["Square Number"].tolist() == [0, 1, 3, -1, -1]
    assert squares[0].track_ids == [0]
    assert squares[1].track_ids == [1]
    assert squares[2].track_ids == []
    assert squares[3].track_ids == [2]
    assert "Square Number" not in tracks.columns
    assert "rec" in caplog.text and "2 of 5 tracks" in caplog.text


def test_assign_tracks_replaces_previous_assignment():
    from square_analysis import assign_tracks_to_squares, generate_squares

    tracks = pd.DataFrame({"Track Id": [7], "Track X Location": [2.0], "Track Y Location": [2.0]})
    squares = generate_squares(10.0, 10.0, 2)

    assign_tracks_to_squares(tracks, squares, 10.0, 10.0, 2)
    assign_tracks_to_squares(tracks, squares, 10.0, 10.0, 2)

    assert squares[0].track_ids == [7]


def test_assign_tracks_requires_location_columns():
    from square_analysis import assign_tracks_to_squares, generate_squares

    squares = generate_squares(10.0, 10.0, 2)
    with pytest.raises(ValueError, match="Track X Location"):
        assign_tracks_to_squares(pd.DataFrame({"Track Id": [1]}), squares, 10.0, 10.0, 2)


def test_duplicate_track_ids_are_rejected():
    from square_analysis import assign_tracks_to_squares, generate_squares

    tracks = pd.DataFrame({
        "Track Id": [1, 2, 1],
        "Track X Location": [1.0, 5.0, 9.0],
        "Track Y Location": [1.0, 5.0, 9.0],
    })
    squares = generate_squares(10.0, 10.0, 5)

    with pytest.raises(ValueError, match="duplicate track ids \\[1\\]"):
        assign_tracks_to_squares(tracks, squares, 10.0, 10.0, 5, "rec")
