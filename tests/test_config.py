"""Tests for analysis parameters and their validation."""

import dataclasses

import pytest


def test_defaults_match_acquisition_setup():
    from square_analysis import SquareConfig

    config = SquareConfig()
    assert config.image_width == pytest.approx(82.0864512)
    assert config.image_height == pytest.approx(82.0864512)
    assert config.recording_duration == pytest.approx(100.0)
    assert config.n_squares == 400
    assert config.square_area == pytest.approx(82.0864512**2 / 400)
    assert config.variability_granularity == 10
    assert config.background_sample_size == 60


@pytest.mark.parametrize(
    "changes",
    [
        {"n_squares_per_side": 0},
        {"n_squares_per_side": 2.5},
        {"frame_interval": 0.0},
        {"frame_interval": -0.05},
        {"n_frames": 0},
        {"pixel_size": 0.0},
        {"concentration": 0.0},
        {"variability_granularity": 0},
        {"background_sample_size": 0},
        {"neighbour_mode": "Loose"},
        {"background_method": "median"},
        {"location": "last"},
    ],
)
def test_validate_rejects_invalid_parameters(changes):
    from square_analysis import InvalidConfiguration, SquareConfig

    config = dataclasses.replace(SquareConfig(), **changes)
    with pytest.raises(InvalidConfiguration):
        config.validate()


def test_invalid_configuration_is_a_value_error():
    from square_analysis import InvalidConfiguration

    assert issubclass(InvalidConfiguration, ValueError)


def test_from_dict_accepts_external_keys():
    from square_analysis import SquareConfig

    config = SquareConfig.from_dict({
        "Number of Squares in Recording": 225,
        "Min Tracks to Calculate Tau": 30,
        "Min Required R Squared": 0.5,
        "Neighbour Mode": "Strict",
        "Time Interval": 0.1,
        "background_seed": 3,
        "Some Unrelated Key": "ignored",
    })

    assert config.n_squares_per_side == 15
    assert config.min_tracks_for_tau == 30
    assert config.min_required_r_squared == 0.5
    assert config.neighbour_mode == "Strict"
    assert config.frame_interval == 0.1
    assert config.background_seed == 3


def test_from_dict_requires_square_count_to_be_a_perfect_square():
    from square_analysis import InvalidConfiguration, SquareConfig

    with pytest.raises(InvalidConfiguration, match="perfect square"):
        SquareConfig.from_dict({"Number of Squares in Recording": 399})


def test_with_resolution_returns_new_config():
    from square_analysis import SquareConfig

    config = SquareConfig()
    finer = config.with_resolution(30)

    assert finer.n_squares_per_side == 30
    assert config.n_squares_per_side == 20
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.n_squares_per_side = 10


def test_integral_float_resolution_is_coerced(track_table, small_config):
    from square_analysis import Recording, SquareConfig, generate_squares_for_recording

    config = SquareConfig.from_dict({
        "n_squares_per_side": 5.0,
        "pixel_size": small_config.pixel_size,
        "n_pixels_x": 400,
        "n_pixels_y": 400,
    })
    assert config.n_squares_per_side == 5
    assert isinstance(config.n_squares_per_side, int)

    recording = generate_squares_for_recording(Recording(name="rec", tracks=track_table), config)
    assert len(recording.squares) == 25


def test_float_resolution_in_grid_functions():
    from square_analysis import InvalidConfiguration, generate_squares, locate_squares

    assert len(generate_squares(10.0, 10.0, 3.0)) == 9
    rows, cols = locate_squares([9.0], [1.0], 10.0, 10.0, 3.0)
    assert (rows[0], cols[0]) == (0, 2)
    with pytest.raises(InvalidConfiguration):
        generate_squares(10.0, 10.0, 2.5)
