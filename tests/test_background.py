"""Tests for the background density estimate."""

import numpy as np
import pytest


def test_random_sample_is_reproducible():
    from square_analysis import estimate_background_density

    densities = np.random.default_rng(1).uniform(0, 5, 400)

    first = estimate_background_density(densities, sample_size=60, seed=11)
    second = estimate_background_density(densities, sample_size=60, seed=11)

    assert first.density == second.density
    assert first.square_numbers == second.square_numbers
    assert first.n_squares == 60
    assert len(set(first.square_numbers)) == 60
    assert first.density == pytest.approx(densities[list(first.square_numbers)].mean())


def test_sample_larger_than_recording_uses_every_square():
    from square_analysis import estimate_background_density

    densities = np.array([1.0, 2.0, 3.0, 6.0])
    estimate = estimate_background_density(densities, square_numbers=[10, 11, 12, 13], sample_size=60)

    assert estimate.density == pytest.approx(3.0)
    assert estimate.square_numbers == (10, 11, 12, 13)


def test_counts_give_tracks_in_background():
    from square_analysis import estimate_background_density

    estimate = estimate_background_density([1.0, 2.0], counts=[4, 9], sample_size=5)
    assert estimate.n_tracks == 13


def test_no_squares_gives_nan():
    from square_analysis import estimate_background_density

    estimate = estimate_background_density([])
    assert np.isnan(estimate.density)
    assert estimate.n_squares == 0


def test_sigma_clip_drops_dense_outliers():
    from square_analysis import estimate_background_density

    densities = np.array([1.0] * 19 + [100.0])
    estimate = estimate_background_density(densities, method="sigma_clip")

    assert estimate.density == pytest.approx(1.0)
    assert 19 not in estimate.square_numbers
    assert estimate.method == "sigma_clip"


def test_lowest_uses_least_dense_non_empty_squares():
    from square_analysis import estimate_background_density

    densities = np.array([0.0, 0.0] + [float(d) for d in range(1, 19)])
    estimate = estimate_background_density(densities, method="lowest")

    # 10% of 20 squares, skipping the empty ones
    assert estimate.square_numbers == (2, 3)
    assert estimate.density == pytest.approx(1.5)


def test_lowest_without_tracks_gives_zero():
    from square_analysis import estimate_background_density

    estimate = estimate_background_density(np.zeros(25), method="lowest")
    assert estimate.density == 0.0
    assert estimate.n_squares == 0


def test_unknown_method_raises():
    from square_analysis import estimate_background_density

    with pytest.raises(ValueError, match="Unknown method"):
        estimate_background_density([1.0, 2.0], method="median")
