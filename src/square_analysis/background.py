# %%
"""Estimation of the background (noise) track density of a recording."""

import logging
from dataclasses import dataclass

import numpy as np

from .config import BACKGROUND_METHODS

LOGGER = logging.getLogger(__name__)

SIGMA_CLIP_EPSILON = 0.01
SIGMA_CLIP_MAX_ITER = 10
LOWEST_FRACTION = 0.1


@dataclass(frozen=True)
class BackgroundEstimate:
    """Mean density of the squares taken as background."""

    density: float
    square_numbers: tuple[int, ...]
    method: str
    n_tracks: int = 0

    @property
    def n_squares(self) -> int:
        return len(self.square_numbers)


# %%
def _random_sample(densities: np.ndarray, sample_size: int, seed: int) -> np.ndarray:
    """Indices of a seed-fixed random subset of the squares."""
    rng = np.random.default_rng(seed)
    size = min(sample_size, len(densities))
    return np.sort(rng.choice(len(densities), size=size, replace=False))


def _sigma_clip(densities: np.ndarray) -> np.ndarray:
    """Indices left after repeatedly dropping squares above mean + 2 sd."""
    current = np.arange(len(densities))
    mean = densities.mean()
    if not np.isfinite(mean) or mean == 0:
        return current

    for _ in range(SIGMA_CLIP_MAX_ITER):
        previous = mean
        std = np.sqrt(np.mean((densities[current] - previous) ** 2))
        kept = current[densities[current] <= previous + 2 * std]
        if len(kept) == 0:
            break
        current = kept
        mean = densities[current].mean()
        if abs(mean - previous) / previous < SIGMA_CLIP_EPSILON:
            break

    return current


def _lowest_nonzero(densities: np.ndarray, fraction: float = LOWEST_FRACTION) -> np.ndarray:
    """Indices of the least dense non-empty squares (a fraction of all squares)."""
    n_wanted = max(int(fraction * len(densities)), 1)
    nonzero = np.flatnonzero(densities > 0)
    order = nonzero[np.argsort(densities[nonzero], kind="stable")]
    return np.sort(order[:n_wanted])


# %%
def estimate_background_density(
    densities,
    square_numbers=None,
    counts=None,
    sample_size: int = 60,
    seed: int = 0,
    method: str = "random",
) -> BackgroundEstimate:
    """Estimate the density expected from noise alone.

    Parameters
    ----------
    densities : array-like
        Raw track density of every square of the recording.
    square_numbers : array-like, optional
        Square number per density (default: 0 .. len - 1).
    counts : array-like, optional
        Track count per square, used to report tracks in the background.
    sample_size : int, optional
        Number of squares sampled by the "random" method (default: 60).
    seed : int, optional
        Seed of the "random" method (default: 0).
    method : str, optional
        "random" (mean of a seed-fixed random sample, default), "sigma_clip"
        (iterative 2-sigma clipping) or "lowest" (lowest 10% non-empty squares).

    Returns
    -------
    BackgroundEstimate
        Mean density of the chosen squares; NaN when there are no squares,
        0.0 when "lowest" finds no non-empty square.
    """
    densities = np.asarray(densities, dtype=float)
    if square_numbers is None:
        square_numbers = np.arange(len(densities))
    square_numbers = np.asarray(square_numbers)

    if len(densities) == 0:
        return BackgroundEstimate(np.nan, (), method)

    if method == "random":
        chosen = _random_sample(densities, sample_size, seed)
    elif method == "sigma_clip":
        chosen = _sigma_clip(densities)
    elif method == "lowest":
        chosen = _lowest_nonzero(densities)
    else:
        raise ValueError(f"Unknown method: {method}. Use one of {BACKGROUND_METHODS}.")

    density = float(densities[chosen].mean()) if len(chosen) > 0 else 0.0
    n_tracks = int(np.asarray(counts)[chosen].sum()) if counts is not None else 0

    LOGGER.debug(
        "Background density (%s) = %.4f from %d squares", method, density, len(chosen)
    )
    return BackgroundEstimate(
        density=density,
        square_numbers=tuple(int(s) for s in square_numbers[chosen]),
        method=method,
        n_tracks=n_tracks,
    )
