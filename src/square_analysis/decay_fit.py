# %%
"""Exponential decay fit of track-duration histograms (tau and R squared).

Model: y = m * exp(-t * x) + b

- x: track duration in seconds, y: number of tracks with that duration
- t: rate in 1/s, reported as the time constant tau = 1000 / t in ms
- m: amplitude at x = 0, b: floor

The solver is a plain callable ``solver(x, y, p0) -> params or None`` so the
numerical method can be swapped without touching the aggregation code.
"""

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np
from scipy.optimize import OptimizeWarning, curve_fit

LOGGER = logging.getLogger(__name__)

MIN_DISTINCT_POINTS = 3
MAX_FUNCTION_EVALUATIONS = 10_000


class TauStatus(str, Enum):
    """Outcome of a tau calculation."""

    SUCCESS = "success"
    INSUFFICIENT_POINTS = "insufficient_points"
    NO_FIT = "no_fit"
    RSQUARED_TOO_LOW = "r_squared_too_low"


@dataclass(frozen=True)
class DecayFitResult:
    """Converged decay fit: tau in ms, R squared and the raw model parameters."""

    tau: float
    r_squared: float
    converged: bool
    params: tuple[float, float, float] = (np.nan, np.nan, np.nan)


@dataclass(frozen=True)
class TauResult:
    """Reported tau and R squared; ``params`` are the fitted (m, t, b) on success only."""

    tau: float
    r_squared: float
    status: TauStatus
    n_tracks: int = 0
    params: tuple[float, float, float] = (np.nan, np.nan, np.nan)


NO_FIT = DecayFitResult(np.nan, np.nan, False)


# %%
def mono_exp(x: np.ndarray, m: float, t: float, b: float) -> np.ndarray:
    """Single-exponential decay with offset."""
    return m * np.exp(-t * x) + b


def _mono_exp_jacobian(x: np.ndarray, m: float, t: float, b: float) -> np.ndarray:
    e = np.exp(-t * x)
    return np.column_stack([e, -m * x * e, np.ones_like(x)])


def initial_guess(x: np.ndarray, y: np.ndarray) -> tuple[float, float, float]:
    """Deterministic starting point for the decay fit.

    ``m`` starts at max(y) and ``b`` at min(y). The rate comes from a
    log-linear fit of the points clearly above the floor; when fewer than two
    such points exist it falls back to the inverse of the x-range.
    """
    m0 = float(np.max(y))
    b0 = float(np.min(y))

    above = y - b0
    mask = above > max(1e-6, 0.01 * (m0 - b0))
    t0 = np.nan
    if mask.sum() >= 2 and np.ptp(x[mask]) > 0:
        slope = np.polyfit(x[mask], np.log(above[mask]), 1)[0]
        t0 = -slope

    if not np.isfinite(t0) or t0 <= 0:
        t0 = 1.0 / max(1e-3, float(np.ptp(x)))

    return m0, float(np.clip(t0, 1e-9, 1e3)), b0


def r_squared(x: np.ndarray, y: np.ndarray, params) -> float:
    """Coefficient of determination of the model against the observed y."""
    residuals = y - mono_exp(x, *params)
    ss_res = np.sum(residuals**2)
    ss_tot = np.sum((y - np.mean(y)) ** 2)
    if ss_tot == 0:
        return np.nan
    return float(1.0 - ss_res / ss_tot)


# %%
def curve_fit_solver(x: np.ndarray, y: np.ndarray, p0) -> np.ndarray | None:
    """Levenberg-Marquardt least squares via scipy; None when it fails."""
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", OptimizeWarning)
            warnings.simplefilter("ignore", RuntimeWarning)
            params, _ = curve_fit(
                mono_exp,
                x,
                y,
                p0=p0,
                jac=_mono_exp_jacobian,
                method="lm",
                maxfev=MAX_FUNCTION_EVALUATIONS,
            )
    except (RuntimeError, ValueError) as e:
        LOGGER.debug("Decay fit did not converge: %s", e)
        return None
    return params


def fit_exponential_decay(
    x,
    y,
    solver: Callable = curve_fit_solver,
) -> DecayFitResult:
    """Fit y = m * exp(-t * x) + b to a histogram and report tau and R squared.

    Parameters
    ----------
    x : array-like
        Distinct track durations in seconds (may be irregularly spaced).
    y : array-like
        Observed frequency of each duration.
    solver : callable, optional
        ``solver(x, y, p0)`` returning fitted (m, t, b) or None.

    Returns
    -------
    DecayFitResult
        tau in milliseconds and R squared, both NaN when the data cannot be
        fitted (fewer than 3 distinct x, constant y, non-finite input or no
        convergence).
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.shape != y.shape:
        raise ValueError(f"x and y must have equal length, got {x.shape} and {y.shape}")

    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        return NO_FIT
    if len(np.unique(x)) < MIN_DISTINCT_POINTS or np.ptp(y) == 0:
        return NO_FIT

    params = solver(x, y, initial_guess(x, y))
    if params is None:
        return NO_FIT

    m, t, b = (float(p) for p in params)
    tau = 1000.0 / t if t > 0 else np.nan
    r2 = r_squared(x, y, (m, t, b))

    if not (np.isfinite(tau) and np.isfinite(r2)):
        return DecayFitResult(np.nan, np.nan, False, (m, t, b))

    return DecayFitResult(tau, r2, True, (m, t, b))


# %%
def duration_histogram(durations) -> tuple[np.ndarray, np.ndarray]:
    """Distinct durations (sorted) and how many tracks have each one.

    NaN durations are ignored.
    """
    durations = np.asarray(durations, dtype=float)
    durations = durations[np.isfinite(durations)]
    values, counts = np.unique(durations, return_counts=True)
    return values, counts.astype(float)


def calculate_tau(
    durations,
    min_tracks: int = 0,
    min_r_squared: float = 0.0,
    solver: Callable = curve_fit_solver,
) -> TauResult:
    """Fit the duration histogram of a set of tracks.

    Parameters
    ----------
    durations : array-like
        Track durations in seconds; NaN entries are ignored.
    min_tracks : int, optional
        Minimum number of tracks needed to attempt a fit (default: 0).
    min_r_squared : float, optional
        Fits with a lower R squared are rejected (default: 0.0).
    solver : callable, optional
        Least-squares solver passed to fit_exponential_decay.

    Returns
    -------
    TauResult
        tau (ms), R squared and status. tau and R squared are NaN unless
        status is SUCCESS.
    """
    values, counts = duration_histogram(durations)
    n_tracks = int(counts.sum())

    if n_tracks == 0 or n_tracks < min_tracks:
        return TauResult(np.nan, np.nan, TauStatus.INSUFFICIENT_POINTS, n_tracks)

    fit = fit_exponential_decay(values, counts, solver=solver)
    if not fit.converged:
        return TauResult(np.nan, np.nan, TauStatus.NO_FIT, n_tracks)
    if fit.r_squared < min_r_squared:
        return TauResult(np.nan, np.nan, TauStatus.RSQUARED_TOO_LOW, n_tracks)

    return TauResult(fit.tau, fit.r_squared, TauStatus.SUCCESS, n_tracks, fit.params)
