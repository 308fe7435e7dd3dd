# %%
"""Diagnostic plots: tau fits and trajectories over the square grid."""

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import trackpy as tp
from matplotlib.patches import Rectangle

from .decay_fit import TauResult, TauStatus, duration_histogram, fit_exponential_decay, mono_exp


# %%
def _curve_to_draw(x: np.ndarray, y: np.ndarray, tau_result: TauResult | None):
    """Fitted (params, tau, r_squared) to draw, or None when there is no curve.

    A reported result is drawn as reported, so a rejected fit shows no curve.
    Without one, the histogram is fitted here.
    """
    if tau_result is not None:
        if tau_result.status != TauStatus.SUCCESS:
            return None
        return tau_result.params, tau_result.tau, tau_result.r_squared

    fit = fit_exponential_decay(x, y) if len(x) > 0 else None
    if fit is None or not fit.converged:
        return None
    return fit.params, fit.tau, fit.r_squared


def plot_tau_fit(
    durations,
    tau_result: TauResult | None,
    output_path: str | Path,
    title: str = "Duration Histogram",
) -> Path:
    """Save the duration histogram of a square with its fitted decay curve.

    Parameters
    ----------
    durations : array-like
        Track durations in seconds.
    tau_result : TauResult or None
        Result reported for the square. Its curve is drawn only on success
        and its status goes into the title. None fits the histogram here.
    output_path : str or Path
        PNG file to write.
    title : str, optional
        Plot title prefix.

    Returns
    -------
    Path
        Path of the written file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    x, y = duration_histogram(durations)
    curve = _curve_to_draw(x, y, tau_result)

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(x, y, "o", label="Data")

    if curve is not None:
        params, tau, r_squared = curve
        x_fit = np.linspace(0, x.max(), 200)
        ax.plot(x_fit, mono_exp(x_fit, *params), "r-", label="Fit")
        title += f" - tau = {tau:.0f} ms, R² = {r_squared:.3f}"
    if tau_result is not None:
        title += f" [{tau_result.status.value}]"

    ax.set_xlabel("Track duration (s)")
    ax.set_ylabel("Number of tracks")
    ax.set_title(title)
    ax.legend()
    plt.tight_layout()
    plt.savefig(output_path, dpi=100)
    plt.close(fig)
    return output_path


# %%
def plot_square_grid(
    trajectories: pd.DataFrame,
    recording,
    width: float,
    height: float,
    output_path: str | Path,
) -> Path:
    """Save the trajectories of a recording with its squares drawn on top.

    Selected squares are outlined in red, the rest of the grid in grey.

    Parameters
    ----------
    trajectories : pd.DataFrame
        Samples with 'frame', 'x', 'y' and 'particle' or 'track_id'.
    recording : Recording
        Processed recording with squares.
    width, height : float
        Field of view.
    output_path : str or Path
        PNG file to write.

    Returns
    -------
    Path
        Path of the written file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if "particle" not in trajectories.columns and "track_id" in trajectories.columns:
        trajectories = trajectories.rename(columns={"track_id": "particle"})

    fig, ax = plt.subplots(figsize=(10, 10))
    if len(trajectories) > 0:
        tp.plot_traj(trajectories, ax=ax, plot_style={"linewidth": 0.5})

    for square in recording.squares:
        ax.add_patch(Rectangle(
            (square.x0, square.y0),
            square.x1 - square.x0,
            square.y1 - square.y0,
            fill=False,
            edgecolor="red" if square.selected else "lightgray",
            linewidth=1.5 if square.selected else 0.5,
        ))

    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)
    ax.set_aspect("equal")
    ax.set_title(f"{recording.name} - {len(recording.selected_squares)} selected squares")
    plt.tight_layout()
    plt.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path
