# %%
"""Owned, explicitly invalidated cache of squares per experiment."""

import logging
import threading
from typing import Callable

LOGGER = logging.getLogger(__name__)


class SquareCache:
    """Squares of every recording of an experiment, loaded at most once.

    The cache is tied to one grid resolution. Asking for another resolution
    clears it, because squares cannot be resized in place.

    Parameters
    ----------
    n_squares_per_side : int
        Grid resolution of the cached squares.
    """

    def __init__(self, n_squares_per_side: int):
        self.n_squares_per_side = n_squares_per_side
        self._experiments: dict[str, dict[str, list]] = {}
        self._lock = threading.Lock()

    def __contains__(self, experiment: str) -> bool:
        return experiment in self._experiments

    def __len__(self) -> int:
        return len(self._experiments)

    def get_or_load(
        self,
        experiment: str,
        recording: str,
        loader: Callable[[str], dict[str, list]],
    ) -> list:
        """Squares of one recording, loading the whole experiment on first use.

        Parameters
        ----------
        experiment : str
            Experiment key.
        recording : str
            Recording name within the experiment.
        loader : callable
            ``loader(experiment)`` returning recording name -> list of squares.

        Returns
        -------
        list
            The cached squares (empty when the recording is unknown).
        """
        with self._lock:
            if experiment not in self._experiments:
                LOGGER.debug("Loading squares for experiment %s", experiment)
                self._experiments[experiment] = dict(loader(experiment))
                LOGGER.debug(
                    "Cached %d recordings for experiment %s",
                    len(self._experiments[experiment]), experiment,
                )
            squares = self._experiments[experiment].get(recording, [])

        expected = self.n_squares_per_side**2
        if squares and len(squares) != expected:
            LOGGER.warning(
                "Recording %s expected %d squares but has %d", recording, expected, len(squares)
            )
        return squares

    def set_resolution(self, n_squares_per_side: int) -> None:
        """Switch grid resolution; a change drops every cached experiment."""
        with self._lock:
            if n_squares_per_side != self.n_squares_per_side:
                self._experiments.clear()
                LOGGER.info(
                    "Grid resolution changed from %d to %d, square cache cleared",
                    self.n_squares_per_side, n_squares_per_side,
                )
                self.n_squares_per_side = n_squares_per_side

    def invalidate(self, experiment: str) -> None:
        with self._lock:
            self._experiments.pop(experiment, None)
        LOGGER.info("Cleared square cache for experiment %s", experiment)

    def clear(self) -> None:
        with self._lock:
            self._experiments.clear()
        LOGGER.info("Cleared square cache")
