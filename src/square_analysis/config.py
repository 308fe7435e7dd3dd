# %%
"""Analysis parameters and acquisition constants for square generation."""

import math
from dataclasses import dataclass, fields, replace

# =============================================================================
# Sensor geometry
# =============================================================================

PIXEL_SIZE = 0.1603251  # um/pixel
NUMBER_PIXELS_X = 512
NUMBER_PIXELS_Y = 512
IMAGE_WIDTH = PIXEL_SIZE * NUMBER_PIXELS_X  # 82.0864512 um
IMAGE_HEIGHT = PIXEL_SIZE * NUMBER_PIXELS_Y

# =============================================================================
# Timing
# =============================================================================

FRAME_INTERVAL = 0.05  # seconds between frames
N_FRAMES = 2000  # frames per recording
RECORDING_DURATION = FRAME_INTERVAL * N_FRAMES  # seconds

NEIGHBOUR_MODES = ("Free", "Relaxed", "Strict")
BACKGROUND_METHODS = ("random", "sigma_clip", "lowest")
LOCATION_MODES = ("centroid", "first")

# Keys as they appear in the configuration files of the acquisition setup
_EXTERNAL_KEYS = {
    "Min Tracks to Calculate Tau": "min_tracks_for_tau",
    "Min Required R Squared": "min_required_r_squared",
    "Max Allowable Variability": "max_allowable_variability",
    "Min Required Density Ratio": "min_required_density_ratio",
    "Neighbour Mode": "neighbour_mode",
    "Plot Curve Fitting": "plot_fits",
    "Time Interval": "frame_interval",
    "Frames": "n_frames",
}


class InvalidConfiguration(ValueError):
    """Raised when analysis parameters make square statistics meaningless."""


# %%
@dataclass(frozen=True)
class SquareConfig:
    """Parameters for one square-generation pass.

    The grid resolution is ``n_squares_per_side`` (N); a recording is covered
    by N * N squares. Changing any parameter means building a new config with
    :meth:`with_resolution` or :func:`dataclasses.replace`.
    """

    n_squares_per_side: int = 20
    frame_interval: float = FRAME_INTERVAL
    n_frames: int = N_FRAMES
    pixel_size: float = PIXEL_SIZE
    n_pixels_x: int = NUMBER_PIXELS_X
    n_pixels_y: int = NUMBER_PIXELS_Y
    min_tracks_for_tau: int = 20
    min_required_r_squared: float = 0.1
    min_required_density_ratio: float = 2.0
    max_allowable_variability: float = 10.0
    neighbour_mode: str = "Free"
    variability_granularity: int = 10
    background_sample_size: int = 60
    background_seed: int = 0
    background_method: str = "random"
    concentration: float = 1.0
    location: str = "centroid"
    plot_fits: bool = False

    def __post_init__(self):
        # Parsed config files give 20.0 for 20
        n = self.n_squares_per_side
        if isinstance(n, float) and n.is_integer():
            object.__setattr__(self, "n_squares_per_side", int(n))

    @property
    def image_width(self) -> float:
        return self.pixel_size * self.n_pixels_x

    @property
    def image_height(self) -> float:
        return self.pixel_size * self.n_pixels_y

    @property
    def recording_duration(self) -> float:
        return self.frame_interval * self.n_frames

    @property
    def n_squares(self) -> int:
        return self.n_squares_per_side**2

    @property
    def square_area(self) -> float:
        return self.image_width * self.image_height / self.n_squares

    def with_resolution(self, n_squares_per_side: int) -> "SquareConfig":
        """Return a copy of this config for another grid resolution."""
        return replace(self, n_squares_per_side=n_squares_per_side)

    def validate(self) -> "SquareConfig":
        """Check all parameters, raising InvalidConfiguration on the first problem."""
        if self.n_squares_per_side < 1 or int(self.n_squares_per_side) != self.n_squares_per_side:
            raise InvalidConfiguration(
                f"Grid resolution must be an integer >= 1, got {self.n_squares_per_side!r}"
            )
        if not self.frame_interval > 0:
            raise InvalidConfiguration(f"Frame interval must be positive, got {self.frame_interval}")
        if self.n_frames < 1:
            raise InvalidConfiguration(f"Number of frames must be >= 1, got {self.n_frames}")
        if not (self.pixel_size > 0 and self.n_pixels_x > 0 and self.n_pixels_y > 0):
            raise InvalidConfiguration("Field of view dimensions must be positive")
        if not self.concentration > 0:
            raise InvalidConfiguration(f"Concentration must be positive, got {self.concentration}")
        if self.variability_granularity < 1:
            raise InvalidConfiguration("Variability granularity must be >= 1")
        if self.background_sample_size < 1:
            raise InvalidConfiguration("Background sample size must be >= 1")
        if self.min_tracks_for_tau < 0:
            raise InvalidConfiguration("Minimum track count must not be negative")
        if self.neighbour_mode.capitalize() not in NEIGHBOUR_MODES:
            raise InvalidConfiguration(
                f"Unknown neighbour mode: {self.neighbour_mode}. Use one of {NEIGHBOUR_MODES}."
            )
        if self.background_method not in BACKGROUND_METHODS:
            raise InvalidConfiguration(
                f"Unknown background method: {self.background_method}. Use one of {BACKGROUND_METHODS}."
            )
        if self.location not in LOCATION_MODES:
            raise InvalidConfiguration(
                f"Unknown location mode: {self.location}. Use one of {LOCATION_MODES}."
            )
        return self

    @classmethod
    def from_dict(cls, values: dict) -> "SquareConfig":
        """Build a config from field names or the acquisition setup's keys.

        Parameters
        ----------
        values : dict
            Mapping with field names (``min_tracks_for_tau``) or external keys
            (``"Min Tracks to Calculate Tau"``). ``"Number of Squares in
            Recording"`` must be a perfect square. Unknown keys are ignored.

        Returns
        -------
        SquareConfig
            Validated configuration.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}

        for key, value in values.items():
            if key == "Number of Squares in Recording":
                side = math.isqrt(int(value))
                if side * side != int(value):
                    raise InvalidConfiguration(
                        f"Number of squares in recording must be a perfect square, got {value}"
                    )
                kwargs["n_squares_per_side"] = side
            elif key in _EXTERNAL_KEYS:
                kwargs[_EXTERNAL_KEYS[key]] = value
            elif key in known:
                kwargs[key] = value

        return cls(**kwargs).validate()
