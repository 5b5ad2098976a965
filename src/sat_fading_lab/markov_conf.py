"""
Elevation-bucketed Markov chain configuration.

Each elevation bucket carries a row-stochastic transition matrix and a mean
dwell distance per state. Queries at an arbitrary elevation are resolved to
the two bounding buckets with a linear weight; elevations outside the
configured range clamp to the outermost bucket.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
import bisect

import numpy as np

from .errors import ConfigurationError
from .fader_conf import FaderConf, LooConf, RayleighConf, fader_conf_from_dict
from .helpers import validate_float, validate_int

ROW_SUM_TOLERANCE = 1e-6


@dataclass(frozen=True)
class ElevationBucket:
    """
    Markov parameters for one elevation set.

    Attributes
    ----------
    elevation_deg : float
        Elevation the parameter set was measured at.
    transition_probabilities : tuple of tuple of float
        Row ``i`` is the next-state distribution when a dwell in state ``i`` ends.
    mean_dwell_distance_m : tuple of float
        Mean terminal travel, in metres, spent in each state before a transition.
    """
    elevation_deg: float
    transition_probabilities: Tuple[Tuple[float, ...], ...]
    mean_dwell_distance_m: Tuple[float, ...]

    def __post_init__(self):
        elevation = validate_float("elevation_deg", self.elevation_deg, min_value=0.0, max_value=90.0)
        object.__setattr__(self, "elevation_deg", elevation)

        try:
            matrix = np.array(self.transition_probabilities, dtype=float)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"bucket {elevation} deg: transition_probabilities: {exc}") from exc
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1] or matrix.shape[0] == 0:
            raise ConfigurationError(
                f"bucket {elevation} deg: transition_probabilities must be a non-empty square matrix, "
                f"got shape {matrix.shape}"
            )
        if np.any(~np.isfinite(matrix)) or np.any(matrix < 0.0):
            raise ConfigurationError(f"bucket {elevation} deg: transition probabilities must be finite and >= 0")
        row_sums = matrix.sum(axis=1)
        if np.any(np.abs(row_sums - 1.0) > ROW_SUM_TOLERANCE):
            raise ConfigurationError(
                f"bucket {elevation} deg: transition rows must sum to 1, got {row_sums.tolist()}"
            )
        object.__setattr__(
            self, "transition_probabilities", tuple(tuple(float(p) for p in row) for row in matrix)
        )

        if len(self.mean_dwell_distance_m) != matrix.shape[0]:
            raise ConfigurationError(
                f"bucket {elevation} deg: {len(self.mean_dwell_distance_m)} dwell distances "
                f"for {matrix.shape[0]} states"
            )
        dwell = tuple(
            validate_float(f"bucket {elevation} deg: mean_dwell_distance_m[{i}]", d)
            for i, d in enumerate(self.mean_dwell_distance_m)
        )
        if any(d <= 0.0 for d in dwell):
            raise ConfigurationError(f"bucket {elevation} deg: mean dwell distances must be > 0, got {dwell}")
        object.__setattr__(self, "mean_dwell_distance_m", dwell)

    @property
    def state_count(self) -> int:
        return len(self.mean_dwell_distance_m)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ElevationBucket":
        try:
            return cls(
                elevation_deg=d["elevation_deg"],
                transition_probabilities=d["transition_probabilities"],
                mean_dwell_distance_m=d["mean_dwell_distance_m"],
            )
        except KeyError as exc:
            raise ConfigurationError(f"elevation bucket missing field {exc.args[0]!r}") from exc


@dataclass(frozen=True)
class BucketSelection:
    """Two bounding buckets and the linear weight of the upper one."""
    lower: int
    upper: int
    weight: float

    @property
    def nearest(self) -> int:
        return self.upper if self.weight > 0.5 else self.lower


class MarkovConf:
    """
    Validated Markov chain configuration shared by every link model.

    Parameters
    ----------
    buckets : sequence of ElevationBucket
        Strictly ascending in elevation, all with the same state count.
    fader_conf : FaderConf
        Per-bucket, per-state fader parameters; its shape must match the buckets.
    velocity_floor_mps : float
        Lowest speed used when converting elapsed time into travelled distance.
        Keeps a stationary terminal's chain moving (slowly) instead of freezing it.
    initial_state : int
        State every new link model starts in.
    """

    def __init__(
        self,
        buckets: Sequence[ElevationBucket],
        fader_conf: FaderConf,
        velocity_floor_mps: float = 0.5,
        initial_state: int = 0,
    ):
        if len(buckets) == 0:
            raise ConfigurationError("at least one elevation bucket is required")
        self.buckets = tuple(buckets)
        self.elevations = tuple(b.elevation_deg for b in self.buckets)
        if any(b >= a for a, b in zip(self.elevations[1:], self.elevations[:-1])):
            raise ConfigurationError(f"bucket elevations must be strictly ascending, got {self.elevations}")

        self.state_count = self.buckets[0].state_count
        for bucket in self.buckets:
            if bucket.state_count != self.state_count:
                raise ConfigurationError(
                    f"bucket {bucket.elevation_deg} deg has {bucket.state_count} states, "
                    f"expected {self.state_count}"
                )
        if fader_conf.elevation_count != len(self.buckets):
            raise ConfigurationError(
                f"{fader_conf.family} parameters cover {fader_conf.elevation_count} elevation sets, "
                f"expected {len(self.buckets)}"
            )
        if fader_conf.state_count != self.state_count:
            raise ConfigurationError(
                f"{fader_conf.family} parameters have {fader_conf.state_count} states, "
                f"expected {self.state_count}"
            )
        self.fader_conf = fader_conf
        self.velocity_floor_mps = validate_float("velocity_floor_mps", velocity_floor_mps)
        if self.velocity_floor_mps <= 0.0:
            raise ConfigurationError(f"velocity_floor_mps must be > 0, got {self.velocity_floor_mps}")
        self.initial_state = validate_int(
            "initial_state", initial_state, min_value=0, max_value=self.state_count - 1
        )
        self._matrices = np.array([b.transition_probabilities for b in self.buckets], dtype=float)
        self._dwell = np.array([b.mean_dwell_distance_m for b in self.buckets], dtype=float)

    def select(self, elevation_deg: float) -> BucketSelection:
        """Resolve an elevation to its bounding buckets, clamping outside the range."""
        elevation = float(elevation_deg)
        if np.isnan(elevation):
            raise ConfigurationError("elevation_deg: NaN not allowed")
        if elevation <= self.elevations[0]:
            return BucketSelection(0, 0, 0.0)
        last = len(self.elevations) - 1
        if elevation >= self.elevations[last]:
            return BucketSelection(last, last, 0.0)
        upper = bisect.bisect_right(self.elevations, elevation)
        lower = upper - 1
        span = self.elevations[upper] - self.elevations[lower]
        return BucketSelection(lower, upper, (elevation - self.elevations[lower]) / span)

    def transition_row(self, selection: BucketSelection, state: int) -> np.ndarray:
        low = self._matrices[selection.lower, state]
        high = self._matrices[selection.upper, state]
        row = (1.0 - selection.weight) * low + selection.weight * high
        return row / row.sum()

    def mean_dwell_distance_m(self, selection: BucketSelection, state: int) -> float:
        low = self._dwell[selection.lower, state]
        high = self._dwell[selection.upper, state]
        return float((1.0 - selection.weight) * low + selection.weight * high)

    def fader_parameters(self, bucket_index: int, state: int) -> Tuple[float, ...]:
        return self.fader_conf.get_parameters(bucket_index)[state]

    @classmethod
    def default(cls, fader: str = "loo", velocity_floor_mps: float = 0.5) -> "MarkovConf":
        """Three-state land-mobile-satellite chain at 30, 45, 60 and 75 degrees."""
        if fader == "loo":
            fader_conf: FaderConf = LooConf.default()
        elif fader == "rayleigh":
            fader_conf = RayleighConf.default()
        else:
            raise ConfigurationError(f"Unknown fader family: {fader!r}")
        buckets = [
            ElevationBucket(elevation, matrix, dwell)
            for elevation, matrix, dwell in DEFAULT_MARKOV_BUCKETS
        ]
        return cls(buckets, fader_conf, velocity_floor_mps=velocity_floor_mps)

    @classmethod
    def from_dict(cls, d: Dict[str, Any], state_count: Optional[int] = None) -> "MarkovConf":
        """
        Build from a mapping such as::

            {
              "velocity_floor_mps": 0.5,
              "initial_state": 0,
              "buckets": [{"elevation_deg": 30, "transition_probabilities": [...],
                           "mean_dwell_distance_m": [...]}, ...],
              "fader": {"family": "loo", "parameters": [...]}
            }

        Missing ``buckets`` falls back to the default chain.
        """
        fader_conf = fader_conf_from_dict(d.get("fader", {}))
        raw_buckets: Optional[List[Dict[str, Any]]] = d.get("buckets")
        if raw_buckets is None:
            buckets = [ElevationBucket(e, m, w) for e, m, w in DEFAULT_MARKOV_BUCKETS]
        else:
            buckets = [ElevationBucket.from_dict(b) for b in raw_buckets]
        conf = cls(
            buckets,
            fader_conf,
            velocity_floor_mps=d.get("velocity_floor_mps", 0.5),
            initial_state=d.get("initial_state", 0),
        )
        if state_count is not None and conf.state_count != state_count:
            raise ConfigurationError(
                f"state_count {state_count} does not match Markov buckets ({conf.state_count} states)"
            )
        return conf


# (elevation_deg, transition matrix, mean dwell distance per state in metres)
DEFAULT_MARKOV_BUCKETS = (
    (
        30.0,
        ((0.8628, 0.0737, 0.0635), (0.1247, 0.8214, 0.0539), (0.0648, 0.0707, 0.8645)),
        (14.0, 8.5, 9.0),
    ),
    (
        45.0,
        ((0.8990, 0.0610, 0.0400), (0.1460, 0.8100, 0.0440), (0.0710, 0.0550, 0.8740)),
        (18.0, 7.5, 8.0),
    ),
    (
        60.0,
        ((0.9240, 0.0480, 0.0280), (0.1750, 0.7900, 0.0350), (0.0880, 0.0520, 0.8600)),
        (23.0, 6.5, 7.0),
    ),
    (
        75.0,
        ((0.9510, 0.0320, 0.0170), (0.2100, 0.7650, 0.0250), (0.1150, 0.0450, 0.8400)),
        (30.0, 5.5, 6.0),
    ),
)
