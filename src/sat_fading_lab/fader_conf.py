"""
Per-elevation, per-state parameter tables for the state faders.

A fader configuration is a three level table indexed as
``[elevation bucket][markov state][parameter]``. The whole table is validated
when the configuration is built, so a malformed table never reaches a query.

Two families are provided:

- Rayleigh: ``(num_oscillators, max_doppler_hz)`` per state.
- Loo: ``(direct_mean_db, direct_std_db, multipath_power_db,
  direct_oscillators, multipath_oscillators, direct_doppler_hz,
  multipath_doppler_hz)`` per state.
"""
from __future__ import annotations

from typing import Any, Dict, Sequence, Tuple

from .errors import ConfigurationError
from .helpers import validate_float, validate_int

ParameterSet = Tuple[float, ...]

MAX_OSCILLATORS = 1024


class FaderConf:
    """Base class for fader parameter tables."""

    family = ""
    parameter_names: Tuple[str, ...] = ()

    def __init__(self, parameters: Sequence[Sequence[Sequence[float]]]):
        if len(parameters) == 0:
            raise ConfigurationError(f"{self.family} parameters: at least one elevation set required")
        state_count = len(parameters[0])
        if state_count == 0:
            raise ConfigurationError(f"{self.family} parameters: at least one state required")

        table = []
        for bucket_index, bucket in enumerate(parameters):
            if len(bucket) != state_count:
                raise ConfigurationError(
                    f"{self.family} parameters: elevation set {bucket_index} has "
                    f"{len(bucket)} states, expected {state_count}"
                )
            rows = []
            for state, values in enumerate(bucket):
                if len(values) != self.parameter_count:
                    raise ConfigurationError(
                        f"{self.family} parameters: elevation set {bucket_index} state {state} has "
                        f"{len(values)} values, expected {self.parameter_count} {self.parameter_names}"
                    )
                rows.append(self._validate_state(bucket_index, state, values))
            table.append(tuple(rows))
        self._parameters = tuple(table)

    @property
    def elevation_count(self) -> int:
        return len(self._parameters)

    @property
    def state_count(self) -> int:
        return len(self._parameters[0])

    @property
    def parameter_count(self) -> int:
        return len(self.parameter_names)

    def get_parameters(self, bucket_index: int) -> Tuple[ParameterSet, ...]:
        """Return the per-state parameter tuples for one elevation bucket."""
        if isinstance(bucket_index, bool) or not 0 <= int(bucket_index) < self.elevation_count:
            raise ConfigurationError(
                f"{self.family} parameters: elevation set {bucket_index!r} out of range "
                f"[0, {self.elevation_count})"
            )
        return self._parameters[int(bucket_index)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "family": self.family,
            "parameters": [[list(state) for state in bucket] for bucket in self._parameters],
        }

    def _validate_state(self, bucket_index: int, state: int, values: Sequence[float]) -> ParameterSet:
        raise NotImplementedError


class RayleighConf(FaderConf):
    """Two-parameter Rayleigh table: oscillator count and maximum Doppler."""

    family = "rayleigh"
    parameter_names = ("num_oscillators", "max_doppler_hz")

    def _validate_state(self, bucket_index: int, state: int, values: Sequence[float]) -> ParameterSet:
        prefix = f"rayleigh[{bucket_index}][{state}]"
        n_osc = validate_int(f"{prefix}.num_oscillators", values[0], min_value=1, max_value=MAX_OSCILLATORS)
        doppler = validate_float(f"{prefix}.max_doppler_hz", values[1], min_value=0.0)
        return (n_osc, doppler)

    @classmethod
    def default(cls) -> "RayleighConf":
        return cls(DEFAULT_RAYLEIGH_PARAMETERS)


class LooConf(FaderConf):
    """Seven-parameter Loo table: lognormal direct signal plus Rayleigh multipath."""

    family = "loo"
    parameter_names = (
        "direct_mean_db",
        "direct_std_db",
        "multipath_power_db",
        "direct_oscillators",
        "multipath_oscillators",
        "direct_doppler_hz",
        "multipath_doppler_hz",
    )

    def _validate_state(self, bucket_index: int, state: int, values: Sequence[float]) -> ParameterSet:
        prefix = f"loo[{bucket_index}][{state}]"
        return (
            validate_float(f"{prefix}.direct_mean_db", values[0]),
            validate_float(f"{prefix}.direct_std_db", values[1], min_value=0.0),
            validate_float(f"{prefix}.multipath_power_db", values[2]),
            validate_int(f"{prefix}.direct_oscillators", values[3], min_value=1, max_value=MAX_OSCILLATORS),
            validate_int(f"{prefix}.multipath_oscillators", values[4], min_value=1, max_value=MAX_OSCILLATORS),
            validate_float(f"{prefix}.direct_doppler_hz", values[5], min_value=0.0),
            validate_float(f"{prefix}.multipath_doppler_hz", values[6], min_value=0.0),
        )

    @classmethod
    def default(cls) -> "LooConf":
        return cls(DEFAULT_LOO_PARAMETERS)


FADER_FAMILIES = {
    RayleighConf.family: RayleighConf,
    LooConf.family: LooConf,
}


def fader_conf_from_dict(d: Dict[str, Any]) -> FaderConf:
    """Build a fader table from ``{"family": ..., "parameters": [...]}``."""
    family = str(d.get("family", "loo")).lower()
    conf_cls = FADER_FAMILIES.get(family)
    if conf_cls is None:
        raise ConfigurationError(f"Unknown fader family: {family!r} (expected one of {sorted(FADER_FAMILIES)})")
    parameters = d.get("parameters")
    if parameters is None:
        return conf_cls.default()
    return conf_cls(parameters)


# Elevation sets 30, 45, 60 and 75 degrees; states are line-of-sight,
# moderate shadowing and deep shadowing.
DEFAULT_RAYLEIGH_PARAMETERS = (
    ((10, 30.0), (10, 30.0), (10, 30.0)),
    ((10, 30.0), (10, 30.0), (10, 30.0)),
    ((10, 30.0), (10, 30.0), (10, 30.0)),
    ((10, 30.0), (10, 30.0), (10, 30.0)),
)

DEFAULT_LOO_PARAMETERS = (
    (
        (-0.8, 0.6, -19.0, 10, 10, 1.0, 30.0),
        (-6.2, 1.9, -16.5, 10, 10, 1.0, 30.0),
        (-13.5, 3.3, -18.0, 10, 10, 1.0, 30.0),
    ),
    (
        (-0.5, 0.5, -21.0, 10, 10, 1.0, 30.0),
        (-5.1, 1.7, -17.0, 10, 10, 1.0, 30.0),
        (-11.8, 3.0, -19.5, 10, 10, 1.0, 30.0),
    ),
    (
        (-0.3, 0.4, -23.5, 10, 10, 1.0, 30.0),
        (-3.9, 1.4, -18.5, 10, 10, 1.0, 30.0),
        (-10.2, 2.7, -20.5, 10, 10, 1.0, 30.0),
    ),
    (
        (-0.1, 0.3, -26.0, 10, 10, 1.0, 30.0),
        (-2.8, 1.1, -20.0, 10, 10, 1.0, 30.0),
        (-8.6, 2.3, -22.0, 10, 10, 1.0, 30.0),
    ),
)
