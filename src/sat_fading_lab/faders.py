"""
Time-correlated state faders built from sums of sinusoids (Jakes/Clarke).

A fader draws its oscillator angles and phases once at construction and is a
deterministic function of simulation time afterwards, so repeated queries at
the same instant return the same gain.
"""
from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np

from .fader_conf import FaderConf, LooConf, RayleighConf
from .helpers import amplitude_to_db, db_to_linear, linear_to_db

FADING_FLOOR_DB = -100.0


class _SumOfSinusoids:
    """Unit-power complex Gaussian process with a Jakes Doppler spectrum."""

    def __init__(self, n_oscillators: int, max_doppler_hz: float, rng: np.random.Generator):
        self.n_oscillators = int(n_oscillators)
        self.max_doppler_hz = float(max_doppler_hz)
        n = np.arange(1, self.n_oscillators + 1, dtype=float)
        theta = rng.uniform(-np.pi, np.pi)
        alpha = (2.0 * np.pi * n - np.pi + theta) / (4.0 * self.n_oscillators)
        self._omega = 2.0 * np.pi * self.max_doppler_hz * np.cos(alpha)
        self._phase = rng.uniform(-np.pi, np.pi, size=self.n_oscillators)

    def complex_gain(self, time_s: float) -> complex:
        terms = np.exp(1j * (self._omega * float(time_s) + self._phase))
        return complex(np.sum(terms) / math.sqrt(self.n_oscillators))

    def real_gain(self, time_s: float) -> float:
        # sqrt(2) restores unit variance for the real part alone.
        terms = np.cos(self._omega * float(time_s) + self._phase)
        return float(math.sqrt(2.0) * np.sum(terms) / math.sqrt(self.n_oscillators))

    @property
    def max_amplitude(self) -> float:
        return math.sqrt(self.n_oscillators)


class RayleighFader:
    """Rayleigh envelope with unit mean power."""

    def __init__(self, parameters: Sequence[float], rng: np.random.Generator):
        self.parameters = tuple(parameters)
        self._process = _SumOfSinusoids(int(parameters[0]), float(parameters[1]), rng)

    def gain_db(self, time_s: float) -> float:
        return amplitude_to_db(abs(self._process.complex_gain(time_s)), FADING_FLOOR_DB)

    def support_db(self) -> Tuple[float, float]:
        return FADING_FLOOR_DB, linear_to_db(self._process.n_oscillators)


class LooFader:
    """
    Loo envelope: lognormal direct signal plus Rayleigh multipath.

    The direct signal level in dB follows ``mean + std * g(t)`` where ``g`` is
    a slowly varying unit Gaussian driven by the direct-path oscillators.
    """

    def __init__(self, parameters: Sequence[float], rng: np.random.Generator):
        self.parameters = tuple(parameters)
        (
            self.direct_mean_db,
            self.direct_std_db,
            self.multipath_power_db,
            direct_oscillators,
            multipath_oscillators,
            direct_doppler_hz,
            multipath_doppler_hz,
        ) = parameters
        self._direct = _SumOfSinusoids(int(direct_oscillators), float(direct_doppler_hz), rng)
        self._multipath = _SumOfSinusoids(int(multipath_oscillators), float(multipath_doppler_hz), rng)
        self._direct_phase = complex(np.exp(1j * rng.uniform(-np.pi, np.pi)))
        self._multipath_amplitude = math.sqrt(db_to_linear(float(self.multipath_power_db)))

    def gain_db(self, time_s: float) -> float:
        direct_db = self.direct_mean_db + self.direct_std_db * self._direct.real_gain(time_s)
        direct = 10.0 ** (direct_db / 20.0) * self._direct_phase
        multipath = self._multipath_amplitude * self._multipath.complex_gain(time_s)
        return amplitude_to_db(abs(direct + multipath), FADING_FLOOR_DB)

    def support_db(self) -> Tuple[float, float]:
        max_direct_db = self.direct_mean_db + self.direct_std_db * math.sqrt(2.0) * self._direct.max_amplitude
        upper = 10.0 ** (max_direct_db / 20.0) + self._multipath_amplitude * self._multipath.max_amplitude
        return FADING_FLOOR_DB, max(FADING_FLOOR_DB, 20.0 * math.log10(upper))


def make_fader(conf: FaderConf, parameters: Sequence[float], rng: np.random.Generator):
    """Create the fader matching the family of ``conf``."""
    if isinstance(conf, LooConf):
        return LooFader(parameters, rng)
    if isinstance(conf, RayleighConf):
        return RayleighFader(parameters, rng)
    raise TypeError(f"No fader for configuration type {type(conf).__name__}")
