"""
Per-link Markov fading state machine.

The chain advances by terminal travel rather than by wall time: each state
lasts an exponentially distributed distance, and a query consumes
``elapsed * max(velocity, velocity_floor)`` metres. Dwell and transition
draws come from the chain's own generator while fader phases come from a
separate one, so for a given elevation and velocity history the chain's path
does not depend on how often, or when, the model is sampled.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

import numpy as np

from .faders import make_fader
from .markov_conf import BucketSelection, MarkovConf

logger = logging.getLogger(__name__)

MIN_DWELL_DISTANCE_M = 1e-9


class MarkovFadingModel:
    """
    Markov fading state for one link.

    Parameters
    ----------
    conf : MarkovConf
        Shared, read-only chain configuration.
    rng : numpy.random.Generator
        Source for dwell and transition draws of this link only.
    start_time_s : float
        Simulation time the chain starts at.
    fader_rng : numpy.random.Generator, optional
        Source for fader phases. Defaults to a child spawned from ``rng``.
    """

    def __init__(
        self,
        conf: MarkovConf,
        rng: np.random.Generator,
        start_time_s: float = 0.0,
        fader_rng: Optional[np.random.Generator] = None,
    ):
        self.conf = conf
        self.state = conf.initial_state
        self.last_update_s = float(start_time_s)
        self.bucket_index: Optional[int] = None
        self.selection: Optional[BucketSelection] = None
        self.transition_count = 0
        self.last_fader = None
        self._rng = rng
        self._fader_rng = rng.spawn(1)[0] if fader_rng is None else fader_rng
        self._remaining_dwell_m: Optional[float] = None
        self._faders: Dict[Tuple[int, int], object] = {}

    def _draw_dwell(self, mean_m: float) -> float:
        return max(MIN_DWELL_DISTANCE_M, float(self._rng.exponential(mean_m)))

    def advance(self, time_s: float, elevation_deg: float, velocity_mps: float) -> int:
        """
        Move the chain forward to ``time_s`` and return the number of transitions.

        The bucket is resolved from ``elevation_deg`` on every call. Every dwell
        boundary crossed is drawn individually, so the cost of a query grows
        with ``travelled distance / mean dwell distance``.
        """
        time_s = float(time_s)
        if time_s < self.last_update_s:
            raise ValueError(
                f"time moved backwards: query at {time_s} s before last update {self.last_update_s} s"
            )
        selection = self.conf.select(elevation_deg)
        self.selection = selection
        self.bucket_index = selection.nearest
        if self._remaining_dwell_m is None:
            self._remaining_dwell_m = self._draw_dwell(self.conf.mean_dwell_distance_m(selection, self.state))

        speed = abs(float(velocity_mps))
        if not np.isfinite(speed):
            raise ValueError(f"velocity must be finite, got {velocity_mps!r}")
        speed = max(speed, self.conf.velocity_floor_mps)
        travelled = (time_s - self.last_update_s) * speed
        self.last_update_s = time_s
        if travelled < self._remaining_dwell_m:
            self._remaining_dwell_m -= travelled
            return 0

        states = range(self.conf.state_count)
        cumulative = np.cumsum([self.conf.transition_row(selection, s) for s in states], axis=1)
        dwell_means = [self.conf.mean_dwell_distance_m(selection, s) for s in states]
        last_state = self.conf.state_count - 1
        start_state = self.state
        transitions = 0
        while travelled >= self._remaining_dwell_m:
            travelled -= self._remaining_dwell_m
            index = int(np.searchsorted(cumulative[self.state], self._rng.random(), side="right"))
            self.state = min(index, last_state)
            transitions += 1
            self._remaining_dwell_m = self._draw_dwell(dwell_means[self.state])
        self._remaining_dwell_m -= travelled
        self.transition_count += transitions
        logger.debug(
            f"Markov chain made {transitions} transition(s) {start_state} -> {self.state} "
            f"(bucket {selection.nearest})"
        )
        return transitions

    def fader(self, bucket_index: int, state: int):
        key = (bucket_index, state)
        fader = self._faders.get(key)
        if fader is None:
            parameters = self.conf.fader_parameters(bucket_index, state)
            fader = make_fader(self.conf.fader_conf, parameters, self._fader_rng)
            self._faders[key] = fader
        return fader

    def get_fading_db(self, time_s: float, elevation_deg: float, velocity_mps: float) -> float:
        """Advance to ``time_s`` and return the fading sample of the resulting state in dB."""
        self.advance(time_s, elevation_deg, velocity_mps)
        fader = self.fader(self.bucket_index, self.state)
        self.last_fader = fader
        value = fader.gain_db(time_s)
        logger.debug(
            f"fading at {time_s:.6f} s: elevation {float(elevation_deg):.2f} deg, bucket {self.bucket_index}, "
            f"state {self.state}, {value:.3f} dB"
        )
        return value
