"""
Per-terminal fading entry point.

The facade owns one Markov model per ``LinkKey`` and, in trace-driven mode,
the trace registrations for those keys. Elevation and velocity are read from
the supplied query functions at the moment of every request and never cached.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Set
import logging

import numpy as np

from .enums import LinkKey
from .errors import ConfigurationError, NotFound, SourceExhausted
from .helpers import validate_seed
from .markov_conf import MarkovConf
from .markov_model import MarkovFadingModel
from .trace_cache import TraceCache

logger = logging.getLogger(__name__)

EXHAUSTED_POLICIES = ("fallback", "wrap")


@dataclass(frozen=True)
class LinkInputs:
    """Zero-argument query functions for the terminal's current geometry."""
    elevation_deg: Callable[[], float]
    velocity_mps: Callable[[], float]

    def __post_init__(self):
        if not callable(self.elevation_deg) or not callable(self.velocity_mps):
            raise ConfigurationError("LinkInputs requires callable elevation_deg and velocity_mps")


class FadingFacade:
    """
    Route fading requests to per-link models or trace series.

    Parameters
    ----------
    markov_conf : MarkovConf
        Chain configuration used for every Markov model this facade creates.
    inputs : LinkInputs
        Elevation and velocity query functions.
    clock : callable
        Returns the current simulation time in seconds.
    seed : int
        Root seed; each new link model gets its own child stream.
    trace_cache : TraceCache, optional
        When given, fading is read from its ``fading_db`` column instead of
        the Markov models.
    exhausted_policy : str
        Trace mode only. ``"fallback"`` answers from the link's Markov model once
        its trace runs out; ``"wrap"`` rewinds the trace and keeps reading.
    """

    def __init__(
        self,
        markov_conf: MarkovConf,
        inputs: LinkInputs,
        clock: Callable[[], float],
        seed: Optional[int] = 0,
        trace_cache: Optional[TraceCache] = None,
        exhausted_policy: str = "fallback",
    ):
        if exhausted_policy not in EXHAUSTED_POLICIES:
            raise ConfigurationError(
                f"exhausted_policy must be one of {EXHAUSTED_POLICIES}, got {exhausted_policy!r}"
            )
        if trace_cache is not None and "fading_db" not in trace_cache.layout.columns:
            raise ConfigurationError(
                f"trace-driven fading needs a 'fading_db' column, {trace_cache.layout.name} traces have "
                f"{trace_cache.layout.columns}"
            )
        self.markov_conf = markov_conf
        self.inputs = inputs
        self.clock = clock
        self.trace_cache = trace_cache
        self.exhausted_policy = exhausted_policy
        self._seed_sequence = np.random.SeedSequence(validate_seed(seed))
        self._models: Dict[LinkKey, MarkovFadingModel] = {}
        self._fallback_keys: Set[LinkKey] = set()

    @property
    def trace_driven(self) -> bool:
        return self.trace_cache is not None

    def __contains__(self, key: object) -> bool:
        return key in self._models or (self.trace_cache is not None and key in self.trace_cache)

    def __len__(self) -> int:
        return len(self._models)

    def keys(self) -> Iterator[LinkKey]:
        return iter(self._models)

    def model(self, key: LinkKey) -> Optional[MarkovFadingModel]:
        return self._models.get(key)

    def _model_for(self, key: LinkKey) -> MarkovFadingModel:
        model = self._models.get(key)
        if model is None:
            if not isinstance(key, LinkKey):
                raise ConfigurationError(f"fading keys must be LinkKey instances, got {key!r}")
            rng = np.random.default_rng(self._seed_sequence.spawn(1)[0])
            model = MarkovFadingModel(self.markov_conf, rng, start_time_s=float(self.clock()))
            self._models[key] = model
            logger.info(f"Created Markov fading model for {key} in state {model.state}")
        return model

    def _markov_fading(self, key: LinkKey) -> float:
        model = self._model_for(key)
        return model.get_fading_db(
            self.clock(),
            self.inputs.elevation_deg(),
            self.inputs.velocity_mps(),
        )

    def get_fading(self, key: LinkKey) -> float:
        """Return the fading sample in dB for ``key`` at the current simulation time."""
        if self.trace_cache is None:
            return self._markov_fading(key)

        self.trace_cache.register(key)
        value = self.trace_cache.fading_db(key)
        if isinstance(value, SourceExhausted) and self.exhausted_policy == "wrap" and value.length > 0:
            logger.warning(f"Fading trace for {key} exhausted after {value.length} samples, rewinding")
            self.trace_cache.reset(key)
            value = self.trace_cache.fading_db(key)
        if isinstance(value, (SourceExhausted, NotFound)):
            if key not in self._fallback_keys:
                self._fallback_keys.add(key)
                logger.warning(f"No fading trace sample for {key} ({value}), using Markov model")
            return self._markov_fading(key)
        return value
