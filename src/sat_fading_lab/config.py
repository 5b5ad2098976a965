"""
Top-level simulation configuration.

Example configuration JSON::

    {
      "state_count": 3,
      "markov": {
        "velocity_floor_mps": 0.5,
        "fader": {"family": "loo"}
      },
      "bbframe": {"symbol_rate_baud": 27.5e6, "pilots": true},
      "trace_root": "/path/to/simulation/root"
    }

Sections that are left out use the built-in defaults.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import json

from .bbframe_conf import BbFrameConf
from .errors import ConfigurationError
from .helpers import validate_int
from .markov_conf import MarkovConf
from .trace_cache import FADING_LAYOUT, INTERFERENCE_LAYOUT, TraceCache

CONFIG_KEYS = ("state_count", "markov", "bbframe", "trace_root")


@dataclass(frozen=True)
class SimulationConfig:
    """
    Validated configuration for the fading, trace and framing components.

    Attributes:
        state_count: Number of Markov fading states
        markov: Elevation buckets and fader parameters
        bbframe: Scheme/frame-type capacity and duration table
        trace_root: Simulation root for trace files (None disables traces)
    """
    state_count: int = 3
    markov: MarkovConf = field(default_factory=MarkovConf.default)
    bbframe: BbFrameConf = field(default_factory=BbFrameConf.dvbs2)
    trace_root: Optional[Path] = None

    def __post_init__(self):
        validate_int("state_count", self.state_count, min_value=1)
        if self.markov.state_count != self.state_count:
            raise ConfigurationError(
                f"state_count {self.state_count} does not match Markov buckets "
                f"({self.markov.state_count} states)"
            )
        if self.trace_root is not None and not isinstance(self.trace_root, Path):
            object.__setattr__(self, "trace_root", Path(self.trace_root))

    def interference_traces(self) -> TraceCache:
        return TraceCache(self._require_trace_root(), layout=INTERFERENCE_LAYOUT)

    def fading_traces(self) -> TraceCache:
        return TraceCache(self._require_trace_root(), layout=FADING_LAYOUT)

    def _require_trace_root(self) -> Path:
        if self.trace_root is None:
            raise ConfigurationError("trace_root is not configured")
        return self.trace_root

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SimulationConfig":
        unknown = sorted(set(d) - set(CONFIG_KEYS))
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {unknown} (expected {list(CONFIG_KEYS)})")
        markov = MarkovConf.from_dict(d.get("markov", {}))
        state_count = d.get("state_count", markov.state_count)
        bbframe = BbFrameConf.from_dict(d.get("bbframe", {}))
        trace_root = d.get("trace_root")
        return cls(
            state_count=state_count,
            markov=markov,
            bbframe=bbframe,
            trace_root=Path(trace_root) if trace_root is not None else None,
        )

    @classmethod
    def from_file(cls, path: str) -> "SimulationConfig":
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigurationError: If the JSON is not an object or a value is invalid
        """
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        with open(file_path, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration JSON must be an object")
        return cls.from_dict(data)
