"""
Lazily loaded, file-backed trace series keyed by link identity.

Registering a key only records where its trace lives; the file is read on
the first lookup and never touched again. Each ``(key, column)`` pair keeps
its own read cursor that moves forward by one row per derived lookup.

Trace files are plain whitespace-separated numeric columns with ``#``
comments, one row per sample, in the column order given by the layout::

    # time_s  rx_power_density  interference_density
    0.000     1.2e-19           3.4e-21
    0.001     1.1e-19           3.6e-21
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union
import logging
import warnings

import numpy as np

from .enums import LinkKey
from .errors import ConfigurationError, NotFound, SourceExhausted

logger = logging.getLogger(__name__)

TraceValue = Union[float, NotFound, SourceExhausted]


@dataclass(frozen=True)
class TraceLayout:
    """Column names of a trace file, in file order, and its default directory."""
    name: str
    columns: Tuple[str, ...]
    subdir: str

    def index(self, column: str) -> int:
        try:
            return self.columns.index(column)
        except ValueError:
            raise ConfigurationError(
                f"{self.name} traces have no column {column!r} (columns: {self.columns})"
            ) from None

    @property
    def width(self) -> int:
        return len(self.columns)


INTERFERENCE_LAYOUT = TraceLayout(
    name="interference",
    columns=("time_s", "rx_power_density", "interference_density"),
    subdir="data/interferencetraces/input",
)

FADING_LAYOUT = TraceLayout(
    name="fading",
    columns=("time_s", "fading_db"),
    subdir="data/fadingtraces/input",
)


@dataclass(frozen=True)
class TraceSeries:
    """Immutable samples loaded from one trace file."""
    key: LinkKey
    source: Path
    layout: TraceLayout
    values: np.ndarray

    def __post_init__(self):
        self.values.setflags(write=False)

    def __len__(self) -> int:
        return int(self.values.shape[0])

    def column(self, name: str) -> np.ndarray:
        return self.values[:, self.layout.index(name)]


@dataclass
class _TraceEntry:
    path: Path
    series: Optional[TraceSeries] = None
    cursors: Dict[str, int] = field(default_factory=dict)


class TraceCache:
    """
    Map from ``LinkKey`` to a lazily loaded ``TraceSeries``.

    Parameters
    ----------
    root_path : str or Path
        Simulation root directory.
    layout : TraceLayout
        Column layout shared by every file in this cache.
    subdir : str, optional
        Directory under ``root_path`` holding the files. Defaults to the layout's.
    suffix : str
        File name suffix appended to the key's file stem.
    """

    def __init__(
        self,
        root_path: Union[str, Path],
        layout: TraceLayout = INTERFERENCE_LAYOUT,
        subdir: Optional[str] = None,
        suffix: str = ".dat",
    ):
        self.root_path = Path(root_path)
        self.layout = layout
        self.subdir = layout.subdir if subdir is None else subdir
        self.suffix = suffix
        self._entries: Dict[LinkKey, _TraceEntry] = {}
        self._load_count = 0

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> Iterator[LinkKey]:
        return iter(self._entries)

    @property
    def load_count(self) -> int:
        """Number of trace files read so far."""
        return self._load_count

    def path_for(self, key: LinkKey) -> Path:
        return self.root_path / self.subdir / f"{key.filename_stem}{self.suffix}"

    def register(self, key: LinkKey) -> None:
        """Bind ``key`` to its trace file. Idempotent; does not read the file."""
        if not isinstance(key, LinkKey):
            raise ConfigurationError(f"trace keys must be LinkKey instances, got {key!r}")
        if key not in self._entries:
            self._entries[key] = _TraceEntry(path=self.path_for(key))
            logger.debug(f"Registered {self.layout.name} trace for {key} at {self._entries[key].path}")

    def find(self, key: LinkKey) -> Union[TraceSeries, NotFound]:
        """Return the series for ``key``, loading it on first access."""
        entry = self._entries.get(key)
        if entry is None:
            return NotFound(key)
        return self._series(key, entry)

    def _series(self, key: LinkKey, entry: _TraceEntry) -> TraceSeries:
        if entry.series is None:
            entry.series = self._read(key, entry.path)
            self._load_count += 1
            logger.info(f"Loaded {len(entry.series)} {self.layout.name} samples for {key} from {entry.path}")
        return entry.series

    def _read(self, key: LinkKey, path: Path) -> TraceSeries:
        if not path.is_file():
            raise ConfigurationError(f"{self.layout.name} trace for {key} not found: {path}")
        with warnings.catch_warnings():
            # Empty files are valid (zero samples); numpy warns about them.
            warnings.simplefilter("ignore", UserWarning)
            try:
                values = np.loadtxt(path, dtype=float, comments="#", ndmin=2)
            except ValueError as exc:
                raise ConfigurationError(f"{self.layout.name} trace for {key} is malformed: {path}: {exc}") from exc
        if values.size == 0:
            values = np.empty((0, self.layout.width), dtype=float)
        if values.shape[1] < self.layout.width:
            raise ConfigurationError(
                f"{self.layout.name} trace for {key} has {values.shape[1]} columns, "
                f"expected {self.layout.width} {self.layout.columns}: {path}"
            )
        return TraceSeries(key=key, source=path, layout=self.layout, values=values)

    def next_value(self, key: LinkKey, column: str) -> TraceValue:
        """Return the sample under the ``(key, column)`` cursor and advance the cursor."""
        entry = self._entries.get(key)
        if entry is None:
            return NotFound(key)
        col = self.layout.index(column)
        series = self._series(key, entry)
        cursor = entry.cursors.get(column, 0)
        if cursor >= len(series):
            return SourceExhausted(key=key, column=column, length=len(series))
        entry.cursors[column] = cursor + 1
        value = float(series.values[cursor, col])
        logger.debug(f"{self.layout.name} trace {key} {column}[{cursor}] = {value}")
        return value

    def interference_density(self, key: LinkKey) -> TraceValue:
        return self.next_value(key, "interference_density")

    def rx_power_density(self, key: LinkKey) -> TraceValue:
        return self.next_value(key, "rx_power_density")

    def fading_db(self, key: LinkKey) -> TraceValue:
        return self.next_value(key, "fading_db")

    def mean(self, key: LinkKey, column: str) -> TraceValue:
        """Mean of a whole column. Does not move any cursor."""
        entry = self._entries.get(key)
        if entry is None:
            return NotFound(key)
        col = self.layout.index(column)
        series = self._series(key, entry)
        if len(series) == 0:
            return SourceExhausted(key=key, column=column, length=0)
        return float(np.mean(series.values[:, col]))

    def mean_rx_power_density(self, key: LinkKey) -> TraceValue:
        return self.mean(key, "rx_power_density")

    def mean_interference_density(self, key: LinkKey) -> TraceValue:
        return self.mean(key, "interference_density")

    def cursor(self, key: LinkKey, column: str) -> Union[int, NotFound]:
        entry = self._entries.get(key)
        if entry is None:
            return NotFound(key)
        self.layout.index(column)
        return entry.cursors.get(column, 0)

    def reset(self, key: Optional[LinkKey] = None) -> None:
        """Rewind the cursors of ``key``, or of every key when ``key`` is None."""
        if key is None:
            for entry in self._entries.values():
                entry.cursors.clear()
            return
        entry = self._entries.get(key)
        if entry is not None:
            entry.cursors.clear()
