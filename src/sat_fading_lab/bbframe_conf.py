"""
Scheme/frame-type capacity and duration table for BBFrames.

The default table follows DVB-S2 (ETSI EN 302 307): payload is the BCH
information block (Kbch) less the 80-bit BBHEADER, and the duration is the
physical-layer frame length (PLHEADER, 90-symbol slots and optional pilot
blocks) divided by the symbol rate.

Example JSON table::

    {
      "dummy_frame_duration_s": 1.2e-4,
      "entries": [
        {"modcod": "QPSK-3/4", "frame_type": "short", "payload_bits": 8000, "duration_s": 3.0e-4}
      ]
    }
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple
import json

from .enums import FrameType, ModCod
from .errors import ConfigurationError
from .helpers import validate_float, validate_int

BBHEADER_BITS = 80
SLOT_SYMBOLS = 90
PLHEADER_SYMBOLS = 90
PILOT_BLOCK_SYMBOLS = 36
PILOT_PERIOD_SLOTS = 16
DUMMY_FRAME_SLOTS = 36
LDPC_BLOCK_BITS = {FrameType.SHORT_FRAME: 16200, FrameType.NORMAL_FRAME: 64800}

# Kbch per code rate (EN 302 307 tables 5a and 5b). 9/10 has no short frame.
KBCH_BITS = {
    FrameType.SHORT_FRAME: {
        "1/4": 3072, "1/3": 5232, "2/5": 6312, "1/2": 7032, "3/5": 9552,
        "2/3": 10632, "3/4": 11712, "4/5": 12432, "5/6": 13152, "8/9": 14232,
    },
    FrameType.NORMAL_FRAME: {
        "1/4": 16008, "1/3": 21408, "2/5": 25728, "1/2": 32208, "3/5": 38688,
        "2/3": 43040, "3/4": 48408, "4/5": 51648, "5/6": 53840, "8/9": 57472,
        "9/10": 58192,
    },
}

_FRAME_TYPE_NAMES = {
    "short": FrameType.SHORT_FRAME,
    "normal": FrameType.NORMAL_FRAME,
    "dummy": FrameType.DUMMY_FRAME,
}


def frame_type_from_name(name: Any) -> FrameType:
    if isinstance(name, FrameType):
        return name
    key = str(name).strip().lower()
    if key.startswith("sat_"):
        key = key[len("sat_"):]
    key = key.replace("_frame", "")
    if key not in _FRAME_TYPE_NAMES:
        raise ConfigurationError(f"Unknown frame type: {name!r}")
    return _FRAME_TYPE_NAMES[key]


@dataclass(frozen=True)
class BbFrameEntry:
    payload_bits: int
    duration_s: float

    def __post_init__(self):
        object.__setattr__(self, "payload_bits", validate_int("payload_bits", self.payload_bits, min_value=0))
        duration = validate_float("duration_s", self.duration_s)
        if duration <= 0.0:
            raise ConfigurationError(f"duration_s must be > 0, got {duration}")
        object.__setattr__(self, "duration_s", duration)


def plframe_symbols(modcod: ModCod, frame_type: FrameType, pilots: bool = True) -> int:
    """Physical-layer frame length in symbols for a short or normal frame."""
    data_symbols = LDPC_BLOCK_BITS[frame_type] // modcod.bits_per_symbol
    slots = data_symbols // SLOT_SYMBOLS
    pilot_blocks = (slots - 1) // PILOT_PERIOD_SLOTS if pilots else 0
    return PLHEADER_SYMBOLS + slots * SLOT_SYMBOLS + pilot_blocks * PILOT_BLOCK_SYMBOLS


class BbFrameConf:
    """
    Validated ``(modcod, frame type) -> (payload bits, duration)`` table.

    Parameters
    ----------
    entries : mapping
        ``{(ModCod, FrameType): BbFrameEntry}`` for short and normal frames.
    dummy_frame_duration_s : float
        Duration of a dummy frame, independent of the scheme.
    """

    def __init__(
        self,
        entries: Mapping[Tuple[ModCod, FrameType], BbFrameEntry],
        dummy_frame_duration_s: float,
    ):
        table: Dict[Tuple[ModCod, FrameType], BbFrameEntry] = {}
        for (modcod, frame_type), entry in entries.items():
            if not isinstance(modcod, ModCod):
                raise ConfigurationError(f"BBFrame table key has invalid modcod {modcod!r}")
            if frame_type not in (FrameType.SHORT_FRAME, FrameType.NORMAL_FRAME):
                raise ConfigurationError(
                    f"BBFrame table entries are for short or normal frames, got {frame_type!r} for {modcod.value}"
                )
            if not isinstance(entry, BbFrameEntry):
                raise ConfigurationError(f"BBFrame table value for {modcod.value}/{frame_type.value} must be a BbFrameEntry")
            table[(modcod, frame_type)] = entry
        self._entries = table
        self.dummy_frame_duration_s = validate_float("dummy_frame_duration_s", dummy_frame_duration_s)
        if self.dummy_frame_duration_s <= 0.0:
            raise ConfigurationError(f"dummy_frame_duration_s must be > 0, got {self.dummy_frame_duration_s}")

    def __contains__(self, item: object) -> bool:
        return item in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, modcod: ModCod, frame_type: FrameType) -> BbFrameEntry:
        if frame_type == FrameType.DUMMY_FRAME:
            raise ConfigurationError("dummy frames have no table entry; use the short frame of the same modcod")
        entry = self._entries.get((modcod, frame_type))
        if entry is None:
            raise ConfigurationError(
                f"No BBFrame entry for modcod {getattr(modcod, 'value', modcod)!r} "
                f"and frame type {getattr(frame_type, 'value', frame_type)!r}"
            )
        return entry

    def payload_bits(self, modcod: ModCod, frame_type: FrameType) -> int:
        return self.entry(modcod, frame_type).payload_bits

    def frame_duration_s(self, modcod: ModCod, frame_type: FrameType) -> float:
        return self.entry(modcod, frame_type).duration_s

    @classmethod
    def dvbs2(cls, symbol_rate_baud: float = 27.5e6, pilots: bool = True) -> "BbFrameConf":
        """DVB-S2 table for every modcod/frame-type pair the standard defines."""
        symbol_rate = validate_float("symbol_rate_baud", symbol_rate_baud)
        if symbol_rate <= 0.0:
            raise ConfigurationError(f"symbol_rate_baud must be > 0, got {symbol_rate}")
        entries: Dict[Tuple[ModCod, FrameType], BbFrameEntry] = {}
        for frame_type, kbch in KBCH_BITS.items():
            for modcod in ModCod:
                rate = modcod.value.split("-")[1]
                if rate not in kbch:
                    continue
                entries[(modcod, frame_type)] = BbFrameEntry(
                    payload_bits=kbch[rate] - BBHEADER_BITS,
                    duration_s=plframe_symbols(modcod, frame_type, pilots) / symbol_rate,
                )
        dummy_symbols = PLHEADER_SYMBOLS + DUMMY_FRAME_SLOTS * SLOT_SYMBOLS
        return cls(entries, dummy_frame_duration_s=dummy_symbols / symbol_rate)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BbFrameConf":
        """Build from a JSON-style mapping; with no ``entries`` the DVB-S2 table is used."""
        if "entries" not in d:
            return cls.dvbs2(
                symbol_rate_baud=d.get("symbol_rate_baud", 27.5e6),
                pilots=bool(d.get("pilots", True)),
            )
        entries: Dict[Tuple[ModCod, FrameType], BbFrameEntry] = {}
        for row in d["entries"]:
            try:
                key = (ModCod.from_name(row["modcod"]), frame_type_from_name(row["frame_type"]))
                entry = BbFrameEntry(payload_bits=row["payload_bits"], duration_s=row["duration_s"])
            except KeyError as exc:
                raise ConfigurationError(f"BBFrame entry missing field {exc.args[0]!r}: {row}") from exc
            if key in entries:
                raise ConfigurationError(f"Duplicate BBFrame entry for {key[0].value}/{key[1].value}")
            entries[key] = entry
        if "dummy_frame_duration_s" not in d:
            raise ConfigurationError("BBFrame table requires 'dummy_frame_duration_s'")
        return cls(entries, dummy_frame_duration_s=d["dummy_frame_duration_s"])

    @classmethod
    def from_file(cls, path: str) -> "BbFrameConf":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"BBFrame table not found: {path}")
        with open(file_path, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigurationError("BBFrame table JSON must be an object")
        return cls.from_dict(data)
