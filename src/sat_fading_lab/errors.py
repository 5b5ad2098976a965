"""
Error taxonomy for fading, trace and frame operations.

Configuration problems are raised. Outcomes a caller is expected to handle
(a full frame, an unknown trace key, an exhausted trace) are returned as
small result values instead of the normal return value.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ConfigurationError(ValueError):
    """Raised when a configuration value or table is invalid or missing."""


@dataclass(frozen=True)
class CapacityExceeded:
    """Payload unit does not fit in the remaining frame space."""
    requested_bytes: int
    space_left_bytes: int


@dataclass(frozen=True)
class NotFound:
    """Trace lookup for a key that was never registered."""
    key: Any


@dataclass(frozen=True)
class SourceExhausted:
    """Trace series has no sample left at the cursor position."""
    key: Any
    column: str
    length: int
