"""
BBFrame assembly: pack payload units into a fixed-capacity frame.
"""
from __future__ import annotations

from typing import Any, List, Optional, Tuple, Union
import logging

from .bbframe_conf import BbFrameConf
from .enums import FrameType, ModCod
from .errors import CapacityExceeded, ConfigurationError
from .helpers import validate_int

logger = logging.getLogger(__name__)


def payload_size_bytes(unit: Any) -> int:
    """Size of a payload unit: ``size_bytes`` when present, otherwise ``len(unit)``."""
    size = getattr(unit, "size_bytes", None)
    if size is None:
        try:
            size = len(unit)
        except TypeError:
            raise TypeError(
                f"payload units must define size_bytes or __len__, got {type(unit).__name__}"
            ) from None
    return validate_int("size_bytes", size, min_value=0)


class BbFrame:
    """
    One baseband frame sized by a modcod and frame type.

    Short and normal frames take capacity and duration from the table. A dummy
    frame takes the short-frame capacity of its modcod but the dummy-frame
    duration.

    A frame carrying at least one control PDU is flagged through
    ``contains_control_pdu``.
    """

    def __init__(
        self,
        modcod: Optional[ModCod] = None,
        frame_type: Optional[FrameType] = None,
        conf: Optional[BbFrameConf] = None,
    ):
        if modcod is None or frame_type is None or conf is None:
            raise ConfigurationError(
                "BbFrame requires a modcod, a frame type and a BbFrameConf; "
                "default construction is not supported"
            )
        if not isinstance(modcod, ModCod):
            raise ConfigurationError(f"Invalid modcod for BbFrame: {modcod!r}")

        if frame_type in (FrameType.SHORT_FRAME, FrameType.NORMAL_FRAME):
            max_bytes = conf.payload_bits(modcod, frame_type) // 8
            duration = conf.frame_duration_s(modcod, frame_type)
        elif frame_type == FrameType.DUMMY_FRAME:
            max_bytes = conf.payload_bits(modcod, FrameType.SHORT_FRAME) // 8
            duration = conf.dummy_frame_duration_s
        else:
            raise ConfigurationError(f"Invalid BBFrame type: {frame_type!r}")

        self._modcod = modcod
        self._frame_type = frame_type
        self._max_space_bytes = max_bytes
        self._space_left_bytes = max_bytes
        self._duration_s = duration
        self._payload: List[Any] = []
        self._contains_control_pdu = False

    @property
    def modcod(self) -> ModCod:
        return self._modcod

    @property
    def frame_type(self) -> FrameType:
        return self._frame_type

    @property
    def duration_s(self) -> float:
        return self._duration_s

    @property
    def max_space_bytes(self) -> int:
        return self._max_space_bytes

    @property
    def space_left_bytes(self) -> int:
        return self._space_left_bytes

    @property
    def used_bytes(self) -> int:
        return self._max_space_bytes - self._space_left_bytes

    @property
    def contains_control_pdu(self) -> bool:
        return self._contains_control_pdu

    @property
    def payload_count(self) -> int:
        return len(self._payload)

    def fits(self, unit: Any) -> bool:
        return payload_size_bytes(unit) <= self._space_left_bytes

    def add_payload(self, unit: Any, control: bool = False) -> Union[int, CapacityExceeded]:
        """
        Append ``unit`` and return the space left in bytes.

        A unit larger than the space left is not added; ``CapacityExceeded`` is
        returned and the frame is unchanged. Accepting a unit with ``control=True``
        marks the frame as carrying a control PDU.
        """
        size = payload_size_bytes(unit)
        if size > self._space_left_bytes:
            logger.debug(
                f"BBFrame {self._modcod.value}/{self._frame_type.value}: {size} B rejected, "
                f"{self._space_left_bytes} B left"
            )
            return CapacityExceeded(requested_bytes=size, space_left_bytes=self._space_left_bytes)
        self._payload.append(unit)
        if control:
            self._contains_control_pdu = True
        self._space_left_bytes -= size
        return self._space_left_bytes

    def get_transmit_data(self) -> Tuple[Any, ...]:
        """Accepted payload units in acceptance order."""
        return tuple(self._payload)

    def __repr__(self) -> str:
        return (
            f"BbFrame(modcod={self._modcod.value}, frame_type={self._frame_type.value}, "
            f"used={self.used_bytes}/{self._max_space_bytes} B, units={len(self._payload)}, "
            f"control={self._contains_control_pdu})"
        )
