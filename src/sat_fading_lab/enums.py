"""
Channel, frame and modulation/coding identifiers shared across the package.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
import re

from .errors import ConfigurationError


class ChannelType(Enum):
    FORWARD_FEEDER_CH = "forward_feeder"
    FORWARD_USER_CH = "forward_user"
    RETURN_USER_CH = "return_user"
    RETURN_FEEDER_CH = "return_feeder"


class FrameType(Enum):
    SHORT_FRAME = "short"
    NORMAL_FRAME = "normal"
    DUMMY_FRAME = "dummy"


_BITS_PER_SYMBOL = {"QPSK": 2, "8PSK": 3, "16APSK": 4, "32APSK": 5}


class ModCod(Enum):
    """DVB-S2 modulation and coding schemes."""
    QPSK_1_TO_4 = "QPSK-1/4"
    QPSK_1_TO_3 = "QPSK-1/3"
    QPSK_2_TO_5 = "QPSK-2/5"
    QPSK_1_TO_2 = "QPSK-1/2"
    QPSK_3_TO_5 = "QPSK-3/5"
    QPSK_2_TO_3 = "QPSK-2/3"
    QPSK_3_TO_4 = "QPSK-3/4"
    QPSK_4_TO_5 = "QPSK-4/5"
    QPSK_5_TO_6 = "QPSK-5/6"
    QPSK_8_TO_9 = "QPSK-8/9"
    QPSK_9_TO_10 = "QPSK-9/10"
    PSK8_3_TO_5 = "8PSK-3/5"
    PSK8_2_TO_3 = "8PSK-2/3"
    PSK8_3_TO_4 = "8PSK-3/4"
    PSK8_5_TO_6 = "8PSK-5/6"
    PSK8_8_TO_9 = "8PSK-8/9"
    PSK8_9_TO_10 = "8PSK-9/10"
    APSK16_2_TO_3 = "16APSK-2/3"
    APSK16_3_TO_4 = "16APSK-3/4"
    APSK16_4_TO_5 = "16APSK-4/5"
    APSK16_5_TO_6 = "16APSK-5/6"
    APSK16_8_TO_9 = "16APSK-8/9"
    APSK16_9_TO_10 = "16APSK-9/10"
    APSK32_3_TO_4 = "32APSK-3/4"
    APSK32_4_TO_5 = "32APSK-4/5"
    APSK32_5_TO_6 = "32APSK-5/6"
    APSK32_8_TO_9 = "32APSK-8/9"
    APSK32_9_TO_10 = "32APSK-9/10"

    @property
    def modulation(self) -> str:
        return self.value.split("-")[0]

    @property
    def code_rate(self) -> Fraction:
        return Fraction(self.value.split("-")[1])

    @property
    def bits_per_symbol(self) -> int:
        return _BITS_PER_SYMBOL[self.modulation]

    @classmethod
    def from_name(cls, name: str) -> "ModCod":
        """Resolve "QPSK-3/4", "qpsk_3_to_4" or "QPSK_3_TO_4" to a ModCod."""
        text = str(name).strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        match = re.fullmatch(r"(?i)(qpsk|8psk|16apsk|32apsk)[-_ ](\d+)(?:/|_to_)(\d+)", text)
        if match:
            candidate = f"{match.group(1).upper()}-{match.group(2)}/{match.group(3)}"
            for member in cls:
                if member.value == candidate:
                    return member
        raise ConfigurationError(f"Unknown modcod: {name!r}")


@dataclass(frozen=True)
class LinkKey:
    """Link identity: terminal address plus channel type."""
    address: str
    channel: ChannelType

    def __post_init__(self):
        if not isinstance(self.channel, ChannelType):
            raise ConfigurationError(
                f"LinkKey channel must be a ChannelType, got {self.channel!r}"
            )

    @property
    def filename_stem(self) -> str:
        safe_address = re.sub(r"[^A-Za-z0-9._-]", "-", str(self.address)) or "none"
        return f"{safe_address}_{self.channel.value}"
