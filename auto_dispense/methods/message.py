# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# This software is the intellectual property of Professor Andrew Zahrt
# Contributions by graduate students Scott Laverty are acknowledged.
# Do not replicate or redistribute without permission
# All rights reserved.
# ------------------------------------------------------------------------------

"""
Host frame codec.

A frame is one line ``<channel>,<data>,<crcHex>`` where crcHex is the
CRC-32 (IEEE) of the data bytes. A `Message` only exists once the CRC has
been checked.
"""

import re
import zlib
from dataclasses import dataclass

from ..devices.transport import ENCODING

COMMAND_CHANNEL = 4

_CHANNEL = re.compile(r"^[+-]?[0-9]+\Z")
_CRC = re.compile(r"^[0-9a-fA-F]+\Z")


class MessageError(ValueError):
    """Malformed frame or CRC mismatch."""


def crc32(data: str) -> int:
    return zlib.crc32(data.encode(ENCODING)) & 0xFFFFFFFF


@dataclass(frozen=True)
class Message:
    channel: int
    data: str
    crc: int

    @classmethod
    def build(cls, channel: int, data: str) -> "Message":
        return cls(channel=channel, data=data, crc=crc32(data))


def parse_message(line: str) -> Message:
    """Validate one frame (newline already removed) into a Message."""
    parts = line.split(',')
    if len(parts) != 3:
        raise MessageError(f"Expected 3 fields, got {len(parts)}")
    channel_s, data, crc_s = parts

    if not _CHANNEL.match(channel_s):
        raise MessageError(f"Invalid channel {channel_s!r}")
    channel = int(channel_s)
    if not -128 <= channel <= 127:
        raise MessageError(f"Channel {channel} out of range")

    if not _CRC.match(crc_s):
        raise MessageError(f"Invalid CRC field {crc_s!r}")
    crc = int(crc_s, 16)
    if crc > 0xFFFFFFFF:
        raise MessageError(f"CRC field {crc_s!r} exceeds 32 bits")

    if crc32(data) != crc:
        raise MessageError("Invalid CRC")
    return Message(channel=channel, data=data, crc=crc)


def serialize_message(msg: Message) -> str:
    """Frame a Message as the host would send it (without the newline)."""
    return f"{msg.channel},{msg.data},{msg.crc:08x}"
