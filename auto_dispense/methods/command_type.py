# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# This software is the intellectual property of Professor Andrew Zahrt
# Contributions by graduate students Scott Laverty are acknowledged.
# Do not replicate or redistribute without permission
# All rights reserved.
# ------------------------------------------------------------------------------

"""
Command grammar for the batch carried in a message's data field.

Tokens are separated by single spaces; each token is ``KIND_field_field...``:

    LA_<slot>_<reserved>_<volume uL>   liquid application
    W_<milliseconds>                   wait
    TC_... / BTC_...                   temperature change (not implemented)
"""

import re
from dataclasses import dataclass
from typing import List, Union

U32_MAX = 2 ** 32 - 1
U64_MAX = 2 ** 64 - 1

_UNSIGNED = re.compile(r"^\+?[0-9]+\Z")


class CommandError(ValueError):
    """Unknown command kind, missing or unparseable field, or unknown slot."""


@dataclass
class LiquidApplication:
    token: str
    slot_id: int
    reserved: str
    volume_ul: int


@dataclass
class Wait:
    token: str
    milliseconds: int


@dataclass
class Placeholder:
    token: str
    kind: str


Command = Union[LiquidApplication, Wait, Placeholder]


def split_batch(data: str) -> List[str]:
    return data.split(' ')


def _field(token: str, parts: List[str], index: int, name: str) -> str:
    try:
        return parts[index]
    except IndexError:
        raise CommandError(f"Missing {name} in command {token}") from None


def _unsigned(token: str, text: str, name: str, limit: int) -> int:
    if not _UNSIGNED.match(text) or int(text) > limit:
        raise CommandError(f"Invalid {name} '{text}' in command {token}")
    return int(text)


def parse_command(token: str) -> Command:
    parts = token.split('_')
    kind = parts[0]

    if kind == "LA":
        slot = _field(token, parts, 1, "slot id")
        reserved = _field(token, parts, 2, "reserved field")
        volume = _field(token, parts, 3, "volume")
        return LiquidApplication(
            token=token,
            slot_id=_unsigned(token, slot, "slot id", U32_MAX),
            reserved=reserved,
            volume_ul=_unsigned(token, volume, "volume", U32_MAX),
        )

    if kind == "W":
        ms = _field(token, parts, 1, "wait time")
        return Wait(token=token, milliseconds=_unsigned(token, ms, "wait time", U64_MAX))

    if kind in ("TC", "BTC"):
        return Placeholder(token=token, kind=kind)

    raise CommandError(f"Unknown Command {token}")
