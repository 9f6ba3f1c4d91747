# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# This software is the intellectual property of Professor Andrew Zahrt
# Contributions by graduate students Scott Laverty are acknowledged.
# All rights reserved.
# ------------------------------------------------------------------------------

from .devices import Device, DeviceError
from .pump import Pump
from .router import Router, RouterError
from .transport import SerialTransport, Transport, escape_chars

__all__ = [
    "Device",
    "DeviceError",
    "Pump",
    "Router",
    "RouterError",
    "SerialTransport",
    "Transport",
    "escape_chars",
]
