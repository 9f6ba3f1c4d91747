# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# Contributions by graduate student Scott Laverty are acknowledged.
# All rights reserved.
# ------------------------------------------------------------------------------

"""
Parent class for the serial peripherals driven by the controller.

Design notes (synchronous API):
- Device is an abstract base class (ABC) holding one `Transport`.
- connect() runs the device's startup handshake and close() releases the port.
- Every command a device rejects surfaces as a `DeviceError`.
"""

from __future__ import annotations

import abc

from .transport import Transport


class DeviceError(RuntimeError):
    """A peripheral rejected a command."""


class Device(abc.ABC):
    """Abstract base for the router and the pump (synchronous).

    Subclasses must implement the lifecycle methods and set `self._connected`
    appropriately in connect()/close().
    """

    def __init__(self, name: str, transport: Transport):
        self.name = name
        self.transport = transport
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    @abc.abstractmethod
    def connect(self) -> None:
        """Run the startup handshake with the individual device."""

    @abc.abstractmethod
    def execute(self, command: str) -> None:
        """Send one command and block until the device is done with it."""

    def close(self) -> None:
        """Tear down the connection and mark the device as closed."""
        self.transport.close()
        self._connected = False
