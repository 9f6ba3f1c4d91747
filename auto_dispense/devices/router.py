# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# Contributions by graduate student Scott Laverty are acknowledged.
# All rights reserved.
# ------------------------------------------------------------------------------

'''
Driver for the three-axis gantry ("router") that carries the dispensing head.
One CRLF-terminated G-code line out, exactly one reply line back.
'''

import logging
import time

from .devices import Device, DeviceError
from .transport import Transport, escape_chars

logger = logging.getLogger(__name__)

EOL = "\r\n"
ACK = "G1:OK"


class RouterError(DeviceError):
    pass


class Router(Device):
    def __init__(self, transport: Transport, boot_delay: float = 5.0, name: str = "router"):
        super().__init__(name, transport)
        self.boot_delay = boot_delay  # firmware prints a banner after reset

    # ---------- lifecycle ----------
    def connect(self) -> None:
        if self.connected:
            return
        self.home()
        self._connected = True

    def home(self) -> None:
        """Swallow the boot banner, then send G28 and consume its acknowledgement."""
        self.transport.drain()
        time.sleep(self.boot_delay)
        banner = self.transport.readline(EOL)
        logger.info("Router banner: %s", banner)
        self.transport.write("G28" + EOL)
        reply = self.transport.readline(EOL)
        logger.info("Router homed (%s)", reply)

    # ---------- commands ----------
    def execute(self, command: str) -> None:
        """Send a G-code line and require `G1:OK` back."""
        self.transport.write(command)
        reply = self.transport.readline(EOL)
        if reply != ACK:
            logger.debug("Router replied [%s] to [%s]", reply, escape_chars(command))
            raise RouterError(f"Router - error executing command: [{escape_chars(command)}]")

    def move(self, x: int, y: int, z: int) -> None:
        """Absolute move in device units."""
        self.execute(f"G1X{x}Y{y}Z{z}{EOL}")
