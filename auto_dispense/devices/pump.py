# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# This software is the intellectual property of Professor Andrew Zahrt
# Contributions by graduate students Scott Laverty are acknowledged.
# All rights reserved.
# ------------------------------------------------------------------------------

import logging
import time

from .devices import Device
from .transport import Transport, escape_chars

'''
The purpose of this code is to control the two addressed syringe pumps on the
shared pump bus. Commands run in the background on the pump, so every command
is followed by polling the status register until the pump reports idle.
'''

logger = logging.getLogger(__name__)

EOL = "\r\n"
STATUS_QUERY = "/1Q29" + EOL
IDLE_STATUS = "/0c"

# Pump 1 homes and primes through the water line, pump 2 only homes.
INIT_PROGRAMS = (
    "/1ZgI4A12000O3A0G3R" + EOL,
    "/2ZR" + EOL,
)


class Pump(Device):
    """Two syringe pumps (addresses 1 and 2) behind one serial port.

    Command strings are complete pump programs composed by the caller;
    this driver only sends them and waits for completion.
    """

    def __init__(self, transport: Transport, settle_delay: float = 1.0,
                 poll_interval: float = 1.0, name: str = "pump"):
        super().__init__(name, transport)
        self.settle_delay = settle_delay
        self.poll_interval = poll_interval

    def connect(self) -> None:
        if self.connected:
            return
        self.initialize()
        self._connected = True

    def initialize(self) -> None:
        for program in INIT_PROGRAMS:
            self.execute(program)
        logger.info("Pumps initialized")

    def is_idle(self) -> bool:
        self.transport.write(STATUS_QUERY, silent=True)
        reply = self.transport.readline(EOL, silent=True)
        # status frame is wrapped in one start byte and one end byte
        return reply[1:-1] == IDLE_STATUS

    def await_availability(self) -> None:
        """Block until the pump bus reports idle."""
        # TODO: add a polling deadline once a stuck-pump policy is agreed; this loops forever today.
        while not self.is_idle():
            time.sleep(self.poll_interval)

    def execute(self, command: str) -> None:
        self.transport.drain()
        logger.debug("Pump program: %s", escape_chars(command))
        self.transport.write(command)
        time.sleep(self.settle_delay)  # let the pump pick the command up before polling
        self.await_availability()
