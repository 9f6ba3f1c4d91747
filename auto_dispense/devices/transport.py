# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# This software is the intellectual property of Professor Andrew Zahrt
# Contributions by graduate students Scott Laverty are acknowledged.
# All rights reserved.
# ------------------------------------------------------------------------------

"""
Line-oriented serial I/O shared by the host link, the router and the pump bus.

`Transport` is the small capability the device drivers depend on
(write / readline / drain). `SerialTransport` binds it to a pyserial port;
the tests bind it to an in-memory transcript.
"""

from __future__ import annotations

import abc
import logging
import time
from typing import Optional

import serial

logger = logging.getLogger(__name__)

ENCODING = "latin1"


def escape_chars(text: str) -> str:
    """Make CR/LF visible in log lines."""
    return text.replace("\r", "\\r").replace("\n", "\\n")


class Transport(abc.ABC):
    """Abstract byte stream with line-delimited reads."""

    name: str = "?"

    @abc.abstractmethod
    def write(self, text: str, silent: bool = False) -> None:
        """Best-effort write. Failures are logged, never raised."""

    @abc.abstractmethod
    def readline(self, delimiter: str, silent: bool = False) -> str:
        """Block until `delimiter` ends the buffer; return it without the delimiter."""

    @abc.abstractmethod
    def drain(self) -> None:
        """Discard everything currently queued on the input side."""

    def close(self) -> None:
        pass


class SerialTransport(Transport):
    """pyserial-backed transport.

    The port is opened non-blocking (timeout=0) and polled one byte at a time,
    sleeping `poll_interval` seconds whenever nothing is waiting.
    """

    def __init__(self, port: str, baudrate: int = 9600, poll_interval: float = 10e-6):
        self.name = port
        self.poll_interval = poll_interval
        self.ser: Optional[serial.Serial] = serial.Serial(port, baudrate=baudrate, timeout=0)
        logger.info("Opened serial port %s at %d baud", port, baudrate)

    # ---------- low-level comms ----------
    def write(self, text: str, silent: bool = False) -> None:
        if not silent:
            logger.debug("Writing to port %s: %s", self.name, escape_chars(text))
        try:
            self.ser.write(text.encode(ENCODING))
        except serial.SerialException as e:
            logger.error("FAILED WRITE to port %s: %s", self.name, e)

    def readline(self, delimiter: str, silent: bool = False) -> str:
        # TODO: no read timeout yet; a silent device blocks here forever.
        line = ""
        while True:
            if self.ser.in_waiting:
                line += self.ser.read(1).decode(ENCODING)
            else:
                time.sleep(self.poll_interval)
                continue
            if line.endswith(delimiter):
                if not silent:
                    logger.debug("Got [%s] from port %s", escape_chars(line), self.name)
                return line[: -len(delimiter)]

    def drain(self) -> None:
        while self.ser.in_waiting:
            self.ser.read(self.ser.in_waiting)

    def close(self) -> None:
        try:
            if self.ser and self.ser.is_open:
                self.ser.close()
        except serial.SerialException as e:
            logger.error("Error closing port %s: %s", self.name, e)
        self.ser = None
