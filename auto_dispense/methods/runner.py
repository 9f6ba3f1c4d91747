# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# This software is the intellectual property of Professor Andrew Zahrt
# Contributions by graduate students Scott Laverty are acknowledged.
# Do not replicate or redistribute without permission
# All rights reserved.
# ------------------------------------------------------------------------------

"""
Batch runner: turns each host message into an ordered, acknowledgement-gated
exchange with the router and the pump.

Everything runs on the calling thread. A step that fails raises
`CommandError` or `DeviceError`; the batch logs it, drops the remaining
tokens and reports False.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config import Config, Coordinates
from ..devices.devices import DeviceError
from ..devices.pump import Pump
from ..devices.router import Router
from ..devices.transport import Transport, escape_chars
from ..logger import RunLogger
from .command_type import (
    Command, CommandError, LiquidApplication, Wait, parse_command, split_batch,
)
from .message import COMMAND_CHANNEL, Message, MessageError, parse_message

logger = logging.getLogger(__name__)

EOL = "\r\n"

PUMP_UNITS_PER_UL = 24
PLUNGER_FULL_SCALE = 12000  # pump units

LAST_HOLDER_SLOT = 33
EXTERNAL_SOURCE_CHANNELS = {34: 4, 35: 7, 36: 6}

# fixed pump programs
EVACUATE_SLOT = "/2gI1A12000O2A0G4R" + EOL
DISPENSE_INTO_SLOT = "/1gI1A12000O2A0G12R" + EOL
WATER_RINSE = "/1gI4A12000O1A0G2R" + EOL
AIR_PURGE = "/1gI5A12000O1A0G4R" + EOL

CLEANING_STATION = Coordinates(227, 152, -20)


class BatchState(Enum):
    IDLE = "idle"
    AWAITING_PUMP = "awaiting_pump"
    DISPATCHING = "dispatching"
    ROUTER_STEP = "router_step"
    PUMP_STEP = "pump_step"
    WAIT = "wait"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class ControllerState:
    """The three serial peripherals plus the fluid believed to sit in the slot."""

    application: Transport
    router: Router
    pump: Pump
    slot_occupancy: int = 0

    def close(self) -> None:
        self.router.close()
        self.pump.close()
        self.application.close()


class MethodRunner:
    def __init__(self, config: Config, controller: ControllerState,
                 run_log: Optional[RunLogger] = None):
        self.config = config
        self.controller = controller
        self.run_log = run_log
        self.state = BatchState.IDLE

    # ---------- host side ----------
    def handle_line(self, line: str) -> Optional[bool]:
        """Decode one host line and run it. None when nothing was executed."""
        try:
            msg = parse_message(line)
        except MessageError as e:
            logger.error("Invalid message [%s]: %s", line, e)
            return None
        return self.handle_message(msg)

    def handle_message(self, msg: Message) -> Optional[bool]:
        logger.debug("Parsed message: %d, %s, %08x", msg.channel, msg.data, msg.crc)
        if msg.channel != COMMAND_CHANNEL:
            return None
        return self.execute_batch(msg.data)

    def execute_batch(self, data: str) -> bool:
        for token in split_batch(data):
            try:
                self.state = BatchState.AWAITING_PUMP
                self.controller.pump.await_availability()
                self.state = BatchState.DISPATCHING
                self._execute(parse_command(token))
            except (CommandError, DeviceError) as e:
                self.state = BatchState.ABORTED
                logger.error("Failed to execute [%s]: %s", token, e)
                self._record("Batch", "abort", data, "error", notes=str(e))
                return False
        self.state = BatchState.DONE
        logger.info("Executed command successfully")
        self._record("Batch", "execute", data, "ok")
        return True

    # ---------- core dispatch ----------
    def _execute(self, cmd: Command) -> None:
        if isinstance(cmd, LiquidApplication):
            return self._do_liquid_application(cmd)
        if isinstance(cmd, Wait):
            return self._do_wait(cmd)
        # Placeholder: TC / BTC
        logger.warning("Unimplemented command %s (%s), skipping", cmd.kind, cmd.token)

    def _do_wait(self, cmd: Wait) -> None:
        self.state = BatchState.WAIT
        logger.info("Waiting for %d milliseconds", cmd.milliseconds)
        try:
            time.sleep(cmd.milliseconds / 1000)
        except OverflowError:
            raise CommandError(f"Wait time too long in command {cmd.token}") from None

    def _do_liquid_application(self, cmd: LiquidApplication) -> None:
        logger.debug("Executing liquid application %s", cmd.token)
        units = cmd.volume_ul * PUMP_UNITS_PER_UL
        if units > PLUNGER_FULL_SCALE:
            logger.warning("Volume %d uL is %d pump units, above the %d unit plunger stroke",
                           cmd.volume_ul, units, PLUNGER_FULL_SCALE)

        # resolve the source before anything moves
        channel = None
        target = None
        if cmd.slot_id > LAST_HOLDER_SLOT:
            channel = EXTERNAL_SOURCE_CHANNELS.get(cmd.slot_id)
            if channel is None:
                raise CommandError(f"Unknown external source {cmd.slot_id} in command {cmd.token}")
        else:
            target = self.config.coordinates_for(cmd.slot_id)

        dev = self.controller
        dev.router.transport.drain()
        dev.pump.transport.drain()

        if dev.slot_occupancy > 0:
            logger.info("Evacuating %d uL left in the slot", dev.slot_occupancy)
            self._pump(EVACUATE_SLOT)
            dev.slot_occupancy = 0

        if target is None:
            self._pump(f"/1I{channel}A{units}O1A0R{EOL}")
            self._pump(WATER_RINSE)
            return

        self._move(target.x, target.y, target.z)
        self._pump(f"/1I1A{units}O2A0R{EOL}")
        self._move(target.x, target.y, 0)
        self._pump(DISPENSE_INTO_SLOT)
        dev.slot_occupancy = cmd.volume_ul

        if self.config.constant_cleaning:
            self._clean()

    def _clean(self) -> None:
        self._move(*CLEANING_STATION)
        self._pump(WATER_RINSE)
        self._pump(AIR_PURGE)

    # ---------- device steps ----------
    def _move(self, x: int, y: int, z: int) -> None:
        self.state = BatchState.ROUTER_STEP
        try:
            self.controller.router.move(x, y, z)
        except DeviceError:
            self._record("Router", "move", f"{x}:{y}:{z}", "error")
            raise
        self._record("Router", "move", f"{x}:{y}:{z}", "ok")

    def _pump(self, program: str) -> None:
        self.state = BatchState.PUMP_STEP
        self.controller.pump.execute(program)
        self._record("Pump", "execute", escape_chars(program), "ready")

    def _record(self, comp, act, params, out, notes=""):
        if self.run_log is not None:
            self.run_log.write(comp, act, params, out, notes)
