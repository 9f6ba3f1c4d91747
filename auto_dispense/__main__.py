# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# This software is the intellectual property of Professor Andrew Zahrt
# Contributions by graduate students Scott Laverty are acknowledged.
# All rights reserved.
# ------------------------------------------------------------------------------

"""
Controller entry point: load config, open the three ports, home the router,
initialize the pumps, then serve host messages until killed.
"""

import logging
import sys
from typing import Callable, Optional

import serial

from .config import Config, ConfigError, load_config
from .devices.pump import Pump
from .devices.router import Router
from .devices.transport import SerialTransport, Transport
from .logger import RunLogger, configure_logging
from .methods.runner import ControllerState, MethodRunner

logger = logging.getLogger(__name__)

APPLICATION_BAUD_RATE = 9600
PUMP_BAUD_RATE = 9600
HOST_EOL = "\n"

TransportFactory = Callable[[str, int], Transport]


def open_controller(config: Config, transport_factory: TransportFactory = SerialTransport) -> ControllerState:
    """Open all ports, then run the router and pump startup handshakes."""
    application = transport_factory(config.application_port_path, APPLICATION_BAUD_RATE)
    pump = Pump(transport_factory(config.pump_port_path, PUMP_BAUD_RATE))
    router = Router(transport_factory(config.router_port_path, config.router_baud_rate))

    router.connect()
    pump.connect()
    return ControllerState(application=application, router=router, pump=pump)


def serve_forever(runner: MethodRunner, max_lines: Optional[int] = None) -> None:
    """Receive loop. The next line is not read until the current batch finished."""
    app = runner.controller.application
    handled = 0
    while max_lines is None or handled < max_lines:
        runner.handle_line(app.readline(HOST_EOL))
        handled += 1


def main(config_path=None, transport_factory: TransportFactory = SerialTransport) -> int:
    configure_logging()
    try:
        config = load_config(config_path) if config_path else load_config()
    except ConfigError as e:
        logger.error("%s", e)
        return 1
    configure_logging(config.log_level)

    try:
        controller = open_controller(config, transport_factory)
    except (serial.SerialException, OSError) as e:
        logger.error("Unable to open serial port: %s", e)
        return 1

    run_log = RunLogger(config.run_log_dir, "controller") if config.run_log_dir else None
    runner = MethodRunner(config, controller, run_log)
    logger.info("Controller ready, waiting for messages on %s", config.application_port_path)
    try:
        serve_forever(runner)
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        controller.close()
        if run_log is not None:
            run_log.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
