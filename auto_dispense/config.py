# ------------------------------------------------------------------------------
# Software: AUTO_DISPENSE
# Copyright: (C) 2025 by Professor Andrew Zahrt
# This software is the intellectual property of Professor Andrew Zahrt
# Contributions by graduate students Scott Laverty are acknowledged.
# All rights reserved.
# ------------------------------------------------------------------------------

"""
Controller configuration, read once from ``./config.toml`` at startup.

If the file is missing the baked-in `DEFAULT_CONFIG` is written next to the
process and used as-is.
"""

from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, NamedTuple, Optional

from .methods.command_type import CommandError

logger = logging.getLogger(__name__)

CONFIG_PATH = Path("./config.toml")

DEFAULT_CONFIG = """\
application_port_path = "/dev/ttyUSB0"
pump_port_path = "/dev/ttyUSB1"
router_port_path = "/dev/ttyACM0"
constant_cleaning = true
router_baud_rate = 115200
log_level = "INFO"

# slot id -> "x:y:z" in router units
[tube-holder-coordinates]
1 = "20:30:-40"
2 = "40:30:-40"
3 = "60:30:-40"
4 = "80:30:-40"
5 = "100:30:-40"
6 = "120:30:-40"
"""

ROUTER_BAUD_RATES = (9600, 115200)

_COORDINATE = re.compile(r"^([+-]?[0-9]+):([+-]?[0-9]+):([+-]?[0-9]+)\Z")


class ConfigError(ValueError):
    """Configuration file missing keys, mistyped, or not valid TOML."""


class Coordinates(NamedTuple):
    x: int
    y: int
    z: int

    @classmethod
    def parse(cls, text: str) -> "Coordinates":
        """Turn 'x:y:z' into Coordinates; exactly three signed integers."""
        m = _COORDINATE.match(text.strip())
        if not m:
            raise ValueError(f"expected 'x:y:z', got {text!r}")
        return cls(*(int(v) for v in m.groups()))


@dataclass(frozen=True)
class Config:
    application_port_path: str
    pump_port_path: str
    router_port_path: str
    constant_cleaning: bool
    tube_holder_coordinates: Dict[str, str] = field(default_factory=dict)
    router_baud_rate: int = 115200
    log_level: str = "INFO"
    run_log_dir: Optional[str] = None

    def coordinates_for(self, slot_id: int) -> Coordinates:
        raw = self.tube_holder_coordinates.get(str(slot_id))
        if raw is None:
            raise CommandError(f"Unknown slot {slot_id}")
        try:
            return Coordinates.parse(raw)
        except ValueError as e:
            raise CommandError(f"Invalid coordinates for slot {slot_id}: {e}") from e

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        def required(key: str, kind: type):
            if key not in data:
                raise ConfigError(f"Missing configuration key '{key}'")
            value = data[key]
            if not isinstance(value, kind):
                raise ConfigError(f"'{key}' must be of type {kind.__name__}")
            return value

        coords = data.get("tube-holder-coordinates", {})
        if not isinstance(coords, dict) or not all(isinstance(v, str) for v in coords.values()):
            raise ConfigError("'tube-holder-coordinates' must map slot ids to \"x:y:z\" strings")

        baud = data.get("router_baud_rate", 115200)
        if baud not in ROUTER_BAUD_RATES:
            raise ConfigError(f"'router_baud_rate' must be one of {ROUTER_BAUD_RATES}, got {baud!r}")

        log_level = data.get("log_level", "INFO")
        run_log_dir = data.get("run_log_dir")
        if not isinstance(log_level, str):
            raise ConfigError("'log_level' must be of type str")
        if run_log_dir is not None and not isinstance(run_log_dir, str):
            raise ConfigError("'run_log_dir' must be of type str")

        return cls(
            application_port_path=required("application_port_path", str),
            pump_port_path=required("pump_port_path", str),
            router_port_path=required("router_port_path", str),
            constant_cleaning=required("constant_cleaning", bool),
            tube_holder_coordinates={str(k): v for k, v in coords.items()},
            router_baud_rate=baud,
            log_level=log_level,
            run_log_dir=run_log_dir,
        )


def load_config(path: Path = CONFIG_PATH) -> Config:
    """Read the configuration file, writing the default first when absent."""
    path = Path(path)
    if not path.exists():
        logger.warning("No configuration at %s, writing defaults", path)
        try:
            path.write_text(DEFAULT_CONFIG, encoding="utf-8")
        except OSError as e:
            logger.error("Unable to write default configuration: %s", e)
        data = tomllib.loads(DEFAULT_CONFIG)
    else:
        try:
            data = tomllib.loads(path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Unable to load configuration file {path}: {e}") from e

    config = Config.from_dict(data)
    for slot, raw in config.tube_holder_coordinates.items():
        if not _COORDINATE.match(raw.strip()):
            logger.warning("Slot %s has malformed coordinates %r", slot, raw)
    return config
