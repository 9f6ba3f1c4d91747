import zlib

import pytest
import serial

import auto_dispense.__main__ as entry
from auto_dispense.devices.pump import INIT_PROGRAMS
from auto_dispense.methods.runner import BatchState

from conftest import FakeTransport, pump_programs, pump_responder, router_responder

CONFIG = """\
application_port_path = "/tmp/app1"
pump_port_path = "/tmp/pump1"
router_port_path = "/tmp/router1"
constant_cleaning = true

[tube-holder-coordinates]
7 = "10:20:-5"
"""


def frame(channel, data):
    return f"{channel},{data},{zlib.crc32(data.encode()):08x}"


@pytest.fixture(autouse=True)
def quiet(monkeypatch):
    # skip the router boot delay and pump settle time, keep the test logging setup
    monkeypatch.setattr(entry, "configure_logging", lambda level="INFO": None)
    monkeypatch.setattr("time.sleep", lambda seconds: None)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(CONFIG, encoding="utf-8")
    return path


def make_factory(app_lines):
    ports = {}
    journal = []

    def factory(path, baudrate):
        if path == "/tmp/app1":
            port = FakeTransport("app", lines=app_lines, exhausted=KeyboardInterrupt)
        elif path == "/tmp/pump1":
            port = FakeTransport("pump", respond=pump_responder(), journal=journal)
        else:
            port = FakeTransport("router", respond=router_responder(), lines=["start"], journal=journal)
        port.baudrate = baudrate
        ports[port.name] = port
        return port

    return factory, ports, journal


def test_startup_then_serves_until_interrupted(config_path):
    factory, ports, journal = make_factory([frame(4, "LA_7_0_100"), "garbage", frame(4, "W_0")])
    assert entry.main(config_path, factory) == 0

    assert ports["app"].baudrate == 9600
    assert ports["pump"].baudrate == 9600
    assert ports["router"].baudrate == 115200

    # homing happens before pump initialization
    assert [t for _, t in journal][0] == "G28\r\n"
    assert pump_programs(ports["pump"])[:2] == list(INIT_PROGRAMS)
    assert ports["router"].writes[1:] == [
        "G1X10Y20Z-5\r\n", "G1X10Y20Z0\r\n", "G1X227Y152Z-20\r\n",
    ]
    assert all(port.closed for port in ports.values())


def test_unreadable_config_exits_nonzero(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("this is not toml", encoding="utf-8")
    factory, ports, _ = make_factory([])
    assert entry.main(path, factory) == 1
    assert ports == {}


def test_port_open_failure_exits_nonzero(config_path):
    def factory(path, baudrate):
        raise serial.SerialException(f"could not open port {path}")

    assert entry.main(config_path, factory) == 1


def test_serve_forever_handles_lines_in_order(config_path):
    factory, ports, _ = make_factory([])
    config = entry.load_config(config_path)
    controller = entry.open_controller(config, factory)
    ports["app"].scripted.extend([frame(3, "W_0"), frame(4, "W_0")])
    runner = entry.MethodRunner(config, controller)

    entry.serve_forever(runner, max_lines=2)
    assert ports["app"].reads == [frame(3, "W_0"), frame(4, "W_0")]
    assert runner.state is BatchState.DONE
