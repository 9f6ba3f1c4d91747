"""Shared fixtures: an in-memory transcript standing in for the serial ports."""

import sys
from collections import deque
from pathlib import Path

import pytest

# Add the root directory to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

from auto_dispense.config import Config
from auto_dispense.devices.pump import Pump, STATUS_QUERY
from auto_dispense.devices.router import Router
from auto_dispense.devices.transport import Transport
from auto_dispense.methods.runner import ControllerState, MethodRunner

IDLE_REPLY = "\xff/0c\x03"
BUSY_REPLY = "\xff/0@\x03"


class FakeTransport(Transport):
    """Records writes; replies come from `respond(text)` or from scripted `lines`.

    Replies produced by the responder are queued like bytes on a port and are
    discarded by drain(). Scripted lines arrive "later" and survive a drain.
    """

    def __init__(self, name="fake", respond=None, lines=(), journal=None, exhausted=AssertionError):
        self.name = name
        self.respond = respond or (lambda text: [])
        self.pending = deque()
        self.scripted = deque(lines)
        self.journal = journal if journal is not None else []
        self.exhausted = exhausted
        self.writes = []
        self.reads = []
        self.drains = 0
        self.closed = False

    def write(self, text, silent=False):
        self.writes.append(text)
        self.journal.append((self.name, text))
        self.pending.extend(self.respond(text))

    def readline(self, delimiter, silent=False):
        if self.pending:
            line = self.pending.popleft()
        elif self.scripted:
            line = self.scripted.popleft()
        else:
            raise self.exhausted(f"{self.name}: readline would block forever")
        self.reads.append(line)
        return line

    def drain(self):
        self.drains += 1
        self.pending.clear()

    def close(self):
        self.closed = True


def router_responder(reject=()):
    """Answer G1 moves with G1:OK unless the command is in `reject`."""
    def respond(text):
        if text.startswith("G28"):
            return ["ok"]
        if text in reject:
            return ["ERR"]
        return ["G1:OK"]
    return respond


def pump_responder(busy_polls=0):
    """Report busy for the first `busy_polls` status queries, idle afterwards."""
    remaining = [busy_polls]

    def respond(text):
        if text != STATUS_QUERY:
            return []
        if remaining[0] > 0:
            remaining[0] -= 1
            return [BUSY_REPLY]
        return [IDLE_REPLY]
    return respond


def pump_programs(transport):
    return [w for w in transport.writes if w != STATUS_QUERY]


@pytest.fixture
def journal():
    return []


@pytest.fixture
def config():
    return Config(
        application_port_path="/tmp/app",
        pump_port_path="/tmp/pump",
        router_port_path="/tmp/router",
        constant_cleaning=True,
        tube_holder_coordinates={"7": "10:20:-5", "8": "30:40:-6", "9": "1:2"},
    )


@pytest.fixture
def router_port(journal):
    return FakeTransport("router", respond=router_responder(), journal=journal)


@pytest.fixture
def pump_port(journal):
    return FakeTransport("pump", respond=pump_responder(), journal=journal)


@pytest.fixture
def controller(router_port, pump_port):
    return ControllerState(
        application=FakeTransport("app"),
        router=Router(router_port, boot_delay=0),
        pump=Pump(pump_port, settle_delay=0, poll_interval=0),
    )


@pytest.fixture
def runner(config, controller):
    return MethodRunner(config, controller)
