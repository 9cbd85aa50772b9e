"""
Shared test fixtures for remsh tests.

This module provides common fixtures used across all test types:
- A fake launcher that records launches instead of starting erl
- Session managers wired to the fake launcher
- Sample epmd output
"""

from unittest.mock import Mock

import pytest

from remsh.modules.args_builder import ConnectionArgsBuilder, SequenceCounter
from remsh.session_manager import ManagerState, SessionManager

EPMD_OUTPUT = (
    "epmd: up and running on port 4369 with data\n"
    "name alpha at port 40123\n"
    "name beta at port 40125\n"
)


class FakeProcess:
    """Stand-in for SessionProcess with controllable liveness."""

    def __init__(self, process_id, buffer_id, exit_codes=(), events=None):
        self.process_id = process_id
        self.buffer_id = buffer_id
        self.confirm_on_exit = True
        self.returncode = None
        self.terminated = False
        self.killed = False
        self.events = events if events is not None else []
        self._exit_codes = list(exit_codes)

    def disable_exit_confirmation(self):
        self.confirm_on_exit = False

    def poll(self):
        return self.returncode

    def is_alive(self):
        return self.returncode is None

    def wait(self, timeout=None):
        self.events.append(("wait", self.process_id))
        if self.returncode is None:
            self.returncode = self._exit_codes.pop(0) if self._exit_codes else 0
        return self.returncode

    def terminate(self):
        self.terminated = True
        if self.returncode is None:
            self.returncode = -15

    def kill(self):
        self.killed = True
        if self.returncode is None:
            self.returncode = -9

    def exit(self, code=0):
        self.returncode = code


class FakeLauncher:
    """Records launch calls and hands out FakeProcess handles.

    `exit_codes` is consumed one entry per launch: each launched process
    returns that code from wait(). `events` records launches and waits in order.
    """

    def __init__(self, exit_codes=()):
        self.launches = []
        self.processes = []
        self.events = []
        self._exit_codes = list(exit_codes)

    def launch(self, process_id, buffer_id, machine_command, argv):
        self.launches.append((process_id, buffer_id, machine_command, list(argv)))
        self.events.append(("launch", process_id))
        codes = [self._exit_codes.pop(0)] if self._exit_codes else []
        process = FakeProcess(process_id, buffer_id, codes, self.events)
        self.processes.append(process)
        return process


@pytest.fixture
def fake_launcher():
    return FakeLauncher()


@pytest.fixture
def domain_provider():
    """DomainNameProvider mock returning a dotted host name."""
    provider = Mock()
    provider.domain.return_value = "dev.example.com"
    return provider


@pytest.fixture
def builder(domain_provider):
    return ConnectionArgsBuilder(domain_provider, node_prefix="remsh")


@pytest.fixture
def manager(fake_launcher, builder):
    """SessionManager with a fixed pid and counter seed."""
    state = ManagerState(counter=SequenceCounter(seed=100))
    return SessionManager(launcher=fake_launcher, builder=builder, state=state, pid=4242)


@pytest.fixture
def epmd_output():
    return EPMD_OUTPUT


@pytest.fixture
def launcher_factory():
    """The FakeLauncher class, for tests that need scripted exit codes."""
    return FakeLauncher
