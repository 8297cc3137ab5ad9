"""Shared fakes and fixtures for remotelink tests."""

import asyncio
import os
import tempfile
from typing import Optional

import pytest

# Configure the log file before remotelink is imported anywhere
os.environ.setdefault("REMOTELINK_LOG_FILE", os.path.join(tempfile.gettempdir(), "remotelink-tests.log"))

from remotelink.config import Endpoint  # noqa: E402
from remotelink.events import (  # noqa: E402
    ConnectionEstablished,
    ConnectionFailed,
    ConnectionLost,
    ConnectionStatusChanged,
    EventSink,
    LogLine,
    ReconnectStarted,
)


class FakeSession:
    """In-memory session whose connect outcomes are scripted.

    ``outcomes`` holds one entry per connect call: None succeeds, an exception
    instance is raised. Missing entries succeed.
    """

    def __init__(self, endpoint: Endpoint, outcomes=None, calls: Optional[list] = None):
        self.endpoint = endpoint
        self.outcomes = list(outcomes or [])
        self.calls = calls if calls is not None else []
        self.connected = False
        self.listener = None
        self.connect_count = 0
        self.disconnect_count = 0
        self.disconnect_error: Optional[Exception] = None

    def connect(self):
        self.connect_count += 1
        self.calls.append(("connect", self))
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if outcome is not None:
            raise outcome
        self.connected = True

    def disconnect(self):
        self.disconnect_count += 1
        self.calls.append(("disconnect", self))
        self.connected = False
        if self.disconnect_error is not None:
            raise self.disconnect_error

    def is_live(self):
        return self.connected

    def set_loss_listener(self, listener):
        self.listener = listener

    def drop(self):
        """Simulate the session's watcher detecting a dead connection."""
        self.connected = False
        if self.listener is not None:
            self.listener()


class FakeSessionFactory:
    """Builds FakeSessions; ``outcomes`` holds one outcome list per session."""

    def __init__(self, outcomes=None, calls: Optional[list] = None):
        self.outcomes = list(outcomes or [])
        self.calls = calls if calls is not None else []
        self.sessions: list[FakeSession] = []

    def __call__(self, endpoint: Endpoint) -> FakeSession:
        outcomes = self.outcomes.pop(0) if self.outcomes else []
        session = FakeSession(endpoint, outcomes, self.calls)
        self.calls.append(("create", session))
        self.sessions.append(session)
        return session


class RecordingSleep:
    """Replaces asyncio.sleep: records the delays and returns immediately."""

    def __init__(self, calls: Optional[list] = None):
        self.delays: list[float] = []
        self.calls = calls

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.calls is not None:
            self.calls.append(("sleep", delay))
        await asyncio.sleep(0)


class GatedSleep(RecordingSleep):
    """Records delays, then blocks until ``release()`` is called."""

    def __init__(self, calls: Optional[list] = None):
        super().__init__(calls)
        self.entered = asyncio.Event()
        self._gate = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        self.entered.set()
        await self._gate.wait()


class EventRecorder:
    """Subscribes to every lifecycle event on a sink and keeps them in order."""

    EVENT_TYPES = (
        ConnectionEstablished,
        ConnectionLost,
        ReconnectStarted,
        ConnectionFailed,
        LogLine,
        ConnectionStatusChanged,
    )

    def __init__(self, sink: EventSink):
        self.events = []
        for event_type in self.EVENT_TYPES:
            sink.subscribe(event_type, self.events.append)

    def of(self, event_type):
        return [event for event in self.events if isinstance(event, event_type)]

    @property
    def messages(self) -> list[str]:
        return [event.message for event in self.of(LogLine)]

    @property
    def statuses(self):
        return [event.status for event in self.of(ConnectionStatusChanged)]


@pytest.fixture
def endpoint():
    return Endpoint(host="build.example.com", port=2222, username="deploy", password="s3cret", name="build")


@pytest.fixture
def calls():
    return []


@pytest.fixture
def sink():
    return EventSink()


@pytest.fixture
def recorder(sink):
    return EventRecorder(sink)
