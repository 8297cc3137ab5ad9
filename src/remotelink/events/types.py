"""Event types published by the connection manager.

Every event carries the endpoint it concerns so a sink shared between several
managers can still tell them apart.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional

from remotelink.config import Endpoint
from remotelink.domain.types import ConnectionStatus


@dataclass
class Event:
    """Base class for all events.

    The timestamp field is automatically set when the event is created.
    """

    timestamp: float = field(default_factory=time.time, init=False)
    """Timestamp when the event was created (Unix timestamp)."""


@dataclass
class ConnectionEstablished(Event):
    """Published once per successful connect or reconnect."""

    endpoint: Endpoint
    session: Any
    """The session that is now current."""
    attempts: int = 1


@dataclass
class ConnectionLost(Event):
    """Published once per genuine loss detected on a connected session."""

    endpoint: Endpoint


@dataclass
class ReconnectStarted(Event):
    """Published as the first step of every reconnect."""

    endpoint: Endpoint


@dataclass
class ConnectionFailed(Event):
    """Published when every connect attempt of one invocation failed."""

    endpoint: Endpoint
    message: str
    """Error message of the last attempt."""
    attempts: int = 0


@dataclass
class LogLine(Event):
    """Human-readable progress line (attempt outcomes, disconnects)."""

    endpoint: Endpoint
    message: str


@dataclass
class ConnectionStatusChanged(Event):
    """Published whenever the manager's connection status changes."""

    endpoint: Endpoint
    status: ConnectionStatus
    previous_status: Optional[ConnectionStatus] = None
