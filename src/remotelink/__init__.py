"""remotelink: keeps one SFTP session to a remote host alive.

Connects with bounded retries and exponential backoff, reports loss, and
replaces the session on reconnect.
"""

from remotelink.config import ConnectionSettings, Endpoint
from remotelink.connection import ConnectionManager, ConnectResult, ExponentialBackoffStrategy
from remotelink.domain.types import ConnectionStatus
from remotelink.errors import ConnectionFailedError, RemoteLinkError, SessionNotConnectedError
from remotelink.events import (
    ConnectionEstablished,
    ConnectionFailed,
    ConnectionLost,
    ConnectionStatusChanged,
    EventSink,
    LogLine,
    ReconnectStarted,
)
from remotelink.sftp import SftpSession

__version__ = "0.1.0"

__all__ = [
    "ConnectionEstablished",
    "ConnectionFailed",
    "ConnectionFailedError",
    "ConnectionLost",
    "ConnectionManager",
    "ConnectionSettings",
    "ConnectionStatus",
    "ConnectionStatusChanged",
    "ConnectResult",
    "Endpoint",
    "EventSink",
    "ExponentialBackoffStrategy",
    "LogLine",
    "ReconnectStarted",
    "RemoteLinkError",
    "SessionNotConnectedError",
    "SftpSession",
]
