"""Lifecycle events and their single-consumer delivery.

Example:
    ```python
    from remotelink.events import ConnectionLost, EventSink

    async with EventSink() as sink:
        sink.subscribe(ConnectionLost, lambda event: print("lost", event.endpoint.host))
    ```
"""

from .queue_processor import AsyncQueueProcessor
from .sink import EventSink
from .types import (
    ConnectionEstablished,
    ConnectionFailed,
    ConnectionLost,
    ConnectionStatusChanged,
    Event,
    LogLine,
    ReconnectStarted,
)

__all__ = [
    "AsyncQueueProcessor",
    "EventSink",
    "Event",
    "ConnectionEstablished",
    "ConnectionFailed",
    "ConnectionLost",
    "ConnectionStatusChanged",
    "LogLine",
    "ReconnectStarted",
]
