"""Connection lifecycle: retries, backoff, reconnection and status tracking."""

from .backoff import ExponentialBackoffStrategy, RetryStrategy
from .lifecycle import ConnectionLifecycle
from .manager import ConnectionManager
from .result import ConnectResult

__all__ = [
    "ConnectionLifecycle",
    "ConnectionManager",
    "ConnectResult",
    "ExponentialBackoffStrategy",
    "RetryStrategy",
]
