"""Exceptions raised by remotelink."""

from typing import Optional


class RemoteLinkError(Exception):
    """Base class for remotelink errors."""


class ConnectionFailedError(RemoteLinkError):
    """Every connect attempt of one connect/reconnect invocation failed."""

    def __init__(self, message: str, attempts: int = 0, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.attempts = attempts
        self.last_error = last_error


class SessionNotConnectedError(RemoteLinkError):
    """An operation needed a live session but the session is closed."""
