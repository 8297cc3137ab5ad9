"""Session protocol.

A session is an opaque handle bound to one endpoint. Its methods block for the
duration of network I/O, so the connection manager always calls them from a
worker thread.
"""

from typing import Callable, Optional, Protocol

from remotelink.config import Endpoint

LossListener = Callable[[], None]


class Session(Protocol):
    """Protocol for remote session handles owned by the connection manager."""

    endpoint: Endpoint

    def connect(self) -> None:
        """Open the session. Raises on authentication or network failure."""
        ...

    def disconnect(self) -> None:
        """Close the session. Must not raise when already closed."""
        ...

    def is_live(self) -> bool:
        """Report whether the underlying transport is still usable."""
        ...

    def set_loss_listener(self, listener: Optional[LossListener]) -> None:
        """Register the single callback invoked when the session detects loss."""
        ...


SessionFactory = Callable[[Endpoint], Session]
