"""Connection status holder shared between the event loop and other threads."""

import threading
from typing import Callable, Optional

from remotelink.domain.types import ConnectionStatus
from remotelink.logger import get_logger

logger = get_logger("connection.lifecycle")

StatusCallback = Callable[[ConnectionStatus, ConnectionStatus], None]


class ConnectionLifecycle:
    """Holds the connection status.

    Writes come from the manager's event loop; reads may come from any thread.
    The lock makes every read observe one whole transition.
    """

    def __init__(self, on_status_change: Optional[StatusCallback] = None):
        """
        Initialize connection lifecycle.

        Args:
            on_status_change: Callback invoked with (new_status, previous_status)
                after every change
        """
        self._status = ConnectionStatus.DISCONNECTED
        self._error_message: Optional[str] = None
        self._lock = threading.Lock()
        self._on_status_change = on_status_change

    @property
    def status(self) -> ConnectionStatus:
        """Get current connection status."""
        with self._lock:
            return self._status

    @property
    def is_connected(self) -> bool:
        """The liveness flag: True only in CONNECTED."""
        return self.status == ConnectionStatus.CONNECTED

    @property
    def is_disconnected(self) -> bool:
        """Check if disconnected."""
        return self.status == ConnectionStatus.DISCONNECTED

    @property
    def error_message(self) -> Optional[str]:
        """Message of the last exhausted connect, cleared on the next success."""
        with self._lock:
            return self._error_message

    def set_status(
        self, status: ConnectionStatus, error_message: Optional[str] = None
    ) -> Optional[ConnectionStatus]:
        """
        Update connection status and notify callback.

        Args:
            status: New connection status
            error_message: Failure message to record alongside the change

        Returns:
            Previous status, or None when the status did not change
        """
        with self._lock:
            if error_message is not None:
                self._error_message = error_message
            elif status == ConnectionStatus.CONNECTED:
                self._error_message = None

            if self._status == status:
                return None
            previous = self._status
            self._status = status

        logger.debug(f"Status changed: {previous.value} -> {status.value}")

        if self._on_status_change:
            try:
                self._on_status_change(status, previous)
            except Exception as e:
                logger.error(f"Error in status change callback: {e}")
        return previous
