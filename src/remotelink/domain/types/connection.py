"""Connection-related domain types."""

from enum import Enum

__all__ = ["ConnectionStatus"]


class ConnectionStatus(Enum):
    """Status of a managed remote session.

    Exactly one status holds at any instant. ``DISCONNECTED`` is the initial
    state; there is no terminal state.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
