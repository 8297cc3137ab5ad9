"""Domain types."""

from .connection import ConnectionStatus

__all__ = ["ConnectionStatus"]
