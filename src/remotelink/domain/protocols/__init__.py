"""Protocols describing collaborators of the connection manager."""

from .session import LossListener, Session, SessionFactory

__all__ = ["LossListener", "Session", "SessionFactory"]
