"""SFTP session implementation backed by paramiko."""

from .monitor import LivenessMonitor
from .session import SftpSession

__all__ = ["LivenessMonitor", "SftpSession"]
