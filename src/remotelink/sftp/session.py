"""paramiko-backed SFTP session.

One ``SftpSession`` wraps one SSH connection plus its SFTP channel. It is
created and discarded by the connection manager; a reconnect always builds a
new instance.

Thread safety: paramiko's ``SFTPClient`` must not be driven from two threads
at once, so every use goes through ``channel()``, which holds the session's
transfer lock. The liveness probe only tries that lock; a busy channel counts
as alive.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

import paramiko

from remotelink.config import ConnectionSettings, Endpoint
from remotelink.domain.protocols import LossListener
from remotelink.errors import SessionNotConnectedError
from remotelink.logger import get_logger

from .monitor import LivenessMonitor

logger = get_logger("sftp.session")


class SftpSession:
    """SSH/SFTP session to one endpoint with a background liveness watcher."""

    def __init__(
        self,
        endpoint: Endpoint,
        settings: Optional[ConnectionSettings] = None,
        *,
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
    ):
        """
        Initialize SFTP session. Nothing is opened until connect().

        Args:
            endpoint: Remote endpoint
            settings: Timeouts, keepalive and probe interval
            client_factory: Builds the SSH client (replaceable in tests)
        """
        self.endpoint = endpoint
        self._settings = settings or ConnectionSettings()
        self._client_factory = client_factory
        self._client: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None
        self._listener: Optional[LossListener] = None
        self._transfer_lock = threading.RLock()
        self._monitor = LivenessMonitor(
            self._probe,
            interval=self._settings.monitor_interval,
            name=f"sftp-monitor-{endpoint.host}",
        )

    def __repr__(self) -> str:
        return f"SftpSession({self.endpoint.address}, live={self.is_live()})"

    def connect(self) -> None:
        """
        Open the SSH connection and the SFTP channel, then start monitoring.

        Host keys are accepted automatically and only password authentication
        is tried; agent, key files and GSSAPI are disabled so internal hosts
        without known_hosts entries or Kerberos don't stall the handshake.

        Raises:
            paramiko.SSHException: On protocol or authentication failure
            OSError: On network failure
        """
        if self._client is not None or self._sftp is not None:
            logger.debug(f"Closing previous connection to {self.endpoint.address} before connecting again")
            try:
                self.disconnect()
            except Exception as e:
                logger.warning(f"Error closing previous connection: {e}")

        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        logger.info(f"Connecting to: {self.endpoint.address}")
        try:
            client.connect(
                hostname=self.endpoint.host,
                port=self.endpoint.port,
                username=self.endpoint.username,
                password=self.endpoint.password or None,
                timeout=self._settings.connect_timeout,
                allow_agent=False,
                look_for_keys=False,
                gss_auth=False,
                gss_kex=False,
            )

            transport = client.get_transport()
            if transport is not None and self._settings.keepalive_interval:
                transport.set_keepalive(self._settings.keepalive_interval)

            sftp = client.open_sftp()
        except Exception:
            client.close()
            raise

        with self._transfer_lock:
            self._client = client
            self._sftp = sftp

        logger.info(f"SFTP connected to: {self.endpoint.host}")
        self._monitor.start(self._report_loss)

    def disconnect(self) -> None:
        """Stop monitoring and close the SFTP channel and SSH connection. Idempotent."""
        self._monitor.stop()

        sftp, client = self._sftp, self._client
        self._sftp = None
        self._client = None
        if sftp is None and client is None:
            return

        try:
            if sftp is not None:
                sftp.close()
        finally:
            if client is not None:
                client.close()
        logger.info(f"SFTP disconnected from: {self.endpoint.host}")

    def is_live(self) -> bool:
        """Check the transport and the SFTP channel without touching the network."""
        client, sftp = self._client, self._sftp
        if client is None or sftp is None:
            return False

        transport = client.get_transport()
        if transport is None or not transport.is_active():
            return False
        channel = sftp.get_channel()
        return channel is not None and not channel.closed

    def set_loss_listener(self, listener: Optional[LossListener]) -> None:
        self._listener = listener

    @contextmanager
    def channel(self) -> Iterator[paramiko.SFTPClient]:
        """
        Borrow the SFTP client for one operation, holding the transfer lock.

        Raises:
            SessionNotConnectedError: If the session is not live
        """
        with self._transfer_lock:
            sftp = self._sftp
            if sftp is None or not self.is_live():
                raise SessionNotConnectedError(f"Not connected to {self.endpoint.address}")
            yield sftp

    def _probe(self) -> bool:
        """Round-trip check used by the monitor."""
        if not self._transfer_lock.acquire(blocking=False):
            return True

        try:
            sftp = self._sftp
            if sftp is None or not self.is_live():
                return False
            sftp.normalize(".")
            return True
        finally:
            self._transfer_lock.release()

    def _report_loss(self) -> None:
        logger.warning(f"Connection lost to: {self.endpoint.host}")
        listener = self._listener
        if listener is not None:
            listener()
