"""Connection manager that owns one remote session and keeps it alive."""

import asyncio
import threading
from functools import partial
from typing import Callable, Optional

from remotelink.config import ConnectionSettings, Endpoint
from remotelink.domain.protocols import Session, SessionFactory
from remotelink.domain.types import ConnectionStatus
from remotelink.events import (
    ConnectionEstablished,
    ConnectionFailed,
    ConnectionLost,
    ConnectionStatusChanged,
    Event,
    EventSink,
    LogLine,
    ReconnectStarted,
)
from remotelink.logger import get_logger

from .backoff import ExponentialBackoffStrategy, RetryStrategy, Sleep
from .lifecycle import ConnectionLifecycle
from .result import ConnectResult

logger = get_logger("connection.manager")


def _default_session_factory(settings: ConnectionSettings) -> SessionFactory:
    from remotelink.sftp import SftpSession

    return partial(SftpSession, settings=settings)


def _describe(error: Optional[BaseException]) -> str:
    if error is None:
        return "Connection failed"
    return str(error) or type(error).__name__


class ConnectionManager:
    """
    Owns exactly one live session to one endpoint.

    The manager coordinates:
    - Connect with bounded retries and exponential backoff
    - Reconnect: tear down, settle, build a brand-new session, connect again
    - Loss reports coming from the session's own watcher thread
    - Lifecycle events delivered in order through an ``EventSink``

    Blocking session calls run on worker threads. Every status change happens
    on the event loop the manager was started on, and every event goes through
    the sink's single consumer.

    The session is replaced on reconnect: call ``get_session()`` right before
    each use instead of keeping the handle around.

    Example:
        ```python
        async with ConnectionManager(endpoint) as manager:
            manager.set_on_connection_lost(lambda event: print("lost"))
            result = await manager.connect()
            result.raise_for_error()
            with manager.get_session().channel() as sftp:
                sftp.put(local_path, remote_path)
        ```
    """

    def __init__(
        self,
        endpoint: Endpoint,
        *,
        session_factory: Optional[SessionFactory] = None,
        sink: Optional[EventSink] = None,
        backoff: Optional[RetryStrategy] = None,
        settings: Optional[ConnectionSettings] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize connection manager.

        Args:
            endpoint: Remote endpoint, fixed for the manager's lifetime
            session_factory: Builds a session for the endpoint (defaults to SftpSession)
            sink: Event sink to publish on (a private one is created if not provided)
            backoff: Retry strategy (defaults to exponential backoff from settings)
            settings: Connection tunables
            sleep: Coroutine used for the settle delay and the default backoff
        """
        self._endpoint = endpoint
        self._settings = settings or ConnectionSettings()
        self._session_factory = session_factory or _default_session_factory(self._settings)
        self._sleep = sleep
        self._backoff = backoff or ExponentialBackoffStrategy(
            max_attempts=self._settings.max_attempts,
            initial_delay=self._settings.initial_backoff,
            backoff_multiplier=self._settings.backoff_multiplier,
            sleep=sleep,
        )
        self._sink = sink or EventSink(name=f"EventSink[{endpoint.host}]")
        self._owns_sink = sink is None
        self._lifecycle = ConnectionLifecycle(on_status_change=self._on_status_change)

        self._session_lock = threading.Lock()
        self._session: Session = self._session_factory(endpoint)

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._in_flight = False
        # Bumped by disconnect() so an in-flight connect knows it was abandoned
        self._generation = 0
        # True from the first successful connect of the current session until it is closed
        self._session_open = False

    @property
    def endpoint(self) -> Endpoint:
        """Endpoint this manager connects to."""
        return self._endpoint

    @property
    def status(self) -> ConnectionStatus:
        """Get current connection status."""
        return self._lifecycle.status

    @property
    def last_error(self) -> Optional[str]:
        """Message of the last exhausted connect, if any."""
        return self._lifecycle.error_message

    @property
    def is_connected(self) -> bool:
        """True when the manager believes it is connected and the session agrees."""
        return self._lifecycle.is_connected and self.get_session().is_live()

    def get_session(self) -> Session:
        """
        Return the session that is current at the moment of the call.

        Do not hold on to the result: a reconnect replaces it.
        """
        with self._session_lock:
            return self._session

    # Event registration: one handler per event, the latest one wins, None clears.

    def set_on_connection_established(self, callback: Optional[Callable[[ConnectionEstablished], None]]) -> None:
        self._sink.subscribe(ConnectionEstablished, callback)

    def set_on_connection_lost(self, callback: Optional[Callable[[ConnectionLost], None]]) -> None:
        self._sink.subscribe(ConnectionLost, callback)

    def set_on_reconnect_started(self, callback: Optional[Callable[[ReconnectStarted], None]]) -> None:
        self._sink.subscribe(ReconnectStarted, callback)

    def set_on_connection_failed(self, callback: Optional[Callable[[ConnectionFailed], None]]) -> None:
        self._sink.subscribe(ConnectionFailed, callback)

    def set_on_log(self, callback: Optional[Callable[[LogLine], None]]) -> None:
        self._sink.subscribe(LogLine, callback)

    def set_on_status_change(self, callback: Optional[Callable[[ConnectionStatusChanged], None]]) -> None:
        self._sink.subscribe(ConnectionStatusChanged, callback)

    async def start(self) -> None:
        """Bind the manager to the running loop and start event delivery."""
        self._loop = asyncio.get_running_loop()
        if not self._sink.is_running:
            await self._sink.start()

    async def close(self) -> None:
        """Disconnect, deliver pending events, and stop a sink the manager owns."""
        await self.disconnect()
        if self._owns_sink:
            await self._sink.stop()

    async def __aenter__(self) -> "ConnectionManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def connect(self) -> ConnectResult:
        """
        Connect the current session, retrying with backoff.

        Returns:
            A successful result carrying the session, or a failed result
            carrying the last attempt's error. A ``ConnectionEstablished`` or
            ``ConnectionFailed`` event is published accordingly.
        """
        await self.start()
        if self._in_flight:
            logger.warning("Connection already in progress")
            return ConnectResult.failed("Connection already in progress", session=self.get_session())
        if self.is_connected:
            logger.debug("Already connected, nothing to do")
            session = self.get_session()
            self._publish(ConnectionEstablished(endpoint=self._endpoint, session=session, attempts=0))
            return ConnectResult.succeeded(session, attempts=0)

        self._in_flight = True
        try:
            self._lifecycle.set_status(ConnectionStatus.CONNECTING)
            return await self._connect_with_retries(self.get_session(), self._generation)
        except asyncio.CancelledError:
            logger.info("Connect cancelled")
            self._lifecycle.set_status(ConnectionStatus.DISCONNECTED)
            raise
        finally:
            self._in_flight = False

    async def reconnect(self) -> ConnectResult:
        """
        Replace the current session with a new one and connect it.

        Sequence: publish ``ReconnectStarted``; disconnect the current session;
        wait the settle delay; build a new session for the same endpoint;
        connect it with retries. The old session is never used again.
        """
        await self.start()
        if self._in_flight:
            logger.warning("Connection already in progress")
            return ConnectResult.failed("Connection already in progress", session=self.get_session())

        self._in_flight = True
        generation = self._generation
        try:
            self._lifecycle.set_status(ConnectionStatus.RECONNECTING)
            self._publish(ReconnectStarted(endpoint=self._endpoint))
            self._log("🔄 Attempting to reconnect...")

            await self._close_session(self.get_session())
            await self._sleep(self._settings.settle_delay)
            if generation != self._generation:
                logger.info("Reconnect abandoned by disconnect")
                return self._fail(RuntimeError("Disconnected while reconnecting"), attempts=0)

            try:
                session = self._session_factory(self._endpoint)
            except Exception as e:
                logger.error(f"Could not create a new session: {e}")
                return self._fail(e, attempts=0)
            self._replace_session(session)

            return await self._connect_with_retries(session, generation)
        except asyncio.CancelledError:
            logger.info("Reconnect cancelled")
            self._lifecycle.set_status(ConnectionStatus.DISCONNECTED)
            raise
        finally:
            self._in_flight = False

    async def disconnect(self) -> None:
        """
        Close the current session.

        Idempotent; close errors are logged and reported as a log line, never raised.
        A session that was lost is still closed so its transport is released.
        """
        session = self.get_session()
        if self._lifecycle.is_disconnected and not self._in_flight and not self._session_open:
            logger.debug("Already disconnected")
            return

        await self.start()
        self._generation += 1
        # Cleared first so a loss reported while closing is ignored
        self._lifecycle.set_status(ConnectionStatus.DISCONNECTED)
        await self._close_session(session)

    def notify_connection_lost(self, session: Optional[Session] = None) -> None:
        """
        Report that the session lost its connection. Safe to call from any thread.

        The check and the state change run on the manager's event loop, so they
        never interleave with a connect completing. Reports from a session that
        is no longer current, or arriving while not connected, are ignored.

        Args:
            session: Session making the report, if known
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("Connection loss reported before the manager was started, ignoring")
            return
        try:
            loop.call_soon_threadsafe(self._handle_connection_lost, session)
        except RuntimeError as e:
            logger.warning(f"Could not schedule connection loss handling: {e}")

    def _handle_connection_lost(self, session: Optional[Session]) -> None:
        if session is not None and session is not self.get_session():
            logger.debug("Ignoring loss reported by a replaced session")
            return
        if not self._lifecycle.is_connected:
            return

        logger.warning("Connection loss detected/notified")
        self._lifecycle.set_status(ConnectionStatus.DISCONNECTED)
        self._log("⚠ Connection lost to server!")
        self._publish(ConnectionLost(endpoint=self._endpoint))

    async def _connect_with_retries(self, session: Session, generation: int) -> ConnectResult:
        """Retry loop with exponential backoff: 2s, 4s, ... between attempts."""
        last_error: Optional[BaseException] = None
        attempt = 0

        for attempt in range(1, self._backoff.max_attempts + 1):
            try:
                await self._open(session)
            except Exception as e:
                last_error = e
                logger.error(f"Connection attempt {attempt} failed: {e}")
                self._log(f"✗ Connection attempt {attempt} failed: {_describe(e)}")
                if generation != self._generation:
                    break
                if not await self._backoff.wait_before_retry(attempt):
                    break
                if generation != self._generation:
                    break
                continue

            if generation != self._generation:
                # disconnect() ran while this attempt was on the wire
                await self._close_session(session)
                break

            self._session_open = True
            self._lifecycle.set_status(ConnectionStatus.CONNECTED)
            logger.info(f"Connected to {self._endpoint.address} (attempt {attempt})")
            self._log("✓ Successfully connected to server")
            self._log("✓ SFTP session established")
            self._publish(ConnectionEstablished(endpoint=self._endpoint, session=session, attempts=attempt))
            return ConnectResult.succeeded(session, attempt)

        if generation != self._generation:
            logger.info("Connect abandoned by disconnect")
            return self._fail(RuntimeError("Disconnected while connecting"), attempts=attempt)
        return self._fail(last_error, attempts=attempt)

    async def _open(self, session: Session) -> None:
        self._log(f"🔌 Connecting to server: {self._endpoint.address}")
        session.set_loss_listener(partial(self.notify_connection_lost, session))
        await asyncio.to_thread(session.connect)

    async def _close_session(self, session: Session) -> None:
        if session is self.get_session():
            self._session_open = False
        session.set_loss_listener(None)
        self._log("🔌 Disconnecting from server...")
        try:
            await asyncio.to_thread(session.disconnect)
            self._log("✓ Disconnected from server")
        except Exception as e:
            logger.warning(f"Error during disconnect: {e}")
            self._log(f"✗ Error during disconnect: {_describe(e)}")

    def _replace_session(self, session: Session) -> None:
        with self._session_lock:
            self._session = session
        logger.debug(f"Session replaced for {self._endpoint.address}")

    def _fail(self, error: Optional[BaseException], attempts: int) -> ConnectResult:
        message = _describe(error)
        logger.error(f"Connection to {self._endpoint.address} failed after {attempts} attempt(s): {message}")
        self._lifecycle.set_status(ConnectionStatus.DISCONNECTED, error_message=message)
        self._publish(ConnectionFailed(endpoint=self._endpoint, message=message, attempts=attempts))
        return ConnectResult.failed(message, error=error, attempts=attempts, session=self.get_session())

    def _on_status_change(self, status: ConnectionStatus, previous: ConnectionStatus) -> None:
        self._publish(ConnectionStatusChanged(endpoint=self._endpoint, status=status, previous_status=previous))

    def _log(self, message: str) -> None:
        self._publish(LogLine(endpoint=self._endpoint, message=message))

    def _publish(self, event: Event) -> None:
        if not self._sink.is_running:
            logger.debug(f"Event sink not running, dropping {type(event).__name__}")
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not None and running is self._sink.loop:
            self._sink.publish(event)
        else:
            self._sink.publish_threadsafe(event)
