"""Liveness monitoring for SFTP sessions."""

import threading
from typing import Callable, Optional

from remotelink.logger import get_logger

logger = get_logger("sftp.monitor")


class LivenessMonitor:
    """Watches a session from a daemon thread and reports the first loss.

    Every ``interval`` seconds the monitor runs ``probe``. The first probe that
    returns False (or raises) triggers ``on_lost`` once, then the monitor exits;
    replacing the session is up to whoever owns it.
    """

    def __init__(self, probe: Callable[[], bool], interval: float = 5.0, name: str = "sftp-monitor"):
        """
        Initialize liveness monitor.

        Args:
            probe: Returns True while the connection is usable
            interval: Seconds between probes
            name: Thread name
        """
        self._probe = probe
        self._interval = interval
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, on_lost: Callable[[], None]) -> None:
        """Start probing in the background."""
        if self.is_running:
            logger.warning(f"{self._name} already running")
            return

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(on_lost, self._stop_event), name=self._name, daemon=True
        )
        self._thread.start()
        logger.info(f"{self._name} started (interval={self._interval}s)")

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        """Stop probing. Safe to call from the monitor thread itself."""
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"{self._name} did not stop within {timeout}s")

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def _run(self, on_lost: Callable[[], None], stop_event: threading.Event) -> None:
        # wait() returns True as soon as stop() is called
        while not stop_event.wait(self._interval):
            if self._is_alive():
                continue

            logger.warning(f"{self._name}: connection lost")
            try:
                on_lost()
            except Exception as e:
                logger.error(f"Error in connection lost callback: {e}")
            break

        logger.debug(f"{self._name} exiting")

    def _is_alive(self) -> bool:
        try:
            return bool(self._probe())
        except Exception as e:
            logger.warning(f"Liveness probe failed: {e}")
            return False
