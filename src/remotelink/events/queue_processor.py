"""
Generic async queue processor for sequential background processing.

Items are processed one at a time, in submission order, by a single worker
task. The event sink is built on top of it.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, Generic, TypeVar

from remotelink.logger import get_logger

logger = get_logger("queue_processor")

T = TypeVar("T")


class AsyncQueueProcessor(Generic[T]):
    """
    Generic async FIFO queue processor with background worker.

    Processes items sequentially in submission order, ensuring FIFO semantics.
    Supports both synchronous and asynchronous processors.

    Lifecycle:
        1. Create instance with processor function
        2. Call `start()` to begin background worker
        3. Call `enqueue_nowait(item)` on the loop, or `enqueue_threadsafe(item)` elsewhere
        4. Call `stop()` to shut down

    Error Handling:
        - Processor exceptions are logged but don't stop the worker
        - Worker continues processing remaining items after errors
        - Graceful cancellation on stop()
    """

    def __init__(
        self,
        processor: Callable[[T], None] | Callable[[T], Awaitable[None]],
        *,
        name: str = "AsyncQueue",
    ):
        """
        Initialize the async queue processor.

        Args:
            processor: Function or coroutine to process each item.
                      Exceptions are logged but don't stop processing.
            name: Human-readable name for logging (default: "AsyncQueue")
        """
        self._processor = processor
        self._name = name
        self._queue: asyncio.Queue[T] | None = None
        self._worker_task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._running = False
        self._is_async_processor = inspect.iscoroutinefunction(processor)

        logger.debug(f"Created {self._name} (processor_type={'async' if self._is_async_processor else 'sync'})")

    async def start(self) -> None:
        """
        Start the background worker task on the running event loop.

        Already running is logged as a warning.
        """
        if self._running:
            logger.warning(f"{self._name} already running")
            return

        # The queue is bound to the loop that drains it
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._running = True
        self._worker_task = asyncio.create_task(self._worker())
        logger.info(f"{self._name} started")

    async def stop(self, drain: bool = True, timeout: float | None = 5.0) -> None:
        """
        Stop the background worker task.

        Args:
            drain: Deliver items already queued before stopping
            timeout: Upper bound on the drain wait (seconds)

        After stop(), the processor can be restarted with start().
        """
        if not self._running:
            return

        if drain:
            await self.wait_until_empty(timeout=timeout)

        self._running = False
        logger.info(f"Stopping {self._name}...")

        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                logger.info(f"{self._name} worker cancelled successfully")

        self._worker_task = None
        self._loop = None
        logger.info(f"{self._name} stopped")

    def enqueue_nowait(self, item: T) -> None:
        """
        Enqueue an item without waiting. Must be called from the loop thread.

        Raises:
            RuntimeError: If the processor is not running. Call start() first.
        """
        if not self._running or self._queue is None:
            raise RuntimeError(f"{self._name} is not running. Call start() first.")
        self._queue.put_nowait(item)
        logger.debug(f"{self._name}: Enqueued item (queue_size={self._queue.qsize()})")

    def enqueue_threadsafe(self, item: T) -> None:
        """
        Enqueue an item from any thread.

        The put is scheduled on the processor's event loop, so items submitted
        from one thread keep their relative order.

        Raises:
            RuntimeError: If the processor is not running. Call start() first.
        """
        if not self._running or self._loop is None:
            raise RuntimeError(f"{self._name} is not running. Call start() first.")
        self._loop.call_soon_threadsafe(self._put_if_running, item)

    @property
    def is_running(self) -> bool:
        """Check if the processor is currently running."""
        return self._running

    @property
    def loop(self) -> asyncio.AbstractEventLoop | None:
        """Event loop the worker runs on, or None when stopped."""
        return self._loop

    def _put_if_running(self, item: T) -> None:
        if not self._running or self._queue is None:
            logger.warning(f"{self._name}: Dropping item submitted after stop")
            return
        self._queue.put_nowait(item)

    async def _worker(self) -> None:
        """
        Background worker task that processes items sequentially.

        Processor exceptions are logged and don't stop the worker.
        """
        logger.info(f"{self._name} worker started")
        queue = self._queue
        assert queue is not None

        while self._running:
            try:
                item = await queue.get()

                try:
                    if self._is_async_processor:
                        await self._processor(item)  # type: ignore[misc]
                    else:
                        self._processor(item)
                except Exception as e:
                    logger.error(f"Error in {self._name} processor: {e}")

                queue.task_done()

            except asyncio.CancelledError:
                logger.info(f"{self._name} worker task cancelled")
                break

        logger.info(f"{self._name} worker stopped")

    async def wait_until_empty(self, timeout: float | None = None) -> bool:
        """
        Wait until all queued items have been processed.

        Args:
            timeout: Maximum time to wait in seconds. None = wait forever.

        Returns:
            True if queue became empty, False if timeout occurred
        """
        if self._queue is None:
            return True
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"{self._name}: Timeout waiting for queue to empty")
            return False
