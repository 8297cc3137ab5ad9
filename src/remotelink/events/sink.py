"""Event sink: serialized, single-consumer delivery of lifecycle events.

Producers publish events from the event loop (``publish``) or from any other
thread (``publish_threadsafe``). One worker task drains the queue and hands
each event to the single handler subscribed for its type, so an observer never
sees transitions interleaved or out of order.

Event Handler Contract:
    Handlers MUST be synchronous functions. This is enforced at subscription
    time. Handlers that need async work should schedule it with
    ``asyncio.create_task()``.
"""

import inspect
from typing import Callable, Optional, Type, TypeVar

from remotelink.logger import get_logger

from .queue_processor import AsyncQueueProcessor
from .types import Event

logger = get_logger("events.sink")

T = TypeVar("T", bound=Event)

EventHandler = Callable[[Event], None]


class EventSink:
    """Single-consumer event queue with one active handler per event type.

    Example:
        ```python
        sink = EventSink()
        sink.subscribe(ConnectionLost, lambda event: print("lost", event.endpoint.host))
        await sink.start()
        sink.publish(ConnectionLost(endpoint=endpoint))
        await sink.wait_until_empty()
        ```
    """

    def __init__(self, name: str = "EventSink"):
        self._handlers: dict[Type[Event], EventHandler] = {}
        self._processor = AsyncQueueProcessor[Event](processor=self._dispatch, name=name)

    def subscribe(self, event_type: Type[T], handler: Optional[Callable[[T], None]]) -> None:
        """
        Set the handler for an event type, replacing any previous one.

        Args:
            event_type: The event class to subscribe to
            handler: Synchronous callback receiving the event, or None to clear

        Raises:
            TypeError: If handler is an async function (coroutine function)
        """
        if handler is None:
            self.unsubscribe(event_type)
            return

        if inspect.iscoroutinefunction(handler):
            raise TypeError(
                f"Event handlers must be synchronous functions. "
                f"Handler {getattr(handler, '__name__', handler)!r} is a coroutine function. "
                f"To perform async work, schedule it using asyncio.create_task() instead."
            )

        if event_type in self._handlers:
            logger.debug(f"Replacing handler for {event_type.__name__}")
        self._handlers[event_type] = handler  # type: ignore[assignment]

    def unsubscribe(self, event_type: Type[Event]) -> None:
        """Remove the handler for an event type. No-op when none is set."""
        if self._handlers.pop(event_type, None) is not None:
            logger.debug(f"Unsubscribed handler for {event_type.__name__}")

    def has_subscriber(self, event_type: Type[Event]) -> bool:
        """Check whether a handler is set for an event type."""
        return event_type in self._handlers

    def publish(self, event: Event) -> None:
        """
        Queue an event for delivery. Must be called on the sink's event loop.

        Raises:
            RuntimeError: If the sink has not been started
        """
        self._processor.enqueue_nowait(event)

    def publish_threadsafe(self, event: Event) -> None:
        """
        Queue an event for delivery from any thread.

        Raises:
            RuntimeError: If the sink has not been started
        """
        self._processor.enqueue_threadsafe(event)

    async def start(self) -> None:
        """Start the delivery worker on the running loop."""
        await self._processor.start()

    async def stop(self) -> None:
        """Deliver what is already queued, then stop the worker."""
        await self._processor.stop()

    async def wait_until_empty(self, timeout: Optional[float] = None) -> bool:
        """Wait until every queued event has been delivered."""
        return await self._processor.wait_until_empty(timeout=timeout)

    @property
    def is_running(self) -> bool:
        """Check if the sink is delivering events."""
        return self._processor.is_running

    @property
    def loop(self):
        """Event loop that owns the sink, or None when stopped."""
        return self._processor.loop

    async def __aenter__(self) -> "EventSink":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def _dispatch(self, event: Event) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.debug(f"No handler subscribed for {type(event).__name__}")
            return
        try:
            handler(event)
        except Exception as e:
            logger.error(f"Error in event handler for {type(event).__name__}: {e}")
