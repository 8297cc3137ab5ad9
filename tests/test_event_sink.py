"""Tests for EventSink and AsyncQueueProcessor."""

import asyncio
import threading

import pytest

from remotelink.domain.types import ConnectionStatus
from remotelink.events import (
    ConnectionEstablished,
    ConnectionLost,
    ConnectionStatusChanged,
    EventSink,
    LogLine,
)
from remotelink.events.queue_processor import AsyncQueueProcessor


class TestAsyncQueueProcessor:
    """Tests for AsyncQueueProcessor."""

    @pytest.mark.asyncio
    async def test_fifo_order(self):
        processed = []
        processor = AsyncQueueProcessor[int](processor=processed.append, name="Numbers")
        await processor.start()

        for number in range(6):
            processor.enqueue_nowait(number)
        assert await processor.wait_until_empty(timeout=1.0)

        assert processed == [0, 1, 2, 3, 4, 5]
        await processor.stop()
        assert not processor.is_running

    @pytest.mark.asyncio
    async def test_async_processor(self):
        processed = []

        async def handle(item):
            await asyncio.sleep(0)
            processed.append(item)

        processor = AsyncQueueProcessor[str](processor=handle)
        await processor.start()
        processor.enqueue_nowait("a")
        processor.enqueue_nowait("b")
        await processor.stop()

        assert processed == ["a", "b"]

    @pytest.mark.asyncio
    async def test_processor_errors_do_not_stop_worker(self):
        processed = []

        def handle(item):
            if item == "bad":
                raise ValueError("bad item")
            processed.append(item)

        processor = AsyncQueueProcessor[str](processor=handle)
        await processor.start()
        for item in ("one", "bad", "two"):
            processor.enqueue_nowait(item)
        await processor.wait_until_empty(timeout=1.0)

        assert processed == ["one", "two"]
        assert processor.is_running
        await processor.stop()

    def test_enqueue_before_start(self):
        processor = AsyncQueueProcessor[int](processor=lambda item: None)

        with pytest.raises(RuntimeError, match="not running"):
            processor.enqueue_nowait(1)
        with pytest.raises(RuntimeError, match="not running"):
            processor.enqueue_threadsafe(1)

    @pytest.mark.asyncio
    async def test_enqueue_threadsafe(self):
        processed = []
        processor = AsyncQueueProcessor[int](processor=processed.append)
        await processor.start()

        def produce():
            for number in range(3):
                processor.enqueue_threadsafe(number)

        await asyncio.to_thread(produce)
        await asyncio.sleep(0)
        await processor.wait_until_empty(timeout=1.0)

        assert processed == [0, 1, 2]
        await processor.stop()

    @pytest.mark.asyncio
    async def test_restart(self):
        processed = []
        processor = AsyncQueueProcessor[int](processor=processed.append)

        await processor.start()
        processor.enqueue_nowait(1)
        await processor.stop()
        await processor.start()
        processor.enqueue_nowait(2)
        await processor.stop()

        assert processed == [1, 2]


class TestEventSink:
    """Tests for EventSink."""

    def test_rejects_async_handler(self):
        sink = EventSink()

        async def handler(event):
            pass

        with pytest.raises(TypeError, match="synchronous"):
            sink.subscribe(ConnectionLost, handler)
        assert not sink.has_subscriber(ConnectionLost)

    def test_subscribe_and_clear(self):
        sink = EventSink()

        sink.subscribe(ConnectionLost, lambda event: None)
        assert sink.has_subscriber(ConnectionLost)

        sink.subscribe(ConnectionLost, None)
        assert not sink.has_subscriber(ConnectionLost)

        # Clearing twice is fine
        sink.unsubscribe(ConnectionLost)

    @pytest.mark.asyncio
    async def test_delivery_in_order(self, endpoint):
        received = []
        async with EventSink() as sink:
            sink.subscribe(LogLine, lambda event: received.append(event.message))
            sink.subscribe(ConnectionLost, lambda event: received.append("lost"))

            sink.publish(LogLine(endpoint=endpoint, message="first"))
            sink.publish(ConnectionLost(endpoint=endpoint))
            sink.publish(LogLine(endpoint=endpoint, message="second"))
            await sink.wait_until_empty(timeout=1.0)

        assert received == ["first", "lost", "second"]

    @pytest.mark.asyncio
    async def test_delivery_is_not_synchronous(self, endpoint):
        received = []
        async with EventSink() as sink:
            sink.subscribe(ConnectionLost, received.append)

            sink.publish(ConnectionLost(endpoint=endpoint))
            assert received == []

            await sink.wait_until_empty(timeout=1.0)
            assert len(received) == 1

    @pytest.mark.asyncio
    async def test_latest_handler_wins(self, endpoint):
        first, second = [], []
        async with EventSink() as sink:
            sink.subscribe(ConnectionEstablished, first.append)
            sink.subscribe(ConnectionEstablished, second.append)

            sink.publish(ConnectionEstablished(endpoint=endpoint, session=object()))
            await sink.wait_until_empty(timeout=1.0)

        assert first == []
        assert len(second) == 1

    @pytest.mark.asyncio
    async def test_handler_error_does_not_stop_delivery(self, endpoint):
        received = []

        def explode(event):
            raise RuntimeError("handler failed")

        async with EventSink() as sink:
            sink.subscribe(ConnectionLost, explode)
            sink.subscribe(LogLine, lambda event: received.append(event.message))

            sink.publish(ConnectionLost(endpoint=endpoint))
            sink.publish(LogLine(endpoint=endpoint, message="still here"))
            await sink.wait_until_empty(timeout=1.0)

        assert received == ["still here"]

    @pytest.mark.asyncio
    async def test_publish_threadsafe_delivers_on_loop_thread(self, endpoint):
        threads = []
        async with EventSink() as sink:
            sink.subscribe(ConnectionStatusChanged, lambda event: threads.append(threading.get_ident()))

            await asyncio.to_thread(
                sink.publish_threadsafe,
                ConnectionStatusChanged(endpoint=endpoint, status=ConnectionStatus.CONNECTED),
            )
            await asyncio.sleep(0)
            await sink.wait_until_empty(timeout=1.0)

        assert threads == [threading.get_ident()]

    def test_publish_before_start(self, endpoint):
        sink = EventSink()

        with pytest.raises(RuntimeError):
            sink.publish(ConnectionLost(endpoint=endpoint))

    @pytest.mark.asyncio
    async def test_stop_drains_pending(self, endpoint):
        received = []
        sink = EventSink()
        sink.subscribe(LogLine, received.append)
        await sink.start()

        for index in range(10):
            sink.publish(LogLine(endpoint=endpoint, message=str(index)))
        await sink.stop()

        assert [event.message for event in received] == [str(index) for index in range(10)]
        assert sink.loop is None
