import asyncio
import logging
from collections.abc import AsyncIterator

from slopshop.util.events import EventLogger, NullEventLogger, NULL_EVENT_LOGGER

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100

_CLOSED = object()


class ChunkStream:
    """
    Bounded single-consumer buffer for streamed model output.

    Producers call `offer`, which never blocks: when the buffer is full the
    chunk is dropped and counted. `close` stops accepting chunks; the
    consumer still receives everything buffered before the close.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        event_logger: EventLogger | NullEventLogger | None = None,
    ):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self.dropped = 0
        self.event_logger = event_logger or NULL_EVENT_LOGGER

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, chunk: str) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(chunk)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("Stream buffer full, dropped chunk (%d dropped so far)", self.dropped)
            self.event_logger.log_chunk_dropped(self.dropped)
            return False
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # A full queue is drained first; the consumer then sees closed + empty.
        if not self._queue.full():
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            if self._closed and self._queue.empty():
                return
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    async def collect(self) -> str:
        parts = [chunk async for chunk in self]
        return "".join(parts)
