"""In-process fan-out of new readings to WebSocket subscribers."""

import asyncio
import logging

import orjson

from crossing_monitor.schemas.reading import Reading

logger = logging.getLogger(__name__)


class Broadcaster:
    """Pushes each new reading to every subscriber queue.

    Slow subscribers whose queue is full are dropped rather than blocking
    the poll cycle.
    """

    def __init__(self, queue_size: int = 50) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, reading: Reading) -> None:
        payload = orjson.dumps({"type": "reading", "reading": reading.model_dump(mode="json")})
        dead = set()
        for q in self._subscribers:
            try:
                q.put_nowait(payload)
            except asyncio.QueueFull:
                dead.add(q)
        if dead:
            logger.info("Dropping %d slow subscriber(s)", len(dead))
        self._subscribers -= dead

    def subscribe(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        self._subscribers.discard(q)
