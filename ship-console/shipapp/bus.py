import asyncio
from collections import defaultdict
from typing import Any, AsyncIterator, Dict, List


class ViewBroker:
    """Topic fan-out for console view snapshots.

    Each topic remembers its last message so a late subscriber starts from
    the current view. Slow subscribers lose their oldest queued snapshot,
    never the newest.
    """

    def __init__(self) -> None:
        self._topics: Dict[str, List[asyncio.Queue]] = defaultdict(list)
        self._latest: Dict[str, Any] = {}
        self._lock = asyncio.Lock()

    async def publish(self, topic: str, message: Any) -> None:
        async with self._lock:
            self._latest[topic] = message
            queues = list(self._topics.get(topic, []))
        for q in queues:
            if q.full():
                q.get_nowait()
            q.put_nowait(message)

    async def subscribe(self, topic: str, max_queue: int = 8) -> AsyncIterator[Any]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        async with self._lock:
            self._topics[topic].append(queue)
            if topic in self._latest:
                queue.put_nowait(self._latest[topic])
        try:
            while True:
                message = await queue.get()
                yield message
        finally:
            async with self._lock:
                if queue in self._topics[topic]:
                    self._topics[topic].remove(queue)

    def latest(self, topic: str) -> Any:
        return self._latest.get(topic)


BUS = ViewBroker()
