"""
In-process event broker for the SSE endpoint.

Publishers run in pipeline worker threads; subscribers are asyncio queues
owned by request handlers, so delivery goes through the subscriber's
event loop.
"""
import asyncio
import logging
from collections import defaultdict
from threading import Lock
from typing import Dict, Any, List, Tuple

logger = logging.getLogger(__name__)


class LocalEventBroker:
    def __init__(self, max_queue_size: int = 1000):
        self.max_queue_size = max_queue_size
        self._subscribers: Dict[str, List[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, search_id: str) -> asyncio.Queue:
        """
        Subscribe to events for a search.

        Must be called from inside the subscriber's running event loop.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        with self._lock:
            self._subscribers[search_id].append((loop, queue))
        return queue

    def unsubscribe(self, search_id: str, queue: asyncio.Queue) -> None:
        with self._lock:
            entries = [e for e in self._subscribers.get(search_id, []) if e[1] is not queue]
            if entries:
                self._subscribers[search_id] = entries
            else:
                self._subscribers.pop(search_id, None)

    def subscriber_count(self, search_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(search_id, []))

    def publish(self, search_id: str, event: str, payload: Dict[str, Any]) -> None:
        """Fan an event out to every subscriber of ``search_id``. Safe from any thread."""
        message = {"event": event, "data": payload}
        with self._lock:
            entries = list(self._subscribers.get(search_id, []))

        for loop, queue in entries:
            try:
                loop.call_soon_threadsafe(self._offer, queue, message)
            except RuntimeError:
                # subscriber loop already closed
                self.unsubscribe(search_id, queue)

    @staticmethod
    def _offer(queue: asyncio.Queue, message: Dict[str, Any]) -> None:
        try:
            queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Dropping {message['event']} event for a slow subscriber")
