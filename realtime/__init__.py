"""
Realtime push channel for search progress.

Events: status.updated, progress.updated, search.completed, search.failed,
each carrying the persisted progress snapshot.
"""
import logging
from typing import Callable, Dict, Any, List

from realtime.broker import LocalEventBroker
from realtime.redis_publisher import RedisEventPublisher

logger = logging.getLogger(__name__)

Publisher = Callable[[str, str, Dict[str, Any]], None]


class CompositePublisher:
    """Deliver each event to every sink; one failing sink does not block the others."""

    def __init__(self, publishers: List[Publisher]):
        self.publishers = list(publishers)

    def __call__(self, search_id: str, event: str, payload: Dict[str, Any]) -> None:
        for publisher in self.publishers:
            try:
                publisher(search_id, event, payload)
            except Exception as e:
                logger.warning(f"Event sink failed for {event} on search {search_id}: {e}")


__all__ = [
    'CompositePublisher',
    'LocalEventBroker',
    'RedisEventPublisher',
    'Publisher',
]
