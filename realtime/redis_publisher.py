"""Redis pub/sub fan-out of search events for out-of-process subscribers."""
import json
import logging
from typing import Optional, Dict, Any

from redis import Redis

logger = logging.getLogger(__name__)


class RedisEventPublisher:
    def __init__(self, redis_url: str, channel_prefix: str = "search:"):
        self.redis_url = redis_url
        self.channel_prefix = channel_prefix
        self._redis: Optional[Redis] = None

    def _get_redis(self) -> Redis:
        """Get Redis connection (lazy init)."""
        if self._redis is None:
            self._redis = Redis.from_url(self.redis_url)
        return self._redis

    def channel_for(self, search_id: str) -> str:
        return f"{self.channel_prefix}{search_id}"

    def __call__(self, search_id: str, event: str, payload: Dict[str, Any]) -> None:
        message = json.dumps({"event": event, "data": payload}, default=str)
        self._get_redis().publish(self.channel_for(search_id), message)
