"""
Product analytics events.

Events are appended to a Redis stream for downstream consumers; without
Redis they are only logged. Tracking never raises into the caller.
"""
import json
import logging
from typing import Optional, Dict, Any

from redis import Redis
from redis.exceptions import RedisError

from core.utils import utcnow

logger = logging.getLogger(__name__)


class AnalyticsTracker:
    def __init__(
        self,
        redis_url: Optional[str] = None,
        stream: str = "analytics:events",
        enabled: bool = True,
        max_stream_length: int = 100000
    ):
        self.redis_url = redis_url
        self.stream = stream
        self.enabled = enabled
        self.max_stream_length = max_stream_length
        self._redis: Optional[Redis] = None

    def _get_redis(self) -> Optional[Redis]:
        """Get Redis connection (lazy init)."""
        if self._redis is None and self.redis_url:
            self._redis = Redis.from_url(self.redis_url)
        return self._redis

    def track(
        self,
        distinct_id: Optional[str],
        event: str,
        properties: Optional[Dict[str, Any]] = None,
        organization_id: Optional[str] = None
    ) -> bool:
        """
        Record one event. Returns False when the event could not be delivered.
        """
        if not self.enabled:
            return False

        payload = {
            "event": event,
            "distinct_id": distinct_id or "anonymous",
            "organization_id": organization_id,
            "properties": properties or {},
            "timestamp": utcnow().isoformat(),
        }

        try:
            redis = self._get_redis()
            if redis is None:
                logger.info(f"Analytics event {event}: {json.dumps(payload, default=str)}")
                return True
            redis.xadd(
                self.stream,
                {"data": json.dumps(payload, default=str)},
                maxlen=self.max_stream_length,
                approximate=True
            )
            return True
        except (RedisError, TypeError, ValueError) as e:
            logger.warning(f"Failed to record analytics event {event}: {e}")
            return False
