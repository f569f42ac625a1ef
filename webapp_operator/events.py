"""
Activity events: reconciliation milestones published to Redis Streams for
dashboards and tooling. Optional: with no REDIS_URL nothing is published,
and a Redis outage never fails a reconciliation.
"""
import json
import logging
from typing import Optional

import redis
import redis.asyncio as aioredis

from webapp_operator.models import Identity
from webapp_operator.status import utc_now

logger = logging.getLogger("events")

STREAM_MAXLEN = 100
CHANNEL = "webapp:events"

DEPLOYMENT_CREATED = "DEPLOYMENT_CREATED"
REPLICAS_UPDATED = "REPLICAS_UPDATED"
SERVICE_CREATED = "SERVICE_CREATED"
STATUS_UPDATED = "STATUS_UPDATED"


class EventPublisher:
    def __init__(self, redis_url: str = "", client: Optional[aioredis.Redis] = None):
        self.redis_url = redis_url
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(self.redis_url)

    def _get_client(self) -> Optional[aioredis.Redis]:
        """Lazy-init the Redis client. Returns None if publishing is disabled."""
        if self._client is None and self.redis_url:
            self._client = aioredis.Redis.from_url(self.redis_url, decode_responses=True)
            logger.info(f"Publishing activity events to {self.redis_url}")
        return self._client

    async def publish(self, identity: Identity, event_type: str, message: str) -> None:
        r = self._get_client()
        if r is None:
            return
        entry = {
            "type": event_type,
            "message": message,
            "webapp": str(identity),
            "timestamp": utc_now(),
        }
        try:
            await r.xadd(f"{CHANNEL}:{identity}", entry, maxlen=STREAM_MAXLEN)
            await r.publish(CHANNEL, json.dumps(entry))
        except (redis.RedisError, OSError) as e:
            logger.debug(f"Redis publish failed (non-fatal): {e}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
