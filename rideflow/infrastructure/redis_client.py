"""Redis async connection pool shared by the lock and the notifier."""

import redis.asyncio as aioredis

from rideflow.config import settings

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url,
    decode_responses=True,
    max_connections=settings.redis_max_connections,
)


async def get_redis() -> aioredis.Redis:
    """Return a client on the shared pool (used by ``DistributedLock`` and
    ``RedisNotificationDispatcher``)."""
    return aioredis.Redis(connection_pool=_pool)
