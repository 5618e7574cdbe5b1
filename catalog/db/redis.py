# catalog/db/redis.py
import logging
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


async def connect(url: Optional[str]) -> Optional[redis.Redis]:
    """
    Connect Redis if a URL is configured.
    Missing or unreachable Redis only disables recently-viewed persistence; startup continues.
    """
    global redis_client
    if not url:
        logger.info("No REDIS_URL configured, recently-viewed history stays in-process")
        redis_client = None
        return None

    try:
        logger.info("Connecting to Redis at %s", url)
        redis_client = redis.from_url(url, decode_responses=True)
        await redis_client.ping()
        logger.info("Redis connection successful")
    except (RedisError, OSError) as e:
        logger.warning("Failed to connect to Redis, persistence disabled: %s", e)
        redis_client = None
    return redis_client


async def disconnect():
    """Close the Redis connection if one exists."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis disconnected")


def get_redis() -> Optional[redis.Redis]:
    """
    Redis getter. None when Redis is not configured or unreachable;
    callers must handle it.
    """
    return redis_client
