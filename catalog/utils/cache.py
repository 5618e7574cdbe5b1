import json
from typing import Any, Optional
from redis.asyncio import Redis

async def cache_get(redis: Redis, key: str) -> Optional[Any]:
    if val := await redis.get(key):
        return json.loads(val)
    return None

async def cache_set(redis: Redis, key: str, value: Any, ex: Optional[int] = 60) -> None:
    await redis.set(key, json.dumps(value, separators=(",", ":"), default=str), ex=ex)

async def cache_delete(redis: Redis, key: str) -> int:
    return await redis.delete(key)
