# catalog/domain/repositories/recently_viewed_repo.py
from __future__ import annotations
from typing import List, Optional, Sequence
import logging

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from catalog.domain.models.product import CanonicalRecord
from catalog.utils.cache import cache_delete, cache_get, cache_set

logger = logging.getLogger(__name__)


class RecentlyViewedRepo:
    """
    Adapter persisting recently-viewed snapshots in Redis, one JSON list per user.
    No ordering logic here: the list is stored exactly as the cache hands it out.
    Redis errors are logged and swallowed; persistence is optional.
    """

    def __init__(self, redis: Optional[Redis], prefix: str = "rv", ttl: int = 30 * 24 * 3600):
        self.redis = redis
        self.prefix = prefix
        self.ttl = ttl

    def key(self, user_id: str) -> str:
        return f"{self.prefix}:{user_id}"

    async def load(self, user_id: str) -> List[CanonicalRecord]:
        if self.redis is None:
            return []
        k = self.key(user_id)
        try:
            data = await cache_get(self.redis, k)
        except (RedisError, ValueError) as e:
            logger.warning("recently_viewed redis.get error key=%s err=%s", k, e)
            return []
        if not isinstance(data, list):
            return []
        items: List[CanonicalRecord] = []
        for raw in data:
            try:
                items.append(CanonicalRecord.model_validate(raw))
            except ValidationError as e:
                logger.warning("recently_viewed skipped invalid entry key=%s err=%s", k, e.errors()[:1])
        return items

    async def save(self, user_id: str, items: Sequence[CanonicalRecord]) -> None:
        if self.redis is None:
            return
        k = self.key(user_id)
        try:
            if items:
                # discount_percent is computed; keep the stored payload to real fields
                payload = [i.model_dump(mode="json", exclude={"discount_percent"}) for i in items]
                await cache_set(self.redis, k, payload, ex=self.ttl)
            else:
                await cache_delete(self.redis, k)
        except RedisError as e:
            logger.warning("recently_viewed redis.set error key=%s err=%s", k, e)
