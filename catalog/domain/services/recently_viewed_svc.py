import asyncio
import functools
import logging
from collections import OrderedDict
from typing import Awaitable, Callable, Iterable, List, Optional

from catalog.domain.models.product import CanonicalRecord
from catalog.domain.repositories.recently_viewed_repo import RecentlyViewedRepo
from catalog.domain.services.constants import DEFAULT_RECENTLY_VIEWED_CAPACITY, DEFAULT_RECENTLY_VIEWED_USERS

logger = logging.getLogger(__name__)

OnChange = Callable[[List[CanonicalRecord]], Awaitable[None]]


class RecentlyViewedCache:
    """
    Bounded most-recent-first history of viewed records, deduplicated by id.

    One asyncio.Lock per instance serializes record/list/remove/clear.
    list() hands out a copy, so callers can never touch the internal order.
    `on_change` receives the new snapshot after every mutation, still under the lock,
    so write-backs happen in mutation order.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_RECENTLY_VIEWED_CAPACITY,
        initial: Iterable[CanonicalRecord] = (),
        on_change: Optional[OnChange] = None,
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.on_change = on_change
        # key order == recency order, oldest first; the front of list() is the last key
        self._entries: "OrderedDict[str, CanonicalRecord]" = OrderedDict()
        self._lock = asyncio.Lock()
        # seed oldest-first so the first element of `initial` ends up most recent
        for item in reversed(list(initial)):
            self._push(item)

    def _push(self, item: CanonicalRecord) -> None:
        self._entries.pop(item.id, None)
        self._entries[item.id] = item
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("recently_viewed evicted id=%s", evicted)

    def _snapshot(self) -> List[CanonicalRecord]:
        return list(reversed(self._entries.values()))

    async def _changed(self) -> List[CanonicalRecord]:
        # caller holds self._lock
        snapshot = self._snapshot()
        if self.on_change is not None:
            await self.on_change(list(snapshot))
        return snapshot

    async def record(self, item: CanonicalRecord) -> List[CanonicalRecord]:
        """Move/insert `item` at the front; returns the new snapshot."""
        async with self._lock:
            self._push(item)
            return await self._changed()

    async def list(self) -> List[CanonicalRecord]:
        async with self._lock:
            return self._snapshot()

    async def remove(self, product_id: str) -> bool:
        async with self._lock:
            if self._entries.pop(product_id, None) is None:
                return False
            await self._changed()
            return True

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            await self._changed()

    def __len__(self) -> int:
        return len(self._entries)


class RecentlyViewedRegistry:
    """
    One RecentlyViewedCache per user id, at most `max_users` of them (least recently used evicted).

    Read-only access (list/remove/clear) never creates a cache for a user with no history.
    When a RecentlyViewedRepo is given, caches are seeded from it on first use and
    every mutation is written back (best effort, the in-process cache stays authoritative);
    an evicted user is simply reloaded from the repo on the next access.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_RECENTLY_VIEWED_CAPACITY,
        repo: Optional[RecentlyViewedRepo] = None,
        max_users: int = DEFAULT_RECENTLY_VIEWED_USERS,
    ):
        if max_users < 1:
            raise ValueError("max_users must be >= 1")
        self.capacity = capacity
        self.repo = repo
        self.max_users = max_users
        self._caches: "OrderedDict[str, RecentlyViewedCache]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def _persist(self, user_id: str, items: List[CanonicalRecord]) -> None:
        await self.repo.save(user_id, items)

    async def _cached(self, user_id: str) -> Optional[RecentlyViewedCache]:
        async with self._lock:
            cache = self._caches.get(user_id)
            if cache is not None:
                self._caches.move_to_end(user_id)
            return cache

    async def _lookup(self, user_id: str, create: bool) -> Optional[RecentlyViewedCache]:
        cache = await self._cached(user_id)
        if cache is not None:
            return cache

        # repo I/O stays outside the registry lock
        initial: List[CanonicalRecord] = []
        if self.repo is not None:
            initial = await self.repo.load(user_id)
        if not initial and not create:
            return None

        on_change = functools.partial(self._persist, user_id) if self.repo is not None else None
        async with self._lock:
            cache = self._caches.get(user_id)
            if cache is None:
                cache = RecentlyViewedCache(self.capacity, initial=initial, on_change=on_change)
                self._caches[user_id] = cache
                logger.info("recently_viewed cache created user_id=%s seeded=%s", user_id, len(initial))
                while len(self._caches) > self.max_users:
                    evicted, _ = self._caches.popitem(last=False)
                    logger.debug("recently_viewed registry evicted user_id=%s", evicted)
            else:
                self._caches.move_to_end(user_id)
            return cache

    async def get(self, user_id: str) -> RecentlyViewedCache:
        """The user's cache, created on first use (for recording views)."""
        return await self._lookup(user_id, create=True)

    async def record(self, user_id: str, item: CanonicalRecord) -> List[CanonicalRecord]:
        return await (await self.get(user_id)).record(item)

    async def list(self, user_id: str) -> List[CanonicalRecord]:
        cache = await self._lookup(user_id, create=False)
        return await cache.list() if cache is not None else []

    async def remove(self, user_id: str, product_id: str) -> bool:
        cache = await self._lookup(user_id, create=False)
        return await cache.remove(product_id) if cache is not None else False

    async def clear(self, user_id: str) -> None:
        cache = await self._lookup(user_id, create=False)
        if cache is not None:
            await cache.clear()

    def __len__(self) -> int:
        return len(self._caches)
