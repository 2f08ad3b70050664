# movie_bot/services/response_cache.py

from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Hashable

from ..config import (
    DEFAULT_LINK_CACHE_MAX_ENTRIES,
    DEFAULT_LINK_CACHE_TTL_SECONDS,
    logger,
)


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float


class ResponseCache:
    """TTL-bounded LRU cache for provider responses, keyed by request URL."""

    MISS = object()

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_LINK_CACHE_MAX_ENTRIES,
        ttl: float = DEFAULT_LINK_CACHE_TTL_SECONDS,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.max_entries = max(1, max_entries)
        self.ttl = ttl
        self._clock = clock or time.monotonic
        self._entries: OrderedDict[Hashable, _CacheEntry] = OrderedDict()

    def get(self, key: Hashable) -> Any:
        entry = self._entries.get(key)
        if not entry:
            return ResponseCache.MISS
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return ResponseCache.MISS
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: Hashable, value: Any, *, ttl: float | None = None) -> None:
        expires_at = self._clock() + (ttl if ttl is not None else self.ttl)
        self._entries[key] = _CacheEntry(value=value, expires_at=expires_at)
        self._entries.move_to_end(key)
        self._evict_if_needed()

    async def get_or_fetch(
        self, key: Hashable, fetch: Callable[[], Awaitable[Any]]
    ) -> Any:
        """
        Returns the cached value for `key`, or awaits `fetch()` and stores the
        result. Exceptions from `fetch` propagate and nothing is cached.
        """
        cached = self.get(key)
        if cached is not ResponseCache.MISS:
            logger.info(f"[CACHE] HIT for '{key}'")
            return cached

        logger.info(f"[CACHE] MISS for '{key}'")
        value = await fetch()
        self.set(key, value)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _evict_if_needed(self) -> None:
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
