"""
Process-wide cache for the public category listing.

The category list changes rarely and is read on every page, so it is cached
for a fixed window (10 minutes by default). The cache is an explicitly owned
object: the app creates one at startup (``app.state.category_cache``) and
handlers receive it through a dependency. The clock is injectable so expiry
is deterministic under test.

There is no locking: if two requests see an expired entry at the same time
both refetch, and the last write wins.
"""

import time
from typing import Callable, Optional

from cachetools import TTLCache

_CACHE_KEY = "categories"


class CategoryCache:
    def __init__(self, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._cache: TTLCache = TTLCache(maxsize=1, ttl=ttl_seconds, timer=clock)

    def get(self) -> Optional[list]:
        return self._cache.get(_CACHE_KEY)

    def set(self, categories: list) -> None:
        self._cache[_CACHE_KEY] = categories

    def get_or_load(self, loader: Callable[[], list]) -> list:
        """Return the cached listing, calling ``loader`` on a miss or expiry."""
        cached = self.get()
        if cached is not None:
            return cached
        categories = loader()
        self.set(categories)
        return categories

    def invalidate(self) -> None:
        self._cache.clear()
