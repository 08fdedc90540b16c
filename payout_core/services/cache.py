"""Read-side query cache with keyed invalidation.

Payout success invalidates the recent-transactions and profile/balance
entries; views subscribed to the cache refetch on invalidation.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from payout_core.config import Settings, get_settings
from treegar_client import TreegarClient

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[[str], None]


class CacheKey:
    """Cache keys shared by the payout and read-side views."""
    TRANSACTIONS = "transactions"
    PROFILE = "profile"


@dataclass
class CacheEntry:
    """Cached query result."""
    value: Any
    expires_at: float


class QueryCache:
    """In-memory cache of server-owned read models."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._fetchers: Dict[str, Fetcher] = {}
        self._entries: Dict[str, CacheEntry] = {}
        self._listeners: List[Listener] = []

    @classmethod
    def for_client(cls, client: TreegarClient, settings: Optional[Settings] = None) -> "QueryCache":
        """Cache with the transactions and profile queries registered."""
        cache = cls(settings)
        cache.register(CacheKey.TRANSACTIONS, client.list_transactions)
        cache.register(CacheKey.PROFILE, client.get_profile)
        return cache

    def register(self, key: str, fetcher: Fetcher) -> None:
        self._fetchers[key] = fetcher

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener(key)` on every invalidation. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def peek(self, key: str) -> Optional[Any]:
        """Cached value if present and fresh, without fetching."""
        entry = self._entries.get(key)
        if entry and entry.expires_at > time.monotonic():
            return entry.value
        return None

    def is_stale(self, key: str) -> bool:
        return self.peek(key) is None

    async def get(self, key: str) -> Any:
        """Cached value, fetched first if missing, expired or invalidated."""
        entry = self._entries.get(key)
        if entry and entry.expires_at > time.monotonic():
            return entry.value

        fetcher = self._fetchers.get(key)
        if fetcher is None:
            raise KeyError(f"No query registered for {key!r}")

        value = await fetcher()
        self._entries[key] = CacheEntry(
            value=value,
            expires_at=time.monotonic() + self.settings.cache_ttl_seconds,
        )
        return value

    def invalidate(self, *keys: str) -> None:
        """Drop entries and notify listeners so dependent views refetch."""
        for key in keys:
            self._entries.pop(key, None)
            logger.debug(f"Cache invalidated: {key}")
            for listener in list(self._listeners):
                try:
                    listener(key)
                except Exception:
                    logger.exception(f"Cache listener failed for {key}")
