"""In-memory cache with a capacity bound and per-entry time-to-live."""

import logging
import time
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """
    Least-recently-used cache whose entries expire after ``ttl_seconds``.

    A cache instance is owned by whoever creates it and passed explicitly to
    the code that needs it; nothing in the package keeps a module-level cache.

    Args:
        capacity: Maximum number of live entries; the least recently used
            entry is evicted when a new key would exceed it
        ttl_seconds: Lifetime of an entry, None for no expiry
        clock: Monotonic clock, injectable for tests
        name: Label used in log messages
    """

    def __init__(
        self,
        capacity: int,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        name: str = "cache",
    ):
        if capacity <= 0:
            raise ValueError("capacity must be greater than zero")
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero")

        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        # key -> (stored_at, value), ordered from least to most recently used
        self._entries: "OrderedDict[K, Tuple[float, V]]" = OrderedDict()

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self._live_entry(key) is not None

    def _is_expired(self, stored_at: float) -> bool:
        if self.ttl_seconds is None:
            return False
        return self._clock() - stored_at >= self.ttl_seconds

    def _live_entry(self, key) -> Optional[Tuple[float, V]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry[0]):
            del self._entries[key]
            return None
        return entry

    def _purge_expired(self) -> None:
        expired = [
            key for key, (stored_at, _) in self._entries.items()
            if self._is_expired(stored_at)
        ]
        for key in expired:
            del self._entries[key]

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Return the live value for ``key`` or ``default``."""
        entry = self._live_entry(key)
        if entry is None:
            return default
        self._entries.move_to_end(key)
        return entry[1]

    def set(self, key: K, value: V) -> None:
        """Store ``value`` under ``key``, evicting the least recently used entry if full."""
        if key in self._entries:
            del self._entries[key]
        else:
            self._purge_expired()
            while len(self._entries) >= self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"{self.name}: evicted {evicted!r}")
        self._entries[key] = (self._clock(), value)

    def delete(self, key: K) -> bool:
        """Remove ``key``; returns True if an entry was removed."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_load(self, key: K, loader: Callable[[], Awaitable[Optional[V]]]) -> Optional[V]:
        """
        Return the cached value, or await ``loader`` and cache a non-None result.

        Errors raised by ``loader`` propagate and nothing is cached.
        """
        entry = self._live_entry(key)
        if entry is not None:
            self._entries.move_to_end(key)
            return entry[1]

        value = await loader()
        if value is not None:
            self.set(key, value)
        return value

    def stats(self) -> Dict[str, object]:
        """Describe the cache for debug output."""
        return {
            "name": self.name,
            "size": len(self),
            "capacity": self.capacity,
            "ttl_seconds": self.ttl_seconds,
        }
