"""Owner-scoped TTL cache."""

import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import NamedTuple, Protocol

DEFAULT_TTL_SECONDS = 300

_logger = logging.getLogger(__name__)


class CacheKey(NamedTuple):
    """Structured cache key scoped to a single owner."""

    namespace: str
    owner_id: str
    params: tuple[Hashable, ...] = ()


class Cache(Protocol):
    """Cache interface for owner-scoped query results."""

    def get(self, key: CacheKey) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: CacheKey, value: object) -> None:
        """Store a value under the cache TTL."""

    def invalidate_owner(self, owner_id: str) -> int:
        """Drop every entry belonging to an owner."""

    def clear(self) -> None:
        """Drop every entry."""


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class _CacheEntry:
    value: object
    stored_at: datetime


@dataclass
class TTLCache(Cache):
    """In-memory cache with a fixed TTL and per-owner invalidation."""

    ttl_seconds: int = DEFAULT_TTL_SECONDS
    clock: Callable[[], datetime] = _utc_now
    _entries: dict[CacheKey, _CacheEntry] = field(
        default_factory=dict, init=False, repr=False
    )

    def get(self, key: CacheKey) -> object | None:
        """Return a cached value if it hasn't expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self.clock() - entry.stored_at >= timedelta(seconds=self.ttl_seconds):
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: CacheKey, value: object) -> None:
        """Store a cached value stamped with the current time."""
        self._entries[key] = _CacheEntry(value=value, stored_at=self.clock())

    def invalidate_owner(self, owner_id: str) -> int:
        """Remove all entries whose key belongs to the owner."""
        stale = [key for key in list(self._entries) if key.owner_id == owner_id]
        for key in stale:
            self._entries.pop(key, None)
        _logger.debug("Cleared %s cache entries for owner %s", len(stale), owner_id)
        return len(stale)

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
