"""Caller-owned memoization for analytics results.

The engine is pure, so a cache only ever sits in front of it. Keys are a
stable digest of the inputs; entries expire after a TTL and the least
recently used entry is evicted once the cache is full.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import asdict, dataclass, is_dataclass
from datetime import date
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_CAPACITY = 128


class Cache(Protocol):
    """Cache interface for analytics results."""

    def get(self, key: str) -> Optional[object]:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object) -> None:
        """Store a value."""


@dataclass
class _CacheEntry:
    value: object
    expires_at: float


def _to_jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return _to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_to_jsonable(v) for v in value]
        return sorted(items, key=repr) if isinstance(value, (set, frozenset)) else items
    if isinstance(value, date):
        return value.isoformat()
    return value


def make_key(namespace: str, *parts: Any) -> str:
    """
    Build a stable cache key from a namespace and arbitrary inputs.

    Dataclasses, dates, mappings and sequences are normalized before
    hashing, so equal inputs always produce the same key.

    Example:
        >>> make_key("adherence", records, 7) == make_key("adherence", records, 7)
        True
    """
    payload = json.dumps(_to_jsonable(list(parts)), sort_keys=True, default=repr)
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:32]
    return f"{namespace}:{digest}"


class ResultCache(Cache):
    """In-memory TTL cache with LRU eviction."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.ttl_seconds = ttl_seconds
        self.capacity = capacity
        self._clock = clock
        self._entries: OrderedDict[str, _CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[object]:
        """Return a cached value if it hasn't expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        self._entries.move_to_end(key)
        return entry.value

    def set(self, key: str, value: object) -> None:
        """Store a value, evicting the least recently used entry when full."""
        self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + self.ttl_seconds)
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("cache full, evicted %s", evicted)

    def get_or_compute(self, key: str, compute: Callable[[], object]) -> object:
        """Return the cached value for ``key``, computing and storing it on a miss.

        ``None`` results are not cached.
        """
        value = self.get(key)
        if value is None:
            value = compute()
            if value is not None:
                self.set(key, value)
        return value

    def clear(self) -> None:
        self._entries.clear()
