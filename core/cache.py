"""Time-to-live cache for derived analytics views."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from config.settings import DEFAULT_CACHE_TTL_SECONDS

__all__ = ["CacheEntry", "TTLCache", "make_key"]


@dataclass(frozen=True)
class CacheEntry:
    key: str
    data: Any
    timestamp: float


def make_key(operation: str, *params: Any) -> str:
    """Compose a cache key from an operation name and its parameters."""

    if not params:
        return operation
    return f"{operation}:{json.dumps(params, default=str, separators=(',', ':'))}"


class TTLCache:
    """Key-value store whose entries expire ``ttl`` seconds after being set.

    The clock is injectable so expiry can be exercised without sleeping. There
    is no locking: concurrent writers for the same key simply overwrite each
    other, which is fine because every cached value is a pure function of the
    current records.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.ttl = float(ttl)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp < self.ttl:
            return entry.data
        self._entries.pop(key, None)
        return None

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(key=key, data=value, timestamp=self._clock())

    def clear(self) -> None:
        self._entries = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None
