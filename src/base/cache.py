from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(frozen=True)
class _Entry(Generic[T]):
    stored_at: float
    value: T


class TtlCache(Generic[T]):
    """
    Read-through cache whose entries expire ``ttl_seconds`` after being stored.

    There is no invalidation besides expiry. The clock is injectable so that
    expiry can be tested without sleeping; it must be monotonic.
    """

    def __init__(self, ttl_seconds: float, clock: Clock = time.monotonic) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry[T]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self._ttl:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: T) -> None:
        self._entries[key] = _Entry(stored_at=self._clock(), value=value)

    def purge_expired(self) -> int:
        """Drop expired entries, returning how many were removed."""
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.stored_at >= self._ttl
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)
