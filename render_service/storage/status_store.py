"""Short-lived in-memory store of the latest job status snapshots."""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass
class _Entry(Generic[T]):
    value: T
    expires_at: float


class TTLStore(Generic[T]):
    """Key/value store whose entries expire `ttl_seconds` after their last write."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _Entry[T]] = {}

    def set(self, key: str, value: T) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + self._ttl_seconds)

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.value

    def items(self) -> Tuple[Tuple[str, T], ...]:
        now = self._clock()
        return tuple((k, e.value) for k, e in self._entries.items() if e.expires_at > now)

    def cleanup_expired(self) -> int:
        """Drop expired entries. Returns count removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for e in self._entries.values() if e.expires_at > now)
