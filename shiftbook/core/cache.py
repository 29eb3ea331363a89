"""
Explicit time-stamped cache entries

The owner of a cache decides when an entry is stale; entries only remember
what was stored and when.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")


@dataclass
class CachedValue(Generic[T]):
    data: T
    fetched_at: datetime

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.fetched_at < ttl


@dataclass
class KeyedCache(Generic[T]):
    """Per-key cache of CachedValue entries owned by a single component"""

    entries: Dict[Hashable, CachedValue[T]] = field(default_factory=dict)

    def get(self, key: Hashable) -> Optional[CachedValue[T]]:
        return self.entries.get(key)

    def put(self, key: Hashable, data: T, fetched_at: datetime) -> CachedValue[T]:
        entry = CachedValue(data=data, fetched_at=fetched_at)
        self.entries[key] = entry
        return entry

    def invalidate(self, key: Hashable) -> None:
        self.entries.pop(key, None)
