# glam/cache.py
"""
In-process query cache.

Reads are stored under typed keys and dropped by typed invalidation events:
each event knows which keys it makes stale, so mutations never have to
spell out cache keys themselves.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple

from glam.config import settings

logger = logging.getLogger(__name__)


# ---- keys ----

@dataclass(frozen=True)
class WorkingHoursKey:
    artist_id: str


@dataclass(frozen=True)
class AvailabilityKey:
    artist_id: str
    weekday: int


@dataclass(frozen=True)
class BulkAvailabilityKey:
    artist_ids: FrozenSet[str]
    weekday: int


@dataclass(frozen=True)
class BlockedDatesKey:
    artist_id: str


@dataclass(frozen=True)
class CustomerBookingsKey:
    customer_id: int
    today: date  # upcoming/past split moves at midnight


@dataclass(frozen=True)
class ArtistBookingsKey:
    artist_id: str
    status: str


@dataclass(frozen=True)
class PendingCountKey:
    role: str  # "customer" or "artist"
    owner_id: str


# ---- events ----

@dataclass(frozen=True)
class WorkingHoursChanged:
    artist_id: str

    def affects(self, key) -> bool:
        if isinstance(key, (WorkingHoursKey, AvailabilityKey)):
            return key.artist_id == self.artist_id
        if isinstance(key, BulkAvailabilityKey):
            return self.artist_id in key.artist_ids
        return False


@dataclass(frozen=True)
class BlockedDatesChanged:
    artist_id: str

    def affects(self, key) -> bool:
        return isinstance(key, BlockedDatesKey) and key.artist_id == self.artist_id


@dataclass(frozen=True)
class BookingsChanged:
    customer_id: int
    artist_id: str

    def affects(self, key) -> bool:
        if isinstance(key, CustomerBookingsKey):
            return key.customer_id == self.customer_id
        if isinstance(key, ArtistBookingsKey):
            return key.artist_id == self.artist_id
        if isinstance(key, PendingCountKey):
            return key == PendingCountKey("customer", str(self.customer_id)) or \
                key == PendingCountKey("artist", self.artist_id)
        return False


class QueryCache:
    def __init__(self, ttl_seconds: float = settings.CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Any, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        # bumped by every invalidation; loads that straddle one are not stored
        self._generation = 0

    def get(self, key) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    def set(self, key, value) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def get_or_load(self, key, loader: Callable[[], Any]) -> Any:
        with self._lock:
            generation = self._generation
        value = self.get(key)
        if value is None:
            value = loader()
            with self._lock:
                if self._generation == generation:
                    self._entries[key] = (self._clock(), value)
                else:
                    logger.debug("Dropped load of %s that raced an invalidation", key)
        return value

    def invalidate(self, event) -> int:
        with self._lock:
            self._generation += 1
            stale = [key for key in self._entries if event.affects(key)]
            for key in stale:
                del self._entries[key]
        logger.debug("%s invalidated %d cache entries", event, len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


query_cache = QueryCache()
