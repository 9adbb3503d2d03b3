"""
Event cache keyed by (category, coarse location).

Entries carry their write time and TTL; expired entries read as missing and
are removed. Writes truncate the item list to the configured cap.
"""

import logging
import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional, Set

from ..config import CacheConfig
from ..models.items import CacheEntry
from ..models.utils import Clock, now_ms
from ..storage import KeyValueStore, read_json, remove_key, write_json

logger = logging.getLogger(__name__)

CACHE_PREFIX = "personalization.cache:"
CACHE_INDEX_KEY = "personalization.cache_index"
LOCATION_PRECISION = 2


def make_key(category: str, lat: Optional[float] = None, lng: Optional[float] = None) -> str:
    """Cache key for a category near a location.

    Coordinates are rounded to two decimals (roughly 1 km) so nearby
    positions share an entry.
    """
    if lat is None or lng is None:
        return f"{category}@global"
    return f"{category}@{round(float(lat), LOCATION_PRECISION):.2f},{round(float(lng), LOCATION_PRECISION):.2f}"


class EventCache:
    """TTL and size bounded cache of item lists."""

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[CacheConfig] = None,
        clock: Clock = now_ms,
    ):
        self.store = store
        self.config = config or CacheConfig()
        self.clock = clock
        self._in_flight: Set[str] = set()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def read(self, key: str) -> Optional[CacheEntry]:
        """Return the fresh entry for ``key`` or None."""
        if not self.enabled:
            return None
        raw = read_json(self.store, CACHE_PREFIX + key)
        if raw is None:
            return None
        try:
            if not isinstance(raw, dict):
                raise TypeError(f"expected an object, got {type(raw).__name__}")
            entry = CacheEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed cache entry '{key}': {e}")
            self.remove(key)
            return None

        if not entry.is_fresh(self.clock()):
            logger.debug(f"Cache entry '{key}' expired")
            self.remove(key)
            return None
        return entry

    def write(
        self,
        entry: CacheEntry,
        ttl_minutes: Optional[float] = None,
        cap: Optional[int] = None,
    ) -> Optional[CacheEntry]:
        """Persist ``entry`` truncated to ``cap`` items.

        Args:
            entry: Entry to store; a zero ``ts`` is stamped with the current time
            ttl_minutes: Freshness window (defaults to the configured TTL)
            cap: Maximum number of items kept (defaults to the configured cap)

        Returns:
            The entry as persisted, or None when disabled or the write failed
        """
        if not self.enabled:
            return None
        ttl = self.config.ttl_minutes if ttl_minutes is None else ttl_minutes
        limit = self.config.cap if cap is None else cap

        stored = replace(
            entry,
            ts=entry.ts or self.clock(),
            ttl_minutes=ttl,
            events=list(entry.events)[: max(limit, 0)],
        )
        if not write_json(self.store, CACHE_PREFIX + stored.key, stored.to_dict()):
            return None
        self._index_add(stored.key)
        return stored

    def remove(self, key: str) -> None:
        remove_key(self.store, CACHE_PREFIX + key)
        self._index_discard(key)

    def clear(self, key: Optional[str] = None) -> int:
        """Remove one entry, or every cached entry when ``key`` is None.

        Returns:
            Number of keys dropped
        """
        if key is not None:
            present = key in self._index()
            self.remove(key)
            return int(present)
        keys = self._index()
        for cached_key in keys:
            remove_key(self.store, CACHE_PREFIX + cached_key)
        remove_key(self.store, CACHE_INDEX_KEY)
        return len(keys)

    # Refresh guard shared by every loader bound to this cache --------------------

    def claim(self, key: str) -> bool:
        """Mark a refresh of ``key`` as running; False if one already is."""
        with self._lock:
            if key in self._in_flight:
                return False
            self._in_flight.add(key)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._in_flight.discard(key)

    def is_loading(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    def get_stats(self) -> Dict[str, Any]:
        keys = self._index()
        return {"size": len(keys), "entries": keys[:5]}

    # Index of keys so clear() can find every entry --------------------------------

    def _index(self) -> List[str]:
        raw = read_json(self.store, CACHE_INDEX_KEY, [])
        return [str(k) for k in raw] if isinstance(raw, list) else []

    def _index_add(self, key: str) -> None:
        keys = self._index()
        if key not in keys:
            keys.append(key)
            write_json(self.store, CACHE_INDEX_KEY, keys)

    def _index_discard(self, key: str) -> None:
        keys = self._index()
        if key in keys:
            keys.remove(key)
            write_json(self.store, CACHE_INDEX_KEY, keys)
