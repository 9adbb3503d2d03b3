"""
Seen Store

TTL-bounded record of items already shown, so rails do not keep surfacing
the same items. Expired records are dropped whenever the store is read.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set, TypeVar

from ..config import SeenStoreConfig
from ..models.utils import DAY_MS, Clock, days_to_ms, now_ms
from ..models.votes import SeenRecord, SeenSource
from ..storage import KeyValueStore, read_json, remove_key, write_json

logger = logging.getLogger(__name__)

SEEN_KEY = "personalization.seen"

T = TypeVar("T")


def item_id(item: Any) -> Optional[str]:
    """Id of a dict-like or attribute-style item."""
    if isinstance(item, dict):
        value = item.get("id")
    else:
        value = getattr(item, "id", None)
    return str(value) if value is not None else None


class SeenStore:
    """Tracks recently shown item ids."""

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[SeenStoreConfig] = None,
        clock: Clock = now_ms,
    ):
        self.store = store
        self.config = config or SeenStoreConfig()
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def mark_seen(self, event_id: str, source: Any = SeenSource.VIEW) -> None:
        """Mark one item as seen (refreshing the timestamp if already marked)."""
        self.mark_many_seen([event_id], source)

    def mark_many_seen(self, event_ids: Iterable[str], source: Any = SeenSource.VIEW) -> None:
        """Bulk variant used when a whole rail scrolls into view."""
        ids = [str(e) for e in event_ids if e]
        if not self.enabled or not ids:
            return

        seen_source = _parse_source(source)
        now = self.clock()
        records = {r.event_id: r for r in self.read_records()}
        for event_id in ids:
            records[event_id] = SeenRecord(event_id=event_id, seen_at=now, source=seen_source)

        updated = list(records.values())
        if len(updated) > self.config.max_entries:
            updated.sort(key=lambda r: r.seen_at, reverse=True)
            updated = updated[: self.config.max_entries]
        self._save(updated)

    def has_seen(self, event_id: str) -> bool:
        if not self.enabled:
            return False
        return str(event_id) in self.get_seen_ids()

    def get_seen_ids(self) -> Set[str]:
        if not self.enabled:
            return set()
        return {r.event_id for r in self.read_records()}

    def filter_unseen(self, items: Iterable[T]) -> List[T]:
        """Drop items whose id is marked seen and not yet expired."""
        items = list(items)
        if not self.enabled:
            return items
        seen_ids = self.get_seen_ids()
        return [item for item in items if item_id(item) not in seen_ids]

    def read_records(self) -> List[SeenRecord]:
        """Non-expired seen records; purges expired ones from storage."""
        raw = read_json(self.store, SEEN_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Seen store has unexpected shape, treating as empty")
            return []

        records = [r for r in (SeenRecord.from_dict(item) for item in raw) if r is not None]
        cutoff = self.clock() - days_to_ms(self.config.ttl_days)
        fresh = [r for r in records if r.seen_at > cutoff]
        if len(fresh) != len(raw):
            self._save(fresh)
        return fresh

    def get_stats(self) -> Dict[str, int]:
        if not self.enabled:
            return {"total": 0, "last24h": 0, "last7d": 0, "last14d": 0}
        records = self.read_records()
        now = self.clock()
        return {
            "total": len(records),
            "last24h": sum(1 for r in records if r.seen_at > now - DAY_MS),
            "last7d": sum(1 for r in records if r.seen_at > now - 7 * DAY_MS),
            "last14d": sum(1 for r in records if r.seen_at > now - 14 * DAY_MS),
        }

    def clear(self) -> None:
        remove_key(self.store, SEEN_KEY)

    def _save(self, records: List[SeenRecord]) -> None:
        write_json(self.store, SEEN_KEY, [r.to_dict() for r in records])


def _parse_source(source: Any) -> SeenSource:
    if isinstance(source, SeenSource):
        return source
    try:
        return SeenSource(str(source))
    except ValueError:
        return SeenSource.VIEW
