"""
Interaction Store

Append-only log of user interactions, bounded by age and size. Writes go
through a debounced in-memory queue so bursts of UI actions produce a single
storage write.
"""

import logging
import threading
import uuid
from typing import Any, Dict, List, Mapping, Optional

from ..config import TrackingConfig
from ..models.interactions import InteractionEvent, InteractionType
from ..models.utils import Clock, days_to_ms, now_ms
from ..storage import KeyValueStore, read_json, remove_key, write_json

logger = logging.getLogger(__name__)

INTERACTIONS_KEY = "personalization.interactions"
SESSION_KEY = "personalization.session_id"

# Accepted spellings for incoming data keys -> InteractionEvent field
_FIELD_ALIASES = {
    "eventId": "event_id",
    "event_id": "event_id",
    "category": "category",
    "query": "query",
    "price": "price",
    "venue": "venue",
    "distance": "distance",
    "vote": "vote",
}


class InteractionStore:
    """Debounced, best-effort interaction log."""

    def __init__(
        self,
        store: KeyValueStore,
        session_store: KeyValueStore,
        config: Optional[TrackingConfig] = None,
        clock: Clock = now_ms,
    ):
        """Initialize the interaction store.

        Args:
            store: Persistent key-value store holding the log
            session_store: Per-session store holding the session identifier
            config: Tracking settings (enabled flag, debounce, bounds)
            clock: Epoch-millisecond clock
        """
        self.store = store
        self.session_store = session_store
        self.config = config or TrackingConfig()
        self.clock = clock
        self._queue: List[InteractionEvent] = []
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.RLock()
        self._session_id: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    # Session -------------------------------------------------------------------

    def get_session_id(self) -> str:
        """Return the browsing-session id, creating it on first use."""
        if self._session_id:
            return self._session_id
        try:
            existing = self.session_store.get(SESSION_KEY)
        except Exception as e:
            logger.warning(f"Session store unavailable: {e}")
            existing = None
        if existing:
            self._session_id = existing
            return existing

        session_id = uuid.uuid4().hex
        try:
            self.session_store.set(SESSION_KEY, session_id)
        except Exception as e:
            logger.warning(f"Could not persist session id: {e}")
        self._session_id = session_id
        return session_id

    # Writes --------------------------------------------------------------------

    def record(self, interaction_type: Any, data: Optional[Mapping[str, Any]] = None) -> bool:
        """Queue one interaction.

        Args:
            interaction_type: InteractionType or its string value
            data: Optional fields (eventId, category, query, price, venue,
                distance, vote, timestamp, meta)

        Returns:
            True if the interaction was queued, False if it was ignored
        """
        if not self.enabled:
            return False

        if isinstance(interaction_type, InteractionType):
            kind = interaction_type
        elif isinstance(interaction_type, str) and InteractionType.is_valid(interaction_type):
            kind = InteractionType(interaction_type)
        else:
            logger.debug(f"Ignoring unknown interaction type: {interaction_type!r}")
            return False

        event = self._build_event(kind, dict(data or {}))

        with self._lock:
            if self._queue and event.timestamp < self._queue[-1].timestamp:
                event.timestamp = self._queue[-1].timestamp
            self._queue.append(event)
            self._schedule_flush()
        return True

    def _build_event(self, kind: InteractionType, data: Dict[str, Any]) -> InteractionEvent:
        fields: Dict[str, Any] = {}
        for key, attr in _FIELD_ALIASES.items():
            if data.get(key) is not None and attr not in fields:
                fields[attr] = data[key]

        try:
            timestamp = int(data["timestamp"])
        except (KeyError, TypeError, ValueError):
            timestamp = self.clock()

        return InteractionEvent.from_dict({
            "type": kind.value,
            "timestamp": timestamp,
            "sessionId": self.get_session_id(),
            "eventId": fields.get("event_id"),
            "category": fields.get("category"),
            "query": fields.get("query"),
            "price": fields.get("price"),
            "venue": fields.get("venue"),
            "distance": fields.get("distance"),
            "vote": fields.get("vote"),
            "meta": data.get("meta") or {},
        })

    def _schedule_flush(self) -> None:
        if self.config.debounce_ms <= 0:
            self.flush()
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(self.config.debounce_ms / 1000.0, self.flush)
        self._timer.daemon = True
        self._timer.start()

    def flush(self) -> bool:
        """Write queued interactions now.

        Returns:
            True if the batch was persisted (or nothing was queued). On a
            storage failure the batch is dropped and False is returned.
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            batch, self._queue = self._queue, []
            if not batch:
                return True

            combined = self._prune(self._load_persisted() + batch)
            if write_json(self.store, INTERACTIONS_KEY, [e.to_dict() for e in combined]):
                logger.debug(f"Persisted {len(batch)} interactions ({len(combined)} total)")
                return True

            logger.warning(f"Dropping {len(batch)} pending interactions after failed write")
            return False

    def close(self) -> None:
        """Flush pending writes; call on shutdown."""
        self.flush()

    # Reads ---------------------------------------------------------------------

    def read_all(self) -> List[InteractionEvent]:
        """Return every non-expired interaction, oldest first.

        Expired entries are purged from storage as a side effect. Queued
        interactions that have not been flushed yet are included.
        """
        if not self.enabled:
            return []

        with self._lock:
            persisted = self._load_persisted()
            pruned = self._prune(persisted)
            if len(pruned) != len(persisted):
                write_json(self.store, INTERACTIONS_KEY, [e.to_dict() for e in pruned])
            combined = pruned + list(self._queue)

        return combined[-self.config.max_events:] if self.config.max_events > 0 else combined

    def get_stats(self) -> Dict[str, int]:
        """Count interactions per type."""
        stats: Dict[str, int] = {}
        for event in self.read_all():
            stats[event.type.value] = stats.get(event.type.value, 0) + 1
        return stats

    def clear_all(self) -> None:
        """Remove every interaction and reset the session id (privacy reset)."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._queue = []
            remove_key(self.store, INTERACTIONS_KEY)
            remove_key(self.session_store, SESSION_KEY)
            self._session_id = None
        logger.info("Cleared all interactions")

    # Internals -----------------------------------------------------------------

    def _load_persisted(self) -> List[InteractionEvent]:
        raw = read_json(self.store, INTERACTIONS_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Interaction log is not a list, treating as empty")
            return []
        events = []
        for item in raw:
            event = InteractionEvent.from_dict(item)
            if event is not None:
                events.append(event)
        return events

    def _prune(self, events: List[InteractionEvent]) -> List[InteractionEvent]:
        cutoff = self.clock() - days_to_ms(self.config.max_age_days)
        fresh = [e for e in events if e.timestamp > cutoff]
        if self.config.max_events > 0 and len(fresh) > self.config.max_events:
            fresh = fresh[-self.config.max_events:]
        return fresh
