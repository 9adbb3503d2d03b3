"""
Personalization engine facade.

Wires one instance of every component against a shared key-value store and
exposes the operations used by the UI and the web layer.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from ..config import PersonalizationConfig
from ..feed.cache import EventCache, make_key
from ..feed.loader import CachedEventsLoader, FetchFn
from ..models.affinity import AffinityProfile
from ..models.interactions import InteractionEvent
from ..models.items import CacheEntry
from ..models.rails import DynamicRail, PersonalizedRail, Row
from ..models.votes import SeenSource, Vote, VoteDirection
from ..models.utils import Clock, now_ms
from ..storage import KeyValueStore, MemoryStore
from ..tracking.interaction_store import InteractionStore
from ..tracking.seen_store import SeenStore
from ..tracking.votes import VoteStore
from .affinity import compute_affinity
from .dynamic_rails import DynamicRailManager
from .personalized_rails import generate_personalized_rails, get_vetoed_ids
from .reorder import ReorderOptions, reorder_rows

logger = logging.getLogger(__name__)


class PersonalizationEngine:
    """All personalization components for one user."""

    def __init__(
        self,
        config: Optional[PersonalizationConfig] = None,
        store: Optional[KeyValueStore] = None,
        session_store: Optional[KeyValueStore] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or PersonalizationConfig()
        self.store = store if store is not None else MemoryStore()
        self.session_store = session_store if session_store is not None else MemoryStore()
        self.clock = clock or now_ms

        self.interactions = InteractionStore(self.store, self.session_store, self.config.tracking, self.clock)
        self.votes = VoteStore(self.store, self.interactions, self.config.thumbs, self.clock)
        self.seen = SeenStore(self.store, self.config.seen, self.clock)
        self.rails = DynamicRailManager(self.store, self.config.dynamic_rails, self.clock)
        self.cache = EventCache(self.store, self.config.cache, self.clock)

    # Interaction log ----------------------------------------------------------

    def track(self, interaction_type: Any, data: Optional[Mapping[str, Any]] = None) -> bool:
        return self.interactions.record(interaction_type, data)

    def flush(self) -> bool:
        return self.interactions.flush()

    def read_interactions(self) -> List[InteractionEvent]:
        return self.interactions.read_all()

    def interaction_stats(self) -> Dict[str, int]:
        return self.interactions.get_stats()

    def clear_all_interactions(self) -> None:
        """Privacy reset: drop every locally held personalization record."""
        self.interactions.clear_all()
        self.votes.clear_votes()
        self.seen.clear()
        self.rails.clear()
        logger.info("Cleared all personalization data")

    # Scoring and ordering -----------------------------------------------------

    def compute_affinity(self, half_life_days: Optional[float] = None) -> AffinityProfile:
        half_life = self.config.tracking.half_life_days if half_life_days is None else half_life_days
        return compute_affinity(self.read_interactions(), half_life, now=self.clock())

    def reorder_options(
        self, discovery_floor: Optional[float] = None, half_life_days: Optional[float] = None
    ) -> ReorderOptions:
        """Reorder options with configured defaults for anything not given."""
        return ReorderOptions(
            discovery_floor=self.config.reorder.discovery_floor if discovery_floor is None else discovery_floor,
            decay_half_life_days=self.config.tracking.half_life_days if half_life_days is None else half_life_days,
        )

    def reorder_rows(
        self,
        rows: Sequence[Row],
        inventory: Optional[Mapping[str, Any]] = None,
        options: Optional[ReorderOptions] = None,
        affinity: Optional[AffinityProfile] = None,
    ) -> List[Row]:
        options = options or self.reorder_options()
        if affinity is None:
            affinity = self.compute_affinity(options.decay_half_life_days)
        return reorder_rows(rows, affinity, inventory, discovery_floor=options.discovery_floor)

    def manage_dynamic_rails(
        self,
        core_categories: Sequence[Any],
        inventory: Mapping[str, Any],
        affinity: Optional[AffinityProfile] = None,
    ) -> List[DynamicRail]:
        interactions = self.read_interactions()
        if affinity is None:
            affinity = compute_affinity(interactions, self.config.tracking.half_life_days, now=self.clock())
        return self.rails.manage(core_categories, affinity, inventory, interactions)

    def personalized_rails(self, items: Sequence[Any]) -> List[PersonalizedRail]:
        interactions = self.read_interactions()
        return generate_personalized_rails(
            items,
            interactions,
            self.config.personalized_rails,
            vetoed_ids=self.vetoed_ids(interactions),
            seen_ids=self.seen.get_seen_ids(),
            now=self.clock(),
            city=self.config.cache.city,
            half_life_days=self.config.tracking.half_life_days,
        )

    def vetoed_ids(self, interactions: Optional[Iterable[InteractionEvent]] = None) -> Set[str]:
        """Current down-votes plus items repeatedly down-voted in the log."""
        if interactions is None:
            interactions = self.read_interactions()
        logged = get_vetoed_ids(interactions, self.config.personalized_rails.veto_threshold)
        return logged | self.votes.get_downvoted_ids()

    # Votes --------------------------------------------------------------------

    def vote(self, event_id: str, direction: Any, event_data: Optional[Mapping[str, Any]] = None) -> Optional[Vote]:
        return self.votes.vote(event_id, direction, event_data)

    def get_vote(self, event_id: str) -> Optional[VoteDirection]:
        return self.votes.get_vote(event_id)

    def toggle_vote(
        self, event_id: str, direction: Any, event_data: Optional[Mapping[str, Any]] = None
    ) -> Optional[VoteDirection]:
        return self.votes.toggle_vote(event_id, direction, event_data)

    def get_downvoted_ids(self) -> Set[str]:
        return self.votes.get_downvoted_ids()

    # Seen filter --------------------------------------------------------------

    def filter_unseen(self, items: Iterable[Any]) -> List[Any]:
        return self.seen.filter_unseen(items)

    def mark_seen(self, event_id: str, source: Any = SeenSource.VIEW) -> None:
        self.seen.mark_seen(event_id, source)

    def mark_many_seen(self, event_ids: Iterable[str], source: Any = SeenSource.VIEW) -> None:
        self.seen.mark_many_seen(event_ids, source)

    # Cache --------------------------------------------------------------------

    def cache_key(self, category: str, lat: Optional[float] = None, lng: Optional[float] = None) -> str:
        return make_key(category, lat, lng)

    def read_cache(self, key: str) -> Optional[CacheEntry]:
        return self.cache.read(key)

    def write_cache(
        self, entry: CacheEntry, ttl_minutes: Optional[float] = None, cap: Optional[int] = None
    ) -> Optional[CacheEntry]:
        return self.cache.write(entry, ttl_minutes, cap)

    def loader(self, fetch: FetchFn, apply_seen: bool = True, hide_vetoed: bool = True) -> CachedEventsLoader:
        """Cache-merge loader bound to this engine's cache and seen store."""
        exclude: Optional[Callable[[], Iterable[str]]] = self.get_downvoted_ids if hide_vetoed else None
        return CachedEventsLoader(
            fetch,
            self.cache,
            seen=self.seen,
            apply_seen=apply_seen,
            exclude_ids=exclude,
            clock=self.clock,
        )

    def close(self) -> None:
        """Flush pending interactions and stop the debounce timer."""
        self.interactions.close()


def build_engine(
    config: Optional[PersonalizationConfig] = None,
    store: Optional[KeyValueStore] = None,
    session_store: Optional[KeyValueStore] = None,
    clock: Optional[Clock] = None,
) -> PersonalizationEngine:
    """Factory for PersonalizationEngine; in-memory stores when none are given."""
    return PersonalizationEngine(config=config, store=store, session_store=session_store, clock=clock)
