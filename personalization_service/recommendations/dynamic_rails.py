"""
Dynamic Rail Manager

Spawns taste-derived rails when a category's affinity and inventory cross
their thresholds, and sunsets them after a period without interaction.
The full rail list is checkpointed so repeated passes without new signal
return the same rails.

Rail lifecycle: absent -> active -> sunset (removed). A sunset category is
remembered and only comes back after a fresh interaction with it.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..config import DynamicRailsConfig
from ..models.affinity import AffinityProfile
from ..models.interactions import InteractionEvent
from ..models.rails import DynamicRail, Row
from ..models.utils import DAY_MS, HOUR_MS, Clock, now_ms
from ..storage import KeyValueStore, read_json, remove_key, write_json
from .category_labels import display_name, emoji_for
from .reorder import inventory_count

logger = logging.getLogger(__name__)

DYNAMIC_RAILS_KEY = "personalization.dynamic_rails"
RECENT_ACTIVITY_HOURS = 24


class DynamicRailManager:
    """Maintains core and dynamic rails across recomputation passes."""

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[DynamicRailsConfig] = None,
        clock: Clock = now_ms,
    ):
        self.store = store
        self.config = config or DynamicRailsConfig()
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def manage(
        self,
        core_categories: Sequence[Any],
        affinity: AffinityProfile,
        inventory: Mapping[str, Any],
        interactions: Iterable[InteractionEvent],
    ) -> List[DynamicRail]:
        """Run one spawn/sunset pass.

        Args:
            core_categories: Static category list (Row objects or dicts with id/title/emoji)
            affinity: Current affinity profile
            inventory: Category id -> available items (or item count)
            interactions: Interaction log used for activity refresh

        Returns:
            Core rails followed by active dynamic rails; [] when disabled
        """
        if not self.enabled:
            return []

        now = self.clock()
        interactions = list(interactions)
        existing, retired = self._load_state()

        core_rails = self._build_core_rails(core_categories, affinity, existing, now)
        core_ids = {rail.category_id for rail in core_rails}
        for category_id in core_ids:
            retired.pop(category_id, None)

        dynamic_rails: List[DynamicRail] = []
        for category_id, score in self._rank_candidates(affinity, inventory, core_ids, retired, interactions, now):
            previous = next(
                (r for r in existing if r.category_id == category_id and not r.is_core), None
            )
            if previous is not None:
                active = _has_recent_interaction(category_id, interactions, now)
                dynamic_rails.append(replace(
                    previous,
                    affinity_score=score,
                    last_active_at=now if active else previous.last_active_at,
                ))
            else:
                logger.info(f"Spawning dynamic rail for '{category_id}' (affinity {score:.2f})")
                dynamic_rails.append(DynamicRail(
                    id=f"dynamic_{category_id}_{now}",
                    category_id=category_id,
                    title=display_name(category_id),
                    emoji=emoji_for(category_id),
                    affinity_score=score,
                    spawned_at=now,
                    last_active_at=now,
                    is_core=False,
                ))

        sunset_threshold = now - self.config.sunset_days * DAY_MS
        active_rails = []
        for rail in dynamic_rails:
            if rail.last_active_at > sunset_threshold:
                active_rails.append(rail)
            else:
                logger.info(f"Sunsetting dynamic rail '{rail.category_id}' (inactive since {rail.last_active_at})")
                retired[rail.category_id] = now

        all_rails = core_rails + active_rails
        self._save_state(all_rails, retired)
        return all_rails

    def read_rails(self) -> List[DynamicRail]:
        """Return the last checkpointed rail list."""
        rails, _ = self._load_state()
        return rails

    def get_stats(self) -> Dict[str, int]:
        """Summary counts over the checkpointed rails."""
        if not self.enabled:
            return {"total": 0, "core": 0, "dynamic": 0, "spawned24h": 0, "sunsetCandidates": 0}

        rails = self.read_rails()
        now = self.clock()
        sunset_threshold = now - self.config.sunset_days * DAY_MS
        return {
            "total": len(rails),
            "core": sum(1 for r in rails if r.is_core),
            "dynamic": sum(1 for r in rails if not r.is_core),
            "spawned24h": sum(1 for r in rails if r.spawned_at > now - DAY_MS),
            "sunsetCandidates": sum(
                1 for r in rails if not r.is_core and r.last_active_at < sunset_threshold
            ),
        }

    def clear(self) -> None:
        remove_key(self.store, DYNAMIC_RAILS_KEY)

    # Internals ----------------------------------------------------------------

    def _build_core_rails(
        self,
        core_categories: Sequence[Any],
        affinity: AffinityProfile,
        existing: List[DynamicRail],
        now: int,
    ) -> List[DynamicRail]:
        rails: List[DynamicRail] = []
        seen_ids = set()
        for category in core_categories[: max(self.config.core_limit, 0)]:
            category_id, title, emoji = _category_fields(category)
            if not category_id or category_id in seen_ids:
                continue
            seen_ids.add(category_id)

            previous = next((r for r in existing if r.category_id == category_id and r.is_core), None)
            if previous is not None:
                rails.append(replace(
                    previous,
                    title=title or previous.title,
                    emoji=emoji or previous.emoji,
                    affinity_score=affinity.categories.get(category_id, previous.affinity_score),
                ))
            else:
                rails.append(DynamicRail(
                    id=f"core_{category_id}",
                    category_id=category_id,
                    title=title or display_name(category_id),
                    emoji=emoji or emoji_for(category_id),
                    affinity_score=affinity.category_score(category_id),
                    spawned_at=now,
                    last_active_at=now,
                    is_core=True,
                ))
        return rails

    def _rank_candidates(
        self,
        affinity: AffinityProfile,
        inventory: Mapping[str, Any],
        core_ids: set,
        retired: Dict[str, int],
        interactions: List[InteractionEvent],
        now: int,
    ) -> List[Tuple[str, float]]:
        candidates: List[Tuple[str, float]] = []
        for category_id, score in affinity.categories.items():
            if category_id in core_ids:
                continue
            if score < self.config.spawn_threshold:
                continue
            if inventory_count(inventory.get(category_id)) < self.config.min_events:
                continue
            if category_id in retired:
                if not _has_recent_interaction(category_id, interactions, now, after=retired[category_id]):
                    continue
                del retired[category_id]
            candidates.append((category_id, score))

        candidates.sort(key=lambda item: (-item[1], item[0]))
        return candidates[: max(self.config.dynamic_limit, 0)]

    def _load_state(self) -> Tuple[List[DynamicRail], Dict[str, int]]:
        raw = read_json(self.store, DYNAMIC_RAILS_KEY, {})
        if isinstance(raw, list):
            raw = {"rails": raw}
        if not isinstance(raw, dict):
            logger.warning("Dynamic rail checkpoint has unexpected shape, resetting")
            return [], {}

        raw_rails = raw.get("rails")
        raw_retired = raw.get("retired")
        if not isinstance(raw_rails, list):
            raw_rails = []
        if not isinstance(raw_retired, dict):
            raw_retired = {}

        rails: List[DynamicRail] = []
        for item in raw_rails:
            if not isinstance(item, dict):
                continue
            try:
                rails.append(DynamicRail.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed dynamic rail record: {e}")

        retired: Dict[str, int] = {}
        for category_id, ts in raw_retired.items():
            try:
                retired[str(category_id)] = int(ts)
            except (TypeError, ValueError):
                continue
        return rails, retired

    def _save_state(self, rails: List[DynamicRail], retired: Dict[str, int]) -> None:
        write_json(self.store, DYNAMIC_RAILS_KEY, {
            "rails": [rail.to_dict() for rail in rails],
            "retired": retired,
        })


def manage_dynamic_rails(
    store: KeyValueStore,
    core_categories: Sequence[Any],
    affinity: AffinityProfile,
    inventory: Mapping[str, Any],
    interactions: Iterable[InteractionEvent],
    config: Optional[DynamicRailsConfig] = None,
    clock: Clock = now_ms,
) -> List[DynamicRail]:
    """One-shot helper around DynamicRailManager.manage."""
    return DynamicRailManager(store, config, clock).manage(
        core_categories, affinity, inventory, interactions
    )


def _category_fields(category: Any) -> Tuple[str, str, str]:
    if isinstance(category, Row):
        return category.id, category.title, category.emoji
    if isinstance(category, Mapping):
        return str(category.get("id") or ""), category.get("title") or "", category.get("emoji") or ""
    return str(getattr(category, "id", "") or ""), getattr(category, "title", ""), getattr(category, "emoji", "")


def _has_recent_interaction(
    category_id: str,
    interactions: Iterable[InteractionEvent],
    now: int,
    after: Optional[int] = None,
) -> bool:
    threshold = now - RECENT_ACTIVITY_HOURS * HOUR_MS
    if after is not None:
        threshold = max(threshold, after)
    return any(i.category == category_id and i.timestamp > threshold for i in interactions)
