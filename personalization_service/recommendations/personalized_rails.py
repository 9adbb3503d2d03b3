"""
"Recommended for you" rails.

Builds up to ``max_rails`` rails of concrete items from the user's top
affinity categories, hiding vetoed and already-seen items. Each rail is
daily-shuffled so its order is stable within a day.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence, Set

from ..config import PersonalizedRailsConfig
from ..models.interactions import InteractionEvent, InteractionType
from ..models.rails import PersonalizedRail
from ..models.utils import now_ms
from ..models.votes import VoteDirection
from ..tracking.seen_store import item_id
from ..feed.shuffle import apply_daily_shuffle
from .affinity import compute_affinity
from .category_labels import emoji_for, recommended_name

logger = logging.getLogger(__name__)

RAIL_ID_PREFIX = "personal_"


def get_vetoed_ids(interactions: Iterable[InteractionEvent], threshold: int = 2) -> Set[str]:
    """Item ids down-voted at least ``threshold`` times.

    Votes reach the interaction log as ``view`` records carrying
    ``vote == "down"``; those are counted per item id.
    """
    counts: Counter = Counter()
    for interaction in interactions:
        if (
            interaction.type == InteractionType.VIEW
            and interaction.event_id
            and interaction.vote == VoteDirection.DOWN.value
        ):
            counts[interaction.event_id] += 1
    return {event_id for event_id, count in counts.items() if count >= threshold}


def matches_category(item: Any, category_id: str) -> bool:
    """Loose category match: substring either way, or the id in the title."""
    target = category_id.lower()
    category = (_field(item, "category") or "").lower()
    title = (_field(item, "title") or "").lower()
    if category and (target in category or category in target):
        return True
    return bool(title) and target in title


def generate_personalized_rails(
    all_items: Sequence[Any],
    interactions: Sequence[InteractionEvent],
    config: Optional[PersonalizedRailsConfig] = None,
    vetoed_ids: Optional[Set[str]] = None,
    seen_ids: Optional[Set[str]] = None,
    now: Optional[int] = None,
    city: Optional[str] = None,
    half_life_days: float = 30,
) -> List[PersonalizedRail]:
    """Build personalized rails from the item pool.

    Args:
        all_items: Candidate items (dicts or objects with ``id``/``category``/``title``)
        interactions: Interaction log
        config: Rail limits and thresholds
        vetoed_ids: Item ids never shown
        seen_ids: Item ids already shown
        now: Epoch ms used for decay and for the shuffle day
        city: Optional city mixed into the shuffle seed
        half_life_days: Decay half-life passed to the affinity scorer

    Returns:
        Rails ordered by category affinity, at most ``max_rails``
    """
    config = config or PersonalizedRailsConfig()
    if not config.enabled:
        return []
    if len(interactions) < config.min_interactions:
        logger.debug(f"Only {len(interactions)} interactions, personalized rails need {config.min_interactions}")
        return []

    now = now_ms() if now is None else now
    hidden = set(vetoed_ids or ()) | set(seen_ids or ())
    affinity = compute_affinity(interactions, half_life_days, now=now)
    top = sorted(affinity.categories.items(), key=lambda kv: kv[1], reverse=True)[: config.max_rails]
    day = datetime.fromtimestamp(now / 1000, tz=timezone.utc).date()

    rails: List[PersonalizedRail] = []
    for category_id, score in top:
        items = [
            item for item in all_items
            if item_id(item) not in hidden and matches_category(item, category_id)
        ]
        if len(items) < config.min_events:
            continue
        shuffled = apply_daily_shuffle(items, city, day)
        rails.append(
            PersonalizedRail(
                id=f"{RAIL_ID_PREFIX}{category_id}",
                title=recommended_name(category_id),
                emoji=emoji_for(category_id),
                items=shuffled[: config.rail_size],
                affinity_score=score,
            )
        )
    return rails[: config.max_rails]


def _field(item: Any, name: str) -> Optional[str]:
    value = item.get(name) if isinstance(item, dict) else getattr(item, name, None)
    return str(value) if value is not None else None
