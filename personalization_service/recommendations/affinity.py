"""
Affinity scoring.

Turns the interaction log into a normalized taste profile. Each interaction
adds ``weight(type) * 0.5 ** (age / half_life)`` to every dimension it
touches (category, price bucket, venue, weekday/weekend), then each map is
scaled by its maximum raw value (with a minimum divisor of 1).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from ..models.affinity import AffinityProfile
from ..models.interactions import InteractionEvent, InteractionType
from ..models.utils import days_to_ms, now_ms

# Netflix-style signal strengths; vote_up outranks save.
INTERACTION_WEIGHTS: Dict[InteractionType, float] = {
    InteractionType.CLICK: 10,
    InteractionType.SAVE: 50,
    InteractionType.SEARCH: 30,
    InteractionType.VIEW: 1,
    InteractionType.VOTE_UP: 75,
    InteractionType.VOTE_DOWN: -50,
    InteractionType.UNSAVE: -25,
}

DEFAULT_HALF_LIFE_DAYS = 30


def compute_affinity(
    interactions: Iterable[InteractionEvent],
    half_life_days: float = DEFAULT_HALF_LIFE_DAYS,
    now: Optional[int] = None,
) -> AffinityProfile:
    """Compute a decayed, normalized affinity profile.

    Args:
        interactions: Interaction log entries
        half_life_days: Age at which an interaction counts half; <= 0 disables decay
        now: Reference time in epoch ms (defaults to the wall clock)

    Returns:
        AffinityProfile; empty with ``total_interactions == 0`` when there is
        no history, which callers treat as "no personalization available"
    """
    events = list(interactions)
    if not events:
        return AffinityProfile.empty()

    now = now_ms() if now is None else now
    half_life_ms = days_to_ms(half_life_days)

    categories: Dict[str, float] = {}
    price_ranges: Dict[str, float] = {}
    venues: Dict[str, float] = {}
    time_patterns: Dict[str, float] = {}

    for event in events:
        weight = INTERACTION_WEIGHTS.get(event.type, 0) * decay_factor(
            now - event.timestamp, half_life_ms
        )

        if event.category:
            _accumulate(categories, event.category, weight)
        if event.price is not None:
            _accumulate(price_ranges, price_bucket(event.price), weight)
        if event.venue:
            _accumulate(venues, event.venue, weight)
        _accumulate(time_patterns, day_type(event.timestamp), weight)

    return AffinityProfile(
        categories=normalize_scores(categories),
        price_ranges=normalize_scores(price_ranges),
        venues=normalize_scores(venues),
        time_patterns=normalize_scores(time_patterns),
        total_interactions=len(events),
    )


def decay_factor(age_ms: float, half_life_ms: float) -> float:
    """Exponential decay multiplier for an interaction ``age_ms`` old."""
    if half_life_ms <= 0:
        return 1.0
    # Clock skew can produce future timestamps; they count as brand new.
    return 0.5 ** (max(age_ms, 0) / half_life_ms)


def price_bucket(price: float) -> str:
    """Categorize a price into a fixed bucket."""
    if price == 0:
        return "free"
    if price < 25:
        return "under25"
    if price < 50:
        return "under50"
    if price < 100:
        return "under100"
    return "over100"


def day_type(timestamp_ms: int) -> str:
    """``weekend`` for Saturday/Sunday (UTC), otherwise ``weekday``."""
    day = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).weekday()
    return "weekend" if day >= 5 else "weekday"


def normalize_scores(scores: Dict[str, float]) -> Dict[str, float]:
    """Scale every value by the map's maximum, never dividing by less than 1.

    Weak signals (a single stale view) stay below full affinity and an
    all-negative map keeps its negative magnitudes.
    """
    if not scores:
        return {}
    peak = max(scores.values())
    divisor = max(peak, 1.0)
    return {key: value / divisor for key, value in scores.items()}


def _accumulate(bucket: Dict[str, float], key: str, weight: float) -> None:
    bucket[key] = bucket.get(key, 0.0) + weight
