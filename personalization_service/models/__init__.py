"""
Models package for the personalization service.

Dataclasses for locally persisted records, plus the pydantic model that
validates upstream item records.
"""

from .interactions import InteractionEvent, InteractionType
from .affinity import AffinityProfile
from .rails import Row, DynamicRail, PersonalizedRail
from .votes import Vote, VoteDirection, SeenRecord, SeenSource
from .items import ContentItem, CacheEntry
from .utils import Clock, now_ms, fixed_clock, DAY_MS, HOUR_MS, MINUTE_MS

__all__ = [
    # Interaction models
    "InteractionEvent",
    "InteractionType",

    # Derived profile
    "AffinityProfile",

    # Rails
    "Row",
    "DynamicRail",
    "PersonalizedRail",

    # Feedback
    "Vote",
    "VoteDirection",
    "SeenRecord",
    "SeenSource",

    # Items and cache
    "ContentItem",
    "CacheEntry",

    # Time helpers
    "Clock",
    "now_ms",
    "fixed_clock",
    "DAY_MS",
    "HOUR_MS",
    "MINUTE_MS",
]
