"""
Feed Layer

Daily shuffle, the TTL/size bounded event cache and the cache-merge loader
that sit between the item source and the rendered rails.
"""

from .shuffle import seed_for_date, shuffle_deterministic, apply_daily_shuffle
from .cache import EventCache, make_key
from .loader import CachedEventsLoader, LoadHandle, merge_items, validate_items

__all__ = [
    'seed_for_date',
    'shuffle_deterministic',
    'apply_daily_shuffle',
    'EventCache',
    'make_key',
    'CachedEventsLoader',
    'LoadHandle',
    'merge_items',
    'validate_items',
]
