"""
Deterministic daily shuffle.

Orders are stable for every read within one calendar day and change the
next day. The seed comes from the date (and optionally a city), never from
ambient randomness, so results are reproducible in tests.
"""

import hashlib
import random
from datetime import date, datetime
from typing import List, Optional, Sequence, TypeVar, Union

T = TypeVar("T")


def seed_for_date(day: Union[date, datetime, str, None] = None, city: Optional[str] = None) -> int:
    """Derive a 32-bit seed from a calendar date and optional city name."""
    if day is None:
        day = date.today()
    if isinstance(day, datetime):
        day = day.date()
    key = day if isinstance(day, str) else day.isoformat()
    if city:
        key = f"{key}:{city.strip().lower()}"
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big")


def shuffle_deterministic(items: Sequence[T], seed: int) -> List[T]:
    """Return a seeded permutation of ``items``; the input is left untouched."""
    shuffled = list(items)
    random.Random(seed).shuffle(shuffled)
    return shuffled


def apply_daily_shuffle(
    items: Sequence[T],
    city: Optional[str] = None,
    day: Union[date, datetime, str, None] = None,
) -> List[T]:
    """Shuffle ``items`` with today's (or ``day``'s) seed."""
    return shuffle_deterministic(items, seed_for_date(day, city))
