"""
Time helpers shared by the models and components.

All timestamps in the personalization service are epoch milliseconds.
"""

import time
from typing import Callable

Clock = Callable[[], int]

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def days_to_ms(days: float) -> float:
    return days * DAY_MS


def hours_to_ms(hours: float) -> float:
    return hours * HOUR_MS


def fixed_clock(timestamp_ms: int) -> Clock:
    """Return a clock frozen at ``timestamp_ms`` (handy for tests and replays)."""
    return lambda: timestamp_ms
