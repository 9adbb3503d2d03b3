"""
Personalization Service

Local-first personalization: an interaction log, affinity scoring, row
reordering, dynamic rails, votes, the seen filter, daily shuffle and an
event cache. Every stateful component works against an injected key-value
store.
"""

from .config import PersonalizationConfig
from .storage import KeyValueStore, MemoryStore, JsonFileStore
from .recommendations.engine import PersonalizationEngine, build_engine

__all__ = [
    'PersonalizationConfig',
    'KeyValueStore',
    'MemoryStore',
    'JsonFileStore',
    'PersonalizationEngine',
    'build_engine',
]
