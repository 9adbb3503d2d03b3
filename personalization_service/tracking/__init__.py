"""
Tracking Subsystem

Interaction log, thumbs votes and the seen filter. All components take an
injected key-value store and degrade to "no history" on storage failures.
"""

from .interaction_store import InteractionStore
from .votes import VoteStore
from .seen_store import SeenStore

__all__ = ['InteractionStore', 'VoteStore', 'SeenStore']
