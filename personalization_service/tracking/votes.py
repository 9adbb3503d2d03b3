"""
Vote/Veto Subsystem

Thumbs up/down per item. Every vote is also forwarded to the interaction
store (a ``view`` record carrying the vote, plus a ``save`` on thumbs-up) so
the affinity scorer picks up the signal without vote-specific logic.
Down-voted ids form the veto set consumed by list producers.
"""

import logging
from typing import Any, Dict, Mapping, Optional, Set

from ..config import ThumbsConfig
from ..models.interactions import InteractionType
from ..models.utils import Clock, now_ms
from ..models.votes import Vote, VoteDirection
from ..storage import KeyValueStore, read_json, remove_key, write_json
from .interaction_store import InteractionStore

logger = logging.getLogger(__name__)

VOTES_KEY = "personalization.votes"

# Item fields copied onto the forwarded interaction
_FORWARDED_FIELDS = ("category", "price", "venue", "distance")


class VoteStore:
    """At most one vote per item, persisted as a map keyed by item id."""

    def __init__(
        self,
        store: KeyValueStore,
        interactions: Optional[InteractionStore] = None,
        config: Optional[ThumbsConfig] = None,
        clock: Clock = now_ms,
    ):
        self.store = store
        self.interactions = interactions
        self.config = config or ThumbsConfig()
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def vote(
        self,
        event_id: str,
        direction: Any,
        event_data: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Vote]:
        """Record a vote, replacing any earlier vote for the same item.

        Returns:
            The stored Vote, or None when disabled or the input is invalid
        """
        if not self.enabled:
            return None
        parsed = VoteDirection.parse(direction)
        if parsed is None or not event_id:
            logger.debug(f"Ignoring vote {direction!r} for {event_id!r}")
            return None

        votes = self._load()
        record = Vote(event_id=str(event_id), vote=parsed, voted_at=self.clock())
        votes[record.event_id] = record
        self._save(votes)
        self._forward(record, event_data or {})
        return record

    def get_vote(self, event_id: str) -> Optional[VoteDirection]:
        if not self.enabled:
            return None
        record = self._load().get(str(event_id))
        return record.vote if record else None

    def toggle_vote(
        self,
        event_id: str,
        direction: Any,
        event_data: Optional[Mapping[str, Any]] = None,
    ) -> Optional[VoteDirection]:
        """Clear the vote if ``direction`` repeats it, otherwise set/switch it.

        Returns:
            The item's vote after the toggle (None when cleared)
        """
        if not self.enabled:
            return None
        parsed = VoteDirection.parse(direction)
        if parsed is None:
            return self.get_vote(event_id)

        if self.get_vote(event_id) == parsed:
            self.remove_vote(event_id)
            return None

        record = self.vote(event_id, parsed, event_data)
        return record.vote if record else None

    def remove_vote(self, event_id: str) -> bool:
        if not self.enabled:
            return False
        votes = self._load()
        if str(event_id) not in votes:
            return False
        del votes[str(event_id)]
        self._save(votes)
        return True

    def get_downvoted_ids(self) -> Set[str]:
        """Ids of every item currently voted down (the veto set)."""
        if not self.enabled:
            return set()
        return {v.event_id for v in self._load().values() if v.vote == VoteDirection.DOWN}

    def get_all_votes(self) -> Dict[str, Vote]:
        if not self.enabled:
            return {}
        return self._load()

    def clear_votes(self) -> None:
        remove_key(self.store, VOTES_KEY)

    # Internals ----------------------------------------------------------------

    def _forward(self, record: Vote, event_data: Mapping[str, Any]) -> None:
        if self.interactions is None:
            return
        payload: Dict[str, Any] = {
            "eventId": record.event_id,
            "vote": record.vote.value,
            "timestamp": record.voted_at,
        }
        for field_name in _FORWARDED_FIELDS:
            if event_data.get(field_name) is not None:
                payload[field_name] = event_data[field_name]
        if event_data.get("venue_name") and "venue" not in payload:
            payload["venue"] = event_data["venue_name"]
        if event_data.get("price_min") is not None and "price" not in payload:
            payload["price"] = event_data["price_min"]

        self.interactions.record(InteractionType.VIEW, payload)
        if record.vote == VoteDirection.UP:
            self.interactions.record(InteractionType.SAVE, payload)

    def _load(self) -> Dict[str, Vote]:
        raw = read_json(self.store, VOTES_KEY, {})
        if not isinstance(raw, dict):
            logger.warning("Vote store has unexpected shape, treating as empty")
            return {}
        votes: Dict[str, Vote] = {}
        for item in raw.values():
            if not isinstance(item, dict):
                continue
            record = Vote.from_dict(item)
            if record is not None:
                votes[record.event_id] = record
        return votes

    def _save(self, votes: Dict[str, Vote]) -> None:
        write_json(self.store, VOTES_KEY, {k: v.to_dict() for k, v in votes.items()})
