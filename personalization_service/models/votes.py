"""
Vote and seen-record models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class VoteDirection(Enum):
    """Thumb direction."""
    UP = "up"
    DOWN = "down"

    @classmethod
    def parse(cls, value: Any) -> Optional["VoteDirection"]:
        """Parse ``up``/``down`` (or an existing member); None if unrecognised."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass
class Vote:
    """The single current vote for one item."""
    event_id: str
    vote: VoteDirection
    voted_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {"eventId": self.event_id, "vote": self.vote.value, "votedAt": self.voted_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["Vote"]:
        if not isinstance(data, dict):
            return None
        direction = VoteDirection.parse(data.get("vote"))
        if direction is None or not data.get("eventId"):
            return None
        try:
            voted_at = int(data.get("votedAt") or 0)
        except (TypeError, ValueError):
            return None
        return cls(event_id=str(data["eventId"]), vote=direction, voted_at=voted_at)


class SeenSource(Enum):
    """Where an item was shown."""
    VIEW = "view"
    CLICK = "click"
    DETAIL = "detail"


@dataclass
class SeenRecord:
    """Marks one item as already shown."""
    event_id: str
    seen_at: int
    source: SeenSource = SeenSource.VIEW

    def to_dict(self) -> Dict[str, Any]:
        return {"eventId": self.event_id, "seenAt": self.seen_at, "source": self.source.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["SeenRecord"]:
        if not isinstance(data, dict) or not data.get("eventId"):
            return None
        try:
            source = SeenSource(data.get("source", "view"))
        except ValueError:
            source = SeenSource.VIEW
        try:
            seen_at = int(data["seenAt"])
        except (KeyError, TypeError, ValueError):
            return None
        return cls(event_id=str(data["eventId"]), seen_at=seen_at, source=source)
