"""
Interaction models for the tracking subsystem.

Defines the allowed interaction types and the record stored in the
interaction log.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class InteractionType(Enum):
    """Allowed interaction types for tracking."""

    # Item engagement
    CLICK = "click"
    SAVE = "save"
    UNSAVE = "unsave"
    VIEW = "view"

    # Discovery
    SEARCH = "search"

    # Explicit feedback
    VOTE_UP = "vote_up"
    VOTE_DOWN = "vote_down"

    @classmethod
    def is_valid(cls, interaction_type: str) -> bool:
        """Check if an interaction type string is valid."""
        try:
            cls(interaction_type)
            return True
        except ValueError:
            return False

    @classmethod
    def get_allowed_types(cls) -> set[str]:
        """Get all allowed interaction type strings."""
        return {t.value for t in cls}


@dataclass
class InteractionEvent:
    """One observed user action, as stored in the interaction log."""

    type: InteractionType
    timestamp: int
    session_id: str = ""
    event_id: Optional[str] = None
    category: Optional[str] = None
    query: Optional[str] = None
    price: Optional[float] = None
    venue: Optional[str] = None
    distance: Optional[float] = None
    vote: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: Dict[str, Any] = {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "sessionId": self.session_id,
        }
        optional = {
            "eventId": self.event_id,
            "category": self.category,
            "query": self.query,
            "price": self.price,
            "venue": self.venue,
            "distance": self.distance,
            "vote": self.vote,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if self.meta:
            data["meta"] = self.meta
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["InteractionEvent"]:
        """Create an InteractionEvent from a stored dictionary.

        Returns None for records with an unknown type or no usable timestamp,
        so a partially corrupt log still yields its valid entries.
        """
        if not isinstance(data, dict):
            return None
        raw_type = data.get("type")
        if not isinstance(raw_type, str) or not InteractionType.is_valid(raw_type):
            return None
        try:
            timestamp = int(data["timestamp"])
        except (KeyError, TypeError, ValueError):
            return None

        return cls(
            type=InteractionType(raw_type),
            timestamp=timestamp,
            session_id=data.get("sessionId") or "",
            event_id=_optional_str(data.get("eventId")),
            category=_optional_str(data.get("category")),
            query=_optional_str(data.get("query")),
            price=_optional_float(data.get("price")),
            venue=_optional_str(data.get("venue")),
            distance=_optional_float(data.get("distance")),
            vote=_optional_str(data.get("vote")),
            meta=data.get("meta") if isinstance(data.get("meta"), dict) else {},
        )


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
