"""
Content item and cache entry models.

ContentItem validates raw records returned by the upstream item source.
Pydantic is used here because these records are untrusted input.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ContentItem(BaseModel):
    """One item record from the content source."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(description="Stable item identifier used for de-duplication")
    category: Optional[str] = Field(default=None, description="Upstream category id")
    title: Optional[str] = Field(default=None, description="Display title")
    venue: Optional[str] = Field(default=None, description="Venue name or identifier")
    price: Optional[float] = Field(default=None, description="Lowest price, currency-agnostic")
    timestamp: Optional[Any] = Field(default=None, description="Start time as sent by the source")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None or isinstance(value, (dict, list)):
            raise ValueError("item id is required")
        text = str(value).strip()
        if not text:
            raise ValueError("item id is required")
        return text


@dataclass
class CacheEntry:
    """Cached item list for one (category, coarse location) key."""

    key: str
    ts: int
    events: List[Dict[str, Any]] = field(default_factory=list)
    ttl_minutes: float = 0

    def is_fresh(self, now: int) -> bool:
        return now - self.ts < self.ttl_minutes * 60 * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "ts": self.ts,
            "ttlMinutes": self.ttl_minutes,
            "events": list(self.events),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        events = data.get("events")
        return cls(
            key=str(data["key"]),
            ts=int(data["ts"]),
            events=[e for e in events if isinstance(e, dict)] if isinstance(events, list) else [],
            ttl_minutes=float(data.get("ttlMinutes") or 0),
        )
