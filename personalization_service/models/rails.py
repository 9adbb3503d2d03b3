"""
Row and rail models.

A Row is a category descriptor rendered as one horizontal rail. A
DynamicRail is the rail manager's persisted record of an active rail.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class Row:
    """Category descriptor, optionally scored and flagged as generated."""

    id: str
    title: str = ""
    emoji: str = ""
    query: str = ""
    score: Optional[float] = None
    is_generated: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "emoji": self.emoji,
            "query": self.query,
            "isGenerated": self.is_generated,
        }
        if self.score is not None:
            data["score"] = self.score
        if self.reason is not None:
            data["reason"] = self.reason
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Row":
        score = data.get("score")
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            emoji=data.get("emoji", ""),
            query=data.get("query") or str(data["id"]),
            score=float(score) if score is not None else None,
            is_generated=bool(data.get("isGenerated", False)),
            reason=data.get("reason"),
        )


@dataclass
class DynamicRail:
    """An active rail owned by the dynamic rail manager."""

    id: str
    category_id: str
    title: str
    emoji: str
    affinity_score: float
    spawned_at: int
    last_active_at: int
    is_core: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "categoryId": self.category_id,
            "title": self.title,
            "emoji": self.emoji,
            "affinityScore": self.affinity_score,
            "spawnedAt": self.spawned_at,
            "lastActiveAt": self.last_active_at,
            "isCore": self.is_core,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DynamicRail":
        return cls(
            id=str(data["id"]),
            category_id=str(data["categoryId"]),
            title=data.get("title", ""),
            emoji=data.get("emoji", ""),
            affinity_score=float(data.get("affinityScore", 0.0)),
            spawned_at=int(data["spawnedAt"]),
            last_active_at=int(data["lastActiveAt"]),
            is_core=bool(data.get("isCore", False)),
        )


@dataclass
class PersonalizedRail:
    """A "recommended for you" rail holding concrete items."""

    id: str
    title: str
    emoji: str
    items: list
    affinity_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "emoji": self.emoji,
            "events": list(self.items),
            "affinityScore": self.affinity_score,
        }
