"""
Affinity profile model.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class AffinityProfile:
    """Normalized taste profile derived from the interaction log.

    Every map holds values scaled by the map's maximum raw score. The profile
    is recomputed on demand and never persisted.
    """

    categories: Dict[str, float] = field(default_factory=dict)
    price_ranges: Dict[str, float] = field(default_factory=dict)
    venues: Dict[str, float] = field(default_factory=dict)
    time_patterns: Dict[str, float] = field(default_factory=dict)
    total_interactions: int = 0

    @classmethod
    def empty(cls) -> "AffinityProfile":
        """Profile for a user with no history."""
        return cls()

    @property
    def has_signal(self) -> bool:
        return self.total_interactions > 0

    def category_score(self, category_id: str) -> float:
        return self.categories.get(category_id, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": dict(self.categories),
            "priceRanges": dict(self.price_ranges),
            "venues": dict(self.venues),
            "timePatterns": dict(self.time_patterns),
            "totalInteractions": self.total_interactions,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AffinityProfile":
        return cls(
            categories=dict(data.get("categories") or {}),
            price_ranges=dict(data.get("priceRanges") or {}),
            venues=dict(data.get("venues") or {}),
            time_patterns=dict(data.get("timePatterns") or {}),
            total_interactions=int(data.get("totalInteractions") or 0),
        )
