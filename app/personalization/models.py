"""
Request payload models for the personalization routes.

Bodies are validated with pydantic; a ValidationError becomes a 400 response.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class InteractionPayload(BaseModel):
    """One tracked interaction; any extra keys are forwarded as event fields."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(description="Interaction type, e.g. click or save")

    def event_data(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class ReorderRequest(BaseModel):
    rows: List[Dict[str, Any]]
    inventory: Dict[str, Any] = Field(default_factory=dict)
    discovery_floor: Optional[float] = Field(default=None, ge=0, le=1)
    half_life_days: Optional[float] = None


class DynamicRailsRequest(BaseModel):
    core_categories: List[Dict[str, Any]]
    inventory: Dict[str, Any] = Field(default_factory=dict)


class ItemsRequest(BaseModel):
    """Body carrying a list of item records."""
    items: List[Dict[str, Any]]


class VoteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event_id: str = Field(alias="eventId", min_length=1)
    vote: Literal["up", "down"]
    event: Dict[str, Any] = Field(default_factory=dict, description="Item fields forwarded to tracking")


class SeenRequest(BaseModel):
    ids: List[str]
    source: Literal["view", "click", "detail"] = "view"


class CacheWriteRequest(BaseModel):
    category: str = Field(min_length=1)
    lat: Optional[float] = None
    lng: Optional[float] = None
    events: List[Dict[str, Any]]
    ttl_minutes: Optional[float] = Field(default=None, gt=0)
    cap: Optional[int] = Field(default=None, ge=0)
