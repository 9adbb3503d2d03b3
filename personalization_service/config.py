"""
Configuration sections consumed by the personalization components.

Each component receives its section through its constructor; nothing in the
core reads environment variables or global flags. ``config_manager.py`` at
the repository root builds these from a JSON file and the environment.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class TrackingConfig:
    """Interaction store settings."""
    enabled: bool = True
    debounce_ms: int = 500
    max_events: int = 1000
    max_age_days: int = 90
    half_life_days: float = 30


@dataclass
class ThumbsConfig:
    """Vote subsystem settings."""
    enabled: bool = True


@dataclass
class SeenStoreConfig:
    """Seen filter settings."""
    enabled: bool = True
    ttl_days: int = 14
    max_entries: int = 2000


@dataclass
class ReorderConfig:
    """Row reorder settings."""
    discovery_floor: float = 0.25


@dataclass
class DynamicRailsConfig:
    """Dynamic rail manager settings."""
    enabled: bool = True
    core_limit: int = 10
    dynamic_limit: int = 5
    spawn_threshold: float = 0.4
    sunset_days: int = 7
    min_events: int = 4


@dataclass
class PersonalizedRailsConfig:
    """Settings for the "recommended for you" rails."""
    enabled: bool = True
    max_rails: int = 3
    min_events: int = 4
    min_interactions: int = 5
    veto_threshold: int = 2
    rail_size: int = 20


@dataclass
class CacheConfig:
    """Cached events settings."""
    enabled: bool = True
    ttl_minutes: float = 30
    cap: int = 60
    daily_shuffle: bool = True
    city: Optional[str] = None


@dataclass
class PersonalizationConfig:
    """All component sections bundled for the engine factory."""
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    thumbs: ThumbsConfig = field(default_factory=ThumbsConfig)
    seen: SeenStoreConfig = field(default_factory=SeenStoreConfig)
    reorder: ReorderConfig = field(default_factory=ReorderConfig)
    dynamic_rails: DynamicRailsConfig = field(default_factory=DynamicRailsConfig)
    personalized_rails: PersonalizedRailsConfig = field(default_factory=PersonalizedRailsConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
