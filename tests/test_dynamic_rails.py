"""
Tests for the dynamic rail manager.
"""

import json

import pytest

from personalization_service.config import DynamicRailsConfig
from personalization_service.models.affinity import AffinityProfile
from personalization_service.models.interactions import InteractionEvent, InteractionType
from personalization_service.models.rails import Row
from personalization_service.models.utils import DAY_MS, HOUR_MS
from personalization_service.recommendations.dynamic_rails import (
    DYNAMIC_RAILS_KEY,
    DynamicRailManager,
    manage_dynamic_rails,
)
from personalization_service.storage import MemoryStore

NOW = 1736164800000

CORE = [
    {"id": "music", "title": "Music", "emoji": "🎵"},
    {"id": "comedy", "title": "Comedy", "emoji": "😂"},
]


class ManualClock:
    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now


def _jazz_click(ts: int) -> InteractionEvent:
    return InteractionEvent(type=InteractionType.CLICK, timestamp=ts, category="jazz")


def _profile(**scores) -> AffinityProfile:
    return AffinityProfile(categories=dict(scores), total_interactions=12)


class TestDynamicRailManager:
    """Test spawning, refreshing and sunsetting rails."""

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def manager(self, clock):
        return DynamicRailManager(MemoryStore(), DynamicRailsConfig(), clock)

    def test_jazz_spawns_then_sunsets(self, manager, clock):
        """A qualifying category spawns, then disappears after sunset_days of silence."""
        profile = _profile(music=1.0, jazz=0.6)
        inventory = {"jazz": list(range(6))}

        rails = manager.manage(CORE, profile, inventory, [_jazz_click(NOW - HOUR_MS)])
        jazz = [r for r in rails if r.category_id == "jazz"]
        assert len(jazz) == 1
        assert not jazz[0].is_core
        assert jazz[0].affinity_score == 0.6
        assert jazz[0].title == "Jazz"

        clock.now = NOW + 8 * DAY_MS
        rails = manager.manage(CORE, profile, inventory, [])
        assert "jazz" not in {r.category_id for r in rails}
        assert {r.category_id for r in rails} == {"music", "comedy"}

    def test_sunset_rail_stays_gone_until_new_interaction(self, manager, clock):
        profile = _profile(jazz=0.6)
        inventory = {"jazz": 6}
        old_click = _jazz_click(NOW - HOUR_MS)

        manager.manage(CORE, profile, inventory, [old_click])
        clock.now = NOW + 8 * DAY_MS
        manager.manage(CORE, profile, inventory, [old_click])

        clock.now += DAY_MS
        rails = manager.manage(CORE, profile, inventory, [old_click])
        assert "jazz" not in {r.category_id for r in rails}

        rails = manager.manage(CORE, profile, inventory, [old_click, _jazz_click(clock.now - HOUR_MS)])
        assert "jazz" in {r.category_id for r in rails}

    def test_recent_interaction_keeps_rail_alive(self, manager, clock):
        profile = _profile(jazz=0.6)
        inventory = {"jazz": 6}

        manager.manage(CORE, profile, inventory, [_jazz_click(NOW)])
        for day in range(1, 11):
            clock.now = NOW + day * DAY_MS
            rails = manager.manage(CORE, profile, inventory, [_jazz_click(clock.now - HOUR_MS)])
            assert "jazz" in {r.category_id for r in rails}

    @pytest.mark.parametrize("score,count", [(0.39, 6), (0.6, 3)])
    def test_thresholds_block_spawn(self, manager, score, count):
        rails = manager.manage(CORE, _profile(jazz=score), {"jazz": count}, [])
        assert [r.category_id for r in rails] == ["music", "comedy"]

    def test_core_categories_never_spawn_dynamic(self, manager):
        rails = manager.manage(CORE, _profile(music=1.0), {"music": 10}, [])
        assert [r.is_core for r in rails] == [True, True]
        assert rails[0].id == "core_music"
        assert rails[0].affinity_score == 1.0

    def test_dynamic_limit_keeps_top_scores(self, clock):
        manager = DynamicRailManager(MemoryStore(), DynamicRailsConfig(dynamic_limit=2), clock)
        profile = _profile(jazz=0.5, film=0.9, markets=0.7)
        inventory = {"jazz": 5, "film": 5, "markets": 5}

        rails = manager.manage([], profile, inventory, [])
        assert [r.category_id for r in rails] == ["film", "markets"]

    def test_core_limit(self, clock):
        manager = DynamicRailManager(MemoryStore(), DynamicRailsConfig(core_limit=1), clock)
        rails = manager.manage(CORE, AffinityProfile.empty(), {}, [])
        assert [r.category_id for r in rails] == ["music"]

    def test_repeated_pass_is_idempotent(self, manager):
        profile = _profile(music=0.4, jazz=0.6)
        inventory = {"jazz": 6}

        first = manager.manage(CORE, profile, inventory, [])
        second = manager.manage(CORE, profile, inventory, [])
        assert [r.to_dict() for r in first] == [r.to_dict() for r in second]
        assert manager.read_rails() == second

    def test_core_rows_as_row_objects(self, manager):
        rails = manager.manage([Row(id="film", title="Film Night", emoji="🎬")], _profile(), {}, [])
        assert rails[0].title == "Film Night"
        assert rails[0].emoji == "🎬"

    def test_disabled_returns_nothing(self, clock):
        store = MemoryStore()
        manager = DynamicRailManager(store, DynamicRailsConfig(enabled=False), clock)
        assert manager.manage(CORE, _profile(jazz=0.9), {"jazz": 9}, []) == []
        assert store.get(DYNAMIC_RAILS_KEY) is None

    def test_corrupt_checkpoint_is_ignored(self, manager):
        manager.store.set(DYNAMIC_RAILS_KEY, "[[[")
        rails = manager.manage(CORE, _profile(), {}, [])
        assert len(rails) == 2
        state = json.loads(manager.store.get(DYNAMIC_RAILS_KEY))
        assert len(state["rails"]) == 2

    @pytest.mark.parametrize("checkpoint", [
        {"rails": [], "retired": ["jazz"]},
        {"rails": {"jazz": 1}, "retired": {}},
        {"rails": "music", "retired": "jazz"},
        {"rails": [1, "music", None], "retired": {"jazz": "later"}},
        "music",
        42,
    ])
    def test_checkpoint_of_wrong_shape_resets(self, manager, checkpoint):
        manager.store.set(DYNAMIC_RAILS_KEY, json.dumps(checkpoint))

        rails = manager.manage(CORE, _profile(jazz=0.6), {"jazz": 6}, [])

        assert [r.category_id for r in rails][-1] == "jazz"
        state = json.loads(manager.store.get(DYNAMIC_RAILS_KEY))
        assert state["retired"] == {}

    def test_stats(self, manager):
        manager.manage(CORE, _profile(jazz=0.6), {"jazz": 6}, [])
        stats = manager.get_stats()
        assert stats["total"] == 3
        assert stats["core"] == 2
        assert stats["dynamic"] == 1
        assert stats["spawned24h"] == 3


def test_module_level_helper():
    rails = manage_dynamic_rails(
        MemoryStore(), CORE, _profile(jazz=0.8), {"jazz": 4}, [], clock=lambda: NOW
    )
    assert rails[-1].id == f"dynamic_jazz_{NOW}"
