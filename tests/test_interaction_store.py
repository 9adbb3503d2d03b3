"""
Tests for the debounced interaction store.
"""

import json

import pytest

from personalization_service.config import TrackingConfig
from personalization_service.models.interactions import InteractionType
from personalization_service.models.utils import DAY_MS
from personalization_service.storage import MemoryStore
from personalization_service.tracking.interaction_store import (
    INTERACTIONS_KEY,
    SESSION_KEY,
    InteractionStore,
)

NOW = 1736164800000  # 2025-01-06 12:00 UTC


class ManualClock:
    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> int:
        return self.now


class TestInteractionStore:
    """Test recording, flushing and reading interactions."""

    @pytest.fixture
    def store(self):
        return MemoryStore()

    @pytest.fixture
    def clock(self):
        return ManualClock()

    @pytest.fixture
    def tracker(self, store, clock):
        # Long debounce so nothing is flushed behind the test's back
        config = TrackingConfig(debounce_ms=60_000)
        tracker = InteractionStore(store, MemoryStore(), config, clock)
        yield tracker
        tracker.clear_all()

    def test_record_is_queued_until_flush(self, tracker, store):
        """Debounced writes are visible to readers but not yet persisted."""
        assert tracker.record("click", {"eventId": "e1", "category": "music"})

        assert store.get(INTERACTIONS_KEY) is None
        events = tracker.read_all()
        assert len(events) == 1
        assert events[0].type == InteractionType.CLICK
        assert events[0].event_id == "e1"

        assert tracker.flush()
        persisted = json.loads(store.get(INTERACTIONS_KEY))
        assert len(persisted) == 1
        assert persisted[0]["eventId"] == "e1"
        assert persisted[0]["category"] == "music"

    def test_snake_case_and_enum_input(self, tracker):
        tracker.record(InteractionType.SAVE, {"event_id": "e2", "price": "20"})
        tracker.flush()

        event = tracker.read_all()[0]
        assert event.type == InteractionType.SAVE
        assert event.event_id == "e2"
        assert event.price == 20.0

    def test_unknown_type_is_ignored(self, tracker):
        assert not tracker.record("teleport", {"eventId": "e1"})
        assert not tracker.record(None)
        assert tracker.read_all() == []

    def test_timestamps_non_decreasing_within_batch(self, tracker):
        tracker.record("view", {"timestamp": NOW})
        tracker.record("view", {"timestamp": NOW - 5000})
        tracker.flush()

        stamps = [e.timestamp for e in tracker.read_all()]
        assert stamps == sorted(stamps)

    def test_expired_entries_are_purged_on_read(self, tracker, store, clock):
        tracker.record("click", {"eventId": "old", "timestamp": NOW - 91 * DAY_MS})
        tracker.flush()
        tracker.record("click", {"eventId": "new"})
        tracker.flush()

        ids = [e.event_id for e in tracker.read_all()]
        assert ids == ["new"]
        persisted = json.loads(store.get(INTERACTIONS_KEY))
        assert [p["eventId"] for p in persisted] == ["new"]

    def test_log_is_capped_oldest_first(self, store, clock):
        tracker = InteractionStore(store, MemoryStore(), TrackingConfig(debounce_ms=0, max_events=3), clock)
        for i in range(5):
            tracker.record("view", {"eventId": f"e{i}", "timestamp": NOW + i})

        assert [e.event_id for e in tracker.read_all()] == ["e2", "e3", "e4"]

    def test_quota_failure_drops_batch_without_raising(self, clock):
        tracker = InteractionStore(MemoryStore(quota_bytes=10), MemoryStore(), TrackingConfig(debounce_ms=60_000), clock)
        tracker.record("click", {"eventId": "e1", "category": "music"})

        assert tracker.flush() is False
        assert tracker.read_all() == []

    def test_corrupt_log_is_treated_as_empty(self, tracker, store):
        store.set(INTERACTIONS_KEY, "{not json")
        assert tracker.read_all() == []

        tracker.record("click", {"eventId": "e1"})
        assert tracker.flush()
        assert len(tracker.read_all()) == 1

    def test_log_of_wrong_shape(self, tracker, store):
        store.set(INTERACTIONS_KEY, json.dumps({"type": "click"}))
        assert tracker.read_all() == []

        store.set(INTERACTIONS_KEY, json.dumps([
            "click",
            {"type": "click", "timestamp": "noon"},
            {"type": "teleport", "timestamp": NOW},
            {"type": "save", "timestamp": NOW, "price": [5], "meta": "x", "category": "music"},
        ]))
        events = tracker.read_all()
        assert len(events) == 1
        assert events[0].category == "music"
        assert events[0].price is None
        assert events[0].meta == {}

    def test_session_id_is_stable_until_cleared(self, tracker):
        first = tracker.get_session_id()
        assert first == tracker.get_session_id()

        tracker.record("click")
        tracker.flush()
        assert tracker.read_all()[0].session_id == first

        tracker.clear_all()
        assert tracker.session_store.get(SESSION_KEY) is None
        assert tracker.get_session_id() != first

    def test_clear_all_removes_queue_and_log(self, tracker, store):
        tracker.record("click", {"eventId": "e1"})
        tracker.flush()
        tracker.record("click", {"eventId": "e2"})

        tracker.clear_all()
        assert tracker.read_all() == []
        assert store.get(INTERACTIONS_KEY) is None

    def test_stats_count_per_type(self, tracker):
        for kind in ("click", "click", "save", "view"):
            tracker.record(kind)
        assert tracker.get_stats() == {"click": 2, "save": 1, "view": 1}

    def test_disabled_tracking_is_a_no_op(self, store, clock):
        tracker = InteractionStore(store, MemoryStore(), TrackingConfig(enabled=False), clock)
        assert tracker.record("click", {"eventId": "e1"}) is False
        assert tracker.read_all() == []
        assert store.get(INTERACTIONS_KEY) is None


def test_debounce_timer_flushes_in_background():
    """With a short debounce the batch lands in storage without an explicit flush."""
    import time

    store = MemoryStore()
    tracker = InteractionStore(store, MemoryStore(), TrackingConfig(debounce_ms=20))
    tracker.record("click", {"eventId": "e1"})
    tracker.record("click", {"eventId": "e2"})

    deadline = time.time() + 2
    while store.get(INTERACTIONS_KEY) is None and time.time() < deadline:
        time.sleep(0.01)

    persisted = json.loads(store.get(INTERACTIONS_KEY))
    assert [p["eventId"] for p in persisted] == ["e1", "e2"]
