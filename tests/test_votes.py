"""
Tests for the vote/veto subsystem.
"""

import json

import pytest

from personalization_service.config import ThumbsConfig, TrackingConfig
from personalization_service.models.interactions import InteractionType
from personalization_service.models.votes import VoteDirection
from personalization_service.storage import MemoryStore
from personalization_service.tracking.interaction_store import InteractionStore
from personalization_service.tracking.votes import VOTES_KEY, VoteStore

NOW = 1736164800000


class TestVoteStore:
    """Test voting, toggling and the veto set."""

    @pytest.fixture
    def store(self):
        return MemoryStore()

    @pytest.fixture
    def tracker(self, store):
        return InteractionStore(store, MemoryStore(), TrackingConfig(debounce_ms=0), lambda: NOW)

    @pytest.fixture
    def votes(self, store, tracker):
        return VoteStore(store, tracker, ThumbsConfig(), lambda: NOW)

    def test_revote_replaces_previous(self, votes, store):
        votes.vote("e1", "up")
        votes.vote("e1", "down")

        raw = json.loads(store.get(VOTES_KEY))
        assert list(raw) == ["e1"]
        assert raw["e1"]["vote"] == "down"
        assert votes.get_vote("e1") == VoteDirection.DOWN

    def test_toggle_same_direction_clears(self, votes):
        assert votes.toggle_vote("e1", "up") == VoteDirection.UP
        assert votes.toggle_vote("e1", "up") is None
        assert votes.get_vote("e1") is None

    def test_toggle_other_direction_switches(self, votes):
        votes.toggle_vote("e1", "up")
        assert votes.toggle_vote("e1", "down") == VoteDirection.DOWN

    def test_downvoted_ids(self, votes):
        votes.vote("e1", "down")
        votes.vote("e2", "up")
        votes.vote("e3", VoteDirection.DOWN)
        assert votes.get_downvoted_ids() == {"e1", "e3"}

        votes.remove_vote("e1")
        assert votes.get_downvoted_ids() == {"e3"}

    def test_invalid_direction_is_ignored(self, votes):
        assert votes.vote("e1", "sideways") is None
        assert votes.vote("", "up") is None
        assert votes.get_all_votes() == {}

    def test_up_vote_forwards_view_and_save(self, votes, tracker):
        votes.vote("e1", "up", {"category": "music", "venue_name": "Massey Hall", "price_min": 30})

        events = tracker.read_all()
        assert [e.type for e in events] == [InteractionType.VIEW, InteractionType.SAVE]
        for event in events:
            assert event.event_id == "e1"
            assert event.vote == "up"
            assert event.category == "music"
            assert event.venue == "Massey Hall"
            assert event.price == 30

    def test_down_vote_forwards_view_only(self, votes, tracker):
        votes.vote("e1", "down", {"category": "comedy"})

        events = tracker.read_all()
        assert len(events) == 1
        assert events[0].type == InteractionType.VIEW
        assert events[0].vote == "down"

    def test_corrupt_votes_treated_as_empty(self, votes, store):
        store.set(VOTES_KEY, "not json")
        assert votes.get_vote("e1") is None
        assert votes.vote("e1", "up") is not None

    def test_malformed_vote_records_are_skipped(self, votes, store):
        """One bad record never takes the other votes down with it."""
        store.set(VOTES_KEY, json.dumps({
            "e1": {"eventId": "e1", "vote": "down", "votedAt": "yesterday"},
            "e2": {"eventId": "e2", "vote": "down", "votedAt": NOW},
            "e3": ["not", "a", "record"],
            "e4": {"eventId": "e4", "vote": "down", "votedAt": {"when": 1}},
        }))

        assert votes.get_vote("e1") is None
        assert votes.get_vote("e2") == VoteDirection.DOWN
        assert votes.get_downvoted_ids() == {"e2"}
        assert votes.vote("e5", "up") is not None

    def test_votes_of_wrong_shape_treated_as_empty(self, votes, store):
        store.set(VOTES_KEY, json.dumps(["e1", "e2"]))
        assert votes.get_downvoted_ids() == set()

    def test_disabled_is_a_no_op(self, store, tracker):
        votes = VoteStore(store, tracker, ThumbsConfig(enabled=False), lambda: NOW)
        assert votes.vote("e1", "down") is None
        assert votes.toggle_vote("e1", "down") is None
        assert votes.get_downvoted_ids() == set()
        assert tracker.read_all() == []
