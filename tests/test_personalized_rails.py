"""
Tests for the "recommended for you" rails.
"""

from personalization_service.config import PersonalizedRailsConfig
from personalization_service.models.interactions import InteractionEvent, InteractionType
from personalization_service.recommendations.personalized_rails import (
    generate_personalized_rails,
    get_vetoed_ids,
    matches_category,
)

NOW = 1736164800000


def _event(kind, category=None, event_id=None, vote=None):
    return InteractionEvent(
        type=InteractionType(kind), timestamp=NOW, category=category, event_id=event_id, vote=vote
    )


def _items(category, count, prefix=None):
    prefix = prefix or category
    return [{"id": f"{prefix}{i}", "category": category, "title": f"{category} night {i}"} for i in range(count)]


MUSIC_HISTORY = [_event("save", "music") for _ in range(4)] + [_event("click", "comedy")]


def test_requires_minimum_interactions():
    rails = generate_personalized_rails(_items("music", 10), MUSIC_HISTORY[:4], now=NOW)
    assert rails == []


def test_builds_rails_for_top_categories():
    items = _items("music", 6) + _items("comedy", 5) + _items("sports", 8)
    rails = generate_personalized_rails(items, MUSIC_HISTORY, now=NOW)

    assert [r.id for r in rails] == ["personal_music", "personal_comedy"]
    assert rails[0].title == "Music You Love"
    assert rails[0].emoji == "🎵"
    assert rails[0].affinity_score == 1.0
    assert sorted(i["id"] for i in rails[0].items) == sorted(i["id"] for i in _items("music", 6))


def test_vetoed_and_seen_items_are_excluded():
    items = _items("music", 6)
    rails = generate_personalized_rails(
        items, MUSIC_HISTORY, vetoed_ids={"music0"}, seen_ids={"music1"}, now=NOW
    )
    ids = {i["id"] for i in rails[0].items}
    assert "music0" not in ids
    assert "music1" not in ids
    assert len(ids) == 4


def test_rail_skipped_below_min_events():
    items = _items("music", 3) + _items("comedy", 4)
    rails = generate_personalized_rails(items, MUSIC_HISTORY, now=NOW)
    assert [r.id for r in rails] == ["personal_comedy"]


def test_rail_size_and_daily_order():
    config = PersonalizedRailsConfig(rail_size=5)
    items = _items("music", 30)

    first = generate_personalized_rails(items, MUSIC_HISTORY, config, now=NOW, city="Toronto")
    second = generate_personalized_rails(items, MUSIC_HISTORY, config, now=NOW, city="Toronto")

    assert len(first[0].items) == 5
    assert first[0].items == second[0].items


def test_disabled_config():
    config = PersonalizedRailsConfig(enabled=False)
    assert generate_personalized_rails(_items("music", 10), MUSIC_HISTORY, config, now=NOW) == []


def test_matches_category_loosely():
    assert matches_category({"category": "music-concerts"}, "music")
    assert matches_category({"category": "jazz"}, "live-jazz")
    assert matches_category({"category": "other", "title": "Jazz at the Rex"}, "jazz")
    assert not matches_category({"category": "", "title": "Board games"}, "music")
    assert not matches_category({}, "music")


def test_vetoed_ids_need_repeated_down_votes():
    interactions = [
        _event("view", event_id="e1", vote="down"),
        _event("view", event_id="e1", vote="down"),
        _event("view", event_id="e2", vote="down"),
        _event("view", event_id="e3", vote="up"),
        _event("vote_down", event_id="e3"),
    ]
    assert get_vetoed_ids(interactions, threshold=2) == {"e1"}
    assert get_vetoed_ids(interactions, threshold=1) == {"e1", "e2"}
