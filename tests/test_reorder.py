"""
Tests for row reordering with a discovery floor.
"""

import math

from personalization_service.models.affinity import AffinityProfile
from personalization_service.models.rails import Row
from personalization_service.recommendations.reorder import (
    LOW_AFFINITY_THRESHOLD,
    inventory_count,
    merge_categories_with_dynamic,
    reorder_rows,
    rows_from_dicts,
)


def _rows(*ids):
    return [Row(id=i, title=i.title()) for i in ids]


def _profile(**scores):
    return AffinityProfile(categories=dict(scores), total_interactions=10)


def _ids(rows):
    return [r.id for r in rows]


def test_no_signal_returns_rows_unchanged():
    rows = _rows("a", "b", "c", "d")
    inventory = {"a": 0, "b": 5, "c": 3, "d": 1}
    assert reorder_rows(rows, AffinityProfile.empty(), inventory) == rows


def test_personalized_and_discovery_interleave():
    rows = _rows("a", "b", "c", "d", "e", "f", "g", "h")
    inventory = {r.id: 5 for r in rows}
    profile = _profile(a=1.0, b=0.9, c=0.8, d=0.7, e=0.6, f=0.5, g=0.1)

    ordered = reorder_rows(rows, profile, inventory, discovery_floor=0.25)

    assert _ids(ordered) == ["a", "b", "g", "c", "d", "h", "e", "f"]


def test_discovery_quota_is_padded_from_original_order():
    rows = _rows("a", "b", "c", "d")
    inventory = {r.id: 2 for r in rows}
    profile = _profile(a=1.0, b=0.9, c=0.8, d=0.7)

    ordered = reorder_rows(rows, profile, inventory, discovery_floor=0.25)

    assert _ids(ordered) == ["a", "b", "d", "c"]


def test_discovery_floor_guarantee():
    rows = _rows(*[f"r{i}" for i in range(10)])
    inventory = {r.id: 3 for r in rows}
    profile = _profile(**{f"r{i}": 1.0 - i * 0.05 for i in range(8)})

    ordered = reorder_rows(rows, profile, inventory, discovery_floor=0.25)
    quota = math.ceil(10 * 0.25)
    top = {f"r{i}" for i in range(10 - quota)}
    discovery = [r for r in ordered if r.id not in top]

    assert len(discovery) >= quota
    assert sorted(_ids(ordered)) == sorted(_ids(rows))


def test_empty_rows_keep_order_at_the_end():
    rows = _rows("empty1", "a", "empty2", "b", "c", "empty3", "d")
    inventory = {"a": [1, 2], "b": 4, "c": 1, "d": 9}
    profile = _profile(d=1.0, c=0.5)

    ordered = reorder_rows(rows, profile, inventory)

    assert _ids(ordered)[-3:] == ["empty1", "empty2", "empty3"]
    assert set(_ids(ordered)[:4]) == {"a", "b", "c", "d"}


def test_every_row_appears_exactly_once():
    rows = _rows("a", "b", "c", "d", "e", "f", "g")
    inventory = {"a": 1, "b": 1, "c": 0, "d": 1, "e": 1, "f": 1, "g": 1}
    profile = _profile(e=1.0, a=0.2, g=0.9)

    for floor in (0.0, 0.25, 0.5, 1.0):
        ordered = reorder_rows(rows, profile, inventory, discovery_floor=floor)
        assert sorted(_ids(ordered)) == sorted(_ids(rows))


def test_ties_keep_original_order():
    rows = _rows("x", "y", "z", "w", "v")
    inventory = {r.id: 1 for r in rows}
    profile = _profile(x=0.5, y=0.5, z=0.5, w=0.5, v=0.5)

    ordered = reorder_rows(rows, profile, inventory, discovery_floor=0.2)
    assert _ids(ordered) == ["x", "y", "v", "z", "w"]


def test_inventory_count_accepts_lists_and_numbers():
    assert inventory_count([1, 2, 3]) == 3
    assert inventory_count(4) == 4
    assert inventory_count(-2) == 0
    assert inventory_count(None) == 0
    assert inventory_count(object()) == 0


def test_low_affinity_threshold_value():
    assert LOW_AFFINITY_THRESHOLD == 0.3


class TestMergeWithDynamic:
    """Test merging static rows with generated rows."""

    def test_strong_generated_rows_come_first(self):
        static = _rows("music", "comedy")
        generated = [Row(id="jazz", title="Jazz", score=0.9), Row(id="film", title="Film", score=0.5)]
        profile = _profile(music=1.0, comedy=0.2)

        merged = merge_categories_with_dynamic(static, generated, profile)

        assert _ids(merged) == ["jazz", "music", "film", "comedy"]
        assert merged[0].is_generated
        assert not merged[1].is_generated
        assert merged[1].score == 1.0

    def test_rows_from_dicts_defaults_query_to_id(self):
        rows = rows_from_dicts([{"id": "music", "title": "Music"}])
        assert rows[0].query == "music"
