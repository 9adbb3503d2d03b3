"""
Row reordering with a discovery floor.

Rows with inventory are ranked by category affinity, then a quota of
low-affinity "discovery" rows is interleaved between the personalized ones
(two personalized, one discovery) so the homepage never collapses into a
filter bubble. Rows without inventory keep their original order at the end.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

from ..models.affinity import AffinityProfile
from ..models.rails import Row

LOW_AFFINITY_THRESHOLD = 0.3
GENERATED_PRIORITY_SCORE = 0.7
PERSONALIZED_PER_DISCOVERY = 2


@dataclass
class ReorderOptions:
    """Options for one reorder pass.

    Attributes:
        discovery_floor: Fraction of non-empty rows reserved for discovery
        decay_half_life_days: Half-life used when the affinity profile for
            the pass is computed from the interaction log
    """
    discovery_floor: float = 0.25
    decay_half_life_days: float = 30


def inventory_count(value: Any) -> int:
    """Number of items for a row; accepts item lists or plain counts."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    try:
        return len(value)
    except TypeError:
        return 0


def reorder_rows(
    rows: Sequence[Row],
    affinity: AffinityProfile,
    inventory_by_row_id: Mapping[str, Any] | None = None,
    discovery_floor: float = 0.25,
) -> List[Row]:
    """Reorder rows by affinity while reserving discovery slots.

    Args:
        rows: Rows in their default (editorial) order
        affinity: Current affinity profile
        inventory_by_row_id: Row id -> items (or item count)
        discovery_floor: Fraction of non-empty rows reserved for discovery

    Returns:
        New list of rows. Each input row appears exactly once.
    """
    if affinity.total_interactions == 0:
        return list(rows)

    inventory = inventory_by_row_id or {}
    non_empty: List[Row] = []
    empty: List[Row] = []
    for row in rows:
        if inventory_count(inventory.get(row.id)) > 0:
            non_empty.append(row)
        else:
            empty.append(row)

    if not non_empty:
        return list(rows)

    floor = min(max(discovery_floor, 0.0), 1.0)
    discovery_count = math.ceil(len(non_empty) * floor)
    personalized_count = len(non_empty) - discovery_count

    scored = sorted(
        ((affinity.category_score(row.id), index, row) for index, row in enumerate(non_empty)),
        key=lambda item: (-item[0], item[1]),
    )

    personalized = [row for _, _, row in scored[:personalized_count]]
    remaining = scored[personalized_count:]

    # Low-affinity rows first (strongest of the weak signals leading), then
    # pad with what is left in original order.
    discovery = [row for score, _, row in remaining if score < LOW_AFFINITY_THRESHOLD]
    picked = {id(row) for row in discovery}
    padding = sorted(
        ((index, row) for _, index, row in remaining if id(row) not in picked),
        key=lambda item: item[0],
    )
    discovery.extend(row for _, row in padding)
    discovery = discovery[:discovery_count]

    return _interleave(personalized, discovery) + empty


def _interleave(personalized: List[Row], discovery: List[Row]) -> List[Row]:
    result: List[Row] = []
    p_idx = 0
    d_idx = 0
    while p_idx < len(personalized) or d_idx < len(discovery):
        for _ in range(PERSONALIZED_PER_DISCOVERY):
            if p_idx < len(personalized):
                result.append(personalized[p_idx])
                p_idx += 1
        if d_idx < len(discovery):
            result.append(discovery[d_idx])
            d_idx += 1
    return result


def merge_categories_with_dynamic(
    static_rows: Sequence[Row],
    generated_rows: Sequence[Row],
    affinity: AffinityProfile,
) -> List[Row]:
    """Score static rows and merge them with generated rows.

    Generated rows scoring above 0.7 are placed ahead of static rows; the rest
    sort by score, descending, keeping input order for ties.
    """
    combined: List[Row] = [
        Row(
            id=row.id,
            title=row.title,
            emoji=row.emoji,
            query=row.query,
            score=affinity.category_score(row.id),
            is_generated=False,
            reason=row.reason,
        )
        for row in static_rows
    ]
    for row in generated_rows:
        combined.append(
            Row(
                id=row.id,
                title=row.title,
                emoji=row.emoji,
                query=row.query,
                score=row.score if row.score is not None else affinity.category_score(row.id),
                is_generated=True,
                reason=row.reason,
            )
        )

    def sort_key(item: tuple) -> tuple:
        index, row = item
        boosted = row.is_generated and (row.score or 0.0) > GENERATED_PRIORITY_SCORE
        return (0 if boosted else 1, -(row.score or 0.0), index)

    return [row for _, row in sorted(enumerate(combined), key=sort_key)]


def rows_from_dicts(items: Sequence[Dict[str, Any]]) -> List[Row]:
    return [Row.from_dict(item) for item in items]
