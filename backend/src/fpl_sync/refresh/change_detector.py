"""
Player change detection.

Decides whether a freshly mapped player is new, unchanged, or changed against
the stored row, and builds the row to write. start_price is only ever taken
from the feed on first insert; afterwards the stored value is carried forward.
"""

from dataclasses import replace
from enum import Enum
from typing import Optional, Sequence, Tuple

from fpl_sync.models.entities import Player

BASIC_TRACKED_FIELDS: Tuple[str, ...] = (
    "team_id",
    "position",
    "current_price",
    "total_points",
)

EXTENDED_TRACKED_FIELDS: Tuple[str, ...] = BASIC_TRACKED_FIELDS + (
    "form",
    "selected_by_percent",
    "transfers_in",
    "transfers_in_event",
    "transfers_out",
    "transfers_out_event",
    "value_form",
    "event_points",
    "ict_index",
)

TRACKED_FIELDS_BY_MODE = {
    "basic": BASIC_TRACKED_FIELDS,
    "extended": EXTENDED_TRACKED_FIELDS,
}


class ChangeKind(str, Enum):
    NEW = "new"
    UNCHANGED = "unchanged"
    CHANGED = "changed"


def classify(
    candidate: Player,
    existing: Optional[Player],
    tracked_fields: Sequence[str] = EXTENDED_TRACKED_FIELDS,
) -> ChangeKind:
    """Exact comparison (no float tolerance) of the tracked fields."""
    if existing is None:
        return ChangeKind.NEW
    for name in tracked_fields:
        if getattr(existing, name) != getattr(candidate, name):
            return ChangeKind.CHANGED
    return ChangeKind.UNCHANGED


def resolve(
    candidate: Player,
    existing: Optional[Player],
    tracked_fields: Sequence[str] = EXTENDED_TRACKED_FIELDS,
) -> Tuple[ChangeKind, Optional[Player]]:
    """
    Classify the candidate and return the player to persist.

    Returns:
        (kind, player) where player is None for UNCHANGED (nothing to write)
    """
    kind = classify(candidate, existing, tracked_fields)
    if kind is ChangeKind.UNCHANGED:
        return kind, None
    if kind is ChangeKind.NEW:
        return kind, replace(candidate, start_price=candidate.current_price)
    return kind, replace(candidate, start_price=existing.start_price)
