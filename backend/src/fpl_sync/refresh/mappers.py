"""
Feed record → store entity mapping.

Pure functions; optional numeric strings that fail to parse become 0.0
instead of raising, so a single odd value never aborts a sync.
"""

import math
from typing import Any

from fpl_sync.fpl_api.models import FeedChip, FeedFixture, FeedPlayer, FeedTeam
from fpl_sync.models.entities import Chip, Fixture, Player, Position, Team

POSITIONS_BY_ELEMENT_TYPE = {
    1: Position.GK,
    2: Position.DEF,
    3: Position.MID,
    4: Position.FWD,
}


def map_position(element_type: int) -> Position:
    """FPL element_type (1=GK, 2=DEF, 3=MID, 4=FWD) to Position; anything else is UNKNOWN."""
    return POSITIONS_BY_ELEMENT_TYPE.get(element_type, Position.UNKNOWN)


def price_from_tenths(now_cost: int) -> float:
    """FPL prices are integers in tenths of a million (125 -> 12.5)."""
    return now_cost / 10


def parse_lenient_float(value: Any) -> float:
    """Parse FPL numeric strings such as selected_by_percent ('34.7'); 0.0 if missing or invalid."""
    if value is None:
        return 0.0
    try:
        s = str(value).strip()
        if not s:
            return 0.0
        parsed = float(s)
    except (TypeError, ValueError):
        return 0.0
    # "nan" would never compare equal to itself and defeat change detection
    return parsed if math.isfinite(parsed) else 0.0


def map_team(team: FeedTeam) -> Team:
    return Team(
        id=team.id,
        name=team.name,
        short_name=team.short_name,
        code=team.code,
    )


def map_player(player: FeedPlayer) -> Player:
    """
    Map a feed player to a Player.

    start_price mirrors current_price here; the change detector decides
    whether that value survives (first insert) or is replaced by the stored one.
    """
    current_price = price_from_tenths(player.now_cost)
    return Player(
        id=player.id,
        first_name=player.first_name,
        last_name=player.second_name,
        web_name=player.web_name,
        team_id=player.team,
        position=map_position(player.element_type),
        start_price=current_price,
        current_price=current_price,
        total_points=player.total_points,
        form=player.form or "",
        selected_by_percent=parse_lenient_float(player.selected_by_percent),
        transfers_in=player.transfers_in,
        transfers_in_event=player.transfers_in_event,
        transfers_out=player.transfers_out,
        transfers_out_event=player.transfers_out_event,
        value_form=parse_lenient_float(player.value_form),
        event_points=player.event_points,
        ict_index=player.ict_index or "",
    )


def map_fixture(fixture: FeedFixture) -> Fixture:
    return Fixture(
        id=fixture.id,
        event=fixture.event,
        kickoff_time=fixture.kickoff_time,
        started=bool(fixture.started),
        finished=fixture.finished,
        provisional_start_time=fixture.provisional_start_time,
        team_h_id=fixture.team_h,
        team_a_id=fixture.team_a,
        team_h_score=fixture.team_h_score,
        team_a_score=fixture.team_a_score,
        team_h_difficulty=fixture.team_h_difficulty,
        team_a_difficulty=fixture.team_a_difficulty,
        minutes=fixture.minutes,
        pulse_id=fixture.pulse_id,
        code=fixture.code,
    )


def map_chip(chip: FeedChip) -> Chip:
    return Chip(
        id=chip.id,
        name=chip.name,
        number=chip.number,
        start_event=chip.start_event,
        stop_event=chip.stop_event,
        chip_type=chip.chip_type,
        overrides=dict(chip.overrides),
    )
