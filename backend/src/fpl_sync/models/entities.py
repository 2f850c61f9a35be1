"""
Store-side entities synchronized from the FPL feed.

Each entity is keyed by the upstream FPL id, reused as the local primary key.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Type


class EntityType(str, Enum):
    """Entity kinds, valued by their table name."""
    TEAM = "teams"
    PLAYER = "players"
    FIXTURE = "fixtures"
    CHIP = "chips"


class Position(str, Enum):
    """Player position derived from FPL element_type."""
    GK = "GK"
    DEF = "DEF"
    MID = "MID"
    FWD = "FWD"
    UNKNOWN = "UNK"


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    # Postgres hands back "+00:00"; FPL sends a trailing "Z"
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


class _Row:
    """Row conversion shared by all entities."""

    entity_type: ClassVar[EntityType]

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Dict[str, Any]):
        """Build from a stored row, ignoring columns the entity does not model (e.g. updated_at)."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in row.items() if k in names})


@dataclass
class Team(_Row):
    entity_type: ClassVar[EntityType] = EntityType.TEAM

    id: int
    name: str
    short_name: str
    code: int


@dataclass
class Player(_Row):
    entity_type: ClassVar[EntityType] = EntityType.PLAYER

    id: int
    first_name: str
    last_name: str
    web_name: str
    team_id: int
    position: Position
    start_price: float
    current_price: float
    total_points: int = 0
    form: str = ""
    selected_by_percent: float = 0.0
    transfers_in: int = 0
    transfers_in_event: int = 0
    transfers_out: int = 0
    transfers_out_event: int = 0
    value_form: float = 0.0
    event_points: int = 0
    ict_index: str = ""

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["position"] = self.position.value
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Player":
        player = super().from_row(row)
        player.position = Position(player.position)
        return player


@dataclass
class Fixture(_Row):
    entity_type: ClassVar[EntityType] = EntityType.FIXTURE

    id: int
    team_h_id: int
    team_a_id: int
    event: Optional[int] = None
    kickoff_time: Optional[datetime] = None
    started: bool = False
    finished: bool = False
    provisional_start_time: bool = False
    team_h_score: Optional[int] = None
    team_a_score: Optional[int] = None
    team_h_difficulty: int = 0
    team_a_difficulty: int = 0
    minutes: int = 0
    pulse_id: int = 0
    code: int = 0

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        if self.kickoff_time is not None:
            row["kickoff_time"] = self.kickoff_time.isoformat()
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Fixture":
        fixture = super().from_row(row)
        fixture.kickoff_time = _parse_datetime(fixture.kickoff_time)
        return fixture


@dataclass
class Chip(_Row):
    entity_type: ClassVar[EntityType] = EntityType.CHIP

    id: int
    name: str
    number: int
    start_event: int
    stop_event: int
    chip_type: str
    # Feed-defined rules/scoring payload, stored verbatim as jsonb
    overrides: Dict[str, Any] = field(default_factory=dict)


ENTITY_CLASSES: Dict[EntityType, Type[_Row]] = {
    EntityType.TEAM: Team,
    EntityType.PLAYER: Player,
    EntityType.FIXTURE: Fixture,
    EntityType.CHIP: Chip,
}
