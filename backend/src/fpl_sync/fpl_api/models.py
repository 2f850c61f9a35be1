"""
Typed records decoded from the FPL API responses.

Only the fields the sync reads are modeled; unknown keys are ignored. Optional
fields treat an explicit JSON null and a missing key the same way.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class FeedRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")


class FeedTeam(FeedRecord):
    id: int
    name: str
    short_name: str
    code: int


class FeedPlayer(FeedRecord):
    id: int
    first_name: str
    second_name: str
    web_name: str = ""
    team: int
    element_type: int
    now_cost: int
    total_points: int = 0
    form: Optional[str] = None
    selected_by_percent: Optional[str] = None
    transfers_in: int = 0
    transfers_in_event: int = 0
    transfers_out: int = 0
    transfers_out_event: int = 0
    value_form: Optional[str] = None
    event_points: int = 0
    ict_index: Optional[str] = None

    @field_validator("form", "selected_by_percent", "value_form", "ict_index", mode="before")
    @classmethod
    def _numbers_as_text(cls, value: Any) -> Any:
        # These are feed-native strings; accept bare numbers without failing the fetch
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class FeedChip(FeedRecord):
    id: int
    name: str
    number: int
    start_event: int
    stop_event: int
    chip_type: str
    overrides: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("overrides", mode="before")
    @classmethod
    def _null_overrides(cls, value: Any) -> Any:
        return {} if value is None else value


class FeedFixture(FeedRecord):
    id: int
    event: Optional[int] = None
    kickoff_time: Optional[datetime] = None
    started: Optional[bool] = False
    finished: bool = False
    provisional_start_time: bool = False
    team_h: int
    team_a: int
    team_h_score: Optional[int] = None
    team_a_score: Optional[int] = None
    team_h_difficulty: int = 0
    team_a_difficulty: int = 0
    minutes: int = 0
    pulse_id: int = 0
    code: int = 0


class BootstrapSnapshot(FeedRecord):
    """The bulk bootstrap-static payload: teams, players and chips in one response."""

    model_config = ConfigDict(populate_by_name=True)

    teams: List[FeedTeam] = Field(default_factory=list)
    players: List[FeedPlayer] = Field(default_factory=list, alias="elements")
    chips: List[FeedChip] = Field(default_factory=list)


FIXTURE_LIST = TypeAdapter(List[FeedFixture])
