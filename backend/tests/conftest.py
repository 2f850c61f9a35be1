"""Shared fixtures: an in-memory store, a scripted feed client and FPL payload builders."""

import copy
from typing import Any, Dict, List, Optional

import pytest

from fpl_sync.config import Config
from fpl_sync.database.store import StoreError, StoreGateway
from fpl_sync.fpl_api.models import FIXTURE_LIST, BootstrapSnapshot
from fpl_sync.models.entities import EntityType
from fpl_sync.refresh.reconciler import Reconciler


class InMemoryStore(StoreGateway):
    """Dict-backed StoreGateway that records every write."""

    def __init__(self):
        self.rows: Dict[EntityType, Dict[int, Any]] = {t: {} for t in EntityType}
        self.writes: List[tuple] = []
        self.failures: Dict[tuple, Exception] = {}

    def fail(self, operation: str, entity_type: EntityType, error: Optional[Exception] = None):
        self.failures[(operation, entity_type)] = error or StoreError(operation, entity_type.value, "boom")

    def _check(self, operation: str, entity_type: EntityType):
        error = self.failures.get((operation, entity_type))
        if error is not None:
            raise error

    def find_by_id(self, entity_type, entity_id):
        self._check("find_by_id", entity_type)
        return copy.deepcopy(self.rows[entity_type].get(entity_id))

    def save(self, entity):
        self._check("save", entity.entity_type)
        self.rows[entity.entity_type][entity.id] = copy.deepcopy(entity)
        self.writes.append(("save", entity.entity_type, entity.id))

    def bulk_upsert(self, entity_type, entities, conflict_key, update_columns):
        self._check("bulk_upsert", entity_type)
        table = self.rows[entity_type]
        for entity in entities:
            key = getattr(entity, conflict_key)
            existing = table.get(key)
            if existing is None:
                table[key] = copy.deepcopy(entity)
            else:
                for column in update_columns:
                    setattr(existing, column, copy.deepcopy(getattr(entity, column)))
        self.writes.append(("bulk_upsert", entity_type, len(entities)))

    def find_all(self, entity_type):
        self._check("find_all", entity_type)
        table = self.rows[entity_type]
        return [copy.deepcopy(table[k]) for k in sorted(table)]

    def writes_for(self, entity_type: EntityType) -> List[tuple]:
        return [w for w in self.writes if w[1] is entity_type]


class FakeFPLClient:
    """Serves canned payloads through the same typed decoding as FPLAPIClient."""

    def __init__(self, snapshot: Dict[str, Any], fixtures: List[Dict[str, Any]]):
        self.snapshot = snapshot
        self.fixtures = fixtures
        self.snapshot_error: Optional[Exception] = None
        self.fixtures_error: Optional[Exception] = None
        self.snapshot_calls = 0
        self.fixtures_calls = 0
        self.closed = False

    async def fetch_snapshot(self):
        self.snapshot_calls += 1
        if self.snapshot_error is not None:
            raise self.snapshot_error
        return BootstrapSnapshot.model_validate(self.snapshot)

    async def fetch_fixtures(self):
        self.fixtures_calls += 1
        if self.fixtures_error is not None:
            raise self.fixtures_error
        return FIXTURE_LIST.validate_python(self.fixtures)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True


def make_team(team_id: int, **overrides) -> Dict[str, Any]:
    team = {
        "id": team_id,
        "name": f"Team {team_id}",
        "short_name": f"T{team_id:02d}",
        "code": 100 + team_id,
        "strength": 3,
    }
    team.update(overrides)
    return team


def make_player(player_id: int, **overrides) -> Dict[str, Any]:
    player = {
        "id": player_id,
        "first_name": "Bukayo",
        "second_name": f"Saka{player_id}",
        "web_name": f"Saka{player_id}",
        "team": 1,
        "element_type": 3,
        "now_cost": 100,
        "total_points": 50,
        "form": "5.5",
        "selected_by_percent": "34.7",
        "transfers_in": 1000,
        "transfers_in_event": 10,
        "transfers_out": 500,
        "transfers_out_event": 5,
        "value_form": "0.6",
        "event_points": 6,
        "ict_index": "120.3",
        "status": "a",
    }
    player.update(overrides)
    return player


def make_fixture(fixture_id: int, **overrides) -> Dict[str, Any]:
    fixture = {
        "id": fixture_id,
        "code": 2444470 + fixture_id,
        "event": 1,
        "finished": False,
        "finished_provisional": False,
        "kickoff_time": "2024-08-16T19:00:00Z",
        "minutes": 0,
        "provisional_start_time": False,
        "started": False,
        "team_a": 2,
        "team_a_score": None,
        "team_h": 1,
        "team_h_score": None,
        "stats": [],
        "team_h_difficulty": 3,
        "team_a_difficulty": 4,
        "pulse_id": 115827 + fixture_id,
    }
    fixture.update(overrides)
    return fixture


def make_chip(chip_id: int, **overrides) -> Dict[str, Any]:
    chip = {
        "id": chip_id,
        "name": "wildcard",
        "number": 1,
        "start_event": 2,
        "stop_event": 19,
        "chip_type": "transfer",
        "overrides": {
            "rules": {},
            "scoring": {},
            "element_types": [],
            "pick_multiplier": None,
        },
    }
    chip.update(overrides)
    return chip


@pytest.fixture
def config():
    return Config(
        supabase_url="https://example.supabase.co",
        supabase_key="test-anon-key",
        fpl_api_base_url="https://fpl.test/api",
        request_timeout=5.0,
        fixtures_future_only=True,
        player_change_tracking="extended",
    )


@pytest.fixture
def snapshot_payload():
    return {
        "events": [{"id": 1, "name": "Gameweek 1"}],
        "teams": [make_team(1), make_team(2)],
        "elements": [
            make_player(1),
            make_player(2, team=2, element_type=1, now_cost=45),
        ],
        "chips": [
            make_chip(1),
            make_chip(2, name="3xc", chip_type="team", overrides={"pick_multiplier": 3}),
        ],
        "total_players": 10000000,
    }


@pytest.fixture
def fixtures_payload():
    return [make_fixture(1), make_fixture(2, team_h=2, team_a=1, event=None, kickoff_time=None)]


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def feed(snapshot_payload, fixtures_payload):
    return FakeFPLClient(snapshot_payload, fixtures_payload)


@pytest.fixture
def reconciler(feed, store):
    return Reconciler(feed, store)
