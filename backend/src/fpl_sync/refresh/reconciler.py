"""
Reconciler - runs one full FPL → store synchronization.

Phases run strictly in order: teams, players, fixtures, chips. Each phase
finishes (and logs its outcome) before the next starts. The first failure
aborts the run and is raised as a SyncError naming the phase; phases already
written stay written, and re-running the sync brings the store up to date.
"""

import asyncio
import logging
from contextlib import contextmanager
from functools import partial
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from fpl_sync.config import Config
from fpl_sync.database.store import StoreGateway
from fpl_sync.fpl_api.client import FPLAPIClient
from fpl_sync.fpl_api.models import FeedChip, FeedPlayer, FeedTeam
from fpl_sync.models.entities import EntityType
from fpl_sync.refresh.change_detector import (
    EXTENDED_TRACKED_FIELDS,
    TRACKED_FIELDS_BY_MODE,
    ChangeKind,
    resolve,
)
from fpl_sync.refresh.mappers import map_chip, map_fixture, map_player, map_team

logger = logging.getLogger(__name__)

# Every mutable fixture column; fixtures are overwritten on each run
FIXTURE_UPDATE_COLUMNS = (
    "event",
    "kickoff_time",
    "started",
    "finished",
    "provisional_start_time",
    "team_h_id",
    "team_a_id",
    "team_h_score",
    "team_a_score",
    "team_h_difficulty",
    "team_a_difficulty",
    "minutes",
    "pulse_id",
    "code",
)


class SyncError(Exception):
    """A sync run failed; ``phase`` and ``operation`` say where."""

    def __init__(self, phase: str, operation: str, message: str, entity_id: Optional[int] = None):
        self.phase = phase
        self.operation = operation
        self.entity_id = entity_id
        where = f"{phase} {operation}"
        if entity_id is not None:
            where += f" (id={entity_id})"
        super().__init__(f"{where} failed: {message}")


class SyncInProgressError(SyncError):
    """Raised when a sync is triggered while another run is still going."""

    def __init__(self):
        super().__init__("run", "start", "a sync is already in progress")


@dataclass
class PhaseResult:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    upserted: int = 0


@dataclass
class SyncReport:
    started_at: datetime
    finished_at: Optional[datetime] = None
    phases: Dict[str, PhaseResult] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "phases": {name: asdict(result) for name, result in self.phases.items()},
        }


class Reconciler:
    """Pulls the FPL feed and writes the minimal set of changes to the store."""

    def __init__(
        self,
        fpl_client: FPLAPIClient,
        store: StoreGateway,
        tracked_fields: Sequence[str] = EXTENDED_TRACKED_FIELDS,
    ):
        self.fpl_client = fpl_client
        self.store = store
        self.tracked_fields = tuple(tracked_fields)
        self._lock = asyncio.Lock()
        self._phase = "snapshot"

    @classmethod
    def from_config(cls, config: Config, fpl_client: FPLAPIClient, store: StoreGateway) -> "Reconciler":
        return cls(
            fpl_client,
            store,
            tracked_fields=TRACKED_FIELDS_BY_MODE[config.player_change_tracking],
        )

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run_sync(self, timeout: Optional[float] = None) -> SyncReport:
        """
        Run one full synchronization.

        Args:
            timeout: Optional overall deadline in seconds for the run

        Returns:
            SyncReport with per-phase outcome counts

        Raises:
            SyncInProgressError: If another run holds the lock
            SyncError: On the first transport or persistence failure
        """
        if self._lock.locked():
            logger.warning("Sync rejected, run already in progress")
            raise SyncInProgressError()

        async with self._lock:
            try:
                return await asyncio.wait_for(self._run(), timeout)
            except asyncio.TimeoutError as e:
                logger.error("Sync timed out", extra={"phase": self._phase, "timeout": timeout})
                raise SyncError(self._phase, "timeout", f"exceeded {timeout}s") from e

    async def _run(self) -> SyncReport:
        report = SyncReport(started_at=datetime.now(timezone.utc))
        logger.info("Sync started", extra={"tracked_fields": list(self.tracked_fields)})

        self._phase = "snapshot"
        with self._errors("fetch"):
            snapshot = await self.fpl_client.fetch_snapshot()

        self._phase = "teams"
        report.phases["teams"] = await self._sync_teams(snapshot.teams)
        self._phase = "players"
        report.phases["players"] = await self._sync_players(snapshot.players)
        self._phase = "fixtures"
        report.phases["fixtures"] = await self._sync_fixtures()
        self._phase = "chips"
        report.phases["chips"] = await self._sync_chips(snapshot.chips)

        report.finished_at = datetime.now(timezone.utc)
        logger.info("Sync finished", extra={
            "duration_seconds": (report.finished_at - report.started_at).total_seconds()
        })
        return report

    @contextmanager
    def _errors(self, operation: str, entity_id: Optional[int] = None):
        """Re-raise any failure as a SyncError tagged with the current phase."""
        try:
            yield
        except SyncError:
            raise
        except Exception as e:
            logger.error("Sync step failed", extra={
                "phase": self._phase,
                "operation": operation,
                "entity_id": entity_id,
                "outcome": "error",
                "error": str(e),
                "error_type": type(e).__name__
            })
            raise SyncError(self._phase, operation, str(e), entity_id) from e

    def _log_phase(self, result: PhaseResult):
        logger.info("Phase complete", extra={"phase": self._phase, **asdict(result)})

    async def _store_call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Run a blocking store call in the default executor.

        Keeps the event loop free during PostgREST round trips and lets the run
        deadline cancel the wait. A call already sent finishes in its worker
        thread; its result is discarded.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def _sync_teams(self, teams: List[FeedTeam]) -> PhaseResult:
        """Teams are overwritten every run; no change detection."""
        result = PhaseResult()
        for feed_team in teams:
            team = map_team(feed_team)
            with self._errors("save", team.id):
                await self._store_call(self.store.save, team)
            result.upserted += 1
            logger.info("Team synced", extra={
                "entity": "team", "entity_id": team.id, "outcome": "upserted"
            })
        self._log_phase(result)
        return result

    async def _sync_players(self, players: List[FeedPlayer]) -> PhaseResult:
        result = PhaseResult()
        for feed_player in players:
            candidate = map_player(feed_player)

            with self._errors("lookup", candidate.id):
                existing = await self._store_call(self.store.find_by_id, EntityType.PLAYER, candidate.id)

            kind, player = resolve(candidate, existing, self.tracked_fields)
            if player is None:
                result.skipped += 1
                logger.info("Player unchanged", extra={
                    "entity": "player", "entity_id": candidate.id, "outcome": "skipped"
                })
                continue

            with self._errors("save", candidate.id):
                await self._store_call(self.store.save, player)

            if kind is ChangeKind.NEW:
                result.inserted += 1
                outcome = "inserted"
            else:
                result.updated += 1
                outcome = "updated"
            logger.info(f"Player {outcome}", extra={
                "entity": "player",
                "entity_id": player.id,
                "outcome": outcome,
                "web_name": player.web_name,
                "current_price": player.current_price,
                "start_price": player.start_price
            })
        self._log_phase(result)
        return result

    async def _sync_fixtures(self) -> PhaseResult:
        """Fixtures bypass change detection: one bulk upsert keyed on id, every run."""
        result = PhaseResult()
        with self._errors("fetch"):
            feed_fixtures = await self.fpl_client.fetch_fixtures()

        fixtures = [map_fixture(f) for f in feed_fixtures]
        with self._errors("upsert"):
            await self._store_call(
                self.store.bulk_upsert,
                EntityType.FIXTURE,
                fixtures,
                conflict_key="id",
                update_columns=FIXTURE_UPDATE_COLUMNS,
            )

        result.upserted = len(fixtures)
        for fixture in fixtures:
            logger.info("Fixture synced", extra={
                "entity": "fixture", "entity_id": fixture.id, "outcome": "upserted"
            })
        self._log_phase(result)
        return result

    async def _sync_chips(self, chips: List[FeedChip]) -> PhaseResult:
        result = PhaseResult()
        for feed_chip in chips:
            chip = map_chip(feed_chip)
            with self._errors("save", chip.id):
                await self._store_call(self.store.save, chip)
            result.upserted += 1
            logger.info("Chip synced", extra={
                "entity": "chip", "entity_id": chip.id, "outcome": "upserted"
            })
        self._log_phase(result)
        return result
