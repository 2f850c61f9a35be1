"""
Backend API: admin trigger for the FPL sync plus read-only listings of the
synchronized tables.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Load .env before Config is built
backend_dir = Path(__file__).resolve().parent.parent.parent.parent
load_dotenv(backend_dir / ".env")

from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware

from fpl_sync.config import Config
from fpl_sync.database.store import StoreError, StoreGateway
from fpl_sync.database.supabase_client import SupabaseStore
from fpl_sync.fpl_api.client import FPLAPIClient
from fpl_sync.models.entities import EntityType
from fpl_sync.refresh.reconciler import Reconciler, SyncError, SyncInProgressError

logger = logging.getLogger(__name__)

# Lazy init so importing the app never requires Supabase or network access
_config: Optional[Config] = None
_store: Optional[SupabaseStore] = None
_fpl_client: Optional[FPLAPIClient] = None
_reconciler: Optional[Reconciler] = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_store() -> StoreGateway:
    global _store
    if _store is None:
        _store = SupabaseStore(get_config())
    return _store


def get_reconciler() -> Reconciler:
    # One instance for the process so its run lock covers every request
    global _fpl_client, _reconciler
    if _reconciler is None:
        config = get_config()
        _fpl_client = FPLAPIClient(config)
        _reconciler = Reconciler.from_config(config, _fpl_client, get_store())
    return _reconciler


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _fpl_client is not None:
        await _fpl_client.close()


app = FastAPI(title="FPL Sync API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/api/v1/admin/import-fpl")
async def import_fpl(reconciler: Reconciler = Depends(get_reconciler)) -> Dict[str, Any]:
    """Run one full sync. Failure details are logged, not returned."""
    try:
        report = await reconciler.run_sync()
    except SyncInProgressError:
        raise HTTPException(status_code=409, detail="FPL import already in progress")
    except SyncError as e:
        logger.error("Import failed", extra={
            "phase": e.phase,
            "operation": e.operation,
            "error": str(e)
        })
        raise HTTPException(status_code=500, detail="Failed to import FPL data")

    return {
        "status": "ok",
        "message": "FPL data imported successfully.",
        "report": report.to_dict(),
    }


def _list(store: StoreGateway, entity_type: EntityType) -> List[Dict[str, Any]]:
    try:
        entities = store.find_all(entity_type)
    except StoreError as e:
        logger.error("Listing failed", extra={"table": entity_type.value, "error": str(e)})
        raise HTTPException(status_code=500, detail=f"Failed to fetch {entity_type.value}")
    return jsonable_encoder([entity.to_row() for entity in entities])


@app.get("/api/v1/players")
def get_players(store: StoreGateway = Depends(get_store)):
    return _list(store, EntityType.PLAYER)


@app.get("/api/v1/teams")
def get_teams(store: StoreGateway = Depends(get_store)):
    return _list(store, EntityType.TEAM)


@app.get("/api/v1/fixtures")
def get_fixtures(store: StoreGateway = Depends(get_store)):
    return _list(store, EntityType.FIXTURE)
