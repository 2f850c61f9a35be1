#!/usr/bin/env python3
"""
FPL Sync - one-shot entry point.

Pulls teams, players, fixtures and chips from the FPL API and reconciles them
into Supabase, then exits. Exit status is non-zero when the run fails.

Usage:
    fpl-sync [--log-file PATH] [--timeout SECONDS]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent.parent


async def run_once(timeout: Optional[float] = None) -> int:
    """Run one sync; returns a process exit code."""
    # Imported late so .env is loaded before Config reads the environment
    from fpl_sync.config import Config
    from fpl_sync.database.supabase_client import SupabaseStore
    from fpl_sync.fpl_api.client import FPLAPIClient
    from fpl_sync.refresh.reconciler import Reconciler, SyncError

    config = Config()
    store = SupabaseStore(config)

    async with FPLAPIClient(config) as fpl_client:
        reconciler = Reconciler.from_config(config, fpl_client, store)
        try:
            report = await reconciler.run_sync(timeout=timeout)
        except SyncError as e:
            logger.error("Sync failed", extra={
                "phase": e.phase,
                "operation": e.operation,
                "error": str(e)
            }, exc_info=True)
            return 1

    logger.info("Sync succeeded", extra={"report": report.to_dict()})
    return 0


def cli():
    parser = argparse.ArgumentParser(description="Sync FPL feed data into the store")
    parser.add_argument("--log-file", help="Also append logs to this file")
    parser.add_argument("--timeout", type=float, default=None, help="Abort the run after this many seconds")
    args = parser.parse_args()

    load_dotenv(BACKEND_DIR / ".env")

    from fpl_sync.utils.logger import setup_logging
    setup_logging(log_file=args.log_file)

    try:
        code = asyncio.run(run_once(timeout=args.timeout))
    except KeyboardInterrupt:
        logger.info("Sync interrupted by user")
        code = 130
    except ValueError as e:
        # Configuration errors
        logger.error("Sync could not start", extra={"error": str(e)})
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    cli()
