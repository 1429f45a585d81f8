#!/usr/bin/env python3
"""RegFox sync worker.

Runs one sync cycle (forms, then memberships, then registrants) or keeps
running it on a schedule:

  SYNC_MODE=once                 (default) one cycle, exit non-zero if any pipeline failed
  SYNC_MODE=scheduled            every SYNC_INTERVAL_MINUTES (default 60)
  SYNC_PIPELINES=forms,memberships  optional subset, comma separated
"""

from __future__ import annotations

import logging
import os
import sys
import time
from typing import Dict, List

import schedule
from dotenv import load_dotenv

from regsync.config import SyncConfig
from regsync.storage.postgres_schema import ensure_postgres_schema
from regsync.sync import PIPELINES, RUN_ORDER, run_sync


logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("sync_worker")


def _selected_pipelines() -> List[str]:
    raw = (os.environ.get("SYNC_PIPELINES") or "").strip()
    if not raw:
        return list(RUN_ORDER)
    wanted = {p.strip().lower() for p in raw.split(",") if p.strip()}
    unknown = wanted - set(PIPELINES)
    if unknown:
        raise ValueError(f"Unknown pipelines in SYNC_PIPELINES: {', '.join(sorted(unknown))}")
    return [p for p in RUN_ORDER if p in wanted]


def run_once() -> Dict[str, bool]:
    load_dotenv()
    config = SyncConfig.from_env()
    ensure_postgres_schema(config.pg_dsn)

    outcome: Dict[str, bool] = {}
    for name in _selected_pipelines():
        result = run_sync(name, config)
        outcome[name] = result.ok
        if result.ok:
            logger.info(f"[sync] {name} ok total={result.total} synced={result.synced} drops={result.stats.get('drops')}")
        else:
            logger.error(f"[sync] {name} failed: {result.error}")
    return outcome


def _scheduled_cycle() -> None:
    try:
        run_once()
    except Exception as e:
        # Next cycle starts from the same checkpoints.
        logger.error(f"[sync] cycle aborted: {e}", exc_info=True)


def run_scheduled() -> None:
    minutes = int(os.environ.get("SYNC_INTERVAL_MINUTES", "60"))
    schedule.every(minutes).minutes.do(_scheduled_cycle)
    logger.info(f"[sync] scheduled every {minutes} minutes")
    _scheduled_cycle()
    while True:
        schedule.run_pending()
        time.sleep(5)


if __name__ == "__main__":
    mode = (os.environ.get("SYNC_MODE") or "once").lower().strip()
    if mode in ("scheduled", "daemon"):
        run_scheduled()
    else:
        results = run_once()
        raise SystemExit(0 if all(results.values()) else 1)
