"""Entry point shared by the HTTP trigger and the worker: run one pipeline by name."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from regsync.config import SyncConfig
from regsync.pipeline.context import RunContext
from regsync.pipeline.forms import run_forms_sync
from regsync.pipeline.memberships import run_memberships_sync
from regsync.pipeline.registrants import run_registrants_sync
from regsync.pipeline.run import RunResult


logger = logging.getLogger(__name__)

PIPELINES: Dict[str, Callable[[RunContext], RunResult]] = {
    "forms": run_forms_sync,
    "memberships": run_memberships_sync,
    "registrants": run_registrants_sync,
}

# Registrants read the open forms written by the forms pipeline.
RUN_ORDER = ("forms", "memberships", "registrants")


def run_sync(name: str, config: Optional[SyncConfig] = None, **context_kwargs: Any) -> RunResult:
    """Run one pipeline with a fresh context. Extra kwargs go to `RunContext.create`."""
    try:
        runner = PIPELINES[name]
    except KeyError:
        raise ValueError(f"unknown pipeline: {name}") from None
    config = config or SyncConfig.from_env()
    ctx = RunContext.create(name, config, **context_kwargs)
    logger.info(f"[{name}] sync started")
    result = runner(ctx)
    if result.ok:
        logger.info(f"[{name}] sync done total={result.total} synced={result.synced}")
    return result
