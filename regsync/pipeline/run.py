"""Run handler shared by the pipelines.

A run moves fetching -> mapping -> persisting -> done. Any exception escaping
a stage ends the run as failed with the exception message; per-record drops
never get that far because mappers record them in `RunStats` and return None.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from regsync.ingestion.record_types import UpstreamRecord
from regsync.pipeline.context import RunContext
from regsync.pipeline.executor import map_bounded


logger = logging.getLogger(__name__)

Row = TypeVar("Row")


class RunState(str, Enum):
    FETCHING = "fetching"
    MAPPING = "mapping"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunResult:
    pipeline: str
    state: RunState
    total: int = 0
    synced: int = 0
    stats: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    failed_while: Optional[RunState] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.state is RunState.DONE

    @property
    def http_status(self) -> int:
        return 200 if self.ok else 500

    def to_payload(self) -> Dict[str, Any]:
        if not self.ok:
            return {"ok": False, "error": self.error or "unknown error"}
        payload: Dict[str, Any] = {
            "ok": True,
            "total": self.total,
            "synced": self.synced,
            "kept": self.stats.get("kept", 0),
            "drops": self.stats.get("drops", {}),
            "skipped": self.stats.get("skipped", []),
            "notes": self.stats.get("notes", []),
        }
        payload.update(self.extra)
        return payload


class PipelineRun:
    """Tracks which stage a run is in."""

    def __init__(self, pipeline: str):
        self.pipeline = pipeline
        self.state = RunState.FETCHING

    def advance(self, state: RunState) -> None:
        logger.debug(f"[{self.pipeline}] {self.state.value} -> {state.value}")
        self.state = state


def map_records(
    ctx: RunContext,
    records: Sequence[UpstreamRecord],
    mapper: Callable[[UpstreamRecord], Optional[Row]],
) -> List[Row]:
    """Run `mapper` over `records` with bounded concurrency; keep non-None rows in input order."""

    def work(record: UpstreamRecord, _idx: int) -> Optional[Row]:
        ctx.stats.seen()
        row = mapper(record)
        if row is not None:
            ctx.stats.keep()
        return row

    mapped = map_bounded(records, ctx.config.map_concurrency, work)
    return [row for row in mapped if row is not None]


# A run body returns (records fetched, rows persisted, extra payload fields).
RunBody = Callable[[PipelineRun], Tuple[int, int, Dict[str, Any]]]


def execute(ctx: RunContext, body: RunBody) -> RunResult:
    run = PipelineRun(ctx.pipeline)
    try:
        total, synced, extra = body(run)
    except Exception as e:
        failed_while = run.state
        run.advance(RunState.FAILED)
        logger.error(f"[{ctx.pipeline}] run failed while {failed_while.value}: {e}", exc_info=True)
        return RunResult(
            pipeline=ctx.pipeline,
            state=RunState.FAILED,
            stats=ctx.stats.snapshot(),
            error=str(e) or e.__class__.__name__,
            failed_while=failed_while,
        )

    run.advance(RunState.DONE)
    ctx.stats.log_summary(fetched=total)
    return RunResult(
        pipeline=ctx.pipeline,
        state=RunState.DONE,
        total=total,
        synced=synced,
        stats=ctx.stats.snapshot(),
        extra=extra,
    )
