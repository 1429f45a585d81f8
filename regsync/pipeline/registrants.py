"""Registrants sync: for every open form, new registrants -> `registrants` rows.

Forms are processed one at a time, each with its own checkpoint partition
(the form id). A failure on any form fails the run; forms finished before it
keep their advanced checkpoints.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional

from regsync.ingestion.record_types import (
    UpstreamRecord,
    changed_since,
    finite_number,
    first_present,
    is_non_empty_string,
)
from regsync.pipeline.context import RunContext
from regsync.pipeline.run import PipelineRun, RunResult, RunState, execute, map_records
from regsync.storage.row_types import RegistrantRow


logger = logging.getLogger(__name__)

PIPELINE = "registrants"
EXCLUDED_STATUSES = {"cancelled", "canceled", "abandoned"}


def is_excluded_status(status: Optional[str]) -> bool:
    if not is_non_empty_string(status):
        return False
    return status.strip().lower() in EXCLUDED_STATUSES


class RegistrantMapper:
    def __init__(self, ctx: RunContext, form_id: str, since: Optional[datetime]):
        self.ctx = ctx
        self.form_id = form_id
        self.since = since

    def __call__(self, record: UpstreamRecord) -> Optional[RegistrantRow]:
        r = record
        stats = self.ctx.stats
        if str(first_present(r.get("formId"), "")) != self.form_id:
            stats.drop("wrong-form", record)
            return None
        if is_excluded_status(r.status):
            stats.drop("excluded-status", record)
            return None
        if not changed_since(r.created_at, self.since):
            stats.drop("unchanged", record)
            return None
        ext_id = finite_number(r.id)
        if ext_id is None:
            stats.drop("no-id", record)
            return None

        return RegistrantRow(
            form_id=self.form_id,
            ext_id=int(ext_id),
            first_name=first_present(r.get("firstName"), r.billing("firstName"), r.field_value("name.first")),
            last_name=first_present(r.get("lastName"), r.billing("lastName"), r.field_value("name.last")),
            email=first_present(r.get("orderEmail"), r.field_value("email")),
            status=r.status,
        )


def run_registrants_sync(ctx: RunContext) -> RunResult:
    def body(run: PipelineRun):
        form_ids = ctx.store.open_form_ids()
        if not form_ids:
            logger.info("[registrants] no open forms in the forms table")
            return 0, 0, {"results": {}, "form_count": 0}

        results: Dict[str, int] = {}
        total = 0
        synced = 0
        for form_id in form_ids:
            run.advance(RunState.FETCHING)
            since = ctx.store.read_checkpoint(PIPELINE, form_id)
            regs = ctx.client.fetch_all("search/registrants", {"formId": form_id})
            total += len(regs)

            run.advance(RunState.MAPPING)
            rows = map_records(ctx, regs, RegistrantMapper(ctx, form_id, since))

            run.advance(RunState.PERSISTING)
            saved = ctx.store.upsert_registrants(rows)
            ctx.store.write_checkpoint(PIPELINE, form_id)
            results[form_id] = saved
            synced += saved
            logger.info(f"[registrants] form {form_id}: fetched={len(regs)} synced={saved}")

        return total, synced, {"results": results, "form_count": len(form_ids)}

    return execute(ctx, body)
