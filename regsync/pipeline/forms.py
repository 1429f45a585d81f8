"""Forms sync: open RegFox forms -> `forms` rows with a verified webpage link.

Every skip is recorded with its reason; links that could not be confirmed but
were kept as a best guess are recorded as notes.
"""

from __future__ import annotations

from typing import Optional

from regsync.ingestion.form_names import (
    build_web_path,
    is_pre_reg,
    passes_format_gate,
    scheduled_date_from_name,
)
from regsync.ingestion.record_types import UpstreamRecord, finite_number, is_non_empty_string, iso_utc, parse_dt
from regsync.pipeline.context import RunContext
from regsync.pipeline.run import PipelineRun, RunResult, RunState, execute, map_records
from regsync.storage.row_types import FormRow


PIPELINE = "forms"
CHECKPOINT_PARTITION = "all"


class FormMapper:
    def __init__(self, ctx: RunContext):
        self.ctx = ctx
        self.stats = ctx.stats

    def _drop(self, reason: str, record: UpstreamRecord) -> None:
        self.stats.drop(reason, record)

    def _date_from_detail(self, form_id: int) -> Optional[str]:
        detail = self.ctx.client.fetch_form_detail(form_id)
        start = (detail or {}).get("eventStart")
        if not is_non_empty_string(start):
            return None
        parsed = parse_dt(start)
        return iso_utc(parsed) if parsed else None

    def __call__(self, record: UpstreamRecord) -> Optional[FormRow]:
        if (record.status or "").lower() != "open":
            self._drop("not-open", record)
            return None

        id_num = finite_number(record.id)
        if id_num is None:
            self._drop("no-id", record)
            return None
        form_id = int(id_num)

        if not is_non_empty_string(record.name):
            self._drop("no-name", record)
            return None
        raw_name = record.name.strip()

        if not passes_format_gate(raw_name):
            self._drop("bad-format", record)
            return None

        pre_reg = is_pre_reg(raw_name)

        scheduled_iso: Optional[str] = None
        if not pre_reg:
            scheduled_iso = scheduled_date_from_name(raw_name) or self._date_from_detail(form_id)
            if not scheduled_iso:
                self._drop("no-date-non-prereg", record)
                return None

        web_path = build_web_path(raw_name)
        if not web_path:
            self._drop("empty-slug", record)
            return None

        resolved = self.ctx.resolver.resolve(web_path)
        if resolved.url is None:
            self._drop(resolved.reason or "both-404", record)
            return None
        if resolved.ambiguous:
            self.stats.note("link-uncertain", id=form_id, name=raw_name, picked=resolved.url)

        return FormRow(
            id=form_id,
            form_name=raw_name,
            scheduled_date=scheduled_iso,
            status="open",
            webpage_id=resolved.url,
            pre_reg=pre_reg,
            ambiguous=resolved.ambiguous,
        )


def run_forms_sync(ctx: RunContext) -> RunResult:
    def body(run: PipelineRun):
        forms = ctx.client.fetch_all("forms", {"status": "open"})

        run.advance(RunState.MAPPING)
        rows = map_records(ctx, forms, FormMapper(ctx))

        run.advance(RunState.PERSISTING)
        synced = ctx.store.upsert_forms(rows)
        ctx.store.write_checkpoint(PIPELINE, CHECKPOINT_PARTITION)
        return len(forms), synced, {}

    return execute(ctx, body)
