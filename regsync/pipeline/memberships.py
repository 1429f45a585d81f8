"""Memberships sync: memberships changed since the last run -> `memberships` rows.

Membership payloads are inconsistent about where a value lives, so each
column is looked up along a chain: top-level field(s), then `billing`, then
the form's `fieldData` entries.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Optional

from regsync.ingestion.record_types import UpstreamRecord, changed_since, first_present
from regsync.pipeline.context import RunContext
from regsync.pipeline.run import PipelineRun, RunResult, RunState, execute, map_records
from regsync.storage.row_types import MembershipRow


PIPELINE = "memberships"
CHECKPOINT_PARTITION = "all"

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def normalize_number(value: Any) -> Optional[int]:
    """Integer from a number or a loosely formatted numeric string ("$1,200" -> 1200)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return math.trunc(value) if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = _NON_NUMERIC.sub("", value.strip())
        if not cleaned:
            return None
        try:
            numeric = float(cleaned)
        except ValueError:
            return None
        return math.trunc(numeric) if math.isfinite(numeric) else None
    return None


class MembershipMapper:
    def __init__(self, ctx: RunContext, since: Optional[datetime]):
        self.ctx = ctx
        self.since = since

    def __call__(self, record: UpstreamRecord) -> Optional[MembershipRow]:
        r = record
        if not changed_since(first_present(r.updated_at, r.created_at), self.since):
            self.ctx.stats.drop("unchanged", record)
            return None

        member_number = normalize_number(
            first_present(r.get("membershipNumber"), r.get("memberNumber"), r.id, r.field_value("membership.number"))
        )
        if member_number is None:
            self.ctx.stats.drop("no-member-number", record)
            return None

        return MembershipRow(
            member_number=member_number,
            first_name=first_present(r.get("firstName"), r.billing("firstName"), r.field_value("name.first")),
            last_name=first_present(r.get("lastName"), r.billing("lastName"), r.field_value("name.last")),
            email=first_present(r.get("email"), r.get("orderEmail"), r.field_value("email")),
            level_id=normalize_number(
                first_present(
                    r.get("membershipLevelId"),
                    r.get("levelId"),
                    r.field_value("membership.levelId"),
                    r.field_value("membership.level_id"),
                )
            ),
            fee=normalize_number(
                first_present(r.get("membershipFee"), r.get("fee"), r.get("total"), r.field_value("membership.fee"))
            ),
            status=first_present(r.status, r.field_value("membership.status")),
            expiration_date=first_present(
                r.get("expirationDate"),
                r.get("membershipExpirationDate"),
                r.field_value("membership.expirationDate"),
                r.field_value("membership.expiration_date"),
            ),
        )


def run_memberships_sync(ctx: RunContext) -> RunResult:
    def body(run: PipelineRun):
        since = ctx.store.read_checkpoint(PIPELINE, CHECKPOINT_PARTITION)
        memberships = ctx.client.fetch_all("search/memberships")

        run.advance(RunState.MAPPING)
        rows = map_records(ctx, memberships, MembershipMapper(ctx, since))

        run.advance(RunState.PERSISTING)
        synced = ctx.store.upsert_memberships(rows)
        ctx.store.write_checkpoint(PIPELINE, CHECKPOINT_PARTITION)
        return len(memberships), synced, {"since": since.isoformat() if since else None}

    return execute(ctx, body)
