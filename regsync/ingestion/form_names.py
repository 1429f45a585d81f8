"""Form-name conventions.

Form names carry their own routing information:
- `Pre-Reg <title>` marks a pre-registration form (no scheduled date)
- `YY MM DD <title> [n]` marks a scheduled session on that date

The title (minus the lead-in and any trailing session number) becomes the
webpage path, e.g. `25 03 14 Intro Workshop 2` -> `w-intro-workshop`.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from regsync.ingestion.record_types import iso_utc, is_non_empty_string


WEB_PATH_PREFIX = "w-"

# Admission gate: a name must open with one of the two recognized lead-ins.
FORMAT_GATE = re.compile(r"^(?:\s*pre-reg\b|\s*\d{2}\s+\d{2}\s+\d{2}\b)", re.IGNORECASE)
PRE_REG = re.compile(r"^\s*pre-reg\b", re.IGNORECASE)
DATE_PREFIX = re.compile(r"^\s*(\d{2})\s+(\d{2})\s+(\d{2})\b")

LEADING_PATTERN = re.compile(r"^(?:\s*pre-reg\s*|\s*\d{2}\s+\d{2}\s+\d{2}\s*)", re.IGNORECASE)
TRAILING_NUM_GROUP = re.compile(r"\s\d+\s*$")
WHITESPACE = re.compile(r"\s+")


def passes_format_gate(name: str) -> bool:
    return bool(FORMAT_GATE.match(name or ""))


def is_pre_reg(name: str) -> bool:
    return bool(PRE_REG.match(name or ""))


def scheduled_date_from_name(name: Optional[str]) -> Optional[str]:
    """ISO timestamp (UTC midnight) from a leading `YY MM DD`, or None if absent/invalid."""
    if not is_non_empty_string(name):
        return None
    m = DATE_PREFIX.match(name)
    if not m:
        return None
    yy, mm, dd = (int(g) for g in m.groups())
    try:
        dt = datetime(2000 + yy, mm, dd, tzinfo=timezone.utc)
    except ValueError:
        return None
    return iso_utc(dt)


def build_web_path(name: str) -> str:
    """Candidate webpage path for a form name; "" when nothing is left to slug."""
    s = (name or "").strip()
    s = LEADING_PATTERN.sub("", s, count=1)
    s = TRAILING_NUM_GROUP.sub("", s, count=1)
    s = s.strip()
    if not s:
        return ""
    s = WHITESPACE.sub(" ", s).replace(" ", "-").lower()
    return f"{WEB_PATH_PREFIX}{s}"
