"""Shared ingestion data types."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def parse_dt(dt: Any) -> Optional[datetime]:
    """Parse an upstream timestamp into an aware UTC datetime (None if unusable)."""
    if not dt:
        return None
    if isinstance(dt, datetime):
        parsed = dt
    else:
        s = str(dt).strip()
        if not s:
            return None
        if s.endswith("Z") or s.endswith("z"):
            s = s[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError:
            return None
    # Normalize naive to UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def iso_utc(dt: datetime) -> str:
    """Render as `YYYY-MM-DDTHH:MM:SS.mmmZ` (millisecond precision, UTC)."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def first_present(*values: Any) -> Any:
    """First value that is not None (falsy values like "" or 0 count as present)."""
    for v in values:
        if v is not None:
            return v
    return None


def finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def changed_since(timestamp: Any, since: Optional[datetime]) -> bool:
    """True unless the record carries a timestamp at or before the checkpoint."""
    if since is None or not timestamp:
        return True
    ts = parse_dt(timestamp)
    if ts is None:
        return True
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    return ts > since


@dataclass(frozen=True)
class UpstreamRecord:
    """One record as returned by the registration API.

    Only the fields every pipeline looks at are lifted out; the full payload
    stays in `raw` for the pipeline-specific mappers.
    """

    id: Any
    name: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "UpstreamRecord":
        return cls(
            id=data.get("id"),
            name=data.get("name"),
            title=data.get("title"),
            status=data.get("status"),
            created_at=data.get("createdAt") or data.get("createdDate"),
            updated_at=data.get("updatedAt"),
            raw=dict(data),
        )

    def get(self, key: str, default: Any = None) -> Any:
        value = self.raw.get(key)
        return default if value is None else value

    def field_value(self, path: str) -> Optional[str]:
        """Value of the first `fieldData` entry whose `path` matches."""
        fd = self.raw.get("fieldData")
        if not isinstance(fd, list):
            return None
        for entry in fd:
            if isinstance(entry, dict) and entry.get("path") == path:
                return entry.get("value")
        return None

    def billing(self, key: str) -> Any:
        billing = self.raw.get("billing")
        if isinstance(billing, dict):
            return billing.get(key)
        return None

    def diagnostic_fields(self) -> Dict[str, Any]:
        """The identifying fields recorded with every skipped-record sample."""
        return {
            "id": self.id if isinstance(self.id, (int, float)) and not isinstance(self.id, bool) else None,
            "name": self.name if is_non_empty_string(self.name) else None,
            "title": self.title if is_non_empty_string(self.title) else None,
            "status": self.status if is_non_empty_string(self.status) else None,
        }
