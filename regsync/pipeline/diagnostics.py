"""Per-run counters and samples of dropped records and uncertain links."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from regsync.ingestion.record_types import UpstreamRecord


logger = logging.getLogger(__name__)

# How many entries of each sample list go into the summary log line.
LOG_SAMPLE_SIZE = 6


class RunStats:
    """Mutated by every mapping worker; all writes go through one lock."""

    def __init__(self, *, pipeline: str = "sync", sample_limit: int = 200):
        self.pipeline = pipeline
        self.sample_limit = max(0, int(sample_limit))
        self._lock = threading.Lock()
        self.total = 0
        self.kept = 0
        self.drops: Dict[str, int] = {}
        self.skipped: List[Dict[str, Any]] = []
        self.notes: List[Dict[str, Any]] = []

    def seen(self) -> None:
        with self._lock:
            self.total += 1

    def keep(self) -> None:
        with self._lock:
            self.kept += 1

    def drop(self, reason: str, record: Optional[UpstreamRecord]) -> None:
        item: Dict[str, Any] = {"reason": reason}
        if record is not None:
            item.update(record.diagnostic_fields())
        else:
            item.update({"id": None, "name": None, "title": None, "status": None})
        with self._lock:
            self.drops[reason] = self.drops.get(reason, 0) + 1
            if len(self.skipped) < self.sample_limit:
                self.skipped.append(item)
        logger.info(f"[{self.pipeline}] skipped record: {item}")

    def note(self, note: str, **fields: Any) -> None:
        item = {"note": note, **fields}
        with self._lock:
            if len(self.notes) < self.sample_limit:
                self.notes.append(item)
        logger.warning(f"[{self.pipeline}] {note}, keeping: {fields}")

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total": self.total,
                "kept": self.kept,
                "drops": dict(self.drops),
                "skipped": list(self.skipped),
                "notes": list(self.notes),
            }

    def log_summary(self, *, fetched: int) -> None:
        snap = self.snapshot()
        logger.info(
            f"[{self.pipeline}] stats fetched={fetched} kept={snap['kept']} drops={snap['drops']} "
            f"skipped_samples={snap['skipped'][:LOG_SAMPLE_SIZE]} notes={snap['notes'][:LOG_SAMPLE_SIZE]}"
        )
