"""Postgres repository for synced rows and checkpoints.

Plain psycopg + SQL. Every upsert is keyed by the row's natural key, so
re-running a sync with the same input overwrites rather than duplicates.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence

import psycopg

from regsync.storage.row_types import FormRow, MembershipRow, RegistrantRow


UPSERT_FORMS_SQL = """
INSERT INTO forms (id, form_name, scheduled_date, status, webpage_id, pre_reg)
VALUES (%(id)s, %(form_name)s, %(scheduled_date)s, %(status)s, %(webpage_id)s, %(pre_reg)s)
ON CONFLICT (id) DO UPDATE SET
  form_name = EXCLUDED.form_name,
  scheduled_date = EXCLUDED.scheduled_date,
  status = EXCLUDED.status,
  webpage_id = EXCLUDED.webpage_id,
  pre_reg = EXCLUDED.pre_reg,
  updated_at = now()
"""

UPSERT_MEMBERSHIPS_SQL = """
INSERT INTO memberships (member_number, first_name, last_name, email, level_id, fee, status, expiration_date)
VALUES (
  %(member_number)s, %(first_name)s, %(last_name)s, %(email)s,
  %(level_id)s, %(fee)s, %(status)s, %(expiration_date)s
)
ON CONFLICT (member_number) DO UPDATE SET
  first_name = EXCLUDED.first_name,
  last_name = EXCLUDED.last_name,
  email = EXCLUDED.email,
  level_id = EXCLUDED.level_id,
  fee = EXCLUDED.fee,
  status = EXCLUDED.status,
  expiration_date = EXCLUDED.expiration_date,
  updated_at = now()
"""

UPSERT_REGISTRANTS_SQL = """
INSERT INTO registrants (form_id, ext_id, first_name, last_name, email, status)
VALUES (%(form_id)s, %(ext_id)s, %(first_name)s, %(last_name)s, %(email)s, %(status)s)
ON CONFLICT (form_id, ext_id) DO UPDATE SET
  first_name = EXCLUDED.first_name,
  last_name = EXCLUDED.last_name,
  email = EXCLUDED.email,
  status = EXCLUDED.status,
  updated_at = now()
"""


class PostgresRepo:
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def _upsert(self, sql: str, rows: Sequence) -> int:
        if not rows:
            return 0
        # One transaction per batch: either every row lands or none does.
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.executemany(sql, [r.as_params() for r in rows])
        return len(rows)

    def upsert_forms(self, rows: Sequence[FormRow]) -> int:
        return self._upsert(UPSERT_FORMS_SQL, rows)

    def upsert_memberships(self, rows: Sequence[MembershipRow]) -> int:
        return self._upsert(UPSERT_MEMBERSHIPS_SQL, rows)

    def upsert_registrants(self, rows: Sequence[RegistrantRow]) -> int:
        return self._upsert(UPSERT_REGISTRANTS_SQL, rows)

    def open_form_ids(self) -> List[str]:
        """Distinct ids of stored forms that are still open, as strings."""
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT DISTINCT id FROM forms WHERE status = 'open' ORDER BY id")
                rows = cur.fetchall()
        return [str(r[0]) for r in rows if r[0] is not None]

    def read_checkpoint(self, pipeline: str, partition: str) -> Optional[datetime]:
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT updated_at FROM sync_checkpoints WHERE pipeline = %s AND partition_id = %s",
                    (pipeline, partition),
                )
                row = cur.fetchone()
        return row[0] if row else None

    def write_checkpoint(self, pipeline: str, partition: str, at: Optional[datetime] = None) -> datetime:
        """Stamp the partition with `at` (default now). Last write wins."""
        ts = at or datetime.now(timezone.utc)
        with psycopg.connect(self.pg_dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO sync_checkpoints (pipeline, partition_id, updated_at)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (pipeline, partition_id) DO UPDATE SET updated_at = EXCLUDED.updated_at
                    """,
                    (pipeline, partition, ts),
                )
        return ts
