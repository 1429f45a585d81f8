"""Postgres schema management for regsync.

Schema creation is idempotent (CREATE IF NOT EXISTS), so every entry point
can call `ensure_postgres_schema` on startup.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg


SCHEMA_STATEMENTS: list[str] = [
    # Forms (one row per RegFox form, with its resolved public webpage)
    """
    CREATE TABLE IF NOT EXISTS forms (
      id BIGINT PRIMARY KEY,
      form_name TEXT NOT NULL,
      scheduled_date TIMESTAMPTZ,
      status TEXT NOT NULL,
      webpage_id TEXT NOT NULL,
      pre_reg BOOLEAN NOT NULL DEFAULT FALSE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_forms_status ON forms (status);",
    "CREATE INDEX IF NOT EXISTS idx_forms_scheduled_date ON forms (scheduled_date);",
    # Memberships (keyed by member number)
    """
    CREATE TABLE IF NOT EXISTS memberships (
      member_number BIGINT PRIMARY KEY,
      first_name TEXT,
      last_name TEXT,
      email TEXT,
      level_id BIGINT,
      fee BIGINT,
      status TEXT,
      expiration_date TEXT,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    # Registrants (one row per registration on a form)
    """
    CREATE TABLE IF NOT EXISTS registrants (
      form_id TEXT NOT NULL,
      ext_id BIGINT NOT NULL,
      first_name TEXT,
      last_name TEXT,
      email TEXT,
      status TEXT,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      PRIMARY KEY (form_id, ext_id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_registrants_email ON registrants (email) WHERE email IS NOT NULL;",
    # Incremental-sync checkpoints, one per (pipeline, partition)
    """
    CREATE TABLE IF NOT EXISTS sync_checkpoints (
      pipeline TEXT NOT NULL,
      partition_id TEXT NOT NULL,
      updated_at TIMESTAMPTZ NOT NULL,
      PRIMARY KEY (pipeline, partition_id)
    );
    """,
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
