import os
import unittest
from datetime import datetime, timezone

import psycopg

from regsync.storage.postgres_repo import PostgresRepo
from regsync.storage.postgres_schema import ensure_postgres_schema
from regsync.storage.row_types import FormRow, MembershipRow, RegistrantRow


PG_DSN = os.environ.get("PG_DSN")

FORM_ID = 990001
MEMBER = 990001
PARTITION = "test-partition"


def count_rows(table: str) -> int:
    with psycopg.connect(PG_DSN) as conn:
        with conn.cursor() as cur:
            cur.execute(f"SELECT COUNT(*) FROM {table}")
            return int(cur.fetchone()[0] or 0)


@unittest.skipUnless(PG_DSN, "PG_DSN not set")
class TestPostgresRepo(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        ensure_postgres_schema(PG_DSN)
        cls.repo = PostgresRepo(PG_DSN)

    def tearDown(self):
        with psycopg.connect(PG_DSN, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM registrants WHERE form_id = %s", (str(FORM_ID),))
                cur.execute("DELETE FROM forms WHERE id = %s", (FORM_ID,))
                cur.execute("DELETE FROM memberships WHERE member_number = %s", (MEMBER,))
                cur.execute("DELETE FROM sync_checkpoints WHERE partition_id = %s", (PARTITION,))

    def test_form_upsert_is_idempotent(self):
        row = FormRow(
            id=FORM_ID,
            form_name="25 03 14 Intro Workshop",
            scheduled_date="2025-03-14T00:00:00.000Z",
            status="open",
            webpage_id="https://schoolofranch.net/w-intro-workshop",
            pre_reg=False,
        )
        self.repo.upsert_forms([row])
        before = count_rows("forms")
        self.repo.upsert_forms([row])
        self.assertEqual(count_rows("forms"), before)
        self.assertIn(str(FORM_ID), self.repo.open_form_ids())

    def test_membership_and_registrant_upserts_overwrite(self):
        self.repo.upsert_memberships([MembershipRow(MEMBER, "Ada", "L", None, 1, 100, "pending", None)])
        self.repo.upsert_memberships([MembershipRow(MEMBER, "Ada", "L", None, 1, 100, "active", None)])
        self.repo.upsert_registrants([RegistrantRow(str(FORM_ID), 1, "Bo", None, None, "completed")])
        self.repo.upsert_registrants([RegistrantRow(str(FORM_ID), 1, "Bo", "D", None, "completed")])
        with psycopg.connect(PG_DSN) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT status FROM memberships WHERE member_number = %s", (MEMBER,))
                self.assertEqual(cur.fetchall(), [("active",)])
                cur.execute("SELECT last_name FROM registrants WHERE form_id = %s", (str(FORM_ID),))
                self.assertEqual(cur.fetchall(), [("D",)])

    def test_last_row_for_a_key_wins_within_one_batch(self):
        saved = self.repo.upsert_memberships([
            MembershipRow(MEMBER, "Ada", "L", "old@example.com", 1, 100, "pending", None),
            MembershipRow(MEMBER, "Ada", "Lovelace", "new@example.com", 2, 150, "active", "2026-01-01"),
        ])
        self.assertEqual(saved, 2)
        with psycopg.connect(PG_DSN) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT last_name, email, level_id, fee, status, expiration_date FROM memberships WHERE member_number = %s",
                    (MEMBER,),
                )
                self.assertEqual(cur.fetchall(), [("Lovelace", "new@example.com", 2, 150, "active", "2026-01-01")])

    def test_checkpoint_round_trip(self):
        self.assertIsNone(self.repo.read_checkpoint("forms", PARTITION))
        first = datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.repo.write_checkpoint("forms", PARTITION, first)
        self.assertEqual(self.repo.read_checkpoint("forms", PARTITION), first)
        later = self.repo.write_checkpoint("forms", PARTITION)
        self.assertEqual(self.repo.read_checkpoint("forms", PARTITION), later)


if __name__ == "__main__":
    unittest.main()
