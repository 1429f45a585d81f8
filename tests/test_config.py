import os
import unittest
from unittest import mock

from regsync.config import DEFAULT_PG_DSN, SyncConfig


def load(**env):
    with mock.patch.dict(os.environ, env, clear=True):
        return SyncConfig.from_env(dotenv_path=os.devnull)


class TestSyncConfig(unittest.TestCase):
    def test_defaults(self):
        config = load(REGFOX_API_KEY=" k-1 ")
        self.assertEqual(config.api_key, "k-1")
        self.assertEqual(config.pg_dsn, DEFAULT_PG_DSN)
        self.assertEqual(config.page_size, 50)
        self.assertEqual(config.primary_host, "https://schoolofranch.net")
        self.assertEqual(config.secondary_host, "https://schoolofranch.org")
        self.assertEqual((config.probe_timeout, config.probe_retries), (3.0, 3))
        self.assertEqual(config.map_concurrency, 4)

    def test_overrides(self):
        config = load(
            REGFOX_API_KEY="k",
            PG_DSN="dbname=other",
            REGFOX_API_BASE="https://api.example.test/v2/",
            WEBPAGE_PRIMARY_HOST="https://a.example/",
            PROBE_RETRIES="5",
            MAP_CONCURRENCY="8",
            DIAG_SAMPLE_LIMIT="0",
        )
        self.assertEqual(config.pg_dsn, "dbname=other")
        self.assertEqual(config.api_base, "https://api.example.test/v2")
        self.assertEqual(config.primary_host, "https://a.example")
        self.assertEqual((config.probe_retries, config.map_concurrency, config.sample_limit), (5, 8, 0))

    def test_missing_api_key(self):
        with self.assertRaises(ValueError) as ctx:
            load()
        self.assertIn("REGFOX_API_KEY is required", str(ctx.exception))

    def test_all_problems_reported_together(self):
        with self.assertRaises(ValueError) as ctx:
            load(REGFOX_API_KEY="k", PAGE_SIZE="500", PROBE_RETRIES="0", WEBPAGE_SECONDARY_HOST="ftp://x")
        msg = str(ctx.exception)
        self.assertTrue(msg.startswith("Configuration validation failed:"))
        self.assertIn("PAGE_SIZE", msg)
        self.assertIn("PROBE_RETRIES", msg)
        self.assertIn("WEBPAGE_SECONDARY_HOST", msg)


if __name__ == "__main__":
    unittest.main()
