import os
import unittest
from unittest import mock

import sync_worker
from regsync.pipeline.run import RunResult, RunState
from regsync.sync import RUN_ORDER

from sync_fakes import make_config


def result(name, ok=True):
    state = RunState.DONE if ok else RunState.FAILED
    return RunResult(pipeline=name, state=state, error=None if ok else f"{name} broke")


class TestSyncWorker(unittest.TestCase):
    def setUp(self):
        self.ran = []
        self.failing = set()

        def fake_run_sync(name, config):
            self.ran.append(name)
            return result(name, ok=name not in self.failing)

        patches = [
            mock.patch.object(sync_worker, "run_sync", side_effect=fake_run_sync),
            mock.patch.object(sync_worker, "ensure_postgres_schema"),
            mock.patch.object(sync_worker.SyncConfig, "from_env", return_value=make_config()),
            mock.patch.object(sync_worker, "load_dotenv"),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

    def run_with(self, **env):
        with mock.patch.dict(os.environ, env, clear=True):
            return sync_worker.run_once()

    def test_runs_every_pipeline_in_order(self):
        outcome = self.run_with()
        self.assertEqual(self.ran, list(RUN_ORDER))
        self.assertEqual(outcome, {name: True for name in RUN_ORDER})
        sync_worker.ensure_postgres_schema.assert_called_once_with("dbname=unused")

    def test_subset_keeps_run_order(self):
        self.run_with(SYNC_PIPELINES="Registrants, forms")
        self.assertEqual(self.ran, ["forms", "registrants"])

    def test_unknown_pipeline_is_rejected(self):
        with self.assertRaises(ValueError) as ctx:
            self.run_with(SYNC_PIPELINES="forms,events")
        self.assertIn("events", str(ctx.exception))
        self.assertEqual(self.ran, [])

    def test_failed_pipeline_reported_and_later_ones_still_run(self):
        self.failing = {"memberships"}
        outcome = self.run_with()
        self.assertEqual(self.ran, list(RUN_ORDER))
        self.assertEqual(outcome, {"forms": True, "memberships": False, "registrants": True})
        self.assertFalse(all(outcome.values()))

    def test_scheduled_cycle_survives_errors(self):
        sync_worker.SyncConfig.from_env.side_effect = ValueError("REGFOX_API_KEY is required")
        with mock.patch.dict(os.environ, {}, clear=True):
            sync_worker._scheduled_cycle()
        self.assertEqual(self.ran, [])


if __name__ == "__main__":
    unittest.main()
