import random
import threading
import time
import unittest

from regsync.ingestion.record_types import UpstreamRecord
from regsync.pipeline.diagnostics import RunStats
from regsync.pipeline.executor import map_bounded


class TestMapBounded(unittest.TestCase):
    def test_output_order_matches_input(self):
        items = list(range(40))
        rnd = random.Random(7)
        delays = [rnd.uniform(0, 0.005) for _ in items]

        def work(item, idx):
            time.sleep(delays[idx])
            return item * 10

        for concurrency in (1, 2, 4, 8, 100):
            self.assertEqual(map_bounded(items, concurrency, work), [i * 10 for i in items])

    def test_respects_concurrency_limit(self):
        lock = threading.Lock()
        in_flight = 0
        peak = 0

        def work(item, idx):
            nonlocal in_flight, peak
            with lock:
                in_flight += 1
                peak = max(peak, in_flight)
            time.sleep(0.002)
            with lock:
                in_flight -= 1
            return item

        map_bounded(list(range(30)), 4, work)
        self.assertLessEqual(peak, 4)
        self.assertGreaterEqual(peak, 1)

    def test_empty_input(self):
        self.assertEqual(map_bounded([], 4, lambda item, idx: item), [])

    def test_worker_error_aborts_batch(self):
        processed = []

        def work(item, idx):
            if item == 3:
                raise RuntimeError("boom")
            time.sleep(0.001)
            processed.append(item)
            return item

        with self.assertRaises(RuntimeError):
            map_bounded(list(range(200)), 2, work)
        self.assertLess(len(processed), 199)


class TestRunStats(unittest.TestCase):
    def test_concurrent_drops_are_not_lost(self):
        stats = RunStats(sample_limit=10_000)
        record = UpstreamRecord(id=1, name="x", status="open")

        def work(item, idx):
            stats.seen()
            stats.drop("bad-format" if idx % 2 else "not-open", record)
            return None

        map_bounded(list(range(500)), 8, work)
        snap = stats.snapshot()
        self.assertEqual(snap["total"], 500)
        self.assertEqual(sum(snap["drops"].values()), 500)
        self.assertEqual(len(snap["skipped"]), 500)

    def test_samples_are_bounded(self):
        stats = RunStats(sample_limit=3)
        for i in range(10):
            stats.drop("no-name", UpstreamRecord(id=i))
            stats.note("link-uncertain", id=i)
        snap = stats.snapshot()
        self.assertEqual(snap["drops"], {"no-name": 10})
        self.assertEqual(len(snap["skipped"]), 3)
        self.assertEqual(len(snap["notes"]), 3)

    def test_skipped_sample_fields(self):
        stats = RunStats()
        stats.drop("bad-format", UpstreamRecord(id=12, name="Intro", title="  ", status="open"))
        self.assertEqual(
            stats.snapshot()["skipped"],
            [{"reason": "bad-format", "id": 12, "name": "Intro", "title": None, "status": "open"}],
        )


if __name__ == "__main__":
    unittest.main()
