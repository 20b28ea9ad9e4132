import os
import sqlite3
import tempfile
import threading
import unittest
from datetime import date, datetime

from ai_trainer.quota import QuotaGate, SQLiteQuotaStore, next_midnight


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class BrokenStore:
    def get_count(self, user_id, usage_date):
        raise sqlite3.OperationalError("database is locked")

    def increment(self, user_id, usage_date, generated_at):
        raise sqlite3.OperationalError("disk I/O error")


class QuotaGateTests(unittest.TestCase):
    def setUp(self):
        self.store = SQLiteQuotaStore(":memory:")
        self.clock = FakeClock(datetime(2026, 3, 14, 15, 30))
        self.gate = QuotaGate(self.store, daily_limit=3, clock=self.clock)

    def tearDown(self):
        self.store.close()

    def test_first_check_of_day_allows_full_quota_without_writing(self):
        result = self.gate.check("user-1")

        self.assertTrue(result.allowed)
        self.assertEqual(result.remaining, 3)
        self.assertEqual(result.reset_at, datetime(2026, 3, 15, 0, 0))
        self.assertIsNone(self.store.get_count("user-1", date(2026, 3, 14)))

    def test_limit_reached_after_exactly_daily_limit_increments(self):
        for _ in range(3):
            self.assertTrue(self.gate.check("user-1").allowed)
            self.gate.increment("user-1")

        result = self.gate.check("user-1")
        self.assertFalse(result.allowed)
        self.assertEqual(result.remaining, 0)

    def test_remaining_counts_down(self):
        self.gate.increment("user-1")
        self.assertEqual(self.gate.remaining("user-1"), 2)

    def test_counter_resets_at_next_local_midnight(self):
        for _ in range(3):
            self.gate.increment("user-1")
        self.assertFalse(self.gate.check("user-1").allowed)

        self.clock.now = datetime(2026, 3, 15, 0, 0, 1)
        result = self.gate.check("user-1")
        self.assertTrue(result.allowed)
        self.assertEqual(result.remaining, 3)

    def test_users_are_counted_independently(self):
        for _ in range(3):
            self.gate.increment("user-1")

        self.assertFalse(self.gate.check("user-1").allowed)
        self.assertTrue(self.gate.check("user-2").allowed)

    def test_check_fails_open_when_store_is_unreachable(self):
        gate = QuotaGate(BrokenStore(), daily_limit=3, clock=self.clock)

        result = gate.check("user-1")
        self.assertTrue(result.allowed)
        self.assertEqual(result.remaining, 3)

    def test_increment_failure_is_swallowed(self):
        gate = QuotaGate(BrokenStore(), daily_limit=3, clock=self.clock)
        gate.increment("user-1")

    def test_concurrent_increments_are_not_lost(self):
        threads = [threading.Thread(target=self.gate.increment, args=("user-1",)) for _ in range(20)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(self.store.get_count("user-1", date(2026, 3, 14)), 20)


class SQLiteQuotaStoreTests(unittest.TestCase):
    def test_counts_persist_across_connections(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = os.path.join(tmpdir, "nested", "usage.db")
            store = SQLiteQuotaStore(db_path)
            store.increment("user-1", date(2026, 3, 14), datetime(2026, 3, 14, 9, 0))
            store.increment("user-1", date(2026, 3, 14), datetime(2026, 3, 14, 10, 0))
            store.close()

            reopened = SQLiteQuotaStore(db_path)
            try:
                self.assertEqual(reopened.get_count("user-1", date(2026, 3, 14)), 2)
                self.assertIsNone(reopened.get_count("user-1", date(2026, 3, 15)))
            finally:
                reopened.close()

    def test_unreachable_path_does_not_fail_construction(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = os.path.join(tmpdir, "not-a-dir")
            with open(blocker, "w") as f:
                f.write("x")

            store = SQLiteQuotaStore(os.path.join(blocker, "usage.db"))
            with self.assertRaises(OSError):
                store.get_count("user-1", date(2026, 3, 14))

            gate = QuotaGate(store, daily_limit=3, clock=FakeClock(datetime(2026, 3, 14, 9, 0)))
            result = gate.check("user-1")
            self.assertTrue(result.allowed)
            self.assertEqual(result.remaining, 3)
            gate.increment("user-1")
            store.close()

    def test_next_midnight_rolls_over_month_end(self):
        self.assertEqual(next_midnight(datetime(2026, 1, 31, 23, 59)), datetime(2026, 2, 1, 0, 0))


if __name__ == "__main__":
    unittest.main()
