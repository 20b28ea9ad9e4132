"""
Daily AI generation quota, backed by SQLite.
"""

import os
import sqlite3
import threading
from collections import namedtuple
from datetime import datetime, timedelta


DEFAULT_DAILY_LIMIT = 10

RateLimitResult = namedtuple("RateLimitResult", ["allowed", "remaining", "reset_at"])


class SQLiteQuotaStore:
    """
    Per-user, per-day generation counters keyed by (user_id, usage_date).

    The connection is opened on first use, so an unreachable database
    surfaces as an error from ``get_count``/``increment`` rather than from
    the constructor.
    """

    def __init__(self, db_path):
        self.db_path = db_path
        self.conn = None
        self._lock = threading.Lock()

    def close(self):
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

    def _connection(self):
        # Caller holds self._lock.
        if self.conn is None:
            if self.db_path != ":memory:":
                parent = os.path.dirname(self.db_path)
                if parent:
                    os.makedirs(parent, exist_ok=True)
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            try:
                self._init_schema(conn)
            except Exception:
                conn.close()
                raise
            self.conn = conn
        return self.conn

    def _init_schema(self, conn):
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS ai_trainer_usage (
                user_id TEXT NOT NULL,
                usage_date TEXT NOT NULL,
                generations_count INTEGER NOT NULL DEFAULT 0,
                last_generated_at TEXT,
                PRIMARY KEY (user_id, usage_date)
            );
            """
        )
        conn.commit()

    def get_count(self, user_id, usage_date):
        """Return today's count, or None when no record exists yet."""
        with self._lock:
            row = self._connection().execute(
                """
                SELECT generations_count
                FROM ai_trainer_usage
                WHERE user_id = ? AND usage_date = ?
                """,
                (user_id, usage_date.isoformat()),
            ).fetchone()
        if row is None:
            return None
        return int(row["generations_count"])

    def increment(self, user_id, usage_date, generated_at):
        """Atomically add one generation to the (user_id, usage_date) counter."""
        with self._lock:
            conn = self._connection()
            try:
                conn.execute(
                    """
                    INSERT INTO ai_trainer_usage (
                        user_id,
                        usage_date,
                        generations_count,
                        last_generated_at
                    )
                    VALUES (?, ?, 1, ?)
                    ON CONFLICT(user_id, usage_date) DO UPDATE SET
                        generations_count = generations_count + 1,
                        last_generated_at = excluded.last_generated_at
                    """,
                    (user_id, usage_date.isoformat(), generated_at.isoformat()),
                )
                conn.commit()
            except Exception:
                conn.rollback()
                raise


def next_midnight(now):
    """Start of the next local calendar day."""
    tomorrow = now.date() + timedelta(days=1)
    return datetime.combine(tomorrow, datetime.min.time(), tzinfo=now.tzinfo)


class QuotaGate:
    """
    Daily generation limiter with fail-open semantics.

    Counters are per local calendar day, not a rolling 24h window. A store
    that cannot be reached never blocks generation.
    """

    def __init__(self, store, daily_limit=DEFAULT_DAILY_LIMIT, clock=None):
        self.store = store
        self.daily_limit = int(daily_limit)
        self.clock = clock or datetime.now

    def check(self, user_id):
        now = self.clock()
        reset_at = next_midnight(now)

        try:
            count = self.store.get_count(user_id, now.date())
        except Exception as exc:
            print(f"  Quota check failed for {user_id} ({exc}), allowing request.")
            return RateLimitResult(True, self.daily_limit, reset_at)

        if count is None:
            return RateLimitResult(True, self.daily_limit, reset_at)

        if count >= self.daily_limit:
            print(f"  Daily limit reached for {user_id} ({count}/{self.daily_limit}).")
            return RateLimitResult(False, 0, reset_at)

        return RateLimitResult(True, self.daily_limit - count, reset_at)

    def increment(self, user_id):
        """Record one completed generation. Errors are reported, not raised."""
        now = self.clock()
        try:
            self.store.increment(user_id, now.date(), now)
        except Exception as exc:
            print(f"  Failed to increment usage for {user_id}: {exc}")

    def remaining(self, user_id):
        return self.check(user_id).remaining
