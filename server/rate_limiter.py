"""Sliding-window rate limiting for ballot submission"""

import sqlite3
import time
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

from config import get_logger

logger = get_logger(__name__)


class SQLiteRateLimiter:
    """
    Persistent sliding-window rate limiter using SQLite.

    Survives restarts and works across multiple API workers on one host.
    Stores request timestamps per client; a request is allowed when fewer
    than `requests_limit` requests fall inside the trailing window.
    """

    def __init__(
        self,
        db_path: str,
        requests_limit: int = 5,
        window_seconds: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            db_path: Path to SQLite database file
            requests_limit: Maximum requests allowed in window
            window_seconds: Window length in seconds
            clock: Time source (seconds since epoch)
        """
        self.db_path = db_path
        self.requests_limit = requests_limit
        self.window_seconds = window_seconds
        self.clock = clock

        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

        # Avoid running cleanup on every request
        self._last_cleanup = self.clock()
        self._cleanup_interval = 300

    def _init_db(self):
        """Initialize rate limiting table"""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS rate_limits (
                    client_id TEXT NOT NULL,
                    timestamp REAL NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_rate_limits_client_time ON rate_limits(client_id, timestamp)"
            )
            conn.commit()
            logger.info("initialized persistent rate limiter", db_path=str(self.db_path))

    def check_rate_limit(self, client_id: str) -> Tuple[bool, int, Dict[str, Any]]:
        """
        Check and record a request for a client.

        Args:
            client_id: Hashed client address

        Returns:
            (is_allowed, remaining, limit_info) where limit_info holds
            limit, remaining and reset (epoch seconds when a slot frees up)
        """
        current_time = self.clock()
        window_start = current_time - self.window_seconds

        if current_time - self._last_cleanup > self._cleanup_interval:
            self._cleanup_old_entries(window_start)
            self._last_cleanup = current_time

        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT COUNT(*), MIN(timestamp) FROM rate_limits WHERE client_id = ? AND timestamp > ?",
                (client_id, window_start),
            ).fetchone()
            request_count, oldest = row[0], row[1]

            if request_count >= self.requests_limit:
                reset = (oldest or current_time) + self.window_seconds
                return False, 0, {
                    "limit": self.requests_limit,
                    "remaining": 0,
                    "reset": reset,
                    "window_seconds": self.window_seconds,
                }

            conn.execute(
                "INSERT INTO rate_limits (client_id, timestamp) VALUES (?, ?)",
                (client_id, current_time),
            )
            conn.commit()

        remaining = self.requests_limit - request_count - 1
        reset = (oldest if oldest is not None else current_time) + self.window_seconds
        return True, remaining, {
            "limit": self.requests_limit,
            "remaining": remaining,
            "reset": reset,
            "window_seconds": self.window_seconds,
        }

    def _cleanup_old_entries(self, cutoff_time: float):
        """Remove entries older than cutoff time"""
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute(
                    "DELETE FROM rate_limits WHERE timestamp <= ?", (cutoff_time,)
                )
                conn.commit()
                if cursor.rowcount > 0:
                    logger.debug("cleaned up old rate limit entries", deleted=cursor.rowcount)
        except sqlite3.Error as e:
            logger.error("failed to cleanup rate limit entries", error=str(e))

    def reset_client(self, client_id: str):
        """Reset rate limit for specific client"""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM rate_limits WHERE client_id = ?", (client_id,))
            conn.commit()
            logger.info("reset rate limit", client_id=client_id)

    def get_client_status(self, client_id: str) -> Dict[str, Any]:
        """Get current rate limit status for a client without recording a request"""
        current_time = self.clock()
        window_start = current_time - self.window_seconds

        with sqlite3.connect(self.db_path) as conn:
            request_count = conn.execute(
                "SELECT COUNT(*) FROM rate_limits WHERE client_id = ? AND timestamp > ?",
                (client_id, window_start),
            ).fetchone()[0]

        return {
            "requests_made": request_count,
            "requests_limit": self.requests_limit,
            "remaining": max(0, self.requests_limit - request_count),
            "window_seconds": self.window_seconds,
        }
