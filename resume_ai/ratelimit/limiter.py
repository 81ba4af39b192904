"""Per-account rate limiter.

Fixed-window request counters stored in SQLite via aiosqlite. Each check
increments the account's counter inside one ``BEGIN IMMEDIATE`` transaction,
so concurrent checks for the same account are serialized by SQLite.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from resume_ai.config.settings import Settings, get_settings
from resume_ai.generation.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS rate_limits (
    account_id TEXT PRIMARY KEY,
    window_start REAL NOT NULL,
    request_count INTEGER NOT NULL
)
"""


class SqliteRateLimiter:
    """Fixed-window rate limiter keyed by account id."""

    def __init__(
        self,
        db_path: Path | str | None = None,
        max_requests: int | None = None,
        window_seconds: int | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the limiter.

        Args:
            db_path: SQLite file. Defaults to ``settings.rate_limit_db_path``.
            max_requests: Requests allowed per window.
            window_seconds: Window length in seconds.
            settings: Optional Settings. Uses global settings if not provided.
            clock: Source of the current time in seconds.

        Raises:
            ValueError: If the quota or window is not positive.
        """
        settings = settings or get_settings()
        self.db_path = Path(db_path) if db_path is not None else settings.rate_limit_db_path
        self.max_requests = (
            max_requests if max_requests is not None else settings.rate_limit_max_requests
        )
        self.window_seconds = (
            window_seconds if window_seconds is not None else settings.rate_limit_window_seconds
        )
        if self.max_requests < 1 or self.window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")
        self._clock = clock
        self._connection: aiosqlite.Connection | None = None
        # One transaction at a time on the shared connection
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _get_connection(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        if self._connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode so BEGIN IMMEDIATE controls the transaction
            self._connection = await aiosqlite.connect(self.db_path, isolation_level=None)
            await self._connection.execute(CREATE_TABLE_SQL)
        yield self._connection

    async def initialize(self) -> None:
        """Create the counters table if needed."""
        async with self._lock, self._get_connection():
            pass

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    async def check(self, account_id: str) -> None:
        """Count one request for ``account_id``.

        Raises:
            RateLimitExceeded: If the account already used its quota for the
                current window. The rejected request is not counted.
        """
        async with self._lock, self._get_connection() as conn:
            now = self._clock()
            await conn.execute("BEGIN IMMEDIATE")
            try:
                cursor = await conn.execute(
                    "SELECT window_start, request_count FROM rate_limits WHERE account_id = ?",
                    (account_id,),
                )
                row = await cursor.fetchone()

                if row is None or now - row[0] >= self.window_seconds:
                    await conn.execute(
                        """
                        INSERT INTO rate_limits (account_id, window_start, request_count)
                        VALUES (?, ?, 1)
                        ON CONFLICT(account_id) DO UPDATE SET
                            window_start = excluded.window_start,
                            request_count = 1
                        """,
                        (account_id, now),
                    )
                    await conn.execute("COMMIT")
                    return

                window_start, count = row
                if count >= self.max_requests:
                    await conn.execute("ROLLBACK")
                    retry_after = max(1, math.ceil(window_start + self.window_seconds - now))
                    logger.info(
                        "Account %s exceeded %d requests per %ds",
                        account_id,
                        self.max_requests,
                        self.window_seconds,
                    )
                    raise RateLimitExceeded(
                        f"Rate limit exceeded. Try again in {retry_after} seconds.",
                        retry_after=retry_after,
                    )

                await conn.execute(
                    "UPDATE rate_limits SET request_count = request_count + 1 WHERE account_id = ?",
                    (account_id,),
                )
                await conn.execute("COMMIT")
            except RateLimitExceeded:
                raise
            except BaseException:
                await conn.execute("ROLLBACK")
                raise

    async def remaining(self, account_id: str) -> int:
        """Requests left for ``account_id`` in the current window."""
        async with self._lock, self._get_connection() as conn:
            now = self._clock()
            cursor = await conn.execute(
                "SELECT window_start, request_count FROM rate_limits WHERE account_id = ?",
                (account_id,),
            )
            row = await cursor.fetchone()
        if row is None or now - row[0] >= self.window_seconds:
            return self.max_requests
        return max(0, self.max_requests - row[1])

    async def reset(self, account_id: str) -> None:
        """Forget the counter for ``account_id``."""
        async with self._lock, self._get_connection() as conn:
            await conn.execute("DELETE FROM rate_limits WHERE account_id = ?", (account_id,))
