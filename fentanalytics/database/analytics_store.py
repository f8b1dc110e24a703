"""Persistent aggregation store for guild analytics."""

import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

import aiosqlite

from ..analytics.leaderboard import WORD_PATTERN, LeaderboardEntry, UserStats
from .migrations import StoreError, create_schema


logger = logging.getLogger("fentanalytics.analytics_store")

Snowflake = Union[int, str]


class AnalyticsStore:
    """
    SQLite-backed running totals for messages, words, voice and activities.

    Every increment is a single ``INSERT ... ON CONFLICT DO UPDATE`` statement,
    so concurrent increments of the same key never lose an update and no
    application-level locking is needed. All public operations wait for
    :meth:`initialize` (schema creation and migration) before touching data.
    """

    def __init__(self, db_path: str = "data/analytics.db"):
        """
        Initialize the analytics store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._db: Optional[aiosqlite.Connection] = None
        self._init_lock = asyncio.Lock()
        self._initialized = False
        self._closed = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Open the connection and bring the schema up to date.

        Concurrent callers wait on the same setup. A failure closes the
        connection and propagates; the next call retries from scratch.
        """
        if self._initialized:
            return
        if self._closed:
            raise StoreError(f"Analytics store {self.db_path} is closed")

        async with self._init_lock:
            if self._initialized:
                return
            if self._closed:
                raise StoreError(f"Analytics store {self.db_path} is closed")

            db = await aiosqlite.connect(self.db_path)
            try:
                await db.execute("PRAGMA journal_mode=WAL")
                await create_schema(db)
            except Exception:
                await db.close()
                logger.error(f"Analytics store setup failed for {self.db_path}", exc_info=True)
                raise

            self._db = db
            self._initialized = True
            logger.info(f"Analytics store initialized at {self.db_path}")

    async def close(self) -> None:
        """Close the underlying connection. Later operations raise StoreError."""
        self._closed = True
        if self._db is not None:
            await self._db.close()
            self._db = None
        self._initialized = False

    async def _connection(self) -> aiosqlite.Connection:
        await self.initialize()
        assert self._db is not None
        return self._db

    async def _write(self, sql: str, params: tuple) -> None:
        db = await self._connection()
        await db.execute(sql, params)
        await db.commit()

    @staticmethod
    def _limit(limit: int) -> int:
        # SQLite treats a negative LIMIT as unlimited
        return max(0, int(limit))

    async def _fetch_entries(self, sql: str, params: tuple) -> List[LeaderboardEntry]:
        db = await self._connection()
        rows = await db.execute_fetchall(sql, params)
        return [LeaderboardEntry(key=str(row[0]), value=int(row[1])) for row in rows]

    async def _fetch_value(self, sql: str, params: tuple) -> int:
        db = await self._connection()
        rows = await db.execute_fetchall(sql, params)
        row = next(iter(rows), None)
        return int(row[0]) if row and row[0] is not None else 0

    # ------------------------------------------------------------------
    # Increments
    # ------------------------------------------------------------------

    async def increment_message(self, guild_id: Snowflake, user_id: Snowflake) -> None:
        """Count one message for a user."""
        await self._write(
            """
            INSERT INTO messages (guild_id, user_id, count)
            VALUES (?, ?, 1)
            ON CONFLICT(guild_id, user_id) DO UPDATE SET count = count + 1
            """,
            (str(guild_id), str(user_id))
        )

    async def increment_words(
        self,
        guild_id: Snowflake,
        user_id: Snowflake,
        words: Iterable[str]
    ) -> None:
        """
        Count each word once for a user.

        Each word is its own upsert and commit; the batch as a whole is not
        atomic, so a failure part way leaves the earlier words counted.
        Words shorter than three word characters are skipped.

        Args:
            guild_id: Discord guild ID
            user_id: Discord user ID
            words: Words to count, lower-cased before storing
        """
        sql = """
            INSERT INTO words (guild_id, user_id, word, count)
            VALUES (?, ?, ?, 1)
            ON CONFLICT(guild_id, user_id, word) DO UPDATE SET count = count + 1
        """
        guild_key, user_key = str(guild_id), str(user_id)
        for word in words:
            word = word.lower()
            if not WORD_PATTERN.fullmatch(word):
                continue
            await self._write(sql, (guild_key, user_key, word))

    async def add_voice_seconds(
        self,
        guild_id: Snowflake,
        user_id: Snowflake,
        seconds: int
    ) -> None:
        """Add a finished voice session's duration. Non-positive values are ignored."""
        if seconds <= 0:
            return
        await self._write(
            """
            INSERT INTO voice_time (guild_id, user_id, seconds)
            VALUES (?, ?, ?)
            ON CONFLICT(guild_id, user_id) DO UPDATE SET seconds = seconds + excluded.seconds
            """,
            (str(guild_id), str(user_id), int(seconds))
        )

    async def add_activity_seconds(
        self,
        guild_id: Snowflake,
        user_id: Snowflake,
        name: str,
        seconds: int
    ) -> None:
        """Add a finished activity session's duration. Non-positive values are ignored."""
        if seconds <= 0:
            return
        await self._write(
            """
            INSERT INTO activities (guild_id, user_id, name, seconds)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(guild_id, user_id, name) DO UPDATE SET seconds = seconds + excluded.seconds
            """,
            (str(guild_id), str(user_id), name, int(seconds))
        )

    async def increment_ate_food(self, guild_id: Snowflake, user_id: Snowflake) -> int:
        """
        Count one meal for a user.

        Returns:
            The user's new total
        """
        db = await self._connection()
        # Fetch in the same call so the statement is finished before commit
        rows = await db.execute_fetchall(
            """
            INSERT INTO ate_food (guild_id, user_id, count)
            VALUES (?, ?, 1)
            ON CONFLICT(guild_id, user_id) DO UPDATE SET count = count + 1
            RETURNING count
            """,
            (str(guild_id), str(user_id))
        )
        await db.commit()
        return int(next(iter(rows))[0])

    # ------------------------------------------------------------------
    # Leaderboards
    # ------------------------------------------------------------------

    async def get_message_leaderboard(
        self,
        guild_id: Snowflake,
        limit: int = 5
    ) -> List[LeaderboardEntry]:
        """Top users by message count."""
        return await self._fetch_entries(
            """
            SELECT user_id, count FROM messages
            WHERE guild_id = ?
            ORDER BY count DESC
            LIMIT ?
            """,
            (str(guild_id), self._limit(limit))
        )

    async def get_voice_leaderboard(
        self,
        guild_id: Snowflake,
        limit: int = 5
    ) -> List[LeaderboardEntry]:
        """Top users by seconds spent in voice."""
        return await self._fetch_entries(
            """
            SELECT user_id, seconds FROM voice_time
            WHERE guild_id = ?
            ORDER BY seconds DESC
            LIMIT ?
            """,
            (str(guild_id), self._limit(limit))
        )

    async def get_word_leaderboard(
        self,
        guild_id: Snowflake,
        limit: int = 5
    ) -> List[LeaderboardEntry]:
        """Most used words in the guild, summed over all users."""
        return await self._fetch_entries(
            """
            SELECT word, SUM(count) AS total FROM words
            WHERE guild_id = ?
            GROUP BY word
            ORDER BY total DESC
            LIMIT ?
            """,
            (str(guild_id), self._limit(limit))
        )

    async def get_activity_leaderboard(
        self,
        guild_id: Snowflake,
        limit: int = 5
    ) -> List[LeaderboardEntry]:
        """
        Most played activities in the guild.

        Each (user, activity) row ranks on its own, as the first release
        of the bot did; the same game can appear once per player.
        """
        return await self._fetch_entries(
            """
            SELECT name, seconds FROM activities
            WHERE guild_id = ?
            ORDER BY seconds DESC
            LIMIT ?
            """,
            (str(guild_id), self._limit(limit))
        )

    async def get_user_stats(
        self,
        guild_id: Snowflake,
        user_id: Snowflake,
        limit: int = 5
    ) -> UserStats:
        """
        Summarize one user's activity in a guild.

        Missing rows count as zero; activities and words are ranked and
        truncated to ``limit`` independently.
        """
        params = (str(guild_id), str(user_id))

        messages = await self._fetch_value(
            "SELECT count FROM messages WHERE guild_id = ? AND user_id = ?",
            params
        )
        voice_seconds = await self._fetch_value(
            "SELECT seconds FROM voice_time WHERE guild_id = ? AND user_id = ?",
            params
        )
        activities = await self._fetch_entries(
            """
            SELECT name, seconds FROM activities
            WHERE guild_id = ? AND user_id = ?
            ORDER BY seconds DESC
            LIMIT ?
            """,
            params + (self._limit(limit),)
        )
        words = await self._fetch_entries(
            """
            SELECT word, count FROM words
            WHERE guild_id = ? AND user_id = ?
            ORDER BY count DESC
            LIMIT ?
            """,
            params + (self._limit(limit),)
        )

        return UserStats(
            messages=messages,
            voice_seconds=voice_seconds,
            activities=activities,
            words=words
        )

