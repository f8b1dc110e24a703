"""In-memory tracking of open voice and activity sessions."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union


logger = logging.getLogger("fentanalytics.session_tracker")

Snowflake = Union[int, str]
SessionKey = Tuple[str, str]


@dataclass
class ActivitySession:
    """A "playing" status that is currently running."""

    name: str
    started_at: int


class SessionTracker:
    """
    Keeps one voice session and one activity session per (guild, user).

    Sessions live only in memory. Closing one hands the elapsed wall-clock
    seconds to the store (``add_voice_seconds`` / ``add_activity_seconds``);
    a process restart drops whatever is still open without crediting it.
    """

    def __init__(self, store, clock: Callable[[], float] = time.time):
        """
        Initialize the tracker.

        Args:
            store: AnalyticsStore (or anything with the same add_* coroutines)
            clock: Returns the current time in seconds
        """
        self.store = store
        self._clock = clock
        self._voice_sessions: Dict[SessionKey, int] = {}
        self._activity_sessions: Dict[SessionKey, ActivitySession] = {}

    @staticmethod
    def _key(guild_id: Snowflake, user_id: Snowflake) -> SessionKey:
        return (str(guild_id), str(user_id))

    def _now(self, now: Optional[float]) -> int:
        return int(self._clock() if now is None else now)

    def open_sessions(self) -> Dict[str, int]:
        """Number of open sessions per kind."""
        return {
            "voice": len(self._voice_sessions),
            "activity": len(self._activity_sessions),
        }

    # ------------------------------------------------------------------
    # Voice
    # ------------------------------------------------------------------

    def voice_session(self, guild_id: Snowflake, user_id: Snowflake) -> Optional[int]:
        """Start timestamp of the user's open voice session, if any."""
        return self._voice_sessions.get(self._key(guild_id, user_id))

    def open_voice(
        self,
        guild_id: Snowflake,
        user_id: Snowflake,
        now: Optional[float] = None
    ) -> int:
        """Start (or restart) a voice session and return its start time."""
        started_at = self._now(now)
        self._voice_sessions[self._key(guild_id, user_id)] = started_at
        logger.debug(f"Voice session opened for {user_id} in {guild_id} at {started_at}")
        return started_at

    async def close_voice(
        self,
        guild_id: Snowflake,
        user_id: Snowflake,
        now: Optional[float] = None
    ) -> int:
        """
        End the user's voice session and credit its duration.

        Returns:
            Seconds credited (0 if no session was open)
        """
        started_at = self._voice_sessions.pop(self._key(guild_id, user_id), None)
        if started_at is None:
            return 0

        elapsed = self._now(now) - started_at
        await self.store.add_voice_seconds(guild_id, user_id, elapsed)
        logger.debug(f"Voice session closed for {user_id} in {guild_id}: {elapsed}s")
        return max(0, elapsed)

    async def handle_voice_update(
        self,
        guild_id: Snowflake,
        user_id: Snowflake,
        before_channel: Optional[Snowflake],
        after_channel: Optional[Snowflake],
        now: Optional[float] = None
    ) -> None:
        """
        Apply a voice state change.

        Joining opens a session, leaving closes it, and moving between two
        channels closes the current session and opens a new one. An update
        that keeps the same channel (mute, deafen, re-delivery) only opens a
        session if none is tracked yet.

        Args:
            guild_id: Discord guild ID
            user_id: Discord user ID
            before_channel: Channel ID before the update (None if not connected)
            after_channel: Channel ID after the update (None if disconnected)
            now: Event time in seconds (defaults to the tracker clock)
        """
        timestamp = self._now(now)

        if before_channel == after_channel:
            if after_channel is not None and self.voice_session(guild_id, user_id) is None:
                self.open_voice(guild_id, user_id, timestamp)
            return

        await self.close_voice(guild_id, user_id, timestamp)
        if after_channel is not None:
            self.open_voice(guild_id, user_id, timestamp)

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    def activity_session(
        self,
        guild_id: Snowflake,
        user_id: Snowflake
    ) -> Optional[ActivitySession]:
        """The user's open activity session, if any."""
        return self._activity_sessions.get(self._key(guild_id, user_id))

    def open_activity(
        self,
        guild_id: Snowflake,
        user_id: Snowflake,
        name: str,
        now: Optional[float] = None
    ) -> ActivitySession:
        """Start tracking ``name`` as the user's current activity."""
        session = ActivitySession(name=name, started_at=self._now(now))
        self._activity_sessions[self._key(guild_id, user_id)] = session
        logger.debug(f"Activity '{name}' opened for {user_id} in {guild_id}")
        return session

    async def close_activity(
        self,
        guild_id: Snowflake,
        user_id: Snowflake,
        now: Optional[float] = None
    ) -> int:
        """
        End the user's activity session and credit its duration.

        Returns:
            Seconds credited (0 if no session was open)
        """
        session = self._activity_sessions.pop(self._key(guild_id, user_id), None)
        if session is None:
            return 0

        elapsed = self._now(now) - session.started_at
        await self.store.add_activity_seconds(guild_id, user_id, session.name, elapsed)
        logger.debug(f"Activity '{session.name}' closed for {user_id} in {guild_id}: {elapsed}s")
        return max(0, elapsed)

    async def handle_activity_update(
        self,
        guild_id: Snowflake,
        user_id: Snowflake,
        activity_name: Optional[str],
        now: Optional[float] = None
    ) -> None:
        """
        Apply a presence change.

        Args:
            guild_id: Discord guild ID
            user_id: Discord user ID
            activity_name: Name of the activity now being played, or None
            now: Event time in seconds (defaults to the tracker clock)
        """
        timestamp = self._now(now)
        session = self.activity_session(guild_id, user_id)

        if session is not None and session.name == activity_name:
            return

        if session is not None:
            await self.close_activity(guild_id, user_id, timestamp)

        if activity_name:
            self.open_activity(guild_id, user_id, activity_name, timestamp)

    # ------------------------------------------------------------------

    async def flush_all(self, now: Optional[float] = None) -> int:
        """
        Close every open session, crediting the time spent so far.

        Returns:
            Number of sessions closed
        """
        timestamp = self._now(now)
        closed = 0

        for guild_id, user_id in list(self._voice_sessions):
            await self.close_voice(guild_id, user_id, timestamp)
            closed += 1

        for guild_id, user_id in list(self._activity_sessions):
            await self.close_activity(guild_id, user_id, timestamp)
            closed += 1

        if closed:
            logger.info(f"Flushed {closed} open sessions")
        return closed
