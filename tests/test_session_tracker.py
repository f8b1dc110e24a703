import unittest
from unittest.mock import AsyncMock, call

from fentanalytics.analytics import SessionTracker


G, U = 10, 20


class FakeClock:
    def __init__(self, now: float = 0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestVoiceSessions(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.store = AsyncMock()
        self.clock = FakeClock()
        self.tracker = SessionTracker(self.store, clock=self.clock)

    async def test_join_then_leave_credits_once(self):
        await self.tracker.handle_voice_update(G, U, None, 1, now=100)
        await self.tracker.handle_voice_update(G, U, 1, None, now=160)

        self.store.add_voice_seconds.assert_awaited_once_with(G, U, 60)
        self.assertIsNone(self.tracker.voice_session(G, U))

    async def test_leave_twice_does_not_flush_twice(self):
        await self.tracker.handle_voice_update(G, U, None, 1, now=100)
        await self.tracker.handle_voice_update(G, U, 1, None, now=160)
        await self.tracker.handle_voice_update(G, U, 1, None, now=200)

        self.assertEqual(self.store.add_voice_seconds.await_count, 1)

    async def test_switching_channels_is_a_session_boundary(self):
        await self.tracker.handle_voice_update(G, U, None, 1, now=0)
        await self.tracker.handle_voice_update(G, U, 1, 2, now=30)
        self.assertEqual(self.tracker.voice_session(G, U), 30)

        await self.tracker.handle_voice_update(G, U, 2, None, now=50)

        self.assertEqual(
            self.store.add_voice_seconds.await_args_list,
            [call(G, U, 30), call(G, U, 20)]
        )

    async def test_same_channel_update_is_ignored(self):
        await self.tracker.handle_voice_update(G, U, None, 1, now=100)
        await self.tracker.handle_voice_update(G, U, 1, 1, now=130)

        self.store.add_voice_seconds.assert_not_awaited()
        self.assertEqual(self.tracker.voice_session(G, U), 100)

    async def test_same_channel_update_opens_missing_session(self):
        # e.g. the user was already connected when the bot started
        await self.tracker.handle_voice_update(G, U, 1, 1, now=130)
        self.assertEqual(self.tracker.voice_session(G, U), 130)

    async def test_leave_without_session_does_nothing(self):
        await self.tracker.handle_voice_update(G, U, 1, None, now=10)
        self.store.add_voice_seconds.assert_not_awaited()

    async def test_users_are_tracked_independently(self):
        await self.tracker.handle_voice_update(G, 1, None, 5, now=0)
        await self.tracker.handle_voice_update(G, 2, None, 5, now=10)
        await self.tracker.handle_voice_update(G, 1, 5, None, now=40)

        self.store.add_voice_seconds.assert_awaited_once_with(G, 1, 40)
        self.assertEqual(self.tracker.voice_session(G, 2), 10)

    async def test_uses_clock_when_no_time_given(self):
        self.clock.now = 1000.7
        await self.tracker.handle_voice_update(G, U, None, 1)
        self.clock.now = 1090.2
        await self.tracker.handle_voice_update(G, U, 1, None)

        self.store.add_voice_seconds.assert_awaited_once_with(G, U, 90)


class TestActivitySessions(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.store = AsyncMock()
        self.tracker = SessionTracker(self.store, clock=FakeClock())

    async def test_switching_games_credits_each(self):
        await self.tracker.handle_activity_update(G, U, "GameA", now=0)
        await self.tracker.handle_activity_update(G, U, "GameB", now=50)
        await self.tracker.handle_activity_update(G, U, None, now=80)

        self.assertEqual(
            self.store.add_activity_seconds.await_args_list,
            [call(G, U, "GameA", 50), call(G, U, "GameB", 30)]
        )
        self.assertIsNone(self.tracker.activity_session(G, U))

    async def test_repeated_presence_keeps_session(self):
        await self.tracker.handle_activity_update(G, U, "GameA", now=0)
        await self.tracker.handle_activity_update(G, U, "GameA", now=20)

        self.store.add_activity_seconds.assert_not_awaited()
        self.assertEqual(self.tracker.activity_session(G, U).started_at, 0)

    async def test_no_activity_without_session_does_nothing(self):
        await self.tracker.handle_activity_update(G, U, None, now=5)

        self.store.add_activity_seconds.assert_not_awaited()
        self.assertIsNone(self.tracker.activity_session(G, U))

    async def test_close_returns_credited_seconds(self):
        self.tracker.open_activity(G, U, "GameA", now=10)
        self.assertEqual(await self.tracker.close_activity(G, U, now=25), 15)
        self.assertEqual(await self.tracker.close_activity(G, U, now=30), 0)


class TestFlushAll(unittest.IsolatedAsyncioTestCase):

    async def test_flush_closes_everything(self):
        store = AsyncMock()
        tracker = SessionTracker(store, clock=FakeClock())
        tracker.open_voice(G, 1, now=0)
        tracker.open_voice(G, 2, now=10)
        tracker.open_activity(G, 1, "GameA", now=5)

        self.assertEqual(tracker.open_sessions(), {"voice": 2, "activity": 1})
        closed = await tracker.flush_all(now=100)

        self.assertEqual(closed, 3)
        self.assertEqual(tracker.open_sessions(), {"voice": 0, "activity": 0})
        store.add_voice_seconds.assert_has_awaits(
            [call(str(G), "1", 100), call(str(G), "2", 90)]
        )
        store.add_activity_seconds.assert_awaited_once_with(str(G), "1", "GameA", 95)


if __name__ == "__main__":
    unittest.main()
