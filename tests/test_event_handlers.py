"""Tests for the gateway listeners, using mocked discord objects."""

import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord

from fentanalytics.analytics import SessionTracker
from fentanalytics.events.message_tracking import MessageTracking
from fentanalytics.events.presence_tracking import PresenceTracking, get_playing_activity
from fentanalytics.events.voice_tracking import VoiceTracking


def make_message(message_id=1, content="hello there world", bot=False, guild=True):
    return SimpleNamespace(
        id=message_id,
        content=content,
        author=SimpleNamespace(id=20, bot=bot),
        guild=SimpleNamespace(id=10, name="Guild") if guild else None,
    )


def make_activity(name, activity_type=discord.ActivityType.playing):
    return SimpleNamespace(name=name, type=activity_type)


class TestMessageTracking(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.store = AsyncMock()
        self.cog = MessageTracking(MagicMock(), self.store)

    async def test_counts_message_and_words(self):
        await self.cog.on_message(make_message(content="Hello hello to you"))

        self.store.increment_message.assert_awaited_once_with(10, 20)
        self.store.increment_words.assert_awaited_once_with(10, 20, ["hello", "hello", "you"])
        self.assertEqual(self.cog.messages_tracked, 1)

    async def test_message_without_words(self):
        await self.cog.on_message(make_message(content="ok"))

        self.store.increment_message.assert_awaited_once()
        self.store.increment_words.assert_not_awaited()

    async def test_ignores_bots_and_direct_messages(self):
        await self.cog.on_message(make_message(bot=True))
        await self.cog.on_message(make_message(guild=False))

        self.store.increment_message.assert_not_awaited()

    async def test_replayed_message_counted_once(self):
        await self.cog.on_message(make_message(message_id=99))
        await self.cog.on_message(make_message(message_id=99))

        self.assertEqual(self.store.increment_message.await_count, 1)
        self.assertEqual(self.cog.duplicates_blocked, 1)

    async def test_store_failure_is_logged_not_raised(self):
        self.store.increment_message.side_effect = RuntimeError("disk full")

        with self.assertLogs("fentanalytics.message_tracking", level="ERROR"):
            await self.cog.on_message(make_message())
        self.assertEqual(self.cog.messages_tracked, 0)


class TestVoiceTracking(unittest.IsolatedAsyncioTestCase):

    async def test_forwards_channel_ids(self):
        tracker = MagicMock()
        tracker.handle_voice_update = AsyncMock()
        cog = VoiceTracking(MagicMock(), tracker)

        member = SimpleNamespace(id=20, bot=False, guild=SimpleNamespace(id=10))
        before = SimpleNamespace(channel=None)
        after = SimpleNamespace(channel=SimpleNamespace(id=5))
        await cog.on_voice_state_update(member, before, after)

        tracker.handle_voice_update.assert_awaited_once_with(10, 20, None, 5)

    async def test_ignores_bots(self):
        tracker = MagicMock()
        tracker.handle_voice_update = AsyncMock()
        cog = VoiceTracking(MagicMock(), tracker)

        member = SimpleNamespace(id=20, bot=True, guild=SimpleNamespace(id=10))
        await cog.on_voice_state_update(member, SimpleNamespace(channel=None), SimpleNamespace(channel=None))

        tracker.handle_voice_update.assert_not_awaited()

    def test_scan_opens_sessions_for_connected_members(self):
        human = SimpleNamespace(id=1, bot=False)
        robot = SimpleNamespace(id=2, bot=True)
        guild = SimpleNamespace(id=10, voice_channels=[SimpleNamespace(members=[human, robot])])
        bot = SimpleNamespace(guilds=[guild])
        tracker = SessionTracker(AsyncMock(), clock=lambda: 500)

        cog = VoiceTracking(bot, tracker)
        self.assertEqual(cog.scan_active_users(), 1)
        self.assertEqual(tracker.voice_session(10, 1), 500)
        self.assertIsNone(tracker.voice_session(10, 2))


class TestPresenceTracking(unittest.IsolatedAsyncioTestCase):

    def test_picks_first_playing_activity(self):
        member = SimpleNamespace(activities=[
            make_activity("Spotify", discord.ActivityType.listening),
            make_activity("GameA"),
            make_activity("GameB"),
        ])
        self.assertEqual(get_playing_activity(member), "GameA")

    def test_no_playing_activity(self):
        member = SimpleNamespace(activities=[make_activity("Twitch", discord.ActivityType.streaming)])
        self.assertIsNone(get_playing_activity(member))
        self.assertIsNone(get_playing_activity(SimpleNamespace(activities=())))
        self.assertIsNone(get_playing_activity(None))

    async def test_presence_update_drives_tracker(self):
        store = AsyncMock()
        clock = SimpleNamespace(now=0)
        tracker = SessionTracker(store, clock=lambda: clock.now)
        cog = PresenceTracking(MagicMock(), tracker)

        def member(*activities):
            return SimpleNamespace(id=20, bot=False, guild=SimpleNamespace(id=10), activities=list(activities))

        await cog.on_presence_update(member(), member(make_activity("GameA")))
        clock.now = 50
        await cog.on_presence_update(member(make_activity("GameA")), member(make_activity("GameB")))
        clock.now = 80
        await cog.on_presence_update(member(make_activity("GameB")), member())

        self.assertEqual(
            [c.args for c in store.add_activity_seconds.await_args_list],
            [(10, 20, "GameA", 50), (10, 20, "GameB", 30)]
        )


if __name__ == "__main__":
    unittest.main()
