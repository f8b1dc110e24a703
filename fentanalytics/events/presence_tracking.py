"""Tracks time spent in "Playing" activities."""

import logging
from typing import Optional

import discord
from discord.ext import commands

from ..analytics.session_tracker import SessionTracker
from ..utils import Config


logger = logging.getLogger("fentanalytics.presence_tracking")


def get_playing_activity(member: Optional[discord.Member]) -> Optional[str]:
    """
    Name of the first "Playing" activity shown by a member.

    Only one activity per member is tracked; streaming, listening,
    custom status and the rest are ignored.
    """
    if member is None:
        return None

    for activity in member.activities or ():
        if activity.type == discord.ActivityType.playing and activity.name:
            return activity.name

    return None


class PresenceTracking(commands.Cog):
    """Feeds presence changes into the session tracker."""

    def __init__(self, bot: commands.Bot, tracker: SessionTracker):
        self.bot = bot
        self.tracker = tracker

    @commands.Cog.listener()
    async def on_presence_update(self, before: discord.Member, after: discord.Member):
        """Close the previous game and open the current one when it changes."""
        if after.bot or after.guild is None:
            return

        try:
            await self.tracker.handle_activity_update(
                after.guild.id,
                after.id,
                get_playing_activity(after)
            )
        except Exception as e:
            logger.error(f"Failed to record presence update for {after}: {e}", exc_info=True)

    def scan_active_players(self) -> int:
        """Open sessions for members already playing (use on startup)."""
        count = 0

        for guild in self.bot.guilds:
            for member in guild.members:
                if member.bot:
                    continue
                name = get_playing_activity(member)
                if name and self.tracker.activity_session(guild.id, member.id) is None:
                    self.tracker.open_activity(guild.id, member.id, name)
                    count += 1

        logger.info(f"Initialized {count} active game sessions from scan.")
        return count

    @commands.Cog.listener()
    async def on_ready(self):
        self.scan_active_players()


async def setup(bot: commands.Bot, config: Config, tracker: SessionTracker):
    """Setup the presence tracking cog."""
    if not config.presence_tracking_enabled:
        logger.info("Presence tracking disabled in config")
        return
    await bot.add_cog(PresenceTracking(bot, tracker))
