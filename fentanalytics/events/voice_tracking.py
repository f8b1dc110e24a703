"""Voice activity tracking module."""

import logging

import discord
from discord.ext import commands

from ..analytics.session_tracker import SessionTracker
from ..utils import Config


logger = logging.getLogger("fentanalytics.voice_tracking")


class VoiceTracking(commands.Cog):
    """Feeds voice channel joins, leaves and moves into the session tracker."""

    def __init__(self, bot: commands.Bot, tracker: SessionTracker):
        self.bot = bot
        self.tracker = tracker

    @commands.Cog.listener()
    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState
    ):
        """Handle voice state updates (join, leave, move)."""
        if member.bot:
            return

        before_id = before.channel.id if before.channel else None
        after_id = after.channel.id if after.channel else None

        try:
            await self.tracker.handle_voice_update(
                member.guild.id,
                member.id,
                before_id,
                after_id
            )
        except Exception as e:
            logger.error(f"Failed to record voice update for {member}: {e}", exc_info=True)

    def scan_active_users(self) -> int:
        """Open sessions for members already in voice (use on startup)."""
        count = 0

        for guild in self.bot.guilds:
            for channel in guild.voice_channels:
                for member in channel.members:
                    if member.bot:
                        continue
                    if self.tracker.voice_session(guild.id, member.id) is None:
                        self.tracker.open_voice(guild.id, member.id)
                        count += 1

        logger.info(f"Initialized {count} active voice sessions from scan.")
        return count

    @commands.Cog.listener()
    async def on_ready(self):
        """Called when bot is ready. Perform initial scan."""
        self.scan_active_users()


async def setup(bot: commands.Bot, config: Config, tracker: SessionTracker):
    """Setup the voice tracking cog."""
    if not config.voice_tracking_enabled:
        logger.info("Voice tracking disabled in config")
        return
    await bot.add_cog(VoiceTracking(bot, tracker))
