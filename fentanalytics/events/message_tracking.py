"""Event handler for real-time message and word tracking."""

import logging
from collections import deque

import discord
from discord.ext import commands

from ..analytics.leaderboard import extract_words
from ..database import AnalyticsStore
from ..utils import Config


logger = logging.getLogger("fentanalytics.message_tracking")


class MessageTracking(commands.Cog):
    """Counts messages and words for every non-bot guild message."""

    def __init__(
        self,
        bot: commands.Bot,
        store: AnalyticsStore,
        dedup_size: int = 10000
    ):
        """
        Initialize the message tracker.

        Args:
            bot: Discord bot instance
            store: AnalyticsStore instance
            dedup_size: How many recent message IDs to remember
        """
        self.bot = bot
        self.store = store

        # Gateway resumes can replay MESSAGE_CREATE; counting it twice would
        # inflate totals, so recently seen IDs are skipped.
        self._recent_message_ids: deque = deque(maxlen=dedup_size)
        self.messages_tracked = 0
        self.duplicates_blocked = 0

    def _is_duplicate(self, message_id: int) -> bool:
        if message_id in self._recent_message_ids:
            self.duplicates_blocked += 1
            return True
        self._recent_message_ids.append(message_id)
        return False

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message):
        """Track a message when it's sent."""
        if message.author.bot or not message.guild:
            return

        if self._is_duplicate(message.id):
            logger.debug(f"Duplicate message event {message.id} skipped")
            return

        guild_id = message.guild.id
        user_id = message.author.id

        try:
            await self.store.increment_message(guild_id, user_id)

            words = extract_words(message.content)
            if words:
                await self.store.increment_words(guild_id, user_id, words)
        except Exception as e:
            logger.error(
                f"Failed to track message {message.id} from {message.author}: {e}",
                exc_info=True
            )
            return

        self.messages_tracked += 1
        logger.debug(
            f"Tracked message from {message.author} in {message.guild.name} "
            f"({len(words)} words)"
        )


async def setup(bot: commands.Bot, config: Config, store: AnalyticsStore):
    """Setup the message tracking cog."""
    if not config.message_tracking_enabled:
        logger.info("Message tracking disabled in config")
        return
    await bot.add_cog(MessageTracking(bot, store))
    logger.info("Message tracking cog loaded")
