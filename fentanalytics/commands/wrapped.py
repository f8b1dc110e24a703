"""Prefix commands that read the analytics store."""

import asyncio
import logging
from typing import Optional

import discord
from discord.ext import commands

from ..database import AnalyticsStore
from ..exporters import DiscordExporter
from ..utils import Config


logger = logging.getLogger("fentanalytics.commands.wrapped")

GUILD_ONLY_MESSAGE = "This command only works in servers."
FAILURE_MESSAGE = "❌ Could not load analytics right now, please try again later."


class WrappedCommands(commands.Cog):
    """Cog for ``wrapped``, ``stats`` and ``atefood``."""

    def __init__(
        self,
        bot: commands.Bot,
        config: Config,
        store: AnalyticsStore,
        exporter: Optional[DiscordExporter] = None
    ):
        """
        Initialize the commands.

        Args:
            bot: Discord bot instance
            config: Configuration object
            store: AnalyticsStore instance
            exporter: Embed renderer (default DiscordExporter)
        """
        self.bot = bot
        self.config = config
        self.store = store
        self.exporter = exporter or DiscordExporter()

    @commands.command(name="wrapped")
    @commands.guild_only()
    async def wrapped(self, ctx: commands.Context):
        """Show the guild's top chatters, voice users, games and words."""
        guild_id = ctx.guild.id
        limit = self.config.leaderboard_limit

        messages, voice, activities, words = await asyncio.gather(
            self.store.get_message_leaderboard(guild_id, limit),
            self.store.get_voice_leaderboard(guild_id, limit),
            self.store.get_activity_leaderboard(guild_id, limit),
            self.store.get_word_leaderboard(guild_id, limit),
        )

        embed = self.exporter.create_wrapped_embed(ctx.guild, messages, voice, activities, words)
        await ctx.reply(embed=embed, mention_author=False)

    @commands.command(name="stats")
    @commands.guild_only()
    async def stats(self, ctx: commands.Context, member: Optional[discord.Member] = None):
        """Show message, voice, game and word stats for yourself or a member."""
        target = member or ctx.author
        stats = await self.store.get_user_stats(
            ctx.guild.id,
            target.id,
            self.config.leaderboard_limit
        )

        embed = self.exporter.create_user_stats_embed(target, stats)
        await ctx.reply(embed=embed, mention_author=False)

    @commands.command(name="atefood")
    @commands.guild_only()
    async def atefood(self, ctx: commands.Context):
        """Log a meal."""
        total = await self.store.increment_ate_food(ctx.guild.id, ctx.author.id)
        suffix = "meal" if total == 1 else "meals"
        await ctx.reply(f"🍽️ {ctx.author.display_name} has eaten {total:,} {suffix}.", mention_author=False)

    async def cog_command_error(self, ctx: commands.Context, error: commands.CommandError):
        """Reply to failed commands instead of failing silently."""
        if isinstance(error, commands.NoPrivateMessage):
            await ctx.reply(GUILD_ONLY_MESSAGE)
            return
        if isinstance(error, commands.BadArgument):
            await ctx.reply(f"❌ {error}")
            return

        logger.error(f"Command '{ctx.command}' failed: {error}", exc_info=error)
        try:
            await ctx.reply(FAILURE_MESSAGE)
        except discord.HTTPException as e:
            logger.warning(f"Could not send failure reply: {e}")


async def setup(bot: commands.Bot, config: Config, store: AnalyticsStore):
    """Setup the analytics commands."""
    await bot.add_cog(WrappedCommands(bot, config, store))
