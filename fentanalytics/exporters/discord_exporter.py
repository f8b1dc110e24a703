"""Discord embed exporter for leaderboards and user stats."""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

import discord

from ..analytics.leaderboard import LeaderboardEntry, UserStats, format_duration


logger = logging.getLogger("fentanalytics.discord_exporter")

BOT_NAME = "FentAnalytics"
EMBED_COLOR = 0x5865F2
EMPTY_BOARD = "No data yet."

ValueFormatter = Callable[[int], str]


def format_count(value: int) -> str:
    return f"{value:,}"


class DiscordExporter:
    """Renders store query results as Discord embeds."""

    def __init__(self, bot_name: str = BOT_NAME, color: int = EMBED_COLOR):
        self.bot_name = bot_name
        self.color = color

    @staticmethod
    def _medal(rank: int) -> str:
        return {1: "🥇", 2: "🥈", 3: "🥉"}.get(rank, f"{rank}.")

    @staticmethod
    def user_label(guild: Optional[discord.Guild], user_id: str) -> str:
        """Display name of a cached member, or a placeholder."""
        if guild is not None and user_id.isdigit():
            member = guild.get_member(int(user_id))
            if member is not None:
                return member.display_name
        return f"User {user_id}"

    def format_user_board(
        self,
        guild: Optional[discord.Guild],
        entries: List[LeaderboardEntry],
        formatter: ValueFormatter = format_count
    ) -> str:
        """One line per user: rank, display name and formatted value."""
        if not entries:
            return EMPTY_BOARD
        return "\n".join(
            f"{self._medal(rank)} **{self.user_label(guild, entry.key)}** - {formatter(entry.value)}"
            for rank, entry in enumerate(entries, start=1)
        )

    def format_named_board(
        self,
        entries: List[LeaderboardEntry],
        formatter: ValueFormatter = format_count
    ) -> str:
        """One line per word or activity name."""
        if not entries:
            return EMPTY_BOARD
        return "\n".join(
            f"{self._medal(rank)} **{entry.key}** - {formatter(entry.value)}"
            for rank, entry in enumerate(entries, start=1)
        )

    def create_wrapped_embed(
        self,
        guild: discord.Guild,
        messages: List[LeaderboardEntry],
        voice: List[LeaderboardEntry],
        activities: List[LeaderboardEntry],
        words: List[LeaderboardEntry]
    ) -> discord.Embed:
        """Guild-wide highlights."""
        embed = discord.Embed(
            title=f"{self.bot_name} • Wrapped",
            description="Here are your community's highlights",
            color=self.color,
            timestamp=datetime.now(timezone.utc)
        )
        embed.add_field(
            name="Top Chatters",
            value=self.format_user_board(guild, messages),
            inline=False
        )
        embed.add_field(
            name="Voice Channel Champions",
            value=self.format_user_board(guild, voice, format_duration),
            inline=False
        )
        embed.add_field(
            name="Favorite Games",
            value=self.format_named_board(activities, format_duration),
            inline=False
        )
        embed.add_field(
            name="Most Used Words",
            value=self.format_named_board(words),
            inline=False
        )
        embed.set_footer(text=f"{self.bot_name} Analytics Bot • {guild.name}")
        return embed

    def create_user_stats_embed(
        self,
        member: discord.abc.User,
        stats: UserStats
    ) -> discord.Embed:
        """Summary for a single member."""
        embed = discord.Embed(
            title=f"{self.bot_name} • Stats for {member.display_name}",
            color=self.color,
            timestamp=datetime.now(timezone.utc)
        )
        embed.set_thumbnail(url=member.display_avatar.url)
        embed.add_field(name="Messages", value=format_count(stats.messages), inline=True)
        embed.add_field(name="Voice Time", value=format_duration(stats.voice_seconds), inline=True)
        embed.add_field(
            name="Top Games",
            value=self.format_named_board(stats.activities, format_duration),
            inline=False
        )
        embed.add_field(
            name="Favorite Words",
            value=self.format_named_board(stats.words),
            inline=False
        )
        embed.set_footer(text=f"{self.bot_name} Analytics Bot")
        return embed
