"""Main bot file for the FentAnalytics Discord bot."""

import logging
import sys

import discord
from discord.ext import commands

from .analytics import SessionTracker
from .commands.wrapped import setup as setup_wrapped
from .database import AnalyticsStore, MigrationError
from .events.message_tracking import setup as setup_message_tracking
from .events.presence_tracking import setup as setup_presence_tracking
from .events.voice_tracking import setup as setup_voice_tracking
from .utils import Config, SingleInstanceLock, setup_logger


class FentAnalyticsBot(commands.Bot):
    """Analytics bot: tracks guild activity and serves leaderboards."""

    def __init__(self, config: Config, store: AnalyticsStore, *args, **kwargs):
        """
        Initialize the bot.

        Args:
            config: Configuration object
            store: AnalyticsStore instance
        """
        self.config = config
        self.store = store
        self.tracker = SessionTracker(store)
        self.logger = logging.getLogger("fentanalytics.bot")

        intents = discord.Intents.default()
        intents.members = True  # member cache for display names and voice scan
        intents.message_content = True  # word counting and prefix commands
        intents.presences = True  # "Playing" activity tracking
        intents.voice_states = True

        super().__init__(
            command_prefix=config.command_prefix,
            intents=intents,
            *args,
            **kwargs
        )

    async def setup_hook(self):
        """Setup hook called when bot is starting."""
        self.logger.info("Setting up bot...")

        # Schema migration must finish before any event is handled
        await self.store.initialize()
        self.logger.info("Analytics store initialized")

        await setup_wrapped(self, self.config, self.store)
        self.logger.info("Commands loaded")

        await setup_message_tracking(self, self.config, self.store)
        await setup_voice_tracking(self, self.config, self.tracker)
        await setup_presence_tracking(self, self.config, self.tracker)
        self.logger.info("Event handlers loaded")

    async def on_ready(self):
        """Called when bot is ready (also after reconnects)."""
        self.logger.info(f"Bot is ready! Logged in as {self.user} ({self.user.id})")
        self.logger.info(f"Tracking {len(self.guilds)} guild(s)")

    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError):
        """Log command errors not handled by a cog."""
        if isinstance(error, commands.CommandNotFound):
            return
        if ctx.cog is not None and ctx.cog.has_error_handler():
            return
        self.logger.error(f"Command error: {error}", exc_info=error)

    async def close(self):
        """Disconnect, credit open sessions, then close the store."""
        self.logger.info("Shutting down FentAnalytics...")

        # No events arrive after the gateway is closed, so nothing opens late
        await super().close()

        try:
            await self.tracker.flush_all()
        except Exception as e:
            self.logger.error(f"Failed to flush open sessions: {e}", exc_info=True)

        await self.store.close()

        self.logger.info("FentAnalytics shutdown complete")


def main():
    """Main entry point for the bot."""
    try:
        config = Config()
        token = config.discord_token
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    logger = setup_logger(
        name="fentanalytics",
        level=config.log_level,
        log_file=config.log_file,
        log_format=config.log_format
    )

    logger.info("=" * 50)
    logger.info("FentAnalytics Bot Starting...")
    logger.info("=" * 50)

    # The store assumes a single writer per database file
    lock = SingleInstanceLock.for_database(config.database_path)
    if not lock.acquire():
        logger.error(
            f"❌ Another FentAnalytics instance is using {config.database_path} "
            f"(lock file {lock.lock_file_path})."
        )
        sys.exit(1)

    store = AnalyticsStore(config.database_path)
    bot = FentAnalyticsBot(config, store)

    try:
        bot.run(token, log_handler=None)
    except discord.LoginFailure:
        logger.error("❌ Failed to login. Please check your bot token.")
        sys.exit(1)
    except MigrationError as e:
        logger.error(f"❌ Database migration failed, refusing to start: {e}", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        lock.release()
