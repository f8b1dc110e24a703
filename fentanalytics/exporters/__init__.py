"""Exporter modules for FentAnalytics."""

from .discord_exporter import DiscordExporter

__all__ = ["DiscordExporter"]
