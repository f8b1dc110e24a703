"""FentAnalytics - community analytics collector for Discord guilds."""

__version__ = "1.0.0"
