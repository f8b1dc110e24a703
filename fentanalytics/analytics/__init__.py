"""Analytics modules for FentAnalytics."""

from .leaderboard import LeaderboardEntry, UserStats, extract_words, format_duration
from .session_tracker import ActivitySession, SessionTracker

__all__ = [
    "ActivitySession",
    "LeaderboardEntry",
    "SessionTracker",
    "UserStats",
    "extract_words",
    "format_duration"
]
