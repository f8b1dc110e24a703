"""Row types and text helpers for leaderboard retrieval."""

import re
from dataclasses import dataclass, field
from typing import List


# Words are runs of at least three word characters (unicode aware)
WORD_PATTERN = re.compile(r"\b\w{3,}\b")


@dataclass(frozen=True)
class LeaderboardEntry:
    """One ranked row: a user id, word or activity name and its total."""

    key: str
    value: int


@dataclass
class UserStats:
    """Per-user summary for one guild."""

    messages: int = 0
    voice_seconds: int = 0
    activities: List[LeaderboardEntry] = field(default_factory=list)
    words: List[LeaderboardEntry] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.messages or self.voice_seconds or self.activities or self.words)


def extract_words(content: str) -> List[str]:
    """
    Split message content into countable words.

    Args:
        content: Raw message text

    Returns:
        Lower-cased words of length >= 3, in order of appearance
    """
    if not content:
        return []
    return WORD_PATTERN.findall(content.lower())


def format_duration(total_seconds: int) -> str:
    """Render seconds as ``1h 2m 3s``, omitting zero parts (``0s`` for zero)."""
    total_seconds = max(0, int(total_seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if seconds or not parts:
        parts.append(f"{seconds}s")

    return " ".join(parts)
