"""Database modules for FentAnalytics."""

from .analytics_store import AnalyticsStore
from .migrations import MigrationError, StoreError

__all__ = ["AnalyticsStore", "MigrationError", "StoreError"]
