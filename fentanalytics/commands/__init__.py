"""Command modules for FentAnalytics."""

from .wrapped import WrappedCommands

__all__ = ["WrappedCommands"]
