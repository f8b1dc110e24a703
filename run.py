#!/usr/bin/env python3
"""
FentAnalytics Bot Runner

This is the main entry point to run the FentAnalytics Discord bot.
Simply run: python run.py
"""

from fentanalytics.bot import main

if __name__ == "__main__":
    main()
