"""Sync Obsidian task notes to Google Calendar."""

__version__ = "0.1.0"
