"""Exception classes for obsidian-calendar-sync."""

from __future__ import annotations


class TaskSyncError(Exception):
    """Base exception for all obsidian-calendar-sync errors."""


class ConfigurationError(TaskSyncError):
    """A pass cannot start: settings, credential or candidate set missing."""


class SyncInProgressError(TaskSyncError):
    """Raised when a pass is requested while another one is running."""


class MappingError(TaskSyncError):
    """A task's attributes cannot be turned into a calendar event."""

    def __init__(self, role: str, message: str):
        super().__init__(f"{role}: {message}")
        self.role = role


class RemoteNotFound(TaskSyncError):
    """The calendar provider reports the event as gone (HTTP 404/410)."""

    def __init__(self, event_id: str):
        super().__init__(f"Event not found: {event_id}")
        self.event_id = event_id


class RemoteTransportError(TaskSyncError):
    """Any other failure talking to the calendar provider."""


class CredentialError(TaskSyncError):
    """Stored credential cannot be decrypted, parsed or refreshed."""
