"""Bulk removal of calendar events and their back-references."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from . import frontmatter
from .exceptions import ConfigurationError, RemoteNotFound
from .session import ProgressCallback, SyncSession, report_progress
from .vault import Note, NoteStore

logger = logging.getLogger("obsidian-calendar-sync")


@dataclass
class CleanupReport:
    total: int
    deleted: int = 0
    notes_updated: int = 0
    errors: list[str] = field(default_factory=list)


def strip_back_references(store: NoteStore, notes: list[Note], event_id: str) -> int:
    """Remove ``googleEventId: <event_id>`` from every note that holds it."""
    updated = 0
    for note in notes:
        content = frontmatter.strip_event_id(store.read(note), event_id)
        if content is None:
            continue
        store.write(note, content)
        updated += 1
        logger.info("Updated file: %s - removed googleEventId", note.path)
    return updated


async def delete_all_derived_events(
    session: SyncSession,
    on_progress: ProgressCallback | None = None,
) -> CleanupReport:
    """Delete every event of the calendar and strip matching back-references.

    Visits every note once per event, and sees at most one listing page of
    events. A failure on one event is recorded and the sweep moves on.
    """
    with session.exclusive("cleanup"):
        gateway = session.gateway
        if gateway is None:
            raise ConfigurationError("Please authenticate with Google Calendar first.")

        events = await gateway.list_all()
        notes = session.store.list_notes()
        report = CleanupReport(total=len(events))

        for idx, event in enumerate(events, start=1):
            try:
                try:
                    await gateway.delete(event.id)
                except RemoteNotFound:
                    logger.debug("Event %s already gone", event.id)
                report.deleted += 1
                report.notes_updated += strip_back_references(session.store, notes, event.id)
            except Exception as e:
                message = f"Failed to delete event {event.id}: {e}"
                report.errors.append(message)
                logger.warning(message)
            await report_progress(on_progress, idx, report.total)

        session.notify(f"Deleted {report.deleted} of {report.total} events.")
        return report
