"""One synchronization pass from tagged notes to the calendar.

Tasks are handled strictly in extraction order. Every failure inside a single
task is caught, logged and counted; only the checks made before the first
remote call abort the whole pass.

The checkpoint (``lastSyncDate``) advances at the end of every pass that got
past those checks, even if every task failed. A systemic failure such as a
dead credential therefore still moves it forward, and tasks that were not
edited afterwards are skipped by later quick passes until a full pass runs.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone

from dateutil.parser import parse as parse_dt

from . import frontmatter
from .exceptions import ConfigurationError, RemoteNotFound
from .folders import find_folder_pairs, pair_for
from .mapping import map_to_event
from .models import CalendarEvent, Task
from .session import ProgressCallback, SyncSession, report_progress
from .tasks import fetch_tasks

logger = logging.getLogger("obsidian-calendar-sync")


@dataclass
class SyncReport:
    """Outcome of one pass."""

    total: int
    processed: int = 0
    created: int = 0
    updated: int = 0
    deleted: int = 0
    moved: int = 0
    errors: list[str] = field(default_factory=list)
    log_file: str | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def summary(self) -> str:
        if self.ok:
            return "Sync completed successfully."
        return "Sync completed with errors. Check the error log for details."


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _checkpoint(value: str | None) -> float | None:
    """Stored lastSyncDate as epoch seconds; None when absent or unreadable."""
    if not value:
        return None
    try:
        parsed = parse_dt(value)
    except (ValueError, OverflowError):
        logger.warning("Ignoring unreadable lastSyncDate '%s'", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def changed_since(tasks: list[Task], checkpoint: float) -> list[Task]:
    """Tasks whose note was created or modified strictly after ``checkpoint``."""
    return [t for t in tasks if t.note.ctime > checkpoint or t.note.mtime > checkpoint]


def write_error_log(log_dir: str, errors: list[str]) -> str:
    """Write the pass's error lines to a timestamped markdown file."""
    os.makedirs(log_dir, exist_ok=True)
    stamp = _now_iso().replace(":", "-").replace(".", "-")
    path = os.path.join(log_dir, f"log_{stamp}.md")
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n\n".join(errors))
    return path


def save_task(session: SyncSession, task: Task) -> None:
    """Write ``task.data`` back as the note's attribute block."""
    content = session.store.read(task.note)
    session.store.write(task.note, frontmatter.replace(content, task.data))


def _build_event(session: SyncSession, task: Task) -> CalendarEvent:
    _, body = frontmatter.split(session.store.read(task.note))
    return map_to_event(session.settings.field_mappings, task.data, task.name, body)


def _is_marked_done(session: SyncSession, task: Task) -> bool:
    status_key = session.settings.field_mappings.key_for("status")
    value = task.data.get(status_key) if status_key else None
    if value is None:
        return False
    return str(value).strip() == session.settings.delete_status.strip()


async def _retire(session: SyncSession, task: Task, existing: CalendarEvent | None, report: SyncReport) -> None:
    """Delete the task's event, drop its back-reference and file it as done."""
    if existing is not None:
        await session.gateway.delete(existing.id)
        report.deleted += 1
    # A back-reference whose event is already gone is dropped without a call.
    task.clear_event_id()
    save_task(session, task)

    if task.pair is None:
        logger.warning("No done folder known for task '%s'", task.name)
        return
    try:
        task.note = session.store.move(task.note, task.pair.done_path)
    except OSError as e:
        session.notify(f"Error moving file '{task.note.filename}' to '{task.pair.done_path}': {e}")
        raise
    report.moved += 1
    logger.debug("Task '%s' moved to '%s'", task.name, task.pair.done_path)


async def process_task(session: SyncSession, task: Task, report: SyncReport) -> None:
    """Create, update or retire the event for one task."""
    gateway = session.gateway
    logger.debug("Processing task '%s' with googleEventId: %s", task.name, task.event_id)

    existing: CalendarEvent | None = None
    if task.event_id:
        try:
            existing = await gateway.get(task.event_id)
        except RemoteNotFound:
            logger.debug("No matching event for '%s'; a new event will be created", task.name)

    if _is_marked_done(session, task):
        await _retire(session, task, existing, report)
        return

    event = _build_event(session, task)
    if existing is not None:
        event.id = existing.id
        await gateway.update(existing.id, event)
        report.updated += 1
        return

    # Never resend a back-reference whose event no longer exists.
    event.id = None
    new_id = await gateway.insert(event)
    task.set_event_id(new_id)
    save_task(session, task)
    report.created += 1


async def run_sync(
    session: SyncSession,
    tag: str = "task",
    quick: bool = False,
    on_progress: ProgressCallback | None = None,
) -> SyncReport:
    """Run one full or quick pass.

    Raises ConfigurationError before any remote call when the pass cannot run,
    and SyncInProgressError when another pass holds the session.
    """
    with session.exclusive("sync"):
        settings = session.settings
        if session.gateway is None:
            raise ConfigurationError("Please authenticate with Google Calendar first.")
        if settings.field_mappings.key_for("status") is None:
            raise ConfigurationError(
                "The 'status' field mapping is not defined. Please set it in the settings."
            )

        pairs = find_folder_pairs(
            session.store,
            settings.task_folder_path,
            settings.search_folder_name,
            settings.done_folder_name,
        )
        if not pairs:
            raise ConfigurationError(
                f'No matching folder pairs for "{settings.search_folder_name}" and '
                f'"{settings.done_folder_name}" found in "{settings.task_folder_path}".'
            )

        candidates: list[Task] = []
        for task in fetch_tasks(session.store, tag):
            task.pair = pair_for(pairs, task.note.path)
            if task.pair is not None:
                candidates.append(task)
        if not candidates:
            raise ConfigurationError("No tasks found to sync.")

        if quick:
            checkpoint = _checkpoint(settings.last_sync_date)
            if checkpoint is None:
                logger.info("No previous sync recorded, running a full pass")
            else:
                candidates = changed_since(candidates, checkpoint)
                if not candidates:
                    raise ConfigurationError("No tasks to sync after filtering.")

        report = SyncReport(total=len(candidates))
        logger.info("%s sync: %d task(s) to process", "Quick" if quick else "Full", report.total)

        for task in candidates:
            try:
                await process_task(session, task, report)
            except Exception as e:
                message = f'Error processing task "{task.note.path}": {e}'
                report.errors.append(message)
                logger.error(message)
            report.processed += 1
            await report_progress(on_progress, report.processed, report.total)

        if report.errors and session.log_dir:
            try:
                report.log_file = write_error_log(session.log_dir, report.errors)
            except OSError as e:
                logger.error("Could not write error log to %s: %s", session.log_dir, e)
        session.notify(report.summary)

        settings.last_sync_date = _now_iso()
        session.save_settings()
        return report
