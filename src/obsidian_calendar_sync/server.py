#!/usr/bin/env python3
"""
obsidian-calendar-sync — Obsidian task notes to Google Calendar, as an MCP server.

Notes tagged ``task`` inside the open folders under the task root become events
in the primary Google Calendar; notes marked done lose their event and move to
the sibling done folder.

Environment variables:
    TASK_SYNC_SETTINGS — Path to the settings YAML (default: /config/task_sync.yaml)
"""

import logging
import sys
from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from .cleanup import delete_all_derived_events
from .config import SETTINGS_PATH, load_settings
from .exceptions import ConfigurationError, CredentialError, SyncInProgressError
from .folders import find_folder_pairs
from .session import SyncSession
from .sync import SyncReport, run_sync

# MCP stdio servers must NEVER write to stdout — log to stderr only.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger("obsidian-calendar-sync")


# ---------------------------------------------------------------------------
# Module-level state
# ---------------------------------------------------------------------------

_session: SyncSession | None = None


def _get_session() -> SyncSession:
    """Build the session from the settings file on first access."""
    global _session
    if _session is None:
        settings = load_settings(SETTINGS_PATH)
        logger.setLevel(logging.DEBUG if settings.debug_mode else logging.INFO)
        _session = SyncSession.from_settings(settings, SETTINGS_PATH)
    return _session


def _progress_reporter(ctx: Context | None):
    """Log progress and forward it to the MCP client when a context is available."""

    async def report(done: int, total: int) -> None:
        logger.info("Processing: %d / %d", done, total)
        if ctx is not None:
            await ctx.report_progress(done, total)

    return report


def _report_to_dict(report: SyncReport) -> dict[str, Any]:
    result: dict[str, Any] = {
        "success": report.ok,
        "message": report.summary,
        "total": report.total,
        "processed": report.processed,
        "created": report.created,
        "updated": report.updated,
        "deleted": report.deleted,
        "moved": report.moved,
    }
    if report.errors:
        result["errors"] = report.errors
    if report.log_file:
        result["log_file"] = report.log_file
    return result


async def _sync(tag: str, quick: bool, ctx: Context | None) -> dict:
    try:
        report = await run_sync(
            _get_session(), tag=tag, quick=quick, on_progress=_progress_reporter(ctx)
        )
    except (ConfigurationError, SyncInProgressError) as e:
        return {"error": str(e)}
    return _report_to_dict(report)


# ---------------------------------------------------------------------------
# MCP Server + Tools
# ---------------------------------------------------------------------------

mcp = FastMCP("obsidian-calendar-sync")


@mcp.tool()
async def quick_sync(tag: str = "task", ctx: Context = None) -> dict:
    """Sync tasks created or modified since the last sync.

    Falls back to a full sync when no sync has been recorded yet.

    Args:
        tag: Front-matter tag marking a note as a task (default "task").
    """
    return await _sync(tag, quick=True, ctx=ctx)


@mcp.tool()
async def full_sync(tag: str = "task", ctx: Context = None) -> dict:
    """Sync every task in the open folders.

    Args:
        tag: Front-matter tag marking a note as a task (default "task").
    """
    return await _sync(tag, quick=False, ctx=ctx)


@mcp.tool()
async def delete_all_events(ctx: Context = None) -> dict:
    """Delete every event of the primary calendar and strip googleEventId from notes.

    Handles at most 2500 events per call.
    """
    try:
        report = await delete_all_derived_events(_get_session(), on_progress=_progress_reporter(ctx))
    except (ConfigurationError, SyncInProgressError) as e:
        return {"error": str(e)}
    result: dict[str, Any] = {
        "success": not report.errors,
        "total": report.total,
        "deleted": report.deleted,
        "notes_updated": report.notes_updated,
    }
    if report.errors:
        result["errors"] = report.errors
    return result


@mcp.tool()
async def list_folder_pairs() -> dict:
    """List the open/done folder pairs found under the task root."""
    session = _get_session()
    settings = session.settings
    pairs = find_folder_pairs(
        session.store,
        settings.task_folder_path,
        settings.search_folder_name,
        settings.done_folder_name,
    )
    return {
        "task_root": settings.task_folder_path,
        "pairs": [
            {"parent": p.parent, "search_path": p.search_path, "done_path": p.done_path}
            for p in pairs.values()
        ],
    }


@mcp.tool()
async def sync_status() -> dict:
    """Show whether the calendar is authorized and when the last sync ran."""
    session = _get_session()
    return {
        "authorized": session.gateway is not None,
        "last_sync_date": session.settings.last_sync_date,
        "vault_path": session.settings.vault_path,
        "busy": session.busy,
    }


# ---------------------------------------------------------------------------
# Google OAuth2 CLI helper
# ---------------------------------------------------------------------------

def _run_google_auth() -> None:
    """Interactive OAuth2 flow for Google Calendar. Run once to obtain a token."""
    from .auth import AuthSession

    settings = load_settings(SETTINGS_PATH)
    auth = AuthSession(settings, SETTINGS_PATH)
    try:
        auth.authorize()
    except (ConfigurationError, CredentialError) as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    print(f"Token saved to {SETTINGS_PATH}", file=sys.stderr)
    print("Google Calendar authentication complete.", file=sys.stderr)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Entry point for console script and python -m."""
    if "--auth" in sys.argv:
        _run_google_auth()
        return

    session = _get_session()
    if session.gateway is None:
        logger.warning("Not authorized yet. Run: obsidian-calendar-sync --auth")
    logger.info("Vault: %s", session.settings.vault_path or ".")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
