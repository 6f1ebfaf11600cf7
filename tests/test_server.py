"""Tests for obsidian-calendar-sync server tools."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from obsidian_calendar_sync import server
from obsidian_calendar_sync.models import CalendarEvent

from .conftest import make_note

OPEN = "Tasks/ProjectA/OPEN"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_state():
    """Reset module-level state between tests."""
    server._session = None
    yield
    server._session = None


@pytest.fixture
def installed(session):
    server._session = session
    return session


# ---------------------------------------------------------------------------
# Tool tests: full_sync / quick_sync
# ---------------------------------------------------------------------------

class TestSyncTools:
    async def test_full_sync_success(self, installed, vault, gateway):
        vault.add(f"{OPEN}/a.md", make_note(tags='["task"]', due="2024-05-01"))
        result = await server.full_sync()
        assert result["success"] is True
        assert result["created"] == 1
        assert result["message"] == "Sync completed successfully."
        assert "errors" not in result

    async def test_full_sync_custom_tag(self, installed, vault, gateway):
        vault.add(f"{OPEN}/a.md", make_note(tags='["todo"]'))
        result = await server.full_sync(tag="todo")
        assert result["processed"] == 1

    async def test_sync_with_errors(self, installed, vault):
        vault.add(f"{OPEN}/a.md", make_note(tags='["task"]', due="someday"))
        result = await server.full_sync()
        assert result["success"] is False
        assert len(result["errors"]) == 1
        assert result["log_file"].endswith(".md")

    async def test_precondition_error_returned(self, installed):
        installed.gateway = None
        result = await server.quick_sync()
        assert "error" in result
        assert "authenticate" in result["error"]

    async def test_progress_forwarded_to_context(self, installed, vault, gateway):
        vault.add(f"{OPEN}/a.md", make_note(tags='["task"]'))
        vault.add(f"{OPEN}/b.md", make_note(tags='["task"]'))
        ctx = MagicMock()
        ctx.report_progress = AsyncMock()
        result = await server.full_sync(ctx=ctx)
        assert result["processed"] == 2
        assert [c.args for c in ctx.report_progress.await_args_list] == [(1, 2), (2, 2)]

    async def test_quick_sync_nothing_to_do(self, installed, vault):
        result = await server.quick_sync()
        assert result == {"error": "No tasks found to sync."}


# ---------------------------------------------------------------------------
# Tool tests: delete_all_events
# ---------------------------------------------------------------------------

class TestDeleteAllEvents:
    async def test_delete_all(self, installed, vault, gateway):
        gateway.events["E1"] = CalendarEvent(summary="x", start="2024-05-01", end="2024-05-01", all_day=True, id="E1")
        vault.add(f"{OPEN}/a.md", make_note(googleEventId="E1"))
        result = await server.delete_all_events()
        assert result == {"success": True, "total": 1, "deleted": 1, "notes_updated": 1}

    async def test_progress_forwarded_to_context(self, installed, gateway):
        gateway.events["E1"] = CalendarEvent(summary="x", start="2024-05-01", end="2024-05-01", all_day=True, id="E1")
        ctx = MagicMock()
        ctx.report_progress = AsyncMock()
        await server.delete_all_events(ctx=ctx)
        ctx.report_progress.assert_awaited_once_with(1, 1)

    async def test_not_authorized(self, installed):
        installed.gateway = None
        result = await server.delete_all_events()
        assert "error" in result


# ---------------------------------------------------------------------------
# Tool tests: list_folder_pairs / sync_status
# ---------------------------------------------------------------------------

class TestInfoTools:
    async def test_list_folder_pairs(self, installed):
        result = await server.list_folder_pairs()
        assert result["task_root"] == "Tasks"
        assert result["pairs"] == [{
            "parent": "Tasks/ProjectA",
            "search_path": "Tasks/ProjectA/OPEN",
            "done_path": "Tasks/ProjectA/DONE",
        }]

    async def test_sync_status(self, installed):
        installed.settings.last_sync_date = "2024-05-01T12:00:00.000Z"
        result = await server.sync_status()
        assert result["authorized"] is True
        assert result["last_sync_date"] == "2024-05-01T12:00:00.000Z"
        assert result["busy"] is False

    async def test_session_built_from_settings_file(self, tmp_path, monkeypatch):
        cfg = tmp_path / "settings.yaml"
        cfg.write_text(f"vaultPath: {tmp_path}\n", encoding="utf-8")
        monkeypatch.setattr(server, "SETTINGS_PATH", str(cfg))
        result = await server.sync_status()
        assert result["authorized"] is False
        assert result["vault_path"] == str(tmp_path)
        assert server._session.log_dir == str(tmp_path / "Logs")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_report_to_dict(self):
        from obsidian_calendar_sync.sync import SyncReport

        report = SyncReport(total=2, processed=2, created=1, errors=["boom"])
        d = server._report_to_dict(report)
        assert d["success"] is False
        assert d["errors"] == ["boom"]
        assert "log_file" not in d
