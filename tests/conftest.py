"""Shared fakes for the sync engine tests."""

from __future__ import annotations

import posixpath
import textwrap
from typing import Any

import pytest

from obsidian_calendar_sync import frontmatter
from obsidian_calendar_sync.config import FieldMappings, Settings
from obsidian_calendar_sync.exceptions import RemoteNotFound
from obsidian_calendar_sync.models import CalendarEvent
from obsidian_calendar_sync.session import SyncSession
from obsidian_calendar_sync.vault import Folder, Note, normalize


class InMemoryVault:
    """NoteStore keeping notes in a dict: path -> [content, ctime, mtime]."""

    def __init__(self):
        self.notes: dict[str, list[Any]] = {}
        self.folders: set[str] = set()
        self.fail_moves = False

    def add(self, path: str, content: str, ctime: float = 1000.0, mtime: float = 1000.0) -> Note:
        self.notes[path] = [content, ctime, mtime]
        self.add_folder(posixpath.dirname(path))
        return self._note(path)

    def add_folder(self, path: str) -> None:
        while path:
            self.folders.add(path)
            path = posixpath.dirname(path)

    def content(self, path: str) -> str:
        return self.notes[path][0]

    def _note(self, path: str) -> Note:
        _, ctime, mtime = self.notes[path]
        return Note(path=path, ctime=ctime, mtime=mtime)

    def list_notes(self) -> list[Note]:
        return [self._note(p) for p in sorted(self.notes)]

    def front_matter(self, note: Note) -> dict[str, Any] | None:
        block, _ = frontmatter.split(self.notes[note.path][0])
        return frontmatter.parse(block) if block is not None else None

    def read(self, note: Note) -> str:
        return self.notes[note.path][0]

    def write(self, note: Note, content: str) -> None:
        self.notes[note.path][0] = content

    def move(self, note: Note, folder_path: str) -> Note:
        if self.fail_moves:
            raise PermissionError(f"cannot move {note.path}")
        self.add_folder(folder_path)
        target = posixpath.join(folder_path, note.filename)
        if target in self.notes:
            raise FileExistsError(target)
        self.notes[target] = self.notes.pop(note.path)
        return self._note(target)

    def get_folder(self, path: str) -> Folder | None:
        path = normalize(path)
        if path and path not in self.folders:
            return None
        return Folder(path=path)

    def list_children(self, folder: Folder):
        prefix = folder.path + "/" if folder.path else ""
        children = []
        for path in sorted(self.folders):
            if path.startswith(prefix) and "/" not in path[len(prefix):]:
                children.append(Folder(path=path))
        for path in sorted(self.notes):
            if path.startswith(prefix) and "/" not in path[len(prefix):]:
                children.append(self._note(path))
        return children


class FakeGateway:
    """EventGateway stand-in keeping events in a dict."""

    def __init__(self):
        self.events: dict[str, CalendarEvent] = {}
        self.calls: list[tuple[str, str | None]] = []
        self.fail_ids: set[str] = set()
        self._next = 1

    def refresh_credentials(self) -> bool:
        self.calls.append(("refresh", None))
        return True

    async def get(self, event_id: str) -> CalendarEvent:
        self.calls.append(("get", event_id))
        if event_id not in self.events:
            raise RemoteNotFound(event_id)
        return self.events[event_id]

    async def insert(self, event: CalendarEvent) -> str:
        event_id = f"E{self._next}"
        self._next += 1
        self.calls.append(("insert", event_id))
        event.id = event_id
        self.events[event_id] = event
        return event_id

    async def update(self, event_id: str, event: CalendarEvent) -> None:
        self.calls.append(("update", event_id))
        self.events[event_id] = event

    async def delete(self, event_id: str) -> None:
        self.calls.append(("delete", event_id))
        if event_id in self.fail_ids:
            raise RuntimeError(f"boom {event_id}")
        if event_id not in self.events:
            raise RemoteNotFound(event_id)
        del self.events[event_id]

    async def list_all(self) -> list[CalendarEvent]:
        self.calls.append(("list", None))
        return list(self.events.values())

    def remote_calls(self) -> list[tuple[str, str | None]]:
        return [c for c in self.calls if c[0] != "refresh"]


def make_note(body: str = "Task body", **fields: str) -> str:
    """Note content with an attribute block built from ``fields``."""
    lines = "\n".join(f"{k}: {v}" for k, v in fields.items())
    return f"---\n{lines}\n---\n\n{textwrap.dedent(body).strip()}"


def read_attributes(content: str) -> dict:
    block, _ = frontmatter.split(content)
    return frontmatter.parse(block)


@pytest.fixture
def vault() -> InMemoryVault:
    store = InMemoryVault()
    store.add_folder("Tasks/ProjectA/OPEN")
    store.add_folder("Tasks/ProjectA/DONE")
    return store


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        field_mappings=FieldMappings(status="status", location="location"),
        delete_status="🟢 DONE",
    )


@pytest.fixture
def session(settings, vault, gateway, tmp_path) -> SyncSession:
    notices: list[str] = []
    s = SyncSession(
        settings,
        vault,
        gateway=gateway,
        settings_path=str(tmp_path / "settings.yaml"),
        log_dir=str(tmp_path / "Logs"),
        notify=notices.append,
    )
    s.notices = notices
    return s
