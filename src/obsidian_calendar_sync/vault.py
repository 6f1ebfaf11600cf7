"""Note store: the host vault operations the sync engine relies on."""

from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass
from typing import Any, Protocol, Union, runtime_checkable

from . import frontmatter

logger = logging.getLogger("obsidian-calendar-sync")

SKIP_DIRS = {".obsidian", ".trash", ".git", "node_modules"}


@dataclass(frozen=True)
class Note:
    """Handle to one markdown note, captured at scan time."""

    path: str  # vault-relative, POSIX separators
    ctime: float
    mtime: float

    @property
    def name(self) -> str:
        """Base file name without extension."""
        return posixpath.splitext(posixpath.basename(self.path))[0]

    @property
    def filename(self) -> str:
        return posixpath.basename(self.path)


@dataclass(frozen=True)
class Folder:
    path: str  # vault-relative; "" is the vault root

    @property
    def name(self) -> str:
        return posixpath.basename(self.path)


@runtime_checkable
class NoteStore(Protocol):
    """Operations consumed from the host note store."""

    def list_notes(self) -> list[Note]: ...

    def front_matter(self, note: Note) -> dict[str, Any] | None: ...

    def read(self, note: Note) -> str: ...

    def write(self, note: Note, content: str) -> None: ...

    def move(self, note: Note, folder_path: str) -> Note: ...

    def get_folder(self, path: str) -> Folder | None: ...

    def list_children(self, folder: Folder) -> list[Union[Note, Folder]]: ...


def normalize(path: str) -> str:
    """Vault-relative POSIX path without leading/trailing slashes."""
    path = path.replace("\\", "/").strip().strip("/")
    if not path:
        return ""
    path = posixpath.normpath(path)
    return "" if path == "." else path


class FileSystemVault:
    """A vault backed by a directory of markdown files."""

    def __init__(self, root: str):
        self.root = os.path.abspath(os.path.expanduser(root))
        # path -> (mtime, parsed attribute block)
        self._cache: dict[str, tuple[float, dict[str, Any] | None]] = {}

    def _abs(self, path: str) -> str:
        rel = normalize(path)
        return os.path.join(self.root, *rel.split("/")) if rel else self.root

    def _note(self, rel_path: str) -> Note:
        st = os.stat(self._abs(rel_path))
        ctime = getattr(st, "st_birthtime", st.st_ctime)
        return Note(path=rel_path, ctime=ctime, mtime=st.st_mtime)

    def list_notes(self) -> list[Note]:
        notes = []
        for dirpath, dirs, files in os.walk(self.root):
            dirs[:] = sorted(d for d in dirs if d not in SKIP_DIRS and not d.startswith("."))
            rel_dir = os.path.relpath(dirpath, self.root)
            rel_dir = "" if rel_dir == "." else rel_dir.replace(os.sep, "/")
            for name in sorted(files):
                if name.endswith(".md"):
                    notes.append(self._note(posixpath.join(rel_dir, name) if rel_dir else name))
        return notes

    def front_matter(self, note: Note) -> dict[str, Any] | None:
        """Cached attribute block; re-parsed only when the file changed."""
        try:
            mtime = os.stat(self._abs(note.path)).st_mtime
        except FileNotFoundError:
            self._cache.pop(note.path, None)
            return None
        cached = self._cache.get(note.path)
        if cached is None or cached[0] != mtime:
            block, _ = frontmatter.split(self.read(note))
            data = frontmatter.parse(block) if block is not None else None
            cached = (mtime, data)
            self._cache[note.path] = cached
        return dict(cached[1]) if cached[1] is not None else None

    def read(self, note: Note) -> str:
        with open(self._abs(note.path), "r", encoding="utf-8") as f:
            return f.read()

    def write(self, note: Note, content: str) -> None:
        with open(self._abs(note.path), "w", encoding="utf-8") as f:
            f.write(content)
        self._cache.pop(note.path, None)

    def move(self, note: Note, folder_path: str) -> Note:
        """Move ``note`` into ``folder_path``, creating the folder if absent."""
        target_dir = self._abs(folder_path)
        os.makedirs(target_dir, exist_ok=True)
        target = os.path.join(target_dir, note.filename)
        if os.path.exists(target):
            raise FileExistsError(f"Destination already exists: {target}")
        os.rename(self._abs(note.path), target)
        self._cache.pop(note.path, None)
        new_path = posixpath.join(normalize(folder_path), note.filename).lstrip("/")
        logger.debug("Moved '%s' to '%s'", note.path, new_path)
        return self._note(new_path)

    def get_folder(self, path: str) -> Folder | None:
        if not os.path.isdir(self._abs(path)):
            return None
        return Folder(path=normalize(path))

    def list_children(self, folder: Folder) -> list[Union[Note, Folder]]:
        children: list[Union[Note, Folder]] = []
        base = self._abs(folder.path)
        for name in sorted(os.listdir(base)):
            rel = posixpath.join(folder.path, name) if folder.path else name
            if os.path.isdir(os.path.join(base, name)):
                if name not in SKIP_DIRS and not name.startswith("."):
                    children.append(Folder(path=rel))
            elif name.endswith(".md"):
                children.append(self._note(rel))
        return children
