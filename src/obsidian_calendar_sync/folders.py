"""Discovery of paired open/done task folders."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass

from .vault import Folder, NoteStore, normalize

logger = logging.getLogger("obsidian-calendar-sync")


@dataclass(frozen=True)
class FolderPair:
    """An open folder and its sibling done folder under the same parent."""

    parent: str
    search_path: str
    done_path: str

    def contains(self, path: str) -> bool:
        """True if ``path`` lies inside the search folder (whole segments)."""
        prefix = self.search_path + "/" if self.search_path else ""
        return path.startswith(prefix)


def find_folder_pairs(
    store: NoteStore, root: str, search_label: str, done_label: str
) -> dict[str, FolderPair]:
    """Walk the tree under ``root`` and pair sibling search/done folders.

    Returns parent path -> FolderPair. Parents where only one side was found
    are dropped. A missing root, or a root that is not a folder, gives ``{}``.
    """
    start = store.get_folder(normalize(root))
    if start is None:
        logger.debug("Task root folder '%s' not found", root)
        return {}

    found: dict[str, dict[str, str]] = {}

    def visit(folder: Folder) -> None:
        parent = posixpath.dirname(folder.path)
        if folder.name == search_label:
            found.setdefault(parent, {})["search"] = folder.path
        elif folder.name == done_label:
            found.setdefault(parent, {})["done"] = folder.path
        for child in store.list_children(folder):
            if isinstance(child, Folder):
                visit(child)

    visit(start)

    pairs = {
        parent: FolderPair(parent=parent, search_path=sides["search"], done_path=sides["done"])
        for parent, sides in found.items()
        if "search" in sides and "done" in sides
    }
    logger.debug("Found %d folder pair(s) under '%s'", len(pairs), root)
    return pairs


def pair_for(pairs: dict[str, FolderPair], path: str) -> FolderPair | None:
    """The pair whose search folder holds ``path``; deepest wins when nested."""
    best: FolderPair | None = None
    for pair in pairs.values():
        if pair.contains(path) and (best is None or len(pair.search_path) > len(best.search_path)):
            best = pair
    return best
