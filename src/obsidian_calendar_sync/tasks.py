"""Task extraction from tagged notes."""

from __future__ import annotations

import logging

from .models import Task
from .vault import NoteStore

logger = logging.getLogger("obsidian-calendar-sync")


def fetch_tasks(store: NoteStore, tag: str) -> list[Task]:
    """Return every note whose cached ``tags`` list contains ``tag`` exactly.

    No folder scoping happens here.
    """
    tasks: list[Task] = []
    for note in store.list_notes():
        data = store.front_matter(note)
        if not data:
            continue
        tags = data.get("tags")
        if isinstance(tags, list) and tag in tags:
            tasks.append(Task(name=note.name, data=data, note=note))

    logger.debug("Found %d note(s) tagged '%s'", len(tasks), tag)
    return tasks
