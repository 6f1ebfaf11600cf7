"""Attribute block (front-matter) parsing and serialization.

A note's attribute block is delimited by a first line of exactly ``---`` and
the next line of exactly ``---``. Everything after the closing delimiter is
the note body.

Serialization writes one ``key: value`` line per top-level key without any
quoting, so values containing newlines or a bare ``---`` line corrupt the
block. That limitation is kept on purpose: notes written by other tools use
the same convention.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import yaml

logger = logging.getLogger("obsidian-calendar-sync")

DELIMITER = "---"
EVENT_ID_KEY = "googleEventId"


class _RawLoader(yaml.SafeLoader):
    """SafeLoader that leaves dates and timestamps as the literal text."""


_RawLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def split(content: str) -> tuple[str | None, str]:
    """Split note content into (attribute block text, body).

    Returns ``(None, content)`` when the note has no complete block.
    """
    lines = content.split("\n")
    if not lines or lines[0].rstrip("\r") != DELIMITER:
        return None, content
    for idx in range(1, len(lines)):
        if lines[idx].rstrip("\r") == DELIMITER:
            return "\n".join(lines[1:idx]), "\n".join(lines[idx + 1:])
    return None, content


def parse(block: str | None) -> dict[str, Any]:
    """Parse attribute block text into a mapping; malformed blocks read as empty."""
    if not block or not block.strip():
        return {}
    try:
        data = yaml.load(block, Loader=_RawLoader)
    except yaml.YAMLError as e:
        logger.warning("Malformed attribute block ignored: %s", e)
        return {}
    return data if isinstance(data, dict) else {}


def _render_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        # JSON flow text re-reads as the same structure.
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def render(data: dict[str, Any], body: str) -> str:
    """Build note content from attribute data and a body (body is trimmed)."""
    lines = [DELIMITER]
    lines.extend(f"{key}: {_render_value(value)}" for key, value in data.items())
    lines.append(DELIMITER)
    return "\n".join(lines) + "\n\n" + body.strip()


def replace(content: str, data: dict[str, Any]) -> str:
    """Rewrite the attribute block of ``content``, keeping its body."""
    _, body = split(content)
    return render(data, body)


def strip_event_id(content: str, event_id: str) -> str | None:
    """Drop the ``googleEventId: <event_id>`` line from the attribute block.

    Returns the new content, or None when the block holds no such line.
    """
    lines = content.split("\n")
    if not lines or lines[0].rstrip("\r") != DELIMITER:
        return None
    target = f"{EVENT_ID_KEY}: {event_id}"
    for end in range(1, len(lines)):
        if lines[end].rstrip("\r") == DELIMITER:
            break
    else:
        return None

    kept = [line for line in lines[1:end] if line.strip() != target]
    if len(kept) == end - 1:
        return None
    return "\n".join([lines[0], *kept, *lines[end:]])
