"""Front-matter -> calendar event mapping."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from dateutil.parser import parse as parse_dt

from .config import FieldMappings
from .exceptions import MappingError
from .frontmatter import EVENT_ID_KEY
from .models import CalendarEvent

DATE_ONLY_LENGTH = 10  # "YYYY-MM-DD"


def _is_set(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, dict)):
        return bool(value)
    return str(value).strip() != ""


def _raw(data: dict[str, Any], key: str | None) -> str:
    if key is None or not _is_set(data.get(key)):
        return ""
    return str(data[key])


def _parse_instant(role: str, raw: str) -> datetime:
    if not raw:
        return datetime.now(timezone.utc)
    try:
        parsed = parse_dt(raw)
    except (ValueError, OverflowError) as e:
        raise MappingError(role, f"invalid time value '{raw}'") from e
    if len(raw) == DATE_ONLY_LENGTH and parsed.tzinfo is None:
        # Bare dates are UTC midnight; other naive values are local time.
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _iso_instant(value: datetime) -> str:
    # Naive values are local wall-clock time.
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _structured(role: str, value: Any, expected: type) -> Any:
    """Decode a sub-document stored as JSON text in the attribute block."""
    if isinstance(value, (list, dict)):
        parsed = value
    else:
        try:
            parsed = json.loads(str(value))
        except json.JSONDecodeError as e:
            raise MappingError(role, f"cannot parse '{value}': {e.msg}") from e
    if not isinstance(parsed, expected):
        raise MappingError(role, f"expected a {expected.__name__}, got {type(parsed).__name__}")
    return parsed


def map_to_event(
    mappings: FieldMappings,
    data: dict[str, Any],
    note_name: str,
    body: str | None = None,
) -> CalendarEvent:
    """Build the calendar event for one task.

    Missing start/end default to now; unparseable ones raise MappingError.
    The event is all-day only when both raw values are bare dates. When
    ``body`` is given it replaces any mapped description.
    """
    start_raw = _raw(data, mappings.key_for("start"))
    end_raw = _raw(data, mappings.key_for("end"))
    start = _parse_instant("start", start_raw)
    end = _parse_instant("end", end_raw)

    all_day = len(start_raw) == DATE_ONLY_LENGTH and len(end_raw) == DATE_ONLY_LENGTH
    if all_day:
        event = CalendarEvent(
            summary="", start=start.date().isoformat(), end=end.date().isoformat(), all_day=True
        )
    else:
        event = CalendarEvent(summary="", start=_iso_instant(start), end=_iso_instant(end))

    event.summary = _raw(data, mappings.key_for("name")) or note_name

    def optional(role: str) -> Any:
        key = mappings.key_for(role)
        if key is None or not _is_set(data.get(key)):
            return None
        return data[key]

    for role in ("description", "location", "color_id", "visibility"):
        value = optional(role)
        if value is not None:
            setattr(event, role, str(value))

    attendees = optional("attendees")
    if attendees is not None:
        event.attendees = _structured("attendees", attendees, list)

    reminders = optional("reminders")
    if reminders is not None:
        event.reminders = _structured("reminders", reminders, dict)

    recurrence = optional("recurrence")
    if recurrence is not None:
        rules = recurrence if isinstance(recurrence, list) else str(recurrence).split(",")
        event.recurrence = [str(rule).strip() for rule in rules if str(rule).strip()]

    if body is not None:
        event.description = body.strip() or None

    if _is_set(data.get(EVENT_ID_KEY)):
        event.id = str(data[EVENT_ID_KEY]).strip()

    return event
