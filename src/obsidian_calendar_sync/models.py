"""Task and calendar event records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .folders import FolderPair
from .frontmatter import EVENT_ID_KEY
from .vault import Note

# Body keys owned by CalendarEvent fields; everything else lands in ``extra``.
_KNOWN_KEYS = {
    "id", "summary", "start", "end", "description", "location",
    "attendees", "colorId", "reminders", "recurrence", "visibility",
}


@dataclass
class CalendarEvent:
    """Calendar event in the provider's schema.

    ``start``/``end`` are ISO dates when ``all_day`` is set, ISO instants
    otherwise. Optional fields left as None are omitted from the body.
    """

    summary: str
    start: str
    end: str
    all_day: bool = False
    id: str | None = None
    description: str | None = None
    location: str | None = None
    attendees: list[Any] | None = None
    color_id: str | None = None
    reminders: dict[str, Any] | None = None
    recurrence: list[str] | None = None
    visibility: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_body(self) -> dict[str, Any]:
        time_key = "date" if self.all_day else "dateTime"
        body: dict[str, Any] = dict(self.extra)
        body["summary"] = self.summary
        body["start"] = {time_key: self.start}
        body["end"] = {time_key: self.end}
        optional = {
            "id": self.id,
            "description": self.description,
            "location": self.location,
            "attendees": self.attendees,
            "colorId": self.color_id,
            "reminders": self.reminders,
            "recurrence": self.recurrence,
            "visibility": self.visibility,
        }
        body.update({k: v for k, v in optional.items() if v is not None})
        return body

    @classmethod
    def from_body(cls, item: dict[str, Any]) -> CalendarEvent:
        start_raw = item.get("start", {})
        end_raw = item.get("end", {})
        # All-day events use 'date', timed events use 'dateTime'
        all_day = "date" in start_raw and "dateTime" not in start_raw
        time_key = "date" if all_day else "dateTime"
        return cls(
            id=item.get("id"),
            summary=item.get("summary", ""),
            start=start_raw.get(time_key, ""),
            end=end_raw.get(time_key, start_raw.get(time_key, "")),
            all_day=all_day,
            description=item.get("description"),
            location=item.get("location"),
            attendees=item.get("attendees"),
            color_id=item.get("colorId"),
            reminders=item.get("reminders"),
            recurrence=item.get("recurrence"),
            visibility=item.get("visibility"),
            extra={k: v for k, v in item.items() if k not in _KNOWN_KEYS},
        )


@dataclass
class Task:
    """Projection of one tagged note, valid for a single pass.

    ``data`` is a working copy of the attribute block; changes are lost unless
    written back to the note.
    """

    name: str
    data: dict[str, Any]
    note: Note
    pair: FolderPair | None = None

    @property
    def event_id(self) -> str | None:
        value = self.data.get(EVENT_ID_KEY)
        if value is None or str(value).strip() == "":
            return None
        return str(value).strip()

    def clear_event_id(self) -> None:
        self.data.pop(EVENT_ID_KEY, None)

    def set_event_id(self, event_id: str) -> None:
        self.data[EVENT_ID_KEY] = event_id
