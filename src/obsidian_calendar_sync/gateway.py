"""Google Calendar event gateway."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from googleapiclient.errors import HttpError

from .auth import AuthSession
from .exceptions import RemoteNotFound, RemoteTransportError
from .models import CalendarEvent

logger = logging.getLogger("obsidian-calendar-sync")

# Provider's single-page maximum; no pagination, so one pass sees at most this many.
MAX_LIST_RESULTS = 2500


class EventGateway:
    """Single-event operations against one calendar, credential refreshed first."""

    def __init__(self, auth: AuthSession, calendar_id: str = "primary", service: Any = None):
        self._auth = auth
        self._calendar_id = calendar_id
        self._service = service  # Lazy init

    def _get_service(self):
        if self._service is not None:
            return self._service

        from googleapiclient.discovery import build

        self._service = build("calendar", "v3", credentials=self._auth.credentials, cache_discovery=False)
        logger.info("Google Calendar connected (calendar_id=%s)", self._calendar_id)
        return self._service

    def refresh_credentials(self) -> bool:
        return self._auth.ensure_fresh()

    def _execute(self, request, event_id: str | None = None):
        try:
            return request.execute()
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            if event_id is not None and status in (404, 410):
                raise RemoteNotFound(event_id) from e
            raise RemoteTransportError(f"Calendar API error {status}: {e}") from e

    def _get_sync(self, event_id: str) -> CalendarEvent:
        self.refresh_credentials()
        events = self._get_service().events()
        item = self._execute(events.get(calendarId=self._calendar_id, eventId=event_id), event_id)
        # Deleted events stay readable for a while with status "cancelled".
        if item.get("status") == "cancelled":
            raise RemoteNotFound(event_id)
        return CalendarEvent.from_body(item)

    def _insert_sync(self, event: CalendarEvent) -> str:
        self.refresh_credentials()
        events = self._get_service().events()
        result = self._execute(events.insert(calendarId=self._calendar_id, body=event.to_body()))
        logger.info("Event created: %s (%s)", event.summary, result["id"])
        return result["id"]

    def _update_sync(self, event_id: str, event: CalendarEvent) -> None:
        self.refresh_credentials()
        events = self._get_service().events()
        self._execute(
            events.update(calendarId=self._calendar_id, eventId=event_id, body=event.to_body()),
            event_id,
        )
        logger.info("Event updated: %s (%s)", event.summary, event_id)

    def _delete_sync(self, event_id: str) -> None:
        self.refresh_credentials()
        events = self._get_service().events()
        self._execute(events.delete(calendarId=self._calendar_id, eventId=event_id), event_id)
        logger.info("Event deleted: %s", event_id)

    def _list_all_sync(self) -> list[CalendarEvent]:
        self.refresh_credentials()
        events = self._get_service().events()
        result = self._execute(events.list(calendarId=self._calendar_id, maxResults=MAX_LIST_RESULTS))
        if result.get("nextPageToken"):
            logger.warning(
                "Calendar holds more than %d events; only the first page is processed",
                MAX_LIST_RESULTS,
            )
        return [CalendarEvent.from_body(item) for item in result.get("items", [])]

    async def get(self, event_id: str) -> CalendarEvent:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._get_sync, event_id)

    async def insert(self, event: CalendarEvent) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._insert_sync, event)

    async def update(self, event_id: str, event: CalendarEvent) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._update_sync, event_id, event)

    async def delete(self, event_id: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._delete_sync, event_id)

    async def list_all(self) -> list[CalendarEvent]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._list_all_sync)
