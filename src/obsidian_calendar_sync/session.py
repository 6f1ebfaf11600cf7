"""Per-process sync state passed to every engine operation."""

from __future__ import annotations

import inspect
import logging
import os
from contextlib import contextmanager
from typing import Awaitable, Callable, Iterator, Optional

from .auth import AuthSession
from .config import Settings, save_settings
from .exceptions import SyncInProgressError
from .gateway import EventGateway
from .vault import FileSystemVault, NoteStore

logger = logging.getLogger("obsidian-calendar-sync")

# Called with (done, total); may return an awaitable.
ProgressCallback = Callable[[int, int], Optional[Awaitable[None]]]


async def report_progress(callback: ProgressCallback | None, done: int, total: int) -> None:
    if callback is None:
        return
    result = callback(done, total)
    if inspect.isawaitable(result):
        await result


def _log_notice(message: str) -> None:
    logger.info(message)


class SyncSession:
    """Settings, note store, gateway and the at-most-one-pass latch."""

    def __init__(
        self,
        settings: Settings,
        store: NoteStore,
        gateway: EventGateway | None = None,
        settings_path: str | None = None,
        log_dir: str | None = None,
        notify: Callable[[str], None] | None = None,
    ):
        self.settings = settings
        self.store = store
        self.gateway = gateway
        self.settings_path = settings_path
        self.log_dir = log_dir
        self.notify = notify or _log_notice
        self._busy = False

    @classmethod
    def from_settings(cls, settings: Settings, settings_path: str | None = None) -> SyncSession:
        """Wire a filesystem vault and, when a token is stored, a gateway."""
        store = FileSystemVault(settings.vault_path or ".")
        auth = AuthSession(settings, settings_path)
        gateway = EventGateway(auth) if auth.load() else None
        log_dir = os.path.join(store.root, settings.log_file_path or "Logs")
        return cls(settings, store, gateway=gateway, settings_path=settings_path, log_dir=log_dir)

    def save_settings(self) -> None:
        save_settings(self.settings, self.settings_path)

    @property
    def busy(self) -> bool:
        return self._busy

    @contextmanager
    def exclusive(self, operation: str) -> Iterator[None]:
        """Reject overlapping passes; the latch is released on exit."""
        if self._busy:
            raise SyncInProgressError(f"Cannot start {operation}: another pass is still running")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False
