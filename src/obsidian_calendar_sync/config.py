"""YAML settings loading and persistence."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger("obsidian-calendar-sync")

SETTINGS_PATH = os.environ.get("TASK_SYNC_SETTINGS", "/config/task_sync.yaml")

# Semantic role -> persisted key name in the ``fieldMappings`` block.
ROLE_KEYS = {
    "start": "start",
    "end": "end",
    "name": "name",
    "description": "description",
    "location": "location",
    "status": "status",
    "attendees": "attendees",
    "color_id": "colorId",
    "reminders": "reminders",
    "recurrence": "recurrence",
    "visibility": "visibility",
}


@dataclass
class FieldMappings:
    """Which front-matter key holds each event role for this vault."""

    start: str = "due"
    end: str = "due"
    name: str = "name"
    description: str = ""
    location: str = ""
    status: str = ""
    attendees: str = ""
    color_id: str = ""
    reminders: str = ""
    recurrence: str = ""
    visibility: str = ""

    def key_for(self, role: str) -> str | None:
        """Return the mapped key for ``role``, or None when the role is unmapped."""
        key = getattr(self, role, "") or ""
        key = key.strip()
        return key or None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> FieldMappings:
        by_persisted = {v: k for k, v in ROLE_KEYS.items()}
        values: dict[str, str] = {}
        for key, value in raw.items():
            role = by_persisted.get(key)
            if role is None:
                raise ConfigurationError(f"fieldMappings: unknown role '{key}'")
            values[role] = "" if value is None else str(value)
        return cls(**values)

    def to_dict(self) -> dict[str, str]:
        return {ROLE_KEYS[f.name]: getattr(self, f.name) for f in fields(self)}


@dataclass
class Settings:
    """Engine settings, persisted as one YAML document."""

    vault_path: str = ""
    client_id: str = ""
    client_secret: str = ""
    field_mappings: FieldMappings = field(default_factory=FieldMappings)
    delete_status: str = "🟢 DONE"
    task_folder_path: str = "Tasks"
    search_folder_name: str = "OPEN"
    done_folder_name: str = "DONE"
    log_file_path: str = ""
    debug_mode: bool = False
    last_sync_date: str | None = None
    enc_token_data: str | None = None


# Python attribute -> persisted key.
_SETTINGS_KEYS = {
    "vault_path": "vaultPath",
    "client_id": "clientId",
    "client_secret": "clientSecret",
    "field_mappings": "fieldMappings",
    "delete_status": "deleteStatus",
    "task_folder_path": "taskFolderPath",
    "search_folder_name": "searchFolderName",
    "done_folder_name": "doneFolderName",
    "log_file_path": "logFilePath",
    "debug_mode": "debugMode",
    "last_sync_date": "lastSyncDate",
    "enc_token_data": "encTokenData",
}


def load_settings(path: str | None = None) -> Settings:
    """Load the settings file and merge it over the defaults.

    A missing or empty file yields the defaults.
    """
    path = path or SETTINGS_PATH
    if not os.path.isfile(path):
        logger.warning("Settings file not found: %s", path)
        return Settings()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if not raw:
        return Settings()
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")

    settings = Settings()
    for attr, key in _SETTINGS_KEYS.items():
        if key not in raw or raw[key] is None:
            continue
        value = raw[key]
        if attr == "field_mappings":
            if not isinstance(value, dict):
                raise ConfigurationError("fieldMappings must be a mapping of role to key")
            # Roles missing from the file keep their defaults.
            merged = FieldMappings().to_dict()
            merged.update(value)
            value = FieldMappings.from_dict(merged)
        elif attr == "debug_mode":
            value = bool(value)
        else:
            value = str(value)
        setattr(settings, attr, value)

    return settings


def save_settings(settings: Settings, path: str | None = None) -> None:
    """Write the whole settings object back to disk."""
    path = path or SETTINGS_PATH
    data: dict[str, Any] = {}
    for attr, key in _SETTINGS_KEYS.items():
        value = getattr(settings, attr)
        if attr == "field_mappings":
            value = value.to_dict()
        if value is None:
            continue
        data[key] = value

    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)
    logger.debug("Settings saved to %s", path)
