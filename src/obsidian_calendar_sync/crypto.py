"""Encryption of the stored OAuth token."""

from __future__ import annotations

import base64
import getpass
import hashlib
import logging
import sys

from cryptography.fernet import Fernet, InvalidToken

from .exceptions import CredentialError

logger = logging.getLogger("obsidian-calendar-sync")


def system_key() -> bytes:
    """Fernet key bound to the current user and platform."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        # No passwd entry (minimal containers).
        user = "unknown"
    source = f"{user}-{sys.platform}".encode("utf-8")
    return base64.urlsafe_b64encode(hashlib.sha256(source).digest())


class TokenCipher:
    """Opaque encrypt/decrypt capability for the token blob."""

    def __init__(self, key: bytes | None = None):
        self._fernet = Fernet(key or system_key())

    def encrypt(self, text: str) -> str:
        return self._fernet.encrypt(text.encode("utf-8")).decode("ascii")

    def decrypt(self, blob: str) -> str:
        try:
            return self._fernet.decrypt(blob.encode("ascii")).decode("utf-8")
        except (InvalidToken, ValueError) as e:
            raise CredentialError("Stored token cannot be decrypted; re-authenticate") from e
