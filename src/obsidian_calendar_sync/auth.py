"""Google OAuth2 credential owned by one session."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from .config import Settings, save_settings
from .crypto import TokenCipher
from .exceptions import ConfigurationError, CredentialError

logger = logging.getLogger("obsidian-calendar-sync")

SCOPES = ["https://www.googleapis.com/auth/calendar"]
REFRESH_BUFFER = timedelta(minutes=5)


class AuthSession:
    """Holds the decrypted credential and keeps its encrypted copy in settings."""

    def __init__(
        self,
        settings: Settings,
        settings_path: str | None = None,
        cipher: TokenCipher | None = None,
    ):
        self.settings = settings
        self.settings_path = settings_path
        self.cipher = cipher or TokenCipher()
        self.credentials: Credentials | None = None
        self._authorizing = False

    @property
    def authorized(self) -> bool:
        return self.credentials is not None

    def load(self) -> bool:
        """Build the credential from the encrypted token in settings."""
        blob = self.settings.enc_token_data
        if not blob:
            logger.debug("No stored token data")
            return False
        try:
            info = json.loads(self.cipher.decrypt(blob))
            self.credentials = Credentials.from_authorized_user_info(info, SCOPES)
        except (CredentialError, ValueError) as e:
            logger.error("Invalid or corrupted token data, re-authenticate: %s", e)
            self.credentials = None
            return False
        logger.debug("Token data loaded")
        return True

    def _store(self, creds: Credentials) -> None:
        self.settings.enc_token_data = self.cipher.encrypt(creds.to_json())
        save_settings(self.settings, self.settings_path)

    def ensure_fresh(self, now: datetime | None = None) -> bool:
        """Refresh the access token unless it is valid for more than 5 minutes.

        Never raises: a credential that cannot be refreshed is logged and left
        as is, and the remote calls made with it fail on their own.
        """
        creds = self.credentials
        if creds is None:
            logger.warning("OAuth2 client not initialized, cannot refresh token")
            return False

        # google-auth keeps expiry as naive UTC.
        now = now or datetime.now(timezone.utc).replace(tzinfo=None)
        if creds.expiry is not None and creds.expiry - now > REFRESH_BUFFER:
            logger.debug("Access token still valid, no refresh required")
            return True

        if not creds.refresh_token:
            logger.error("No refresh token available, re-authenticate")
            return False

        try:
            creds.refresh(Request())
        except (RefreshError, TransportError) as e:
            logger.error("Failed to refresh access token: %s", e)
            return False

        self._store(creds)
        logger.info("Access token refreshed")
        return True

    def authorize(self) -> Credentials:
        """Run the authorization-code flow once and persist the token.

        The redirect is captured by a listener on an ephemeral localhost port
        that serves exactly one request.
        """
        if self._authorizing:
            raise CredentialError("An authorization attempt is already running")
        if not self.settings.client_id or not self.settings.client_secret:
            raise ConfigurationError("clientId and clientSecret must be set before authenticating")

        from google_auth_oauthlib.flow import InstalledAppFlow

        client_config = {
            "installed": {
                "client_id": self.settings.client_id,
                "client_secret": self.settings.client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": ["http://localhost"],
            }
        }

        self._authorizing = True
        try:
            flow = InstalledAppFlow.from_client_config(client_config, SCOPES)
            creds = flow.run_local_server(port=0, access_type="offline", prompt="consent")
        finally:
            self._authorizing = False

        self.credentials = creds
        self._store(creds)
        logger.info("Google Calendar API authorized and token saved")
        return creds
