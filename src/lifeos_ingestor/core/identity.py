"""OAuth 2.0 consent, revocation and refresh for the Google identity half."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import urlencode

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from lifeos_ingestor.core.exceptions import AuthError, InitializationError

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar.events.readonly",
    "https://www.googleapis.com/auth/gmail.readonly",
]

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
REVOKE_URI = "https://oauth2.googleapis.com/revoke"

POPUP_CLOSED = "popup_closed_by_user"
CONSENT_DISMISSED_REASONS = frozenset({POPUP_CLOSED, "popup_closed"})


def build_client_config(client_id: str, client_secret: str = "") -> dict[str, Any]:
    """Installed-app client configuration in the shape InstalledAppFlow expects."""
    return {
        "installed": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": ["http://localhost"],
        }
    }


class GoogleIdentityClient:
    """The identity/consent half of the bootstrap.

    ``handshake()`` registers a token requester for the client identifier;
    ``request_access_token()`` then runs the interactive consent flow.
    """

    name = "google-identity"

    def __init__(
        self,
        client_secret: str = "",
        *,
        port: int = 0,
        consent_timeout_seconds: float = 300.0,
        open_browser: bool = True,
        flow_factory: Callable[..., InstalledAppFlow] = InstalledAppFlow.from_client_config,
        clock: Callable[[], float] = time.monotonic,
        session: requests.Session | None = None,
    ) -> None:
        self._client_secret = client_secret
        self._port = port
        self._consent_timeout = consent_timeout_seconds
        self._open_browser = open_browser
        self._flow_factory = flow_factory
        self._clock = clock
        self._client_config: dict[str, Any] | None = None
        self._http_session = session or requests.Session()

    def is_available(self, client_id: str) -> bool:
        """True once a client identifier is present to register the token requester with."""
        return bool(client_id and client_id.strip())

    @property
    def is_registered(self) -> bool:
        return self._client_config is not None

    async def handshake(self, client_id: str) -> None:
        """Register the token requester for ``client_id``.

        Raises:
            InitializationError: If the client configuration is rejected.
        """
        client_config = build_client_config(client_id, self._client_secret)
        try:
            self._flow_factory(client_config, SCOPES)
        except ValueError as e:
            raise InitializationError(f"Invalid OAuth client configuration: {e}") from e
        self._client_config = client_config

    async def request_access_token(self, prompt: str = "consent") -> Credentials:
        """Run the consent flow and return fresh credentials.

        Raises:
            AuthError: ``reason`` is the provider error code, or
                ``popup_closed_by_user`` when the consent window was abandoned.
        """
        if self._client_config is None:
            raise AuthError("Identity client not initialized. Check client ID and network.")

        flow = self._flow_factory(self._client_config, SCOPES)
        started = self._clock()
        try:
            return await asyncio.to_thread(
                flow.run_local_server,
                port=self._port,
                prompt=prompt,
                open_browser=self._open_browser,
                timeout_seconds=self._consent_timeout,
            )
        except OAuth2Error as e:
            raise AuthError(f"Consent failed: {e.description or e.error}", reason=e.error) from e
        except Exception as e:
            if self._clock() - started >= self._consent_timeout:
                raise AuthError(
                    "Consent window closed before authorization completed", reason=POPUP_CLOSED
                ) from e
            raise AuthError(f"OAuth flow failed: {e}") from e

    async def revoke(self, credentials: Credentials) -> None:
        """Revoke the credential's access token with the provider."""
        await asyncio.to_thread(self._revoke_sync, credentials.token)

    async def refresh(self, credentials: Credentials) -> None:
        """Refresh an expired credential in place."""
        try:
            await asyncio.to_thread(credentials.refresh, Request(self._http_session))
        except GoogleAuthError as e:
            raise AuthError(f"Token refresh failed: {e}") from e

    def close(self) -> None:
        """Release the HTTP session used for revocation and refresh."""
        self._http_session.close()

    def _revoke_sync(self, token: str) -> None:
        request = Request(self._http_session)
        try:
            response = request(
                url=REVOKE_URI,
                method="POST",
                body=urlencode({"token": token}),
                headers={"content-type": "application/x-www-form-urlencoded"},
            )
        except GoogleAuthError as e:
            raise AuthError(f"Token revocation failed: {e}") from e
        if response.status != 200:
            raise AuthError(f"Token revocation failed with HTTP {response.status}")
