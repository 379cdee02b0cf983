"""Two-phase provider bootstrap and OAuth token lifecycle."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any

from lifeos_ingestor.config.settings import LifeOSIngestorSettings
from lifeos_ingestor.core.exceptions import (
    AuthError,
    FetchError,
    InitializationError,
    LoginInProgressError,
)
from lifeos_ingestor.core.google_client import GoogleApiClient
from lifeos_ingestor.core.identity import CONSENT_DISMISSED_REASONS, GoogleIdentityClient
from lifeos_ingestor.core.models import AuthSession, AuthState

logger = logging.getLogger(__name__)

_INITIALIZED_STATES = frozenset(
    {AuthState.READY, AuthState.AUTHORIZATION_PENDING, AuthState.AUTHENTICATED, AuthState.REVOKED}
)


class AuthSessionManager:
    """Owns the AuthSession and is its only writer.

    Bootstrap waits for both provider libraries, then runs their handshakes
    concurrently; whichever finishes last moves the session to READY. Library
    detection is bounded: it backs off exponentially and gives up after
    ``poll_timeout`` seconds, leaving the session in INIT_FAILED instead of
    polling forever.
    """

    def __init__(
        self,
        api_client: GoogleApiClient,
        identity: GoogleIdentityClient,
        *,
        poll_interval: float = 0.1,
        poll_max_interval: float = 2.0,
        poll_timeout: float = 10.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api = api_client
        self._identity = identity
        self._poll_interval = poll_interval
        self._poll_max_interval = poll_max_interval
        self._poll_timeout = poll_timeout
        self._sleep = sleep
        self._clock = clock
        self._session = AuthSession()
        self._init_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(
        cls, settings: LifeOSIngestorSettings, api_client: GoogleApiClient
    ) -> AuthSessionManager:
        identity = GoogleIdentityClient(
            settings.client_secret,
            port=settings.consent_port,
            consent_timeout_seconds=settings.consent_timeout_seconds,
            open_browser=settings.open_browser,
        )
        return cls(
            api_client,
            identity,
            poll_interval=settings.library_poll_interval_seconds,
            poll_max_interval=settings.library_poll_max_interval_seconds,
            poll_timeout=settings.library_poll_timeout_seconds,
        )

    @property
    def session(self) -> AuthSession:
        return self._session

    @property
    def state(self) -> AuthState:
        return self._session.state

    @property
    def credential(self) -> Any:
        return self._session.token

    def _transition(self, **changes: Any) -> None:
        previous = self._session.state
        self._session = replace(self._session, **changes)
        if self._session.state is not previous:
            logger.debug("Auth state %s -> %s", previous.value, self._session.state.value)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def initialize(self, client_id: str) -> None:
        """Load both provider libraries and register the token requester.

        Never raises. An empty ``client_id`` leaves the session UNINITIALIZED,
        and a failed half leaves only that half unready; check ``session``
        rather than assuming the call made the session usable.
        """
        if self._session.state in _INITIALIZED_STATES:
            return

        if not client_id:
            logger.warning("Google client ID is missing. Auth will not work.")
            return

        if self._init_task is None or self._init_task.done():
            self._init_task = asyncio.ensure_future(self._bootstrap(client_id))
        await asyncio.shield(self._init_task)

    async def _bootstrap(self, client_id: str) -> None:
        self._transition(state=AuthState.LIBRARIES_LOADING, client_id=client_id, init_error=None)

        try:
            await self._wait_for_libraries(client_id)
        except InitializationError as e:
            logger.error("Provider libraries unavailable: %s", e)
            self._transition(state=AuthState.INIT_FAILED, init_error=str(e))
            return

        await asyncio.gather(self._init_api(), self._init_identity(client_id))

        if not (self._session.api_ready or self._session.identity_ready):
            self._transition(state=AuthState.INIT_FAILED)

    async def _wait_for_libraries(self, client_id: str) -> None:
        deadline = self._clock() + self._poll_timeout
        interval = self._poll_interval

        while True:
            missing = []
            if not self._api.is_available():
                missing.append(self._api.name)
            if not self._identity.is_available(client_id):
                missing.append(self._identity.name)
            if not missing:
                return

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise InitializationError(
                    f"Libraries not available after {self._poll_timeout:.1f}s: "
                    f"{', '.join(missing)}"
                )
            logger.debug("Waiting %.2fs for %s", min(interval, remaining), ", ".join(missing))
            await self._sleep(min(interval, remaining))
            interval = min(interval * 2, self._poll_max_interval)

    async def _init_api(self) -> None:
        if self._session.api_ready:
            return
        try:
            await self._api.handshake()
        except Exception as e:
            # Startup must not block on a failed half; calls fail later with FetchError.
            logger.error("API client init error: %s", e)
            self._transition(init_error=str(e))
            return
        self._mark_ready(api_ready=True)

    async def _init_identity(self, client_id: str) -> None:
        if self._session.identity_ready:
            return
        try:
            await self._identity.handshake(client_id)
        except Exception as e:
            logger.error("Identity client init error: %s", e)
            self._transition(init_error=str(e))
            return
        self._mark_ready(identity_ready=True)

    def _mark_ready(self, **flags: bool) -> None:
        pending = replace(self._session, **flags)
        if pending.is_ready:
            state = AuthState.READY
        elif pending.api_ready:
            state = AuthState.GAPI_READY
        else:
            state = AuthState.GIS_READY
        self._transition(state=state, **flags)

    # ------------------------------------------------------------------
    # Token lifecycle
    # ------------------------------------------------------------------

    async def request_login(self) -> bool:
        """Run the interactive consent flow.

        Returns:
            True once authenticated, False if the user dismissed the consent
            window (the session is unchanged and the call may be retried).

        Raises:
            LoginInProgressError: If another login is still awaiting consent.
            AuthError: If the session is not ready or consent failed.
        """
        session = self._session
        if session.state is AuthState.AUTHORIZATION_PENDING:
            raise LoginInProgressError("A login flow is already awaiting consent")
        if not session.is_ready:
            raise AuthError("Identity client not initialized. Check client ID and network.")

        previous = session.state
        self._transition(state=AuthState.AUTHORIZATION_PENDING)
        try:
            credentials = await self._identity.request_access_token(prompt="consent")
            self._api.set_token(credentials)
        except AuthError as e:
            self._transition(state=previous)
            if e.reason in CONSENT_DISMISSED_REASONS:
                logger.info("Consent dismissed by user")
                return False
            logger.error("Login failed: %s", e)
            raise
        except FetchError as e:
            self._transition(state=previous)
            raise AuthError(f"Login failed: {e}") from e
        except BaseException:
            self._transition(state=previous)
            raise

        self._transition(state=AuthState.AUTHENTICATED, token=credentials)
        logger.info("Login successful")
        return True

    async def logout(self) -> None:
        """Revoke the current credential and clear it. No-op without a credential."""
        token = self._session.token
        if token is None:
            return
        try:
            await self._identity.revoke(token)
        except AuthError as e:
            logger.warning("Token revocation failed, clearing locally: %s", e)
        self._api.set_token(None)
        self._transition(state=AuthState.REVOKED, token=None)
        logger.info("Token revoked")

    def close(self) -> None:
        """Release the identity client's HTTP session. The credential is kept."""
        self._identity.close()

    async def refresh_if_expired(self) -> bool:
        """Refresh an expired credential.

        Returns:
            True if the credential was refreshed. When the credential cannot be
            refreshed it is dropped and the session goes back to READY.
        """
        credentials = self._session.token
        if credentials is None or not getattr(credentials, "expired", False):
            return False

        if not getattr(credentials, "refresh_token", None):
            logger.warning("Access token expired and cannot be refreshed, consent required")
            self._drop_credential()
            return False

        try:
            await self._identity.refresh(credentials)
        except AuthError as e:
            logger.warning("Token refresh failed, consent required: %s", e)
            self._drop_credential()
            return False

        self._api.set_token(credentials)
        logger.info("Access token refreshed")
        return True

    def _drop_credential(self) -> None:
        self._api.set_token(None)
        self._transition(state=AuthState.READY, token=None)
