"""Google API client for Calendar and Gmail: discovery bootstrap and async calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import Resource, build_from_document
from googleapiclient.discovery_cache import get_static_doc
from googleapiclient.errors import HttpError
from googleapiclient.http import build_http

from lifeos_ingestor.core.exceptions import FetchError, InitializationError, RateLimitError

logger = logging.getLogger(__name__)

CALENDAR_API = ("calendar", "v3")
GMAIL_API = ("gmail", "v1")
DISCOVERY_APIS = (CALENDAR_API, GMAIL_API)


def _is_rate_limit_error(exc: Exception) -> bool:
    """Check whether an exception represents a Google API 429 rate limit."""
    if isinstance(exc, HttpError) and exc.status_code == 429:
        return True
    error_str = str(exc)
    return "429" in error_str or "rateLimitExceeded" in error_str


class GoogleApiClient:
    """The general API client half of the bootstrap.

    ``handshake()`` loads the bundled discovery documents for Calendar and
    Gmail. Services are only built once a credential is attached with
    ``set_token()``; before that every call fails with FetchError.
    """

    name = "google-api-client"

    def __init__(
        self,
        user_id: str = "me",
        *,
        num_retries: int = 0,
        doc_loader: Callable[[str, str], str | None] = get_static_doc,
    ) -> None:
        self._user_id = user_id
        self._num_retries = num_retries
        self._doc_loader = doc_loader
        self._documents: dict[str, str] = {}
        self._credentials: Any = None
        self._calendar: Resource | None = None
        self._gmail: Resource | None = None

    def is_available(self) -> bool:
        """True once every discovery document can be located."""
        return all(self._doc_loader(name, version) is not None for name, version in DISCOVERY_APIS)

    async def handshake(self) -> None:
        """Load the discovery documents the services are built from.

        Raises:
            InitializationError: If a document is missing.
        """
        documents: dict[str, str] = {}
        for name, version in DISCOVERY_APIS:
            doc = await asyncio.to_thread(self._doc_loader, name, version)
            if doc is None:
                raise InitializationError(f"Discovery document for {name} {version} not found")
            documents[name] = doc
        self._documents = documents
        logger.debug("Loaded discovery documents: %s", ", ".join(sorted(documents)))

    @property
    def has_token(self) -> bool:
        return self._calendar is not None and self._gmail is not None

    def set_token(self, credentials: Any) -> None:
        """Attach a credential to the Calendar and Gmail services, or detach with None."""
        if credentials is None:
            self._calendar = None
            self._gmail = None
            self._credentials = None
            return
        if not self._documents:
            raise FetchError("API client not initialized")
        self._credentials = credentials
        self._calendar = build_from_document(self._documents["calendar"], credentials=credentials)
        self._gmail = build_from_document(self._documents["gmail"], credentials=credentials)

    def _new_http(self) -> AuthorizedHttp:
        """A fresh authorized transport for one request.

        httplib2.Http is not thread-safe, so each worker thread gets its own
        connection object instead of the one the service was built with.
        """
        return AuthorizedHttp(self._credentials, http=build_http())

    def _execute(self, request: Any, http: AuthorizedHttp, context: str) -> Any:
        """Execute a single API request, mapping failures to FetchError.

        Args:
            request: A googleapiclient HttpRequest object.
            http: Transport used for this request only.
            context: Description for error messages (e.g. "list events").

        Raises:
            RateLimitError: On 429 responses.
            FetchError: On any other failure.
        """
        try:
            return request.execute(http=http, num_retries=self._num_retries)
        except Exception as e:
            if _is_rate_limit_error(e):
                raise RateLimitError(f"Rate limited during {context}: {e}") from e
            raise FetchError(f"Failed to {context}: {e}") from e

    async def list_events(
        self,
        *,
        time_min: str,
        calendar_id: str = "primary",
        max_results: int = 50,
    ) -> list[dict[str, Any]]:
        """List upcoming events with recurring events expanded, ordered by start time."""
        if self._calendar is None:
            raise FetchError("Calendar API not loaded")
        request = self._calendar.events().list(
            calendarId=calendar_id,
            timeMin=time_min,
            showDeleted=False,
            singleEvents=True,
            maxResults=max_results,
            orderBy="startTime",
        )
        response = await asyncio.to_thread(
            self._execute, request, self._new_http(), "list events"
        )
        items = response.get("items") or []
        logger.debug("Listed %d calendar events", len(items))
        return items

    async def list_threads(self, *, query: str, max_results: int = 15) -> list[dict[str, Any]]:
        """List thread stubs (``id``, ``snippet``, ``historyId``) matching a query."""
        if self._gmail is None:
            raise FetchError("Gmail API not loaded")
        request = self._gmail.users().threads().list(
            userId=self._user_id,
            maxResults=max_results,
            q=query,
        )
        response = await asyncio.to_thread(
            self._execute, request, self._new_http(), "list threads"
        )
        threads = response.get("threads") or []
        logger.debug("Listed %d threads", len(threads))
        return threads

    async def get_thread(self, thread_id: str) -> dict[str, Any]:
        """Fetch a thread with all of its messages (format=full)."""
        if self._gmail is None:
            raise FetchError("Gmail API not loaded")
        request = self._gmail.users().threads().get(userId=self._user_id, id=thread_id)
        return await asyncio.to_thread(
            self._execute, request, self._new_http(), f"get thread {thread_id}"
        )
