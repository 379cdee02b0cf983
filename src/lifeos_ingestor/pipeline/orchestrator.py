"""Ingestion orchestrator: calendar + thread list in parallel, thread details fanned out."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from lifeos_ingestor.analysis.analyzer import LifeAnalyzer, SummaryBackend
from lifeos_ingestor.analysis.models import LifeAnalysis
from lifeos_ingestor.config.settings import LifeOSIngestorSettings
from lifeos_ingestor.core.auth import AuthSessionManager
from lifeos_ingestor.core.calendar import CalendarNormalizer
from lifeos_ingestor.core.exceptions import FetchError
from lifeos_ingestor.core.google_client import GoogleApiClient
from lifeos_ingestor.core.models import (
    CalendarEvent,
    EmailThread,
    IngestionResult,
    MessageStatus,
)
from lifeos_ingestor.core.parser import MimeBodyResolver
from lifeos_ingestor.core.threads import ThreadAssembler

logger = logging.getLogger(__name__)


class IngestionOrchestrator:
    """Produces the event and thread collections consumed by the dashboard and summarizer.

    The calendar list and the thread list are fetched concurrently and are
    both required: if either fails, ``load_all()`` raises and the previously
    loaded collections stay as they were. Thread details are fetched one per
    thread, concurrently, and a failing detail only drops that thread.
    """

    def __init__(
        self,
        client: GoogleApiClient,
        *,
        settings: LifeOSIngestorSettings | None = None,
        auth: AuthSessionManager | None = None,
        normalizer: CalendarNormalizer | None = None,
        assembler: ThreadAssembler | None = None,
        analyzer: LifeAnalyzer | None = None,
        backend: SummaryBackend | None = None,
    ) -> None:
        self._settings = settings or LifeOSIngestorSettings()
        self._client = client
        self._auth = auth
        self._normalizer = normalizer or CalendarNormalizer()
        self._assembler = assembler or ThreadAssembler(
            MimeBodyResolver(self._settings.html_extractor)
        )
        if analyzer is None and backend is not None:
            analyzer = LifeAnalyzer.from_settings(self._settings, backend)
        self._analyzer = analyzer

        self._events: tuple[CalendarEvent, ...] = ()
        self._threads: tuple[EmailThread, ...] = ()
        self._analysis: LifeAnalysis | None = None
        self._last_error: str | None = None

    @property
    def events(self) -> tuple[CalendarEvent, ...]:
        return self._events

    @property
    def threads(self) -> tuple[EmailThread, ...]:
        return self._threads

    @property
    def analysis(self) -> LifeAnalysis | None:
        return self._analysis

    @property
    def last_error(self) -> str | None:
        """Human-readable message of the last failed load, cleared when a load starts."""
        return self._last_error

    async def load_all(self, *, analyze: bool = False) -> IngestionResult:
        """Fetch and normalize events and threads, replacing the held collections.

        Args:
            analyze: Also run the summarizer on the fresh collections.

        Raises:
            FetchError: If the calendar list or the thread list fails. The held
                collections are left untouched.
        """
        self._last_error = None

        if self._auth is not None:
            await self._auth.refresh_if_expired()

        outcomes = await asyncio.gather(
            self.fetch_events(), self.fetch_threads(), return_exceptions=True
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                self._fail(outcome)

        events, threads = outcomes
        self._events = tuple(events)
        self._threads = tuple(threads)
        logger.info("Loaded %d events and %d threads", len(self._events), len(self._threads))

        if analyze and self._analyzer is not None:
            self._analysis = await self._analyzer.analyze(self._events, self._threads)

        return IngestionResult(events=self._events, threads=self._threads)

    def _fail(self, exc: BaseException) -> None:
        if not isinstance(exc, Exception):
            raise exc
        logger.error("Failed to load Google data: %s", exc)
        if isinstance(exc, FetchError):
            self._last_error = str(exc) or "Unable to fetch Google data."
            raise exc
        self._last_error = f"Unable to fetch Google data: {exc}"
        raise FetchError(self._last_error) from exc

    async def fetch_events(self) -> list[CalendarEvent]:
        """List upcoming events from now on and normalize them."""
        records = await self._client.list_events(
            time_min=datetime.now(UTC).isoformat(),
            calendar_id=self._settings.calendar_id,
            max_results=self._settings.calendar_max_results,
        )
        return [self._normalizer.normalize(record) for record in records]

    async def fetch_threads(self) -> list[EmailThread]:
        """List threads, then fetch and assemble every thread concurrently."""
        stubs = await self._client.list_threads(
            query=self._settings.thread_query,
            max_results=self._settings.thread_max_results,
        )
        thread_ids = [stub["id"] for stub in stubs if stub.get("id")]
        if not thread_ids:
            return []

        results = await asyncio.gather(*(self._fetch_thread(tid) for tid in thread_ids))
        return [thread for thread in results if thread is not None]

    async def _fetch_thread(self, thread_id: str) -> EmailThread | None:
        try:
            raw: dict[str, Any] = await self._client.get_thread(thread_id)
            return self._assembler.assemble(raw, thread_id=thread_id)
        except Exception as e:
            logger.error("Failed to fetch thread detail %s: %s", thread_id, e)
            return None

    def update_thread_status(self, thread_id: str, status: MessageStatus) -> bool:
        """Set the status of a held thread. Returns False if no thread has that id."""
        updated = False
        threads = []
        for thread in self._threads:
            if thread.thread_id == thread_id:
                thread = replace(thread, status=status)
                updated = True
            threads.append(thread)
        self._threads = tuple(threads)
        return updated
