"""Build the summarizer input bundle and recover from summarizer failures."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any, Protocol

from pydantic import ValidationError

from lifeos_ingestor.analysis.models import LifeAnalysis, fallback_analysis
from lifeos_ingestor.config.settings import LifeOSIngestorSettings
from lifeos_ingestor.core.exceptions import AnalysisError
from lifeos_ingestor.core.models import CalendarEvent, EmailThread

logger = logging.getLogger(__name__)


class SummaryBackend(Protocol):
    """The summarization service. Receives the bundle and the response JSON schema."""

    async def generate(
        self, payload: dict[str, Any], schema: dict[str, Any]
    ) -> str | dict[str, Any] | None: ...


def build_analysis_payload(
    events: Sequence[CalendarEvent],
    threads: Sequence[EmailThread],
    now: datetime,
    *,
    description_chars: int = 500,
    body_chars: int = 1000,
) -> dict[str, Any]:
    """JSON-serializable bundle of events and threads with long text truncated."""
    calendar = [
        {
            "summary": e.title,
            "start": e.start,
            "end": e.end,
            "description": (e.description or "")[:description_chars],
        }
        for e in events
    ]
    emails = [
        {
            "sender": t.sender,
            "subject": t.subject,
            "date": t.timestamp.isoformat(),
            "status": t.status.value,
            "snippet": t.snippet,
            "preview": t.full_body[:body_chars],
        }
        for t in threads
    ]
    return {"calendar": calendar, "emails": emails, "currentDate": now.isoformat()}


class LifeAnalyzer:
    """Runs the summarization backend and validates its response.

    ``analyze()`` never raises: any failure is logged and replaced by
    ``fallback_analysis()``.
    """

    def __init__(
        self,
        backend: SummaryBackend,
        *,
        description_chars: int = 500,
        body_chars: int = 1000,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._backend = backend
        self._description_chars = description_chars
        self._body_chars = body_chars
        self._now = now

    @classmethod
    def from_settings(
        cls, settings: LifeOSIngestorSettings, backend: SummaryBackend
    ) -> LifeAnalyzer:
        return cls(
            backend,
            description_chars=settings.description_preview_chars,
            body_chars=settings.body_preview_chars,
        )

    def build_payload(
        self, events: Sequence[CalendarEvent], threads: Sequence[EmailThread]
    ) -> dict[str, Any]:
        return build_analysis_payload(
            events,
            threads,
            self._now(),
            description_chars=self._description_chars,
            body_chars=self._body_chars,
        )

    async def analyze(
        self, events: Sequence[CalendarEvent], threads: Sequence[EmailThread]
    ) -> LifeAnalysis:
        payload = self.build_payload(events, threads)
        schema = LifeAnalysis.model_json_schema(by_alias=True)
        try:
            response = await self._backend.generate(payload, schema)
            return self._parse(response)
        except Exception as e:
            logger.error("AI analysis failed: %s", e)
            return fallback_analysis()

    @staticmethod
    def _parse(response: str | dict[str, Any] | None) -> LifeAnalysis:
        if not response:
            raise AnalysisError("Empty response from summarizer")
        try:
            if isinstance(response, str):
                return LifeAnalysis.model_validate(json.loads(response))
            return LifeAnalysis.model_validate(response)
        except (json.JSONDecodeError, ValidationError) as e:
            raise AnalysisError(f"Malformed summarizer response: {e}") from e
