"""Normalize Google Calendar event records into CalendarEvent objects."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from lifeos_ingestor.core.models import CalendarEvent, EventCategory

DEFAULT_TITLE = "No Title"


def _local_now() -> str:
    return datetime.now().astimezone().isoformat()


class CalendarNormalizer:
    """Maps provider event records onto the domain model without ever failing."""

    def __init__(
        self,
        now: Callable[[], str] = _local_now,
        default_category: EventCategory = "work",
    ) -> None:
        self._now = now
        self._default_category = default_category

    def normalize(self, record: dict[str, Any]) -> CalendarEvent:
        """Convert one ``events.list`` item into a CalendarEvent.

        Timed events keep their ``dateTime`` verbatim. All-day events only carry
        a bare ``date``; they become local midnight (``YYYY-MM-DDT00:00:00``)
        rather than being parsed as UTC, which would shift the day for anyone
        west of Greenwich.
        """
        return CalendarEvent(
            event_id=str(record.get("id", "")),
            title=record.get("summary") or DEFAULT_TITLE,
            start=self._timestamp(record.get("start")),
            end=self._timestamp(record.get("end")),
            description=record.get("description"),
            location=record.get("location"),
            attendees=_attendees(record.get("attendees")),
            category=self._default_category,
        )

    def _timestamp(self, when: Any) -> str:
        if isinstance(when, dict):
            if when.get("dateTime"):
                return str(when["dateTime"])
            if when.get("date"):
                return f"{when['date']}T00:00:00"
        return self._now()


def _attendees(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return ()
    names = []
    for attendee in raw:
        if not isinstance(attendee, dict):
            continue
        name = attendee.get("displayName") or attendee.get("email")
        if name:
            names.append(name)
    return tuple(names)
