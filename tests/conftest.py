"""Shared fixtures for LifeOS Ingestor tests."""

from __future__ import annotations

import base64
import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from lifeos_ingestor.core.models import (
    CalendarEvent,
    EmailThread,
    MessageStatus,
    ThreadMessage,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def encode(text: str) -> str:
    """Base64url-encode text the way Gmail does (no padding)."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def leaf(mime_type: str, text: str) -> dict[str, Any]:
    """A MIME leaf part carrying inline data."""
    data = encode(text)
    return {"mimeType": mime_type, "body": {"size": len(text), "data": data}}


def container(mime_type: str, *parts: dict[str, Any]) -> dict[str, Any]:
    """A MIME container part with the given children."""
    return {"mimeType": mime_type, "body": {"size": 0}, "parts": list(parts)}


def raw_message(
    message_id: str,
    internal_date: int,
    *,
    sender: str = "sender@example.com",
    subject: str = "Subject",
    labels: tuple[str, ...] = ("INBOX",),
    text: str = "body",
) -> dict[str, Any]:
    """A minimal Gmail API message (format=full) with a text/plain payload."""
    payload = leaf("text/plain", text)
    payload["headers"] = [
        {"name": "From", "value": sender},
        {"name": "Subject", "value": subject},
    ]
    return {
        "id": message_id,
        "threadId": "thread_x",
        "labelIds": list(labels),
        "snippet": text[:20],
        "internalDate": str(internal_date),
        "payload": payload,
    }


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to the test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def three_message_thread_raw() -> dict[str, Any]:
    """Raw threads.get response: three messages out of order, one unread."""
    return json.loads((FIXTURES_DIR / "thread_three_messages.json").read_text())


@pytest.fixture
def calendar_events_raw() -> dict[str, Any]:
    """Raw events.list response with timed, all-day and untitled events."""
    return json.loads((FIXTURES_DIR / "calendar_events.json").read_text())


@pytest.fixture
def sample_event() -> CalendarEvent:
    """A sample normalized calendar event."""
    return CalendarEvent(
        event_id="evt_1",
        title="Design review",
        start="2024-03-10T09:30:00-05:00",
        end="2024-03-10T10:30:00-05:00",
        description="x" * 800,
        location="Room 4B",
    )


@pytest.fixture
def sample_thread() -> EmailThread:
    """A sample assembled two-message thread."""
    first = ThreadMessage(
        message_id="m1",
        sender="bob@example.com",
        snippet="Kickoff",
        body="Kickoff notes",
        timestamp=datetime(2024, 3, 1, 9, 0, tzinfo=UTC),
    )
    second = ThreadMessage(
        message_id="m2",
        sender="alice@example.com",
        snippet="Follow up",
        body="y" * 1500,
        timestamp=datetime(2024, 3, 2, 9, 0, tzinfo=UTC),
    )
    return EmailThread(
        thread_id="thread_1",
        sender="alice@example.com",
        subject="Kickoff",
        snippet="Follow up",
        full_body=second.body,
        timestamp=second.timestamp,
        status=MessageStatus.UNREAD,
        messages=(first, second),
    )
