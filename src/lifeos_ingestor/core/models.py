"""Frozen dataclasses for the LifeOS Ingestor domain model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal

EventCategory = Literal["work", "personal", "health", "other"]


class MessageStatus(str, Enum):
    UNREAD = "UNREAD"
    READ = "READ"
    REPLIED = "REPLIED"
    NEEDS_REPLY = "NEEDS_REPLY"


class AuthState(str, Enum):
    """States of the two-phase bootstrap and OAuth token lifecycle."""

    UNINITIALIZED = "uninitialized"
    LIBRARIES_LOADING = "libraries_loading"
    GAPI_READY = "gapi_ready"
    GIS_READY = "gis_ready"
    READY = "ready"
    AUTHORIZATION_PENDING = "authorization_pending"
    AUTHENTICATED = "authenticated"
    REVOKED = "revoked"
    INIT_FAILED = "init_failed"


@dataclass(frozen=True)
class AuthSession:
    """Read-only snapshot of the auth session. Only AuthSessionManager creates new ones."""

    state: AuthState = AuthState.UNINITIALIZED
    client_id: str = ""
    token: Any = None
    api_ready: bool = False
    identity_ready: bool = False
    init_error: str | None = None

    @property
    def is_ready(self) -> bool:
        return self.api_ready and self.identity_ready

    @property
    def is_authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED and self.token is not None


@dataclass(frozen=True)
class CalendarEvent:
    """Normalized calendar event.

    ``start`` and ``end`` are ISO-8601 wall-clock strings exactly as the
    provider sent them, or local midnight for all-day events.
    """

    event_id: str
    title: str
    start: str
    end: str
    description: str | None = None
    location: str | None = None
    attendees: tuple[str, ...] = field(default_factory=tuple)
    category: EventCategory = "work"


@dataclass(frozen=True)
class ThreadMessage:
    """A single message within a thread, with its resolved plain-text body."""

    message_id: str
    sender: str
    snippet: str
    body: str
    timestamp: datetime


@dataclass(frozen=True)
class EmailThread:
    """A conversation assembled from its messages, latest message last."""

    thread_id: str
    sender: str
    subject: str
    snippet: str
    full_body: str
    timestamp: datetime
    status: MessageStatus
    messages: tuple[ThreadMessage, ...] = field(default_factory=tuple)

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def is_thread(self) -> bool:
        return len(self.messages) > 1


@dataclass(frozen=True)
class IngestionResult:
    """Collections produced by one ingestion cycle."""

    events: tuple[CalendarEvent, ...] = field(default_factory=tuple)
    threads: tuple[EmailThread, ...] = field(default_factory=tuple)
