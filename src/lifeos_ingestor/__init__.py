"""LifeOS Ingestor - Fetch Google Calendar events and Gmail threads into a stable domain model."""

from lifeos_ingestor.core.auth import AuthSessionManager
from lifeos_ingestor.core.calendar import CalendarNormalizer
from lifeos_ingestor.core.models import (
    AuthSession,
    AuthState,
    CalendarEvent,
    EmailThread,
    IngestionResult,
    MessageStatus,
    ThreadMessage,
)
from lifeos_ingestor.core.parser import MimeBodyResolver
from lifeos_ingestor.core.threads import ThreadAssembler
from lifeos_ingestor.pipeline.orchestrator import IngestionOrchestrator

__all__ = [
    "AuthSession",
    "AuthSessionManager",
    "AuthState",
    "CalendarEvent",
    "CalendarNormalizer",
    "EmailThread",
    "IngestionOrchestrator",
    "IngestionResult",
    "MessageStatus",
    "MimeBodyResolver",
    "ThreadAssembler",
    "ThreadMessage",
]
