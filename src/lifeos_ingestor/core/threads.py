"""Assemble raw Gmail thread payloads into EmailThread objects."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from lifeos_ingestor.core.models import EmailThread, MessageStatus, ThreadMessage
from lifeos_ingestor.core.parser import MimeBodyResolver, get_header

logger = logging.getLogger(__name__)

UNREAD_LABEL = "UNREAD"


def _internal_date(raw_message: dict[str, Any]) -> int:
    """Provider-assigned receive time in epoch milliseconds (0 when missing or garbled)."""
    try:
        return int(raw_message.get("internalDate", 0))
    except (TypeError, ValueError):
        logger.warning(
            "Invalid internalDate %r on message %s",
            raw_message.get("internalDate"), raw_message.get("id", "?"),
        )
        return 0


def _to_datetime(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=UTC)


class ThreadAssembler:
    """Groups the raw messages of a Gmail thread into a single EmailThread."""

    def __init__(self, resolver: MimeBodyResolver | None = None) -> None:
        self._resolver = resolver or MimeBodyResolver()

    def assemble(
        self, raw_thread: dict[str, Any], thread_id: str | None = None
    ) -> EmailThread | None:
        """Build an EmailThread from a ``threads.get`` response.

        Messages are ordered by ``internalDate`` ascending. The latest message
        supplies sender, subject, snippet and timestamp; the thread is UNREAD
        if any message carries the UNREAD label.

        Args:
            raw_thread: Thread dict from the Gmail API (``id`` and ``messages``).
            thread_id: Identifier the thread was requested by; overrides ``id``.

        Returns:
            The assembled thread, or None when the thread has no messages.
        """
        raw_messages = raw_thread.get("messages") or []
        if not raw_messages:
            return None

        ordered = sorted(raw_messages, key=_internal_date)
        messages = tuple(self._to_message(m) for m in ordered)

        is_unread = any(UNREAD_LABEL in (m.get("labelIds") or []) for m in ordered)
        latest_raw = ordered[-1]
        latest = messages[-1]
        headers = (latest_raw.get("payload") or {}).get("headers")

        return EmailThread(
            thread_id=thread_id or raw_thread.get("id") or latest_raw.get("threadId", ""),
            sender=latest.sender,
            subject=get_header(headers, "Subject"),
            snippet=latest.snippet,
            full_body=latest.body,
            timestamp=latest.timestamp,
            status=MessageStatus.UNREAD if is_unread else MessageStatus.READ,
            messages=messages,
        )

    def _to_message(self, raw_message: dict[str, Any]) -> ThreadMessage:
        payload = raw_message.get("payload") or {}
        return ThreadMessage(
            message_id=raw_message.get("id", ""),
            sender=get_header(payload.get("headers"), "From"),
            snippet=raw_message.get("snippet", ""),
            body=self._resolver.resolve(payload),
            timestamp=_to_datetime(_internal_date(raw_message)),
        )
