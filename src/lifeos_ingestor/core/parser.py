"""Gmail MIME body resolution: tree walking, base64url decoding, tag stripping."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Any, Literal

import trafilatura

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>?")

HtmlExtractor = Literal["tags", "trafilatura"]


def get_header(headers: list[dict[str, Any]] | None, name: str) -> str:
    """Return the value of the first header called ``name`` (case-insensitive), or ''."""
    if not headers:
        return ""
    wanted = name.lower()
    for h in headers:
        if h.get("name", "").lower() == wanted:
            return h.get("value", "")
    return ""


def decode_body(data: str) -> str:
    """Decode base64url-encoded body data, returning '' when it cannot be decoded."""
    if not data:
        return ""
    # Gmail uses base64url encoding (RFC 4648 §5)
    padded = data + "=" * (4 - len(data) % 4) if len(data) % 4 else data
    try:
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as e:
        logger.warning("Error decoding email body: %s", e)
        return ""


def strip_tags(html: str) -> str:
    """Replace every markup tag with a space.

    This is a pattern-matching approximation, not an HTML parser: entities are
    left as-is and ``<`` inside text is treated as the start of a tag.
    """
    return _TAG_RE.sub(" ", html)


class MimeBodyResolver:
    """Resolves a readable plain-text body from a Gmail message payload tree.

    Precedence for each node, first match wins:

    1. Inline body data on the node itself.
    2. The first ``text/plain`` child.
    3. The first ``text/html`` child, with markup removed.
    4. Each ``multipart/*`` child in order, until one yields a non-empty body.

    Steps 2 and 3 commit to the chosen child even if it turns out empty; only
    step 4 moves on to the next alternative. The walk uses an explicit stack so
    deeply nested payloads cannot exhaust the interpreter's recursion limit.
    """

    def __init__(self, html_extractor: HtmlExtractor = "tags") -> None:
        self._html_extractor = html_extractor

    def resolve(self, payload: dict[str, Any] | None) -> str:
        """Resolve the body of a message payload, or '' when nothing readable is found.

        Args:
            payload: The ``payload`` part of a Gmail API message (format=full).

        Returns:
            Decoded plain text.
        """
        if not payload:
            return ""

        # Each entry is (node, came_through_html). Alternatives left by step 4
        # stay below the current path on the stack.
        stack: list[tuple[dict[str, Any], bool]] = [(payload, False)]

        while stack:
            node, from_html = stack.pop()

            text = self._inline_text(node)
            if text is not None:
                if text:
                    return self._to_text(text) if from_html else text
                continue

            parts = [p for p in node.get("parts") or [] if isinstance(p, dict)]
            if not parts:
                continue

            plain = _first_with_type(parts, "text/plain")
            if plain is not None:
                stack.append((plain, from_html))
                continue

            html = _first_with_type(parts, "text/html")
            if html is not None:
                stack.append((html, True))
                continue

            containers = [p for p in parts if _mime_type(p).startswith("multipart/")]
            for child in reversed(containers):
                stack.append((child, from_html))

        return ""

    @staticmethod
    def _inline_text(node: dict[str, Any]) -> str | None:
        """Decoded inline body data, or None when the node carries none."""
        body = node.get("body") or {}
        data = body.get("data")
        if not data or body.get("size", len(data)) <= 0:
            return None
        return decode_body(data)

    def _to_text(self, html: str) -> str:
        if self._html_extractor == "trafilatura":
            try:
                extracted = trafilatura.extract(
                    html,
                    output_format="txt",
                    favor_recall=True,
                    include_links=True,
                    include_tables=True,
                )
            except Exception as e:
                logger.warning("Trafilatura extraction failed: %s", e)
                extracted = None
            if extracted:
                return extracted
        return strip_tags(html)


def _mime_type(part: dict[str, Any]) -> str:
    return (part.get("mimeType") or "").lower()


def _first_with_type(parts: list[dict[str, Any]], mime_type: str) -> dict[str, Any] | None:
    for part in parts:
        if _mime_type(part) == mime_type:
            return part
    return None
