"""Unit tests for MimeBodyResolver and the parser helpers."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest
from conftest import container, encode, leaf

from lifeos_ingestor.core.parser import MimeBodyResolver, decode_body, get_header, strip_tags


@pytest.fixture
def resolver() -> MimeBodyResolver:
    """Fresh resolver using tag stripping."""
    return MimeBodyResolver()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestDecodeBody:
    def test_decodes_unpadded_base64url(self) -> None:
        assert decode_body(encode("Hello, world")) == "Hello, world"

    def test_decodes_url_safe_alphabet(self) -> None:
        # "<p>" encodes to "PHA-" with the url-safe alphabet
        assert decode_body("PHA-") == "<p>"

    def test_decodes_utf8(self) -> None:
        assert decode_body(encode("Café ünïcode")) == "Café ünïcode"

    def test_empty_data(self) -> None:
        assert decode_body("") == ""

    def test_undecodable_data_returns_empty(self) -> None:
        assert decode_body("a") == ""


class TestStripTags:
    def test_tags_replaced_with_space(self) -> None:
        assert strip_tags("<p>Hi <b>there</b></p>") == " Hi  there  "

    def test_unterminated_tag_removed(self) -> None:
        assert strip_tags("text <br") == "text  "

    def test_plain_text_unchanged(self) -> None:
        assert strip_tags("no markup here") == "no markup here"


class TestGetHeader:
    def test_case_insensitive(self) -> None:
        headers = [{"name": "from", "value": "a@example.com"}]
        assert get_header(headers, "From") == "a@example.com"

    def test_first_match_wins(self) -> None:
        headers = [
            {"name": "Subject", "value": "first"},
            {"name": "Subject", "value": "second"},
        ]
        assert get_header(headers, "Subject") == "first"

    def test_missing_header(self) -> None:
        assert get_header([{"name": "To", "value": "x"}], "From") == ""

    def test_no_headers(self) -> None:
        assert get_header(None, "From") == ""


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestInlineBody:
    def test_inline_data_returned(self, resolver: MimeBodyResolver) -> None:
        assert resolver.resolve(leaf("text/plain", "Just text")) == "Just text"

    def test_inline_html_on_root_not_stripped(self, resolver: MimeBodyResolver) -> None:
        """Inline data is returned as-is; stripping only applies after choosing an html child."""
        assert resolver.resolve(leaf("text/html", "<p>x</p>")) == "<p>x</p>"

    def test_zero_size_body_ignored(self, resolver: MimeBodyResolver) -> None:
        payload: dict[str, Any] = {
            "mimeType": "multipart/alternative",
            "body": {"size": 0, "data": encode("ignored")},
            "parts": [leaf("text/plain", "from child")],
        }
        assert resolver.resolve(payload) == "from child"

    def test_empty_payload(self, resolver: MimeBodyResolver) -> None:
        assert resolver.resolve({}) == ""
        assert resolver.resolve(None) == ""


class TestPlainBeatsHtml:
    def test_plain_chosen_over_html(self, resolver: MimeBodyResolver) -> None:
        payload = container(
            "multipart/alternative",
            leaf("text/plain", "Plain version"),
            leaf("text/html", "<p>HTML version</p>"),
        )
        assert resolver.resolve(payload) == "Plain version"

    def test_plain_chosen_even_when_html_comes_first(self, resolver: MimeBodyResolver) -> None:
        payload = container(
            "multipart/alternative",
            leaf("text/html", "<p>HTML version</p>"),
            leaf("text/plain", "Plain version"),
        )
        assert resolver.resolve(payload) == "Plain version"

    def test_first_plain_child_wins(self, resolver: MimeBodyResolver) -> None:
        payload = container(
            "multipart/mixed",
            leaf("text/plain", "first"),
            leaf("text/plain", "second"),
        )
        assert resolver.resolve(payload) == "first"

    def test_plain_beats_nested_container(self, resolver: MimeBodyResolver) -> None:
        payload = container(
            "multipart/mixed",
            container("multipart/alternative", leaf("text/plain", "nested")),
            leaf("text/plain", "direct"),
        )
        assert resolver.resolve(payload) == "direct"


class TestHtmlFallback:
    def test_html_child_stripped(self, resolver: MimeBodyResolver) -> None:
        payload = container("multipart/alternative", leaf("text/html", "<p>Hello <b>you</b></p>"))
        assert resolver.resolve(payload) == " Hello  you  "

    def test_html_nested_two_levels(self, resolver: MimeBodyResolver) -> None:
        payload = container(
            "multipart/mixed",
            container(
                "multipart/related",
                leaf("text/html", "<div><p>Deep <i>content</i></p></div>"),
            ),
            {"mimeType": "image/png", "filename": "logo.png", "body": {"size": 10}},
        )
        assert resolver.resolve(payload) == "  Deep  content   "

    def test_html_beats_nested_plain(self, resolver: MimeBodyResolver) -> None:
        """An immediate html child is preferred over plain text inside a sub-container."""
        payload = container(
            "multipart/mixed",
            container("multipart/alternative", leaf("text/plain", "nested plain")),
            leaf("text/html", "<p>direct html</p>"),
        )
        assert resolver.resolve(payload) == " direct html "


class TestNestedContainers:
    def test_first_non_empty_container_wins(self, resolver: MimeBodyResolver) -> None:
        payload = container(
            "multipart/mixed",
            container("multipart/alternative"),
            container("multipart/alternative", leaf("text/plain", "second container")),
            container("multipart/alternative", leaf("text/plain", "third container")),
        )
        assert resolver.resolve(payload) == "second container"

    def test_empty_plain_child_falls_through_to_sibling_container(
        self, resolver: MimeBodyResolver
    ) -> None:
        payload = container(
            "multipart/mixed",
            container("multipart/alternative", {"mimeType": "text/plain", "body": {"size": 0}}),
            container("multipart/alternative", leaf("text/plain", "sibling")),
        )
        assert resolver.resolve(payload) == "sibling"

    def test_committed_plain_child_does_not_fall_back_to_html(
        self, resolver: MimeBodyResolver
    ) -> None:
        """An empty text/plain child ends the search at that level."""
        payload = container(
            "multipart/alternative",
            {"mimeType": "text/plain", "body": {"size": 0}},
            leaf("text/html", "<p>html</p>"),
        )
        assert resolver.resolve(payload) == ""

    def test_non_multipart_attachments_ignored(self, resolver: MimeBodyResolver) -> None:
        payload = container(
            "multipart/mixed",
            {"mimeType": "application/pdf", "filename": "a.pdf", "body": {"size": 5}},
        )
        assert resolver.resolve(payload) == ""

    def test_missing_mime_type_tolerated(self, resolver: MimeBodyResolver) -> None:
        payload = container(
            "multipart/mixed",
            {"body": {"size": 0}},
            leaf("TEXT/PLAIN", "upper-case type"),
        )
        assert resolver.resolve(payload) == "upper-case type"

    def test_very_deep_tree_does_not_recurse(self, resolver: MimeBodyResolver) -> None:
        node = leaf("text/plain", "bottom")
        for _ in range(5000):
            node = container("multipart/mixed", node)
        assert resolver.resolve(node) == "bottom"


# ---------------------------------------------------------------------------
# Trafilatura extraction
# ---------------------------------------------------------------------------


class TestTrafilaturaExtractor:
    def test_uses_trafilatura_result(self) -> None:
        resolver = MimeBodyResolver(html_extractor="trafilatura")
        payload = container("multipart/alternative", leaf("text/html", "<p>Content</p>"))
        with patch("lifeos_ingestor.core.parser.trafilatura") as mock_traf:
            mock_traf.extract.return_value = "Content"
            assert resolver.resolve(payload) == "Content"

        mock_traf.extract.assert_called_once_with(
            "<p>Content</p>",
            output_format="txt",
            favor_recall=True,
            include_links=True,
            include_tables=True,
        )

    def test_falls_back_to_tag_stripping_on_none(self) -> None:
        resolver = MimeBodyResolver(html_extractor="trafilatura")
        payload = container("multipart/alternative", leaf("text/html", "<p>Tiny</p>"))
        with patch("lifeos_ingestor.core.parser.trafilatura") as mock_traf:
            mock_traf.extract.return_value = None
            assert resolver.resolve(payload) == " Tiny "

    def test_falls_back_to_tag_stripping_on_error(self) -> None:
        resolver = MimeBodyResolver(html_extractor="trafilatura")
        payload = container("multipart/alternative", leaf("text/html", "<p>Tiny</p>"))
        with patch("lifeos_ingestor.core.parser.trafilatura") as mock_traf:
            mock_traf.extract.side_effect = RuntimeError("lxml exploded")
            assert resolver.resolve(payload) == " Tiny "

    def test_not_called_for_plain_text(self) -> None:
        resolver = MimeBodyResolver(html_extractor="trafilatura")
        with patch("lifeos_ingestor.core.parser.trafilatura") as mock_traf:
            assert resolver.resolve(leaf("text/plain", "plain")) == "plain"
        mock_traf.extract.assert_not_called()
