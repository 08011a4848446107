"""Tests for linkaudit.extract module."""

from linkaudit.document import FieldValue
from linkaudit.extract import (
    extract_urls,
    has_link_substring,
    urls_from_text,
    urls_from_value,
)


class TestExtractUrls:
    def test_empty(self):
        assert extract_urls("") == []

    def test_no_urls(self):
        assert extract_urls("plain text, no links") == []

    def test_single_bare_url(self):
        assert extract_urls("https://example.com/x") == ["https://example.com/x"]

    def test_embedded_in_prose_keeps_order(self):
        text = "first http://a.com/1 then https://b.com/2?q=1 done"
        assert extract_urls(text) == ["http://a.com/1", "https://b.com/2?q=1"]

    def test_stops_at_quotes(self):
        text = '<a href="https://a.com/page">x</a> and \'https://b.com\''
        assert extract_urls(text) == ["https://a.com/page", "https://b.com"]

    def test_adjacent_urls_are_one_match(self):
        # No whitespace or quote between them, so the run is maximal.
        assert extract_urls("https://a.comhttps://b.com") == ["https://a.comhttps://b.com"]

    def test_malformed_is_still_emitted(self):
        assert extract_urls("https://") == []
        assert extract_urls("https://%%%") == ["https://%%%"]

    def test_scheme_is_case_sensitive(self):
        assert extract_urls("HTTPS://a.com") == []


class TestHasLinkSubstring:
    def test_detects_substring_anywhere(self):
        assert has_link_substring("see http://x")
        assert has_link_substring("https://")

    def test_none_and_empty(self):
        assert not has_link_substring(None)
        assert not has_link_substring("")

    def test_no_scheme(self):
        assert not has_link_substring("www.example.com")


class TestUrlsFromText:
    def test_pattern_and_fallback_agree(self):
        assert urls_from_text("https://example.com/x") == ["https://example.com/x"]

    def test_fallback_for_bare_scheme(self):
        # The pattern needs at least one character after the scheme.
        assert urls_from_text("https://") == ["https://"]
        assert urls_from_text('http://"') == ['http://"']

    def test_no_fallback_without_prefix(self):
        assert urls_from_text("mailto:x@y.z") == []

    def test_none(self):
        assert urls_from_text(None) == []


class TestUrlsFromValue:
    def test_absent(self):
        assert urls_from_value(FieldValue.from_raw(None)) == []

    def test_text(self):
        assert urls_from_value(FieldValue.from_raw("go https://a.com")) == ["https://a.com"]

    def test_sequence_concatenates_in_order(self):
        value = FieldValue.from_raw(
            ["https://a.com and https://b.com", 5, "https://", "nothing", "https://c.com"]
        )
        assert urls_from_value(value) == [
            "https://a.com",
            "https://b.com",
            "https://",
            "https://c.com",
        ]
