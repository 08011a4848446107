"""Helpers for pulling absolute URLs out of free text."""

from __future__ import annotations

import re
from typing import List, Optional

from .document import FieldKind, FieldValue

URL_PATTERN = re.compile(r"https?://[^\s\"']+")

SCHEME_PREFIXES = ("http://", "https://")


def extract_urls(text: str) -> List[str]:
    """Return every URL found in *text*, in order of appearance."""
    if not text:
        return []
    return URL_PATTERN.findall(text)


def has_link_substring(text: Optional[str]) -> bool:
    """Coarse check used for field sniffing; no pattern matching involved."""
    if not text:
        return False
    return any(prefix in text for prefix in SCHEME_PREFIXES)


def urls_from_text(text: Optional[str]) -> List[str]:
    """Extract URLs, falling back to the whole value when it is a bare link."""
    if not text:
        return []
    urls = extract_urls(text)
    if not urls and text.startswith(SCHEME_PREFIXES):
        urls = [text]
    return urls


def urls_from_value(value: FieldValue) -> List[str]:
    if value.kind is FieldKind.text:
        return urls_from_text(value.text)
    if value.kind is FieldKind.text_sequence:
        urls: List[str] = []
        for item in value.items:
            if item is None:
                continue
            urls.extend(urls_from_text(item))
        return urls
    return []
