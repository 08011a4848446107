"""Sample-based detection of fields that hold links."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .document import Document, FieldKind, FieldValue
from .extract import has_link_substring

LOGGER = logging.getLogger(__name__)


def value_has_link(value: FieldValue) -> bool:
    """Whether a field value (or any of its text elements) mentions a link."""
    if value.kind is FieldKind.text:
        return has_link_substring(value.text)
    if value.kind is FieldKind.text_sequence:
        return any(has_link_substring(item) for item in value.items)
    return False


def sniff_fields(sample: Iterable[Document]) -> List[str]:
    """
    Propose the fields likely to contain URLs.

    A field qualifies as soon as one sampled document holds, in that field,
    text containing ``http://`` or ``https://``. The result keeps the order in
    which fields first qualified; later documents never remove a field.

    Args:
        sample: Documents to inspect, usually a small prefix of the set.

    Returns:
        Ordered, duplicate-free list of field names. Empty when nothing
        qualifies.
    """
    candidates: Dict[str, None] = {}
    inspected = 0
    for doc in sample:
        inspected += 1
        for name, value in doc.fields.items():
            if name in candidates:
                continue
            if value_has_link(value):
                candidates[name] = None
                LOGGER.debug("Field %r holds links (document %s)", name, doc.id)

    LOGGER.debug(
        "Sniffed %d document(s), %d candidate field(s)", inspected, len(candidates)
    )
    return list(candidates)
