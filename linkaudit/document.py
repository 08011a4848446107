"""Data structures representing audited documents and link findings."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class FieldKind(str, Enum):
    """Shape of a document field as seen by the auditor."""

    absent = "absent"
    text = "text"
    text_sequence = "text_sequence"


@dataclass(slots=True, frozen=True)
class FieldValue:
    """Tagged field value: absent, a single text, or a sequence of texts.

    Sequence elements that are not text are kept as ``None`` so element
    positions survive classification.
    """

    kind: FieldKind
    text: Optional[str] = None
    items: Tuple[Optional[str], ...] = ()

    @classmethod
    def from_raw(cls, value: Any) -> "FieldValue":
        if isinstance(value, str):
            if not value:
                return ABSENT
            return cls(kind=FieldKind.text, text=value)
        if isinstance(value, (list, tuple)):
            items = tuple(item if isinstance(item, str) else None for item in value)
            return cls(kind=FieldKind.text_sequence, items=items)
        return ABSENT


ABSENT = FieldValue(kind=FieldKind.absent)


@dataclass(slots=True)
class Document:
    """One read-only document: an opaque identifier plus its fields."""

    id: str
    fields: Dict[str, FieldValue] = field(default_factory=dict)

    def get(self, name: str) -> FieldValue:
        return self.fields.get(name, ABSENT)

    @classmethod
    def from_mapping(
        cls,
        raw: Mapping[str, Any],
        *,
        id_field: str = "_id",
        fallback_id: Optional[str] = None,
    ) -> "Document":
        """Build a document from a raw store record.

        Every key, the identifier included, becomes a field.
        """
        raw_id = raw.get(id_field)
        doc_id = str(raw_id) if raw_id is not None else (fallback_id or "")
        fields = {str(key): FieldValue.from_raw(value) for key, value in raw.items()}
        return cls(id=doc_id, fields=fields)


@dataclass(slots=True, frozen=True)
class LinkOccurrence:
    """A single (document, field, url) unit of work."""

    document_id: str
    field: str
    url: str


@dataclass(slots=True)
class CheckResult:
    """Outcome of checking one URL."""

    url: str
    broken: bool
    reason: Optional[str] = None
    status_code: Optional[int] = None


@dataclass(slots=True)
class BrokenLink:
    """Broken-link record emitted during the checking pass."""

    document_id: str
    field: str
    url: str
    index: int
    total: int
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "field": self.field,
            "url": self.url,
            "index": self.index,
            "total": self.total,
            "reason": self.reason,
        }


@dataclass(slots=True)
class AuditSummary:
    """Final result of an audit session."""

    fields: List[str] = field(default_factory=list)
    documents_processed: int = 0
    total_links: int = 0
    broken_links: List[BrokenLink] = field(default_factory=list)
    outcome: str = "completed"  # completed, no_links_found

    @property
    def broken_count(self) -> int:
        return len(self.broken_links)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome,
            "fields": list(self.fields),
            "documents_processed": self.documents_processed,
            "total_links": self.total_links,
            "broken_count": self.broken_count,
            "broken_links": [link.to_dict() for link in self.broken_links],
        }
