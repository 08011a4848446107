"""Enumeration of link occurrences across a document set."""

from __future__ import annotations

from typing import Callable, Iterable, Iterator, List, Sequence, Tuple

from .document import Document, LinkOccurrence
from .extract import urls_from_value


def document_occurrences(doc: Document, fields: Sequence[str]) -> List[LinkOccurrence]:
    """Occurrences of one document, in field order then extraction order."""
    return [
        LinkOccurrence(document_id=doc.id, field=name, url=url)
        for name in fields
        for url in urls_from_value(doc.get(name))
    ]


def harvest(
    documents: Iterable[Document], fields: Sequence[str]
) -> Iterator[LinkOccurrence]:
    """Yield occurrences in document order, then field order, then text order."""
    for doc in documents:
        yield from document_occurrences(doc, fields)


class LinkHarvester:
    """Restartable occurrence sequence over a document provider.

    Each iteration calls *documents* afresh, so two passes over the same
    provider enumerate the same occurrences in the same order.
    """

    def __init__(
        self,
        documents: Callable[[], Iterable[Document]],
        fields: Sequence[str],
    ) -> None:
        self._documents = documents
        self.fields: List[str] = list(fields)

    def __iter__(self) -> Iterator[LinkOccurrence]:
        return harvest(self._documents(), self.fields)

    def by_document(self) -> Iterator[Tuple[Document, List[LinkOccurrence]]]:
        """Same enumeration as iteration, grouped per document."""
        for doc in self._documents():
            yield doc, document_occurrences(doc, self.fields)

    def count(self) -> int:
        return sum(1 for _ in self)
