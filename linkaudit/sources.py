"""Document sources the auditor reads from.

A source only needs two capabilities: a small sample for field sniffing and
the full set, in the same order on every call.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Union,
)

from .document import Document

LOGGER = logging.getLogger(__name__)


class SourceError(Exception):
    """Raised when a source cannot produce documents."""


class SelectionError(Exception):
    """Raised when a database or collection choice is invalid."""


class DocumentSource(Protocol):
    def sample_documents(self, limit: int) -> Iterable[Document]:
        ...

    def all_documents(self) -> Iterable[Document]:
        ...


def _to_documents(records: Iterable[Mapping[str, Any]], id_field: str) -> Iterator[Document]:
    for position, record in enumerate(records, start=1):
        yield Document.from_mapping(record, id_field=id_field, fallback_id=str(position))


class MemorySource:
    """Source over an in-memory list of raw records or documents."""

    def __init__(
        self,
        records: Sequence[Union[Mapping[str, Any], Document]],
        *,
        id_field: str = "_id",
    ) -> None:
        self._documents: List[Document] = [
            record
            if isinstance(record, Document)
            else Document.from_mapping(record, id_field=id_field, fallback_id=str(pos))
            for pos, record in enumerate(records, start=1)
        ]

    def sample_documents(self, limit: int) -> List[Document]:
        return self._documents[: max(0, limit)]

    def all_documents(self) -> List[Document]:
        return list(self._documents)

    def __len__(self) -> int:
        return len(self._documents)


class JsonFileSource:
    """Source over a JSON array, ``{"documents": [...]}`` object, or JSON Lines file.

    The file is parsed once; both passes iterate the parsed list.
    """

    def __init__(self, path: Union[str, Path], *, id_field: str = "_id") -> None:
        self.path = Path(path)
        self.id_field = id_field
        self._records: Optional[List[Dict[str, Any]]] = None

    def _load(self) -> List[Dict[str, Any]]:
        if self._records is not None:
            return self._records

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SourceError(f"Cannot read {self.path}: {exc}") from exc

        if self.path.suffix.lower() in (".jsonl", ".ndjson"):
            records = self._parse_lines(text)
        else:
            records = self._parse_document(text)

        bad = [i for i, record in enumerate(records, start=1) if not isinstance(record, dict)]
        if bad:
            raise SourceError(f"{self.path}: record {bad[0]} is not a JSON object")

        LOGGER.debug("Loaded %d records from %s", len(records), self.path)
        self._records = records
        return records

    def _parse_document(self, text: str) -> List[Any]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SourceError(f"{self.path}: invalid JSON ({exc})") from exc
        if isinstance(data, dict):
            data = data.get("documents", [data])
        if not isinstance(data, list):
            raise SourceError(f"{self.path}: expected an array of documents")
        return data

    def _parse_lines(self, text: str) -> List[Any]:
        records = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise SourceError(f"{self.path}:{lineno}: invalid JSON ({exc})") from exc
        return records

    def sample_documents(self, limit: int) -> List[Document]:
        return list(_to_documents(self._load()[: max(0, limit)], self.id_field))

    def all_documents(self) -> Iterator[Document]:
        return _to_documents(self._load(), self.id_field)


class MongoSource:
    """Source over a pymongo collection.

    The full set is read sorted by ``_id`` so that separate queries return
    documents in the same order.
    """

    def __init__(self, collection, *, id_field: str = "_id") -> None:
        self.collection = collection
        self.id_field = id_field

    def sample_documents(self, limit: int) -> List[Document]:
        cursor = self.collection.find({}).limit(max(0, limit))
        return list(_to_documents(cursor, self.id_field))

    def all_documents(self) -> Iterator[Document]:
        cursor = self.collection.find({}).sort(self.id_field, 1)
        return _to_documents(cursor, self.id_field)


def resolve_choice(answer: str, names: Sequence[str], *, kind: str = "database") -> str:
    """Resolve a 1-based number or an exact name against *names*."""
    answer = (answer or "").strip()
    if not answer:
        raise SelectionError(f"No {kind} selected.")
    if answer.isdigit():
        index = int(answer) - 1
        if index < 0 or index >= len(names):
            raise SelectionError(f"Invalid {kind} selection: {answer}")
        return names[index]
    if answer not in names:
        raise SelectionError(f"{kind.capitalize()} name not found: {answer}")
    return answer


def list_databases(client) -> List[str]:
    return list(client.list_database_names())


def list_collections(client, database: str) -> List[str]:
    names = list(client[database].list_collection_names())
    if not names:
        raise SelectionError(f"No collections found in database '{database}'.")
    return names


def open_mongo_client(uri: str, *, timeout: float = 15.0):
    """Connect to MongoDB and verify the server answers."""
    from pymongo import MongoClient
    from pymongo.errors import PyMongoError

    client = MongoClient(uri, serverSelectionTimeoutMS=int(timeout * 1000))
    try:
        client.admin.command("ping")
    except PyMongoError as exc:
        client.close()
        raise SourceError(f"Cannot connect to MongoDB: {exc}") from exc
    LOGGER.info("Connected to MongoDB successfully.")
    return client
