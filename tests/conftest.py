"""Shared fakes for the link auditor tests."""

from __future__ import annotations

from typing import Dict, List, Tuple, Union

import pytest

from linkaudit.document import AuditSummary, BrokenLink
from linkaudit.fetcher import FetchMethod, FetchResponse
from linkaudit.session import AuditListener

Scripted = Union[FetchResponse, Exception]


class FakeFetcher:
    """Fetcher answering from a ``(url, method) -> response`` table.

    Unknown URLs answer 200 with an empty body. Every call is recorded.
    """

    def __init__(self, table: Dict[Tuple[str, FetchMethod], Scripted] | None = None):
        self.table = dict(table or {})
        self.calls: List[Tuple[str, FetchMethod]] = []
        self.body_reads: List[bool] = []

    async def fetch(
        self, url: str, method: FetchMethod, *, read_body: bool = True
    ) -> FetchResponse:
        self.calls.append((url, method))
        self.body_reads.append(read_body)
        answer = self.table.get((url, method), FetchResponse(status_code=200, body=""))
        if isinstance(answer, Exception):
            raise answer
        return answer


class RecordingListener(AuditListener):
    def __init__(self) -> None:
        self.events: List[tuple] = []

    def on_fields_detected(self, fields):
        self.events.append(("fields", list(fields)))

    def on_no_links(self):
        self.events.append(("no_links",))

    def on_total(self, total):
        self.events.append(("total", total))

    def on_progress(self, index, total):
        self.events.append(("progress", index, total))

    def on_broken_link(self, record: BrokenLink):
        self.events.append(("broken", record.index, record.total, record.url))

    def on_summary(self, summary: AuditSummary):
        self.events.append(("summary", summary.outcome))


@pytest.fixture
def make_fetcher():
    return FakeFetcher


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def scenario_fetcher():
    """Transport for the two-document scenario used across tests."""
    return FakeFetcher(
        {
            ("https://ok.example.com", FetchMethod.EXISTENCE_PROBE): FetchResponse(200),
            ("https://youtube.com/watch?v=bad", FetchMethod.FULL): FetchResponse(
                200, body="<html>This video has been removed by the uploader</html>"
            ),
            ("https://dead.example.com", FetchMethod.EXISTENCE_PROBE): FetchResponse(404),
            ("https://dead.example.com", FetchMethod.FULL): FetchResponse(404, body=""),
        }
    )


@pytest.fixture
def scenario_records():
    return [
        {
            "_id": "A",
            "link": "https://ok.example.com",
            "video": "https://youtube.com/watch?v=bad",
        },
        {"_id": "B", "link": ["https://dead.example.com"]},
    ]

