"""Tests for linkaudit.session module."""

from __future__ import annotations

import asyncio
import time

import pytest

from linkaudit.checker import LinkChecker
from linkaudit.document import CheckResult
from linkaudit.fetcher import FetchError, FetchMethod, FetchResponse
from linkaudit.session import AuditListener, AuditSession, AuditState
from linkaudit.sources import MemorySource


class TestAuditSessionScenario:
    @pytest.mark.asyncio
    async def test_two_document_scenario(
        self, scenario_records, scenario_fetcher, listener
    ):
        session = AuditSession(
            MemorySource(scenario_records),
            LinkChecker(scenario_fetcher),
            listener=listener,
        )
        summary = await session.run()

        assert session.state is AuditState.summarized
        assert set(summary.fields) == {"link", "video"}
        assert summary.total_links == 3
        assert summary.documents_processed == 2
        assert summary.broken_count == 2
        assert [(b.document_id, b.field) for b in summary.broken_links] == [
            ("A", "video"),
            ("B", "link"),
        ]
        assert [b.index for b in summary.broken_links] == [2, 3]
        assert all(b.total == 3 for b in summary.broken_links)

    @pytest.mark.asyncio
    async def test_event_order(self, scenario_records, scenario_fetcher, listener):
        session = AuditSession(
            MemorySource(scenario_records),
            LinkChecker(scenario_fetcher),
            listener=listener,
        )
        await session.run()

        assert listener.events == [
            ("fields", ["link", "video"]),
            ("total", 3),
            ("progress", 1, 3),
            ("broken", 2, 3, "https://youtube.com/watch?v=bad"),
            ("broken", 3, 3, "https://dead.example.com"),
            ("summary", "completed"),
        ]


class TestAuditSessionStates:
    @pytest.mark.asyncio
    async def test_no_links_found(self, make_fetcher, listener):
        fetcher = make_fetcher()
        session = AuditSession(
            MemorySource([{"_id": 1, "title": "no links"}]),
            LinkChecker(fetcher),
            listener=listener,
        )
        summary = await session.run()

        assert session.state is AuditState.no_links_found
        assert summary.outcome == "no_links_found"
        assert summary.total_links == 0
        assert summary.broken_links == []
        assert fetcher.calls == []
        assert listener.events == [("no_links",), ("summary", "no_links_found")]

    @pytest.mark.asyncio
    async def test_empty_source(self, make_fetcher):
        session = AuditSession(MemorySource([]), LinkChecker(make_fetcher()))
        summary = await session.run()
        assert summary.outcome == "no_links_found"

    @pytest.mark.asyncio
    async def test_cannot_run_twice(self, scenario_records, scenario_fetcher):
        session = AuditSession(
            MemorySource(scenario_records), LinkChecker(scenario_fetcher)
        )
        await session.run()
        with pytest.raises(RuntimeError, match="Invalid audit transition"):
            await session.run()

    @pytest.mark.asyncio
    async def test_sample_size_bounds_sniffing(self, make_fetcher):
        records = [{"_id": i, "title": "x"} for i in range(3)]
        records.append({"_id": 99, "url": "https://late.example.com"})
        session = AuditSession(
            MemorySource(records), LinkChecker(make_fetcher()), sample_size=3
        )
        summary = await session.run()
        assert summary.outcome == "no_links_found"

    @pytest.mark.asyncio
    async def test_field_outside_sample_is_not_checked(self, make_fetcher):
        records = [
            {"_id": 1, "url": "https://a.example.com"},
            {"_id": 2, "other": "https://b.example.com"},
        ]
        fetcher = make_fetcher()
        session = AuditSession(MemorySource(records), LinkChecker(fetcher), sample_size=1)
        summary = await session.run()
        assert summary.fields == ["url"]
        assert summary.total_links == 1
        assert summary.documents_processed == 2


class TestAuditSessionFailures:
    @pytest.mark.asyncio
    async def test_transport_failure_does_not_abort(self, make_fetcher, listener):
        records = [
            {"_id": 1, "url": "https://down.example.com"},
            {"_id": 2, "url": "https://up.example.com"},
        ]
        fetcher = make_fetcher(
            {
                ("https://down.example.com", FetchMethod.EXISTENCE_PROBE): FetchError(
                    "Request failed: connection refused"
                ),
            }
        )
        session = AuditSession(MemorySource(records), LinkChecker(fetcher), listener=listener)
        summary = await session.run()

        assert summary.broken_count == 1
        assert summary.broken_links[0].reason == "Request failed: connection refused"
        assert ("progress", 2, 2) in listener.events

    @pytest.mark.asyncio
    async def test_unexpected_checker_error_is_recorded(self):
        class ExplodingChecker:
            async def check(self, url):
                raise ValueError("bad state")

        session = AuditSession(
            MemorySource([{"_id": 1, "url": "https://a.example.com"}]),
            ExplodingChecker(),
        )
        summary = await session.run()
        assert summary.broken_count == 1
        assert summary.broken_links[0].reason == "bad state"
        assert session.state is AuditState.summarized


class TestAuditSessionConcurrency:
    @pytest.mark.asyncio
    async def test_indices_follow_enumeration_not_completion(self, listener):
        urls = [f"https://site{i}.example.com" for i in range(6)]
        delays = {url: (6 - i) * 0.01 for i, url in enumerate(urls)}
        broken = {urls[1], urls[4]}
        in_flight = {"now": 0, "peak": 0}

        class SlowChecker:
            async def check(self, url):
                in_flight["now"] += 1
                in_flight["peak"] = max(in_flight["peak"], in_flight["now"])
                await asyncio.sleep(delays[url])
                in_flight["now"] -= 1
                return CheckResult(url=url, broken=url in broken)

        session = AuditSession(
            MemorySource([{"_id": i, "url": url} for i, url in enumerate(urls)]),
            SlowChecker(),
            concurrency=3,
            listener=listener,
        )
        summary = await session.run()

        indexed = [e for e in listener.events if e[0] in ("progress", "broken")]
        assert [e[1] for e in indexed] == [1, 2, 3, 4, 5, 6]
        assert [b.url for b in summary.broken_links] == [urls[1], urls[4]]
        assert [b.index for b in summary.broken_links] == [2, 5]
        assert 1 < in_flight["peak"] <= 3

    @pytest.mark.asyncio
    async def test_sequential_by_default(self, make_fetcher):
        in_flight = {"now": 0, "peak": 0}

        class CountingFetcher:
            async def fetch(self, url, method):
                in_flight["now"] += 1
                in_flight["peak"] = max(in_flight["peak"], in_flight["now"])
                await asyncio.sleep(0)
                in_flight["now"] -= 1
                return FetchResponse(200)

        records = [{"_id": i, "url": f"https://s{i}.example.com"} for i in range(4)]
        session = AuditSession(MemorySource(records), LinkChecker(CountingFetcher()))
        await session.run()
        assert in_flight["peak"] == 1


class _BlockingSource(MemorySource):
    """Memory source that sleeps like a slow database cursor."""

    def __init__(self, records, delay):
        super().__init__(records)
        self.delay = delay

    def sample_documents(self, limit):
        time.sleep(self.delay)
        return super().sample_documents(limit)

    def all_documents(self):
        for doc in super().all_documents():
            time.sleep(self.delay)
            yield doc


class TestAuditSessionEventLoop:
    @pytest.mark.asyncio
    async def test_slow_source_does_not_block_the_loop(self, make_fetcher):
        records = [{"_id": i, "url": f"https://s{i}.example.com"} for i in range(3)]
        source = _BlockingSource(records, delay=0.05)
        ticks = 0
        done = asyncio.Event()

        async def ticker():
            nonlocal ticks
            while not done.is_set():
                await asyncio.sleep(0.01)
                ticks += 1

        tick_task = asyncio.ensure_future(ticker())
        session = AuditSession(source, LinkChecker(make_fetcher()))
        summary = await session.run()
        done.set()
        await tick_task

        # One sample read plus two passes of three documents: about 0.35 s.
        assert summary.total_links == 3
        assert ticks >= 10

    @pytest.mark.asyncio
    async def test_failure_awaits_cancelled_checks(self):
        urls = [f"https://s{i}.example.com" for i in range(3)]
        cancelled = []

        class HangingChecker:
            async def check(self, url):
                try:
                    await asyncio.sleep(0 if url == urls[0] else 10)
                except asyncio.CancelledError:
                    cancelled.append(url)
                    raise
                return CheckResult(url=url, broken=False)

        class FailingListener(AuditListener):
            def on_progress(self, index, total):
                raise RuntimeError("reporter failed")

        session = AuditSession(
            MemorySource([{"_id": i, "url": url} for i, url in enumerate(urls)]),
            HangingChecker(),
            concurrency=3,
            listener=FailingListener(),
        )

        with pytest.raises(RuntimeError, match="reporter failed"):
            await session.run()

        assert urls[1] in cancelled
        assert set(cancelled) <= set(urls[1:])
