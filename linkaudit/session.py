"""Audit session: sniff fields, count links, then check every link.

The session walks a fixed sequence of states::

    idle -> sniffing -> counting -> checking -> summarized
               |
               +-> no_links_found

The counting pass runs before any check so every progress event can be
reported as ``index/total``. Both passes use the same harvester, so the index
attached to an event is the occurrence's position in that enumeration.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Deque, List, Optional, Tuple

from .checker import LinkChecker
from .document import (
    AuditSummary,
    BrokenLink,
    CheckResult,
    Document,
    LinkOccurrence,
)
from .harvest import LinkHarvester
from .sniffer import sniff_fields
from .sources import DocumentSource

LOGGER = logging.getLogger(__name__)

_Pending = Tuple[int, LinkOccurrence, "asyncio.Future[CheckResult]"]


class AuditState(str, Enum):
    idle = "idle"
    sniffing = "sniffing"
    no_links_found = "no_links_found"
    counting = "counting"
    checking = "checking"
    summarized = "summarized"


_TRANSITIONS = {
    AuditState.idle: {AuditState.sniffing},
    AuditState.sniffing: {AuditState.counting, AuditState.no_links_found},
    AuditState.counting: {AuditState.checking},
    AuditState.checking: {AuditState.summarized},
    AuditState.no_links_found: set(),
    AuditState.summarized: set(),
}


class AuditListener:
    """Receives session events. All hooks are optional no-ops.

    Progress events are transient status; broken-link events are permanent
    findings. Reporters are expected to keep the two apart.
    """

    def on_fields_detected(self, fields: List[str]) -> None:
        pass

    def on_no_links(self) -> None:
        pass

    def on_total(self, total: int) -> None:
        pass

    def on_progress(self, index: int, total: int) -> None:
        pass

    def on_broken_link(self, record: BrokenLink) -> None:
        pass

    def on_summary(self, summary: AuditSummary) -> None:
        pass


class AuditSession:
    """Run one audit over a document source."""

    def __init__(
        self,
        source: DocumentSource,
        checker: LinkChecker,
        *,
        sample_size: int = 10,
        concurrency: int = 1,
        listener: Optional[AuditListener] = None,
    ) -> None:
        self.source = source
        self.checker = checker
        self.sample_size = sample_size
        self.concurrency = max(1, concurrency)
        self.listener = listener or AuditListener()
        self.summary = AuditSummary()
        self._state = AuditState.idle

    @property
    def state(self) -> AuditState:
        return self._state

    def _transition(self, new_state: AuditState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Invalid audit transition {self._state.value} -> {new_state.value}"
            )
        LOGGER.debug("Audit state: %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    async def run(self) -> AuditSummary:
        """
        Execute the audit to completion.

        Returns:
            AuditSummary. Its ``outcome`` is ``"no_links_found"`` when the
            sample holds no link fields, ``"completed"`` otherwise.

        Raises:
            RuntimeError: If the session was already run.
        """
        self._transition(AuditState.sniffing)
        LOGGER.info("Inspecting up to %d sample documents", self.sample_size)
        fields = sniff_fields(await asyncio.to_thread(self._sample))

        if not fields:
            self._transition(AuditState.no_links_found)
            LOGGER.info("No fields containing links were detected")
            self.summary.outcome = AuditState.no_links_found.value
            self.listener.on_no_links()
            self.listener.on_summary(self.summary)
            return self.summary

        self.summary.fields = list(fields)
        self.listener.on_fields_detected(list(fields))
        harvester = LinkHarvester(self.source.all_documents, fields)

        self._transition(AuditState.counting)
        total = await asyncio.to_thread(harvester.count)
        self.summary.total_links = total
        LOGGER.info("Total links to check: %d", total)
        self.listener.on_total(total)

        self._transition(AuditState.checking)
        await self._check_all(harvester, total)

        self._transition(AuditState.summarized)
        LOGGER.info(
            "Audit complete: %d documents, %d links, %d broken",
            self.summary.documents_processed,
            self.summary.total_links,
            self.summary.broken_count,
        )
        self.listener.on_summary(self.summary)
        return self.summary

    def _sample(self) -> List[Document]:
        return list(self.source.sample_documents(self.sample_size))

    async def _check_all(self, harvester: LinkHarvester, total: int) -> None:
        # Indices are assigned at dispatch and results settle in dispatch
        # order, so at most ``concurrency`` checks are in flight. Documents are
        # pulled from the source in a worker thread; a database cursor may
        # block on the network between batches.
        pending: Deque[_Pending] = deque()
        documents = harvester.by_document()
        index = 0
        try:
            while True:
                item = await asyncio.to_thread(next, documents, None)
                if item is None:
                    break
                _doc, occurrences = item
                self.summary.documents_processed += 1
                for occurrence in occurrences:
                    index += 1
                    task = asyncio.ensure_future(self._check_one(occurrence))
                    pending.append((index, occurrence, task))
                    if len(pending) >= self.concurrency:
                        await self._settle(pending.popleft(), total)
            while pending:
                await self._settle(pending.popleft(), total)
        finally:
            tasks = [task for _, _, task in pending]
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

        if index != total:
            LOGGER.warning(
                "Document set changed between passes: counted %d links, checked %d",
                total,
                index,
            )

    async def _check_one(self, occurrence: LinkOccurrence) -> CheckResult:
        try:
            return await self.checker.check(occurrence.url)
        except Exception as exc:
            LOGGER.warning("Unexpected error checking %s: %s", occurrence.url, exc)
            return CheckResult(url=occurrence.url, broken=True, reason=str(exc))

    async def _settle(self, item: _Pending, total: int) -> None:
        index, occurrence, task = item
        result = await task
        if not result.broken:
            LOGGER.debug("OK %s (link %d/%d)", occurrence.url, index, total)
            self.listener.on_progress(index, total)
            return

        record = BrokenLink(
            document_id=occurrence.document_id,
            field=occurrence.field,
            url=occurrence.url,
            index=index,
            total=total,
            reason=result.reason,
        )
        self.summary.broken_links.append(record)
        self.listener.on_broken_link(record)
