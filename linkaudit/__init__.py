"""Dead-link auditor for collections of semi-structured documents.

This module provides a small API for finding broken hyperlinks in documents
whose shape is not known in advance. It:

- Detects which fields hold links by sniffing a sample of documents
- Extracts every URL from those fields (plain text, embedded in prose, arrays)
- Checks each URL (status probe for ordinary links, page content for videos)
- Streams progress and broken-link events, then returns a summary

Example usage:

    from linkaudit import JsonFileSource, MemorySource, audit_links

    # Records already in memory
    summary = audit_links(MemorySource([
        {"_id": 1, "link": "https://example.com"},
        {"_id": 2, "refs": ["see https://example.org/a", "https://example.org/b"]},
    ]))
    print(summary.total_links, summary.broken_count)

    # JSON / JSON Lines export
    summary = audit_links(JsonFileSource("./export.jsonl"))
    for record in summary.broken_links:
        print(record.document_id, record.field, record.url)

    # Streaming events
    from linkaudit import AuditListener

    class Printer(AuditListener):
        def on_broken_link(self, record):
            print("broken:", record.url)

    summary = await audit_links_async(source, listener=Printer())
"""

from __future__ import annotations

import asyncio
from typing import Optional

from .checker import LinkChecker
from .config import AuditConfig, AuditOverrides, ConfigError, build_audit_config
from .document import (
    AuditSummary,
    BrokenLink,
    CheckResult,
    Document,
    FieldKind,
    FieldValue,
    LinkOccurrence,
)
from .extract import extract_urls, urls_from_text
from .fetcher import FetchError, Fetcher, FetchMethod, FetchResponse, HttpxFetcher
from .harvest import LinkHarvester, harvest
from .session import AuditListener, AuditSession, AuditState
from .sniffer import sniff_fields
from .sources import (
    DocumentSource,
    JsonFileSource,
    MemorySource,
    MongoSource,
    SelectionError,
    SourceError,
)

__all__ = [
    # Data model
    "AuditSummary",
    "BrokenLink",
    "CheckResult",
    "Document",
    "FieldKind",
    "FieldValue",
    "LinkOccurrence",
    # Engine
    "extract_urls",
    "urls_from_text",
    "sniff_fields",
    "harvest",
    "LinkHarvester",
    "LinkChecker",
    "AuditSession",
    "AuditState",
    "AuditListener",
    # Transport
    "Fetcher",
    "FetchMethod",
    "FetchResponse",
    "FetchError",
    "HttpxFetcher",
    # Sources
    "DocumentSource",
    "MemorySource",
    "JsonFileSource",
    "MongoSource",
    "SourceError",
    "SelectionError",
    # Config
    "AuditConfig",
    "AuditOverrides",
    "ConfigError",
    "build_audit_config",
    # Entry points
    "audit_links",
    "audit_links_async",
    "mcp",
]


def get_mcp_server():
    """Get the MCP server instance (lazy import to avoid dependency if not needed)."""
    from .mcp_server import mcp

    return mcp


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


async def audit_links_async(
    source: DocumentSource,
    *,
    config: Optional[AuditConfig] = None,
    listener: Optional[AuditListener] = None,
    fetcher: Optional[Fetcher] = None,
) -> AuditSummary:
    """
    Audit every link held by the documents of *source*.

    Args:
        source: Document source (sample + full set).
        config: Optional AuditConfig; built from the environment when omitted.
        listener: Optional AuditListener receiving progress and findings.
        fetcher: Optional transport; an HttpxFetcher is created (and closed)
            when omitted.

    Returns:
        AuditSummary with counts and the broken-link records.
    """
    config = config or build_audit_config()

    async def _run(active: Fetcher) -> AuditSummary:
        checker = LinkChecker(
            active,
            video_hosts=config.video_hosts,
            unavailable_phrases=config.unavailable_phrases,
        )
        session = AuditSession(
            source,
            checker,
            sample_size=config.sample_size,
            concurrency=config.concurrency,
            listener=listener,
        )
        return await session.run()

    if fetcher is not None:
        return await _run(fetcher)

    async with HttpxFetcher(timeout=config.timeout, user_agent=config.user_agent) as owned:
        return await _run(owned)


def audit_links(
    source: DocumentSource,
    *,
    config: Optional[AuditConfig] = None,
    listener: Optional[AuditListener] = None,
    fetcher: Optional[Fetcher] = None,
) -> AuditSummary:
    """Synchronous wrapper for audit_links_async."""
    return asyncio.run(
        audit_links_async(source, config=config, listener=listener, fetcher=fetcher)
    )
