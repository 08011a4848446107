"""MCP Server for the link auditor.

Provides tools for:
- Auditing a JSON / JSON Lines export for broken links
- Auditing a MongoDB collection for broken links

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for desktop MCP clients)
    python -m linkaudit.mcp_server

    # HTTP (for remote access)
    python -m linkaudit.mcp_server --transport http --port 8000

Environment Variables:
    MONGODB_URI: MongoDB connection string (required for audit_mongo)
    LINKAUDIT_SAMPLE_SIZE, LINKAUDIT_TIMEOUT, LINKAUDIT_CONCURRENCY,
    LINKAUDIT_USER_AGENT: audit defaults
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

from .cli_output import format_summary_markdown
from .config import AuditOverrides, ConfigError, build_audit_config, mongodb_uri
from .document import AuditSummary
from .sources import (
    DocumentSource,
    JsonFileSource,
    MongoSource,
    SelectionError,
    SourceError,
    list_collections,
    list_databases,
    open_mongo_client,
    resolve_choice,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

# Load .env before reading environment variables
load_dotenv()

# Create the MCP server
mcp = FastMCP(
    name="Link Auditor",
    instructions="""
    A broken-link auditor for document collections:

    - audit_file: Audit a JSON array or JSON Lines export
    - audit_mongo: Audit a MongoDB collection (uses MONGODB_URI)

    Link fields are detected automatically from a sample of documents.

    Output formats:
    - markdown: Summary with the list of broken links (default)
    - json: Full summary including every broken-link record
    """,
)


class OutputFormat(str, Enum):
    """Output format for audit results."""

    markdown = "markdown"
    json = "json"


def _format_timestamp() -> str:
    """Get current timestamp in ISO format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _format_output(summary: AuditSummary, output_format: OutputFormat) -> str:
    if output_format == OutputFormat.json:
        result = {"audited_at": _format_timestamp(), **summary.to_dict()}
        return json.dumps(result, indent=2, ensure_ascii=False)
    return f"{format_summary_markdown(summary)}\n_Audited: {_format_timestamp()}_"


def _error(message: str) -> str:
    LOGGER.error(message)
    return json.dumps({"error": message}, ensure_ascii=False)


async def _run(
    source: DocumentSource,
    output_format: str,
    sample_size: Optional[int],
    concurrency: Optional[int],
) -> str:
    from . import audit_links_async

    try:
        fmt = OutputFormat(output_format.lower())
    except ValueError:
        fmt = OutputFormat.markdown

    config = build_audit_config(
        AuditOverrides(sample_size=sample_size, concurrency=concurrency)
    )
    summary = await audit_links_async(source, config=config)
    LOGGER.info(
        "Audit complete: %d links, %d broken", summary.total_links, summary.broken_count
    )
    return _format_output(summary, fmt)


# =============================================================================
# AUDIT TOOLS
# =============================================================================


@mcp.tool
async def audit_file(
    path: str,
    output_format: str = "markdown",
    sample_size: Optional[int] = None,
    concurrency: Optional[int] = None,
    id_field: str = "_id",
):
    """
    Audit a JSON array or JSON Lines file for broken links.

    Args:
        path: Path to a .json (array of objects) or .jsonl file
        output_format: "markdown" (default) or "json"
        sample_size: Documents inspected to detect link fields (default: 10)
        concurrency: Links checked at the same time (default: 1)
        id_field: Field holding the document identifier (default: "_id")

    Returns:
        Audit summary in the specified format.

    Examples:
        audit_file(path="./export.jsonl")
        audit_file(path="./export.json", output_format="json", concurrency=4)
    """
    LOGGER.info("Auditing file: %s", path)
    try:
        return await _run(
            JsonFileSource(path, id_field=id_field),
            output_format,
            sample_size,
            concurrency,
        )
    except (ConfigError, SourceError) as exc:
        return _error(str(exc))


@mcp.tool
async def audit_mongo(
    database: str,
    collection: str,
    output_format: str = "markdown",
    sample_size: Optional[int] = None,
    concurrency: Optional[int] = None,
    id_field: str = "_id",
):
    """
    Audit a MongoDB collection for broken links.

    Args:
        database: Database name (or 1-based position in the database list)
        collection: Collection name (or 1-based position in the collection list)
        output_format: "markdown" (default) or "json"
        sample_size: Documents inspected to detect link fields (default: 10)
        concurrency: Links checked at the same time (default: 1)
        id_field: Field holding the document identifier (default: "_id")

    Returns:
        Audit summary in the specified format.

    Examples:
        audit_mongo(database="cms", collection="articles")
    """
    # pymongo is synchronous; its calls run in worker threads so the server
    # keeps answering other clients.
    try:
        client = await asyncio.to_thread(open_mongo_client, mongodb_uri())
    except (ConfigError, SourceError) as exc:
        return _error(str(exc))

    try:
        databases = await asyncio.to_thread(list_databases, client)
        db_name = resolve_choice(database, databases, kind="database")
        collections = await asyncio.to_thread(list_collections, client, db_name)
        coll_name = resolve_choice(collection, collections, kind="collection")
        LOGGER.info("Auditing MongoDB collection: %s.%s", db_name, coll_name)
        return await _run(
            MongoSource(client[db_name][coll_name], id_field=id_field),
            output_format,
            sample_size,
            concurrency,
        )
    except (ConfigError, SelectionError, SourceError) as exc:
        return _error(str(exc))
    finally:
        await asyncio.to_thread(client.close)



# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the link auditor MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
    MONGODB_URI   MongoDB connection string (for audit_mongo)

Examples:
    # STDIO transport (default)
    python -m linkaudit.mcp_server

    # HTTP transport (for remote access)
    python -m linkaudit.mcp_server --transport http --port 8000
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
