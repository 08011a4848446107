"""Output and formatting helpers for CLI commands."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .document import AuditSummary, BrokenLink
from .session import AuditListener


def format_broken_link(record: BrokenLink) -> str:
    line = (
        f'Broken link in field "{record.field}" for document _id: '
        f"{record.document_id} -> {record.url} (link {record.index}/{record.total})"
    )
    if record.reason:
        line += f" [{record.reason}]"
    return line


def format_completion(summary: AuditSummary) -> str:
    return (
        f"Link check complete! Processed {summary.documents_processed} documents "
        f"and found {summary.broken_count} broken links."
    )


def format_summary_markdown(summary: AuditSummary) -> str:
    """Format an audit summary as markdown."""
    lines = ["# Link audit"]

    if summary.outcome == "no_links_found":
        lines.append("_No fields containing links were detected._")
        lines.append("")
        return "\n".join(lines)

    lines.append(
        f"_Checked {summary.total_links} links in "
        f"{summary.documents_processed} documents_"
    )
    lines.append("")
    lines.append("**Fields:** " + ", ".join(summary.fields))
    lines.append("")

    if not summary.broken_links:
        lines.append("No broken links found.")
        lines.append("")
        return "\n".join(lines)

    lines.append(f"## Broken links ({summary.broken_count})")
    lines.append("")
    for record in summary.broken_links:
        entry = f"- `{record.document_id}` **{record.field}**: {record.url}"
        if record.reason:
            entry += f" ({record.reason})"
        lines.append(entry)
    lines.append("")

    return "\n".join(lines)


def summary_to_json(summary: AuditSummary) -> str:
    return json.dumps(summary.to_dict(), indent=2, ensure_ascii=False)


def write_summary(
    summary: AuditSummary,
    output: Optional[str],
    json_output: bool,
) -> None:
    """Write the summary to a file, or to stdout when no output is given."""
    text = summary_to_json(summary) if json_output else format_summary_markdown(summary)

    if output is None:
        print(text)
        return

    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logging.info("Wrote summary to %s", path)


class ConsoleReporter(AuditListener):
    """Console listener with two channels.

    Progress goes to *status* as a single line overwritten in place; findings
    and phase messages are appended to *events*.
    """

    def __init__(
        self,
        events: Optional[TextIO] = None,
        status: Optional[TextIO] = None,
        *,
        show_progress: bool = True,
    ) -> None:
        self.events = events or sys.stdout
        self.status = status or sys.stderr
        self.show_progress = show_progress
        self._status_dirty = False

    def _emit(self, message: str) -> None:
        self._clear_status()
        print(message, file=self.events, flush=True)

    def _clear_status(self) -> None:
        if self._status_dirty:
            self.status.write("\n")
            self.status.flush()
            self._status_dirty = False

    def on_fields_detected(self, fields: List[str]) -> None:
        self._emit("Detected fields that may contain links:")
        for name in fields:
            self._emit(f"- {name}")

    def on_no_links(self) -> None:
        self._emit("No fields containing links were detected in the sample documents.")

    def on_total(self, total: int) -> None:
        self._emit(f"\nTotal links to check: {total}")

    def on_progress(self, index: int, total: int) -> None:
        if not self.show_progress:
            return
        self.status.write(f"\rChecking link {index}/{total} ")
        self.status.flush()
        self._status_dirty = True

    def on_broken_link(self, record: BrokenLink) -> None:
        self._emit(format_broken_link(record))

    def on_summary(self, summary: AuditSummary) -> None:
        if summary.outcome == "no_links_found":
            self._clear_status()
            return
        self._emit(f"\n{format_completion(summary)}")
