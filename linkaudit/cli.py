"""Command-line interface for the link auditor."""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
import sys
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from dotenv import load_dotenv

from . import audit_links_async
from .cli_config import load_config
from .cli_output import ConsoleReporter, write_summary
from .cli_parsers import parse_audit_args
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

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "linkaudit"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"

Prompt = Callable[[str], str]


def _load_config() -> None:
    load_config(
        config_dir=CONFIG_DIR,
        config_env_file=CONFIG_ENV_FILE,
        cwd=Path.cwd(),
        load_env=load_dotenv,
        copy_file=shutil.copy,
    )


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _prompt(question: str) -> str:
    # The question goes to stderr so stdout stays clean for a JSON summary.
    sys.stderr.write(question)
    sys.stderr.flush()
    return input()



def _choose(
    names: List[str],
    preset: Optional[str],
    *,
    kind: str,
    prompt: Prompt,
    out: Optional[TextIO] = None,
) -> str:
    """Pick one of *names*, from the preset value or by asking the user."""
    out = out or sys.stdout
    if preset is None:
        print(f"\nAvailable {kind.capitalize()}s:", file=out)
        for index, name in enumerate(names, 1):
            print(f"{index}. {name}", file=out)
        preset = prompt(f"\nEnter the number or name of the {kind} to review: ")

    choice = resolve_choice(preset, names, kind=kind)
    print(f"\nYou selected the {kind}: {choice}", file=out)
    return choice


def _build_overrides(args: argparse.Namespace) -> AuditOverrides:
    return AuditOverrides(
        sample_size=args.sample_size,
        timeout=args.timeout,
        concurrency=args.concurrency,
        user_agent=args.user_agent,
    )


def _console(args: argparse.Namespace) -> TextIO:
    """Stream for human-readable messages.

    When the JSON summary is printed to stdout, everything else goes to stderr.
    """
    if args.json_output and not args.output:
        return sys.stderr
    return sys.stdout


async def _audit(source: DocumentSource, args: argparse.Namespace) -> AuditSummary:
    config = build_audit_config(_build_overrides(args))
    console = _console(args)
    reporter = ConsoleReporter(console, show_progress=not args.no_progress)
    print(
        "\nInspecting sample documents to detect fields containing links...",
        file=console,
    )
    return await audit_links_async(source, config=config, listener=reporter)


async def _run_audit_async(
    args: argparse.Namespace, prompt: Prompt = _prompt
) -> AuditSummary:
    """Resolve the document source, then run the audit against it."""
    if args.file:
        logging.info("Auditing file: %s", args.file)
        return await _audit(JsonFileSource(args.file, id_field=args.id_field), args)

    uri = mongodb_uri()
    console = _console(args)
    client = await asyncio.to_thread(open_mongo_client, uri)
    try:
        database = _choose(
            await asyncio.to_thread(list_databases, client),
            args.database,
            kind="database",
            prompt=prompt,
            out=console,
        )
        collection = _choose(
            await asyncio.to_thread(list_collections, client, database),
            args.collection,
            kind="collection",
            prompt=prompt,
            out=console,
        )
        source = MongoSource(client[database][collection], id_field=args.id_field)
        return await _audit(source, args)
    finally:
        await asyncio.to_thread(client.close)



def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the linkaudit command."""
    args = parse_audit_args(argv)
    _setup_logging(args.verbose)
    _load_config()

    try:
        summary = asyncio.run(_run_audit_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except (ConfigError, SelectionError, SourceError) as exc:
        logging.error("%s", exc)
        return 1
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1

    if args.output or args.json_output:
        write_summary(summary, args.output, args.json_output)

    if args.fail_on_broken and summary.broken_count:
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
