"""Application entry point for the skyscope watcher."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

import settings as settings_module
from adapters.console_notifier import ConsoleNotifier, LoggingNotifier
from adapters.jetstream_mapper import build_event
from adapters.jetstream_source import JetstreamSource
from adapters.sqlite_storage import SQLiteStorage
from client import build_directory_client
from core.errors import ResolutionError
from core.processor import EventProcessor
from core.registry import FilterRegistry, build_registry
from settings import Settings, load_settings

NAME = "SKYSCOPE"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(config: dict) -> None:
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/skyscope.log")
        if not os.path.isabs(path):
            path = os.path.join(settings_module.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _load_registry(settings: Settings, resolve: bool = True) -> FilterRegistry:
    """Build the registry from settings and resolve handles once."""

    registry = build_registry(settings.filters)
    LOGGER.info("%s filters are loaded", len(registry))
    if not resolve:
        return registry

    directory = build_directory_client(settings.directory)
    failures = registry.init(directory)
    unresolved = sum(len(items) for items in failures.values())
    if unresolved:
        LOGGER.warning("%s handles could not be resolved", unresolved)
    return registry


def _build_notifier(settings: Settings):
    # Select the notification adapter based on configuration to keep the core
    # processor independent from delivery details.
    if settings.notifications.method == "log":
        return LoggingNotifier()
    return ConsoleNotifier(mode=settings.notifications.format)


async def _stream(
    settings: Settings,
    registry: FilterRegistry,
    storage: SQLiteStorage,
) -> None:
    """Feed Jetstream events through the processor until interrupted."""

    stream_key = settings.stream.url
    processor = EventProcessor(
        registry=registry,
        storage=storage,
        notifier=_build_notifier(settings),
        stream_key=stream_key,
        snippet_chars=settings.notifications.snippet_chars,
    )
    source = JetstreamSource(
        url=settings.stream.url,
        wanted_collections=settings.stream.wanted_collections,
        cursor=storage.get_cursor(stream_key),
        reconnect_delay=settings.stream.reconnect_delay,
    )

    async for message in source.messages():
        try:
            event = build_event(message)
            await processor.handle(event)
        except Exception:
            LOGGER.exception("Error while processing event")


def _run(settings: Settings) -> None:
    _print_banner()
    LOGGER.info("Starting skyscope")

    storage = SQLiteStorage(settings.db_path)
    storage.init_db()

    registry = _load_registry(settings)
    LOGGER.info("Listening on %s", settings.stream.url)
    try:
        asyncio.run(_stream(settings, registry, storage))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted, shutting down")


def _optional(values: Optional[list[str]]) -> str:
    if values is None:
        return "-"
    return "\n".join(values) or "(empty)"


def _show_filters(settings: Settings, resolve: bool) -> None:
    registry = _load_registry(settings, resolve=resolve)
    table = Table(title="Filters")
    for column in ("Name", "DIDs", "Handles", "Includes", "Excludes"):
        table.add_column(column)

    for item in registry.snapshot():
        subscribes = item.subscribes
        keywords = item.keywords
        table.add_row(
            item.name,
            _optional(subscribes.dids if subscribes else None),
            _optional(subscribes.handles if subscribes else None),
            _optional(keywords.includes if keywords else None),
            _optional(keywords.excludes if keywords else None),
        )
    Console().print(table)


def _show_matches(settings: Settings, limit: int, filter_name: Optional[str]) -> None:
    storage = SQLiteStorage(settings.db_path)
    storage.init_db()
    table = Table(title="Recent matches")
    for column in ("Filter", "Repo", "Kind", "Why", "Text"):
        table.add_column(column)
    for match in storage.list_matches(limit=limit, filter_name=filter_name):
        table.add_row(match.filter_name, match.repo, match.kind, match.reason, match.text_snippet)
    Console().print(table)


def _resolve(settings: Settings, handles: list[str]) -> int:
    directory = build_directory_client(settings.directory)
    console = Console()
    status = 0
    for handle in handles:
        try:
            did = directory.resolve_handle(handle)
        except ResolutionError as exc:
            console.print(f"{handle}: [red]{exc}[/red]")
            status = 1
            continue
        console.print(f"{handle}: {did}")
    return status


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="skyscope")
    parser.add_argument("--config", help="Path to config.json or config.yaml")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the watcher")
    filters_parser = subparsers.add_parser("filters", help="Show configured filters")
    filters_parser.add_argument(
        "--no-resolve",
        action="store_true",
        help="Skip handle resolution and show filters as configured",
    )
    matches_parser = subparsers.add_parser("matches", help="Show recent matches")
    matches_parser.add_argument("--limit", type=int, default=20)
    matches_parser.add_argument("--filter", dest="filter_name")
    resolve_parser = subparsers.add_parser("resolve", help="Resolve handles to DIDs")
    resolve_parser.add_argument("handles", nargs="+")

    args = parser.parse_args(argv)
    settings = load_settings(args.config)
    _configure_logging(settings.logging)

    if args.command == "filters":
        _show_filters(settings, resolve=not args.no_resolve)
        return
    if args.command == "matches":
        _show_matches(settings, args.limit, args.filter_name)
        return
    if args.command == "resolve":
        raise SystemExit(_resolve(settings, args.handles))
    _run(settings)


if __name__ == "__main__":
    main()
