"""Configuration loading for skyscope.

All user-editable settings (filters, stream, directory, notifications) live
in a single JSON or YAML file for quick edits without touching Python. The
loaded Settings value is passed explicitly to whoever needs it.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from adapters.directory_client import DEFAULT_SERVICE_URL
from adapters.jetstream_source import DEFAULT_JETSTREAM_URL
from core.config import DirectoryConfig, NotificationConfig, StreamConfig
from core.errors import ConfigurationError

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Default config location; --config or SKYSCOPE_CONFIG override it.
CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")

NOTIFICATION_METHODS = {"console", "log"}
NOTIFICATION_FORMATS = {"plain", "markdown"}


@dataclass(frozen=True)
class Settings:
    """Everything the app needs, parsed from one config file."""

    config_path: str
    filters: list[dict]
    stream: StreamConfig
    directory: DirectoryConfig
    notifications: NotificationConfig
    db_path: str
    logging: dict[str, Any] = field(default_factory=dict)


def resolve_config_path(path: Optional[str] = None) -> str:
    """Return the config path from the argument, the environment, or the default."""

    return path or os.getenv("SKYSCOPE_CONFIG") or CONFIG_PATH


def load_raw_config(path: str) -> dict:
    """Load a JSON or YAML config file, chosen by extension."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        if path.endswith((".yaml", ".yml")):
            data = yaml.safe_load(handle)
        else:
            data = json.load(handle)

    # An empty YAML document loads as None.
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config root must be a mapping: {path}")
    return data


def _section(config: dict, name: str) -> dict:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"{name} must be a mapping")
    return value


def build_settings(config: dict, config_path: str) -> Settings:
    """Normalize a raw config mapping into Settings with defaults applied."""

    filters = config.get("filters", [])
    if not isinstance(filters, list):
        raise ConfigurationError("filters must be a list")

    _stream = _section(config, "stream")
    collections = _stream.get("wanted_collections", ["app.bsky.feed.post"])
    if isinstance(collections, str):
        collections = [collections]
    stream = StreamConfig(
        url=_stream.get("url", DEFAULT_JETSTREAM_URL),
        wanted_collections=tuple(collections),
        reconnect_delay=float(_stream.get("reconnect_delay", 5)),
    )

    _directory = _section(config, "directory")
    directory = DirectoryConfig(
        service_url=_directory.get("service_url", DEFAULT_SERVICE_URL),
        timeout=float(_directory.get("timeout", 10)),
    )

    _notifications = _section(config, "notifications")
    method = _notifications.get("method", "console")
    if method not in NOTIFICATION_METHODS:
        raise ConfigurationError("notifications.method must be 'console' or 'log'")
    notification_format = _notifications.get("format", "plain")
    if notification_format not in NOTIFICATION_FORMATS:
        raise ConfigurationError("notifications.format must be 'plain' or 'markdown'")
    notifications = NotificationConfig(
        method=method,
        snippet_chars=int(_notifications.get("snippet_chars", 300)),
        format=notification_format,
    )

    # A relative db_path is resolved next to the config file.
    db_path = config.get("db_path", "skyscope.db")
    if not os.path.isabs(db_path):
        db_path = os.path.join(os.path.dirname(os.path.abspath(config_path)), db_path)

    return Settings(
        config_path=config_path,
        filters=filters,
        stream=stream,
        directory=directory,
        notifications=notifications,
        db_path=db_path,
        logging=_section(config, "logging"),
    )


def load_settings(path: Optional[str] = None) -> Settings:
    """Load and normalize the config file."""

    config_path = resolve_config_path(path)
    return build_settings(load_raw_config(config_path), config_path)
