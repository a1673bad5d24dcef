"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class StreamConfig:
    """Event stream connection settings."""

    url: str
    wanted_collections: Tuple[str, ...]
    reconnect_delay: float


@dataclass(frozen=True)
class DirectoryConfig:
    """Handle resolution settings."""

    service_url: str
    timeout: float


@dataclass(frozen=True)
class NotificationConfig:
    """Notification settings consumed by notifier adapters."""

    method: str
    snippet_chars: int
    format: str = "plain"
