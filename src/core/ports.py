"""Ports (interfaces) used by the core.

Ports define the minimal contracts for the directory, storage, and
notification adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Optional, Protocol

from core.models import Event, MatchRecord


class DirectoryPort(Protocol):
    """Handle resolution required by filter initialization."""

    def resolve_handle(self, handle: str) -> str:
        """Return the DID for a handle or raise ResolutionError."""
        ...


class StoragePort(Protocol):
    """Storage operations required by the event processor."""

    def get_cursor(self, stream: str) -> Optional[int]:
        ...

    def set_cursor(self, stream: str, time_us: int) -> None:
        ...

    def save_match(self, match: MatchRecord) -> None:
        ...


class NotifierPort(Protocol):
    """Notification operations required by the event processor."""

    async def send(self, event: Event, match: MatchRecord) -> None:
        ...
