"""Core event processing pipeline.

This module is transport-agnostic. It only relies on ports for storage and
notifications, enabling other event sources or adapters without changes here.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from core.models import CommitEvent, Event, HandleUpdateEvent, MatchRecord, OtherEvent, event_kind
from core.ports import NotifierPort, StoragePort
from core.registry import FilterRegistry

LOGGER = logging.getLogger(__name__)


def _snippet(event: Event, snippet_chars: int) -> str:
    if isinstance(event, CommitEvent):
        return " ".join(event.texts)[:snippet_chars].strip()
    if isinstance(event, HandleUpdateEvent):
        return event.handle or ""
    return ""


class EventProcessor:
    """Orchestrates filter matching, persistence, and notifications."""

    def __init__(
        self,
        registry: FilterRegistry,
        storage: StoragePort,
        notifier: NotifierPort,
        stream_key: str,
        snippet_chars: int,
    ) -> None:
        self._registry = registry
        self._storage = storage
        self._notifier = notifier
        self._stream_key = stream_key
        self._snippet_chars = snippet_chars
        # Loaded once from storage, then kept in step with every write.
        self._cursor: Optional[int] = None

    async def handle(self, event: Event) -> List[str]:
        """Process one event and return the names of the filters it matched."""

        # Replay guard: Jetstream time_us values increase monotonically, so a
        # reconnect that resumes slightly early never reports the same event twice.
        if event.time_us is not None:
            if self._cursor is None:
                self._cursor = self._storage.get_cursor(self._stream_key) or 0
            if event.time_us <= self._cursor:
                return []

        matched: List[str] = []
        for item in self._registry:
            reason = item.explain(event)
            if reason is None:
                continue
            matched.append(item.name)

            # Lifecycle events pass every filter; they are control traffic, not hits.
            if isinstance(event, OtherEvent):
                continue

            record = MatchRecord(
                filter_name=item.name,
                repo=event.repo,
                kind=event_kind(event),
                reason=reason,
                text_snippet=_snippet(event, self._snippet_chars),
                uri=event.uri if isinstance(event, CommitEvent) else None,
                time_us=event.time_us,
            )
            self._storage.save_match(record)
            await self._notifier.send(event, record)
            LOGGER.info("Match saved for %s (%s)", event.repo, item.name)

        # Advance the cursor after all match handling to ensure restart safety.
        if event.time_us is not None:
            self._storage.set_cursor(self._stream_key, event.time_us)
            self._cursor = event.time_us
        return matched
