"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the wire format of any particular event stream.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class CommitEvent:
    """A change to a repository's content.

    ``texts`` holds the text fragments extracted from the commit (post bodies).
    Commits that carry no text, such as likes or deletes, have an empty tuple.
    """

    repo: str
    texts: Tuple[str, ...] = ()
    collection: Optional[str] = None
    rkey: Optional[str] = None
    operation: Optional[str] = None
    time_us: Optional[int] = None

    @property
    def uri(self) -> Optional[str]:
        """Return the at:// URI of the changed record, when known."""

        if not self.collection or not self.rkey:
            return None
        return f"at://{self.repo}/{self.collection}/{self.rkey}"


@dataclass(frozen=True)
class HandleUpdateEvent:
    """A repository's handle changed."""

    repo: str
    handle: Optional[str] = None
    time_us: Optional[int] = None


@dataclass(frozen=True)
class OtherEvent:
    """Any event that is not subject to content filtering (account lifecycle, etc.)."""

    kind: str
    repo: Optional[str] = None
    time_us: Optional[int] = None
    payload: dict = field(default_factory=dict, compare=False, repr=False)


Event = Union[CommitEvent, HandleUpdateEvent, OtherEvent]


def event_kind(event: Event) -> str:
    """Return a short label for the event variant."""

    if isinstance(event, CommitEvent):
        return "commit"
    if isinstance(event, HandleUpdateEvent):
        return "identity"
    return event.kind


@dataclass(frozen=True)
class MatchRecord:
    """Persisted representation of a single filter match."""

    filter_name: str
    repo: str
    kind: str
    reason: str
    text_snippet: str
    uri: Optional[str] = None
    time_us: Optional[int] = None
