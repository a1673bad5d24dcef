"""Filter rules and the subscription state behind them (core domain).

A filter decides whether one event from the repository stream is relevant.
Commits from subscribed repositories are trusted unless an exclude keyword
fires; commits from everyone else only surface through include keywords.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from core.errors import ResolutionError, ResolutionFailure, SubscriptionNotFound
from core.models import CommitEvent, Event, HandleUpdateEvent
from core.ports import DirectoryPort

LOGGER = logging.getLogger(__name__)


@dataclass
class Subscriptions:
    """Repositories (by DID) and handles a filter watches.

    ``None`` means the list was never configured, which is not the same as an
    empty list: unsubscribing from an unconfigured list is an error.
    """

    dids: Optional[List[str]] = None
    handles: Optional[List[str]] = None

    def is_match(self, repo: str) -> bool:
        """Return whether the repository is subscribed. Handles are never consulted."""

        if self.dids is None:
            return False
        return repo in self.dids

    def subscribe_repo(self, did: str) -> None:
        if self.dids is None:
            self.dids = []
        self.dids.append(did)

    def unsubscribe_repo(self, did: str) -> None:
        if self.dids is None:
            raise SubscriptionNotFound("no such did")
        self.dids = [d for d in self.dids if d != did]

    def subscribe_handle(self, handle: str) -> None:
        if self.handles is None:
            self.handles = []
        self.handles.append(handle)

    def unsubscribe_handle(self, handle: str) -> None:
        if self.handles is None:
            raise SubscriptionNotFound("no such handle")
        self.handles = [h for h in self.handles if h != handle]


def _hits(terms: Optional[List[str]], texts: Iterable[str]) -> List[str]:
    if terms is None:
        return []
    texts = list(texts)
    return [term for term in terms if any(term in text for text in texts)]


@dataclass
class Keywords:
    """Include/exclude substring lists.

    Matching is raw, case-sensitive substring containment. An absent list
    never fires; it does not mean "match everything".
    """

    includes: Optional[List[str]] = None
    excludes: Optional[List[str]] = None

    def included_terms(self, texts: Iterable[str]) -> List[str]:
        """Return the include terms found in any of the text fragments."""

        return _hits(self.includes, texts)

    def excluded_terms(self, texts: Iterable[str]) -> List[str]:
        """Return the exclude terms found in any of the text fragments."""

        return _hits(self.excludes, texts)

    def includes_match(self, texts: Iterable[str]) -> bool:
        return bool(self.included_terms(texts))

    def excludes_match(self, texts: Iterable[str]) -> bool:
        return bool(self.excluded_terms(texts))


@dataclass
class Filter:
    """A named filter combining subscriptions and keywords."""

    name: str
    subscribes: Optional[Subscriptions] = None
    keywords: Optional[Keywords] = None

    def init(self, directory: DirectoryPort) -> List[ResolutionFailure]:
        """Convert the configured handles to DIDs.

        Resolution is best-effort: a handle that fails to resolve is left out
        of the DID list and reported in the returned failures. After init the
        handle list is cleared and only DIDs are used for matching.
        """

        if self.subscribes is None or self.subscribes.handles is None:
            return []

        failures: List[ResolutionFailure] = []
        resolved: List[str] = []
        for handle in self.subscribes.handles:
            try:
                resolved.append(directory.resolve_handle(handle))
            except ResolutionError as exc:
                failures.append(ResolutionFailure(handle=handle, reason=str(exc)))

        # dict.fromkeys collapses duplicates while keeping configured DIDs first.
        dids = list(dict.fromkeys([*(self.subscribes.dids or []), *resolved]))
        self.subscribes.dids = dids or None
        self.subscribes.handles = None
        LOGGER.debug(
            "Filter %s initialized: %s dids, %s unresolved handles",
            self.name,
            len(dids),
            len(failures),
        )
        return failures

    def _is_subscribed(self, repo: str) -> bool:
        if self.subscribes is None:
            return False
        return self.subscribes.is_match(repo)

    def _included_terms(self, texts: Iterable[str]) -> List[str]:
        if self.keywords is None:
            return []
        return self.keywords.included_terms(texts)

    def _excluded_terms(self, texts: Iterable[str]) -> List[str]:
        if self.keywords is None:
            return []
        return self.keywords.excluded_terms(texts)

    def explain(self, event: Event) -> Optional[str]:
        """Return a human-readable reason when the event matches, else None.

        Matching logic:
        - Commit from a subscribed repository: matches unless an exclude keyword is present.
        - Commit from any other repository: matches only if an include keyword is present.
        - Handle update: matches only for subscribed repositories; keywords are ignored.
        - Anything else passes through.
        """

        if isinstance(event, CommitEvent):
            if self._is_subscribed(event.repo):
                if self._excluded_terms(event.texts):
                    return None
                return "subscribed repository"
            included = self._included_terms(event.texts)
            if not included:
                return None
            return f"keyword(s): {', '.join(sorted(set(included)))}"

        if isinstance(event, HandleUpdateEvent):
            if self._is_subscribed(event.repo):
                return "handle update"
            return None

        return "pass-through"

    def is_match(self, event: Event) -> bool:
        """Return whether the filter matches the event."""

        return self.explain(event) is not None

    def subscribe_repo(self, did: str) -> None:
        if self.subscribes is None:
            self.subscribes = Subscriptions()
        self.subscribes.subscribe_repo(did)

    def unsubscribe_repo(self, did: str) -> None:
        if self.subscribes is None:
            raise SubscriptionNotFound("no such did")
        self.subscribes.unsubscribe_repo(did)

    def subscribe_handle(self, handle: str) -> None:
        if self.subscribes is None:
            self.subscribes = Subscriptions()
        self.subscribes.subscribe_handle(handle)

    def unsubscribe_handle(self, handle: str) -> None:
        if self.subscribes is None:
            raise SubscriptionNotFound("no such handle")
        self.subscribes.unsubscribe_handle(handle)

    def to_config(self) -> dict:
        """Return the filter in the same shape the config loader accepts."""

        entry: dict = {"name": self.name}
        if self.subscribes is not None:
            entry["subscribes"] = _without_none(
                dids=self.subscribes.dids, handles=self.subscribes.handles
            )
        if self.keywords is not None:
            entry["keywords"] = _without_none(
                includes=self.keywords.includes, excludes=self.keywords.excludes
            )
        return entry


def _without_none(**values: Optional[List[str]]) -> dict:
    return {key: list(value) for key, value in values.items() if value is not None}
