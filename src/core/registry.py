"""Filter registry and config-to-filter compilation (core domain)."""

from __future__ import annotations

import copy
import logging
from typing import Dict, Iterable, Iterator, List, Optional

from core.errors import ConfigurationError, DuplicateFilterName, NoSuchFilter, ResolutionFailure
from core.filters import Filter, Keywords, Subscriptions
from core.models import Event
from core.ports import DirectoryPort

LOGGER = logging.getLogger(__name__)


class FilterRegistry:
    """Ordered set of uniquely named filters.

    Mutation is routed by name. The registry is meant to be owned by a single
    event loop; wrap it in a lock if several threads need to mutate it.
    """

    def __init__(self, filters: Iterable[Filter] = ()) -> None:
        self._filters: List[Filter] = []
        for item in filters:
            self.add(item)

    def add(self, item: Filter) -> None:
        """Append a filter, rejecting a name that is already registered."""

        if any(existing.name == item.name for existing in self._filters):
            raise DuplicateFilterName(item.name)
        self._filters.append(item)

    def __iter__(self) -> Iterator[Filter]:
        return iter(self._filters)

    def __len__(self) -> int:
        return len(self._filters)

    def names(self) -> List[str]:
        return [item.name for item in self._filters]

    def get(self, name: str) -> Filter:
        """Return the filter with the given name or raise NoSuchFilter."""

        for item in self._filters:
            if item.name == name:
                return item
        raise NoSuchFilter(name)

    def init(self, directory: DirectoryPort) -> Dict[str, List[ResolutionFailure]]:
        """Initialize every filter in order, collecting unresolved handles.

        One filter's failures never stop the remaining filters from being
        initialized. Only filters with failures appear in the result.
        """

        failures: Dict[str, List[ResolutionFailure]] = {}
        for item in self._filters:
            item_failures = item.init(directory)
            if not item_failures:
                continue
            failures[item.name] = item_failures
            for failure in item_failures:
                LOGGER.warning(
                    "Filter %s: could not resolve handle %s (%s)",
                    item.name,
                    failure.handle,
                    failure.reason,
                )
        return failures

    def snapshot(self) -> List[Filter]:
        """Return a deep copy of all filters; later mutation does not affect it."""

        return copy.deepcopy(self._filters)

    def matching(self, event: Event) -> List[Filter]:
        """Return the filters that match the event, in registry order."""

        return [item for item in self._filters if item.is_match(event)]

    def subscribe_repo(self, name: str, did: str) -> None:
        self.get(name).subscribe_repo(did)

    def unsubscribe_repo(self, name: str, did: str) -> None:
        self.get(name).unsubscribe_repo(did)

    def subscribe_handle(self, name: str, handle: str) -> None:
        self.get(name).subscribe_handle(handle)

    def unsubscribe_handle(self, name: str, handle: str) -> None:
        self.get(name).unsubscribe_handle(handle)

    def to_config(self) -> List[dict]:
        return [item.to_config() for item in self._filters]


def _string_list(value, field: str, filter_name: str) -> Optional[List[str]]:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ConfigurationError(f"filter {filter_name!r}: {field} must be a list")
    for entry in value:
        if not isinstance(entry, str) or not entry:
            raise ConfigurationError(
                f"filter {filter_name!r}: {field} entries must be non-empty strings"
            )
    return list(value)


def _section(value, field: str, filter_name: str) -> Optional[dict]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ConfigurationError(f"filter {filter_name!r}: {field} must be a mapping")
    return value


def build_filter(entry: dict) -> Filter:
    """Build one Filter from its config entry.

    Missing sections stay None rather than empty so the absent/empty
    distinction survives into matching.
    """

    if not isinstance(entry, dict):
        raise ConfigurationError("filter entries must be mappings")
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigurationError("filter entries require a non-empty name")

    subscribes = None
    raw_subscribes = _section(entry.get("subscribes"), "subscribes", name)
    if raw_subscribes is not None:
        subscribes = Subscriptions(
            dids=_string_list(raw_subscribes.get("dids"), "subscribes.dids", name),
            handles=_string_list(raw_subscribes.get("handles"), "subscribes.handles", name),
        )

    keywords = None
    raw_keywords = _section(entry.get("keywords"), "keywords", name)
    if raw_keywords is not None:
        keywords = Keywords(
            includes=_string_list(raw_keywords.get("includes"), "keywords.includes", name),
            excludes=_string_list(raw_keywords.get("excludes"), "keywords.excludes", name),
        )

    return Filter(name=name, subscribes=subscribes, keywords=keywords)


def build_registry(filters_config: Iterable[dict]) -> FilterRegistry:
    """Build a registry from config entries, skipping disabled ones."""

    return FilterRegistry(
        build_filter(entry)
        for entry in filters_config
        if not (isinstance(entry, dict) and entry.get("enabled", True) is False)
    )
