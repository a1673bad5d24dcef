"""Exceptions raised by the core filtering domain."""

from __future__ import annotations

from dataclasses import dataclass


class FilterError(Exception):
    """Base class for predictable filter and registry errors."""


class SubscriptionNotFound(FilterError, LookupError):
    """Unsubscribe attempted on a list that was never configured."""


class NoSuchFilter(FilterError, LookupError):
    """No filter in the registry carries the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"no such named filter: {name!r}")
        self.name = name


class DuplicateFilterName(FilterError, ValueError):
    """Two filters in one registry share a name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"duplicate filter name: {name!r}")
        self.name = name


class ConfigurationError(FilterError, ValueError):
    """Filter configuration does not have the expected shape."""


class ResolutionError(FilterError):
    """A directory could not resolve a handle to a repository identifier."""


@dataclass(frozen=True)
class ResolutionFailure:
    """Diagnostic for one handle that could not be resolved during init."""

    handle: str
    reason: str
