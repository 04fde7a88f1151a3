"""Exception types raised by the lookup store."""
from __future__ import annotations

from typing import Iterable, List


class StringLookupError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(StringLookupError, ValueError):
    """Raised once at construction time with every detected problem."""

    def __init__(self, problems: Iterable[str]) -> None:
        self.problems: List[str] = list(problems)
        super().__init__("\n".join(["Found the following problems:", *self.problems]))


class UnsupportedOperationError(StringLookupError):
    """Raised for mutations that a lookup store never allows."""


class ClearUnsupportedError(UnsupportedOperationError):
    def __init__(self) -> None:
        super().__init__("Cannot clear a lookup store")


class DeleteUnsupportedError(UnsupportedOperationError):
    def __init__(self) -> None:
        super().__init__("Cannot delete strings from a lookup store")


class AssignUnsupportedError(UnsupportedOperationError):
    def __init__(self) -> None:
        super().__init__("Cannot assign values to a lookup store")


class LookupInvariantError(StringLookupError, RuntimeError):
    """An insert would break the one-to-one string/identifier mapping."""


class StoreClosedError(StringLookupError):
    """The store has been closed and can no longer be used."""


__all__ = [
    "AssignUnsupportedError",
    "ClearUnsupportedError",
    "ConfigurationError",
    "DeleteUnsupportedError",
    "LookupInvariantError",
    "StoreClosedError",
    "StringLookupError",
    "UnsupportedOperationError",
]
