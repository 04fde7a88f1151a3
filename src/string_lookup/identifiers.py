"""Monotonic identifier allocation driven by an offset and an increment."""
from __future__ import annotations

from typing import Iterable, List

from .errors import ConfigurationError


def allocation_problems(offset: object, increment: object) -> List[str]:
    """Return every problem with an offset/increment pair, empty when valid."""

    problems: List[str] = []
    for name, value in (("Offset", offset), ("Increment", increment)):
        if isinstance(value, bool) or not isinstance(value, int):
            problems.append(f"{name} must be an integer, got {value!r}")
        elif value < 0:
            problems.append(f"{name} may not be negative")
    return problems


class IdentifierAllocator:
    """Hand out identifiers as ``offset + increment``, advancing the offset each time."""

    def __init__(self, offset: int = 0, increment: int = 1, seeded_ids: Iterable[int] = ()) -> None:
        problems = allocation_problems(offset, increment)
        if problems:
            raise ConfigurationError(problems)
        self._offset = max([offset, *seeded_ids])
        # a zero step would hand the same identifier to every new string
        self._increment = increment or 1

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def increment(self) -> int:
        return self._increment

    def next(self) -> int:
        self._offset += self._increment
        return self._offset


__all__ = ["IdentifierAllocator", "allocation_problems"]
