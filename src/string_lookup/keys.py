"""Tagged lookup keys: a string to intern or an identifier to resolve."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

Value = Union[str, bytes]


@dataclass(frozen=True)
class StringKey:
    """Look up (or create) the identifier of *value*."""

    value: Value

    def __post_init__(self) -> None:
        if not isinstance(self.value, (str, bytes)):
            raise TypeError(f"StringKey value must be str or bytes, not {type(self.value).__name__}")


@dataclass(frozen=True)
class IdKey:
    """Look up the string previously assigned to *identifier*."""

    identifier: int

    def __post_init__(self) -> None:
        if isinstance(self.identifier, bool) or not isinstance(self.identifier, int):
            raise TypeError(f"IdKey identifier must be an int, not {type(self.identifier).__name__}")


Key = Union[StringKey, IdKey]


__all__ = ["IdKey", "Key", "StringKey", "Value"]
