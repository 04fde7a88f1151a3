"""Authoritative string <-> identifier associations."""
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from .errors import LookupInvariantError
from .keys import Value

Pair = Tuple[int, Value]
TableView = Mapping[int, Value]


class PairSequence:
    """Restartable view over ``(identifier, value)`` pairs in ascending order.

    Every call to ``iter()`` starts again from the lowest identifier. Strings
    resolved while a loop is running do not show up in that loop.
    """

    def __init__(self, by_id: Mapping[int, Value]) -> None:
        self._by_id = by_id

    def __iter__(self) -> Iterator[Pair]:
        for identifier in list(self._by_id):
            yield identifier, self._by_id[identifier]

    def __len__(self) -> int:
        return len(self._by_id)


class BidirectionalMap:
    """Keep ``value -> id`` and ``id -> value`` in agreement.

    The identifier side is a sparse dictionary kept in ascending key order, so
    gaps left by a large increment cost nothing.
    """

    def __init__(self) -> None:
        self._by_value: Dict[Value, int] = {}
        self._by_id: Dict[int, Value] = {}
        self._max_id: Optional[int] = None

    @classmethod
    def from_seed(cls, seed: Mapping[Value, int]) -> "BidirectionalMap":
        mapping = cls()
        for value, identifier in sorted(seed.items(), key=lambda item: item[1]):
            mapping.insert(identifier, value)
        return mapping

    def insert(self, identifier: int, value: Value) -> None:
        if identifier in self._by_id:
            existing = self._by_id[identifier]
            if existing == value:
                return
            raise LookupInvariantError(
                f"Identifier {identifier} already belongs to {existing!r}, refusing {value!r}"
            )
        if value in self._by_value:
            raise LookupInvariantError(
                f"{value!r} already has identifier {self._by_value[value]}, refusing {identifier}"
            )
        self._by_value[value] = identifier
        self._by_id[identifier] = value
        if self._max_id is not None and identifier < self._max_id:
            # views handed out earlier must keep pointing at the same dict
            ordered = sorted(self._by_id.items())
            self._by_id.clear()
            self._by_id.update(ordered)
        else:
            self._max_id = identifier

    def by_string(self, value: Value) -> Optional[int]:
        return self._by_value.get(value)

    def by_id(self, identifier: int) -> Optional[Value]:
        return self._by_id.get(identifier)

    def contains(self, value: Value) -> bool:
        return value in self._by_value

    def contains_id(self, identifier: int) -> bool:
        return identifier in self._by_id

    def ordered_pairs(self) -> PairSequence:
        return PairSequence(self.table_view())

    def table_view(self) -> TableView:
        """Read-only ``id -> value`` mapping in ascending identifier order."""

        return MappingProxyType(self._by_id)

    def string_view(self) -> Mapping[Value, int]:
        return MappingProxyType(self._by_value)

    @property
    def max_id(self) -> Optional[int]:
        return self._max_id

    def __len__(self) -> int:
        return len(self._by_value)


__all__ = ["BidirectionalMap", "Pair", "PairSequence", "TableView"]
