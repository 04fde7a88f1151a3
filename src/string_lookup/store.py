"""The lookup store: get-or-create identifiers for strings and resolve them back."""
from __future__ import annotations

import logging
import weakref
from typing import Any, Iterator, Mapping, Optional, Tuple, Union, overload

from .config import StoreConfig
from .errors import (
    AssignUnsupportedError,
    ClearUnsupportedError,
    DeleteUnsupportedError,
    StoreClosedError,
)
from .flush import AutoflushPolicy, FlushOutcome, FlushScheduler
from .identifiers import IdentifierAllocator
from .keys import IdKey, Key, StringKey, Value
from .mapping import BidirectionalMap, Pair, PairSequence

logger = logging.getLogger(__name__)


def _flush_abandoned(scheduler: FlushScheduler) -> None:
    """Last flush for a store dropped without ``close()``."""

    pending = scheduler.pending
    if not pending:
        return
    logger.warning("Lookup store was never closed; flushing %d identifiers", len(pending))
    outcome = scheduler.finalize()
    if not outcome.ok:
        logger.warning("Flush of an unclosed lookup store did not succeed (%s)", outcome.value)


class FastPathView:
    """Read-only lookups straight from the store's dictionaries.

    A miss here means nothing more than "not known yet": follow it with
    :meth:`LookupStore.resolve` to get an identifier allocated::

        identifier = fast.by_string(value)
        if identifier is None:
            identifier = store.id_for(value)
    """

    def __init__(self, by_value: Mapping[Value, int], by_id: Mapping[int, Value]) -> None:
        self._by_value = by_value
        self._by_id = by_id

    def by_string(self, value: Value) -> Optional[int]:
        return self._by_value.get(value)

    def by_id(self, identifier: int) -> Optional[Value]:
        return self._by_id.get(identifier)

    def get(self, key: Key) -> Union[int, Value, None]:
        if isinstance(key, StringKey):
            return self._by_value.get(key.value)
        if isinstance(key, IdKey):
            return self._by_id.get(key.identifier)
        raise TypeError(f"Expected StringKey or IdKey, got {type(key).__name__}")

    def __contains__(self, key: object) -> bool:
        if isinstance(key, StringKey):
            return key.value in self._by_value
        if isinstance(key, IdKey):
            return key.identifier in self._by_id
        return False


class LookupStore:
    """Assign stable integer identifiers to strings, authoritatively.

    Options (all keyword-only, validated together):

    ``offset``
        Starting high-water mark, default 0.
    ``increment``
        Step between identifiers, default 1.
    ``init``
        Seed table of ``value -> id``: a mapping, a zero-argument callable
        returning one, or an object with ``load()``.
    ``flush``
        Callable ``(table, pending_ids)`` or an object with ``flush()``.
    ``autoflush``
        ``N`` to flush every N new strings, ``"Ns"`` to flush at most every
        N seconds. Requires ``flush``.
    ``clock``
        Seconds source for the time-based policy, default ``time.monotonic``.

    String lookups create identifiers on a miss; identifier lookups never
    change anything. The store does no locking of its own: serialize access
    from multiple threads externally.
    """

    def __init__(self, **options: Any) -> None:
        config = StoreConfig.from_options(**options)
        self._map = BidirectionalMap.from_seed(config.seed)
        self._allocator = IdentifierAllocator(config.offset, config.increment, config.seed.values())
        self._scheduler = FlushScheduler(
            self._map.table_view(),
            handler=config.flush_handler,
            policy=config.policy,
            clock=config.clock,
        )
        self._flusher = config.flusher
        self._closed = False
        self._final_outcome: Optional[FlushOutcome] = None
        self._finalizer = weakref.finalize(self, _flush_abandoned, self._scheduler)
        logger.debug(
            "Lookup store ready with %d seeded strings, offset %d, increment %d",
            len(self._map),
            self._allocator.offset,
            self._allocator.increment,
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    @overload
    def resolve(self, key: StringKey) -> int: ...

    @overload
    def resolve(self, key: IdKey) -> Optional[Value]: ...

    def resolve(self, key: Key) -> Union[int, Value, None]:
        self._check_open()
        if isinstance(key, StringKey):
            return self._get_or_create(key.value)
        if isinstance(key, IdKey):
            return self._map.by_id(key.identifier)
        raise TypeError(f"Expected StringKey or IdKey, got {type(key).__name__}")

    def id_for(self, value: Value) -> int:
        return self.resolve(StringKey(value))

    def string_for(self, identifier: int) -> Optional[Value]:
        return self.resolve(IdKey(identifier))

    def exists(self, key: Key) -> bool:
        self._check_open()
        if isinstance(key, StringKey):
            return self._map.contains(key.value)
        if isinstance(key, IdKey):
            return self._map.contains_id(key.identifier)
        raise TypeError(f"Expected StringKey or IdKey, got {type(key).__name__}")

    def iterate(self) -> PairSequence:
        self._check_open()
        return self._map.ordered_pairs()

    @property
    def fast_path(self) -> FastPathView:
        self._check_open()
        return FastPathView(self._map.string_view(), self._map.table_view())

    def _get_or_create(self, value: Value) -> int:
        identifier = self._map.by_string(value)
        if identifier is not None:
            return identifier
        identifier = self._allocator.next()
        self._map.insert(identifier, value)
        logger.debug("Assigned identifier %d", identifier)
        self._scheduler.register(identifier)
        return identifier

    # ------------------------------------------------------------------
    # Flushing and lifecycle
    # ------------------------------------------------------------------
    def flush(self) -> FlushOutcome:
        self._check_open()
        return self._scheduler.flush()

    def wait(self, timeout: Optional[float] = None) -> Optional[FlushOutcome]:
        """Block until an asynchronous flush still in flight has completed."""

        self._check_open()
        return self._scheduler.wait(timeout)

    def close(self) -> FlushOutcome:
        """Make the final flush attempt and release the store.

        A failed final flush is logged and returned, not raised. Calling
        ``close`` again returns the same outcome without flushing twice.
        """

        if self._closed:
            return self._final_outcome
        self._closed = True
        self._finalizer.detach()
        # stays FAILED if the final flush raises
        self._final_outcome = FlushOutcome.FAILED
        try:
            outcome = self._scheduler.finalize()
        finally:
            close_flusher = getattr(self._flusher, "close", None)
            if callable(close_flusher):
                close_flusher()
        if not outcome.ok:
            logger.warning(
                "Final flush did not succeed (%s); %d identifiers were not written",
                outcome.value,
                len(self._scheduler.pending),
            )
        self._final_outcome = outcome
        return outcome

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "LookupStore":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise StoreClosedError("Lookup store is closed")

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def pending(self) -> Tuple[int, ...]:
        return self._scheduler.pending

    @property
    def last_outcome(self) -> Optional[FlushOutcome]:
        return self._scheduler.last_outcome

    @property
    def offset(self) -> int:
        return self._allocator.offset

    @property
    def increment(self) -> int:
        return self._allocator.increment

    @property
    def policy(self) -> AutoflushPolicy:
        return self._scheduler.policy

    def __len__(self) -> int:
        return len(self._map)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (StringKey, IdKey)):
            return False
        return self.exists(key)

    def __iter__(self) -> Iterator[Pair]:
        return iter(self.iterate())

    # ------------------------------------------------------------------
    # Mutations a lookup store refuses
    # ------------------------------------------------------------------
    def clear(self) -> None:
        raise ClearUnsupportedError()

    def delete(self, key: Key) -> None:
        raise DeleteUnsupportedError()

    def assign(self, key: Key, value: Any) -> None:
        raise AssignUnsupportedError()

    def __delitem__(self, key: Key) -> None:
        raise DeleteUnsupportedError()

    def __setitem__(self, key: Key, value: Any) -> None:
        raise AssignUnsupportedError()


__all__ = ["FastPathView", "LookupStore"]
