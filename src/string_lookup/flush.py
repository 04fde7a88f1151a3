"""Pending-batch bookkeeping and the autoflush policies that drive it."""
from __future__ import annotations

import concurrent.futures
import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from .mapping import TableView

logger = logging.getLogger(__name__)

FlushHandler = Callable[[TableView, List[int]], Any]
Clock = Callable[[], float]


class FlushOutcome(enum.Enum):
    FLUSHED = "flushed"
    FAILED = "failed"
    IN_FLIGHT = "in_flight"
    NOTHING_TO_FLUSH = "nothing_to_flush"

    @property
    def ok(self) -> bool:
        return self in (FlushOutcome.FLUSHED, FlushOutcome.NOTHING_TO_FLUSH)


@dataclass(frozen=True)
class ManualPolicy:
    """Flush only when asked to, or when the store is closed."""

    def due(self, pending: int, fresh: int, elapsed: float) -> bool:
        return False


@dataclass(frozen=True)
class CountPolicy:
    """Flush once *count* identifiers have arrived since the previous attempt.

    With a working handler that is every *count* insertions; a failed batch
    is retried after another *count* insertions.
    """

    count: int

    def due(self, pending: int, fresh: int, elapsed: float) -> bool:
        return fresh >= self.count


@dataclass(frozen=True)
class TimePolicy:
    """Flush on the first insertion at least *seconds* after the previous attempt."""

    seconds: int

    def due(self, pending: int, fresh: int, elapsed: float) -> bool:
        return pending > 0 and elapsed >= self.seconds


AutoflushPolicy = Union[ManualPolicy, CountPolicy, TimePolicy]
MANUAL = ManualPolicy()


class FlushScheduler:
    """Track identifiers added since the last successful flush.

    The handler receives the full ``id -> value`` table and the pending
    identifiers in insertion order. A truthy return means the write went
    through and the batch is dropped; anything else keeps the batch so the
    next attempt sends it again together with whatever arrived meanwhile.

    A handler may also return a :class:`concurrent.futures.Future`. The batch
    then stays in flight until the future completes; the result is picked up
    on the caller's thread the next time the scheduler is touched, and no
    second flush starts before that.
    """

    def __init__(
        self,
        table: TableView,
        handler: Optional[FlushHandler] = None,
        policy: AutoflushPolicy = MANUAL,
        clock: Clock = time.monotonic,
    ) -> None:
        self._table = table
        self._handler = handler
        self._policy = policy
        self._clock = clock
        self._pending: List[int] = []
        self._in_flight: Optional[concurrent.futures.Future] = None
        self._in_flight_batch: Tuple[int, ...] = ()
        self._last_attempt = clock()
        # batch size when the last attempt started
        self._pending_at_attempt = 0
        self.last_outcome: Optional[FlushOutcome] = None

    @property
    def policy(self) -> AutoflushPolicy:
        return self._policy

    @property
    def has_handler(self) -> bool:
        return self._handler is not None

    @property
    def pending(self) -> Tuple[int, ...]:
        self._settle()
        return tuple(self._pending)

    @property
    def in_flight(self) -> bool:
        self._settle()
        return self._in_flight is not None

    def register(self, identifier: int) -> Optional[FlushOutcome]:
        """Record a new identifier and flush if the policy says so."""

        if self._handler is None:
            return None
        self._pending.append(identifier)
        self._settle()
        size = len(self._pending)
        if self._policy.due(size, size - self._pending_at_attempt, self._clock() - self._last_attempt):
            return self.flush()
        return None

    def flush(self) -> FlushOutcome:
        if self._handler is None:
            return FlushOutcome.NOTHING_TO_FLUSH
        self._settle()
        if self._in_flight is not None:
            return FlushOutcome.IN_FLIGHT
        if not self._pending:
            return FlushOutcome.NOTHING_TO_FLUSH

        batch = tuple(self._pending)
        self._last_attempt = self._clock()
        self._pending_at_attempt = len(batch)
        logger.debug("Flushing %d pending identifiers", len(batch))
        try:
            result = self._handler(self._table, list(batch))
        except Exception:
            logger.exception("Flush handler raised; keeping %d identifiers for the next attempt", len(batch))
            return self._record(FlushOutcome.FAILED)

        if isinstance(result, concurrent.futures.Future):
            self._in_flight = result
            self._in_flight_batch = batch
            self._settle()
            return self.last_outcome if self._in_flight is None else self._record(FlushOutcome.IN_FLIGHT)
        return self._conclude(batch, bool(result))

    def wait(self, timeout: Optional[float] = None) -> Optional[FlushOutcome]:
        """Block until an in-flight flush completes and return how it ended."""

        future = self._in_flight
        if future is not None:
            concurrent.futures.wait([future], timeout=timeout)
            self._settle()
        return self.last_outcome

    def finalize(self) -> FlushOutcome:
        """Make the last flush attempt, waiting for any asynchronous result."""

        self.wait()
        outcome = self.flush()
        if outcome is FlushOutcome.IN_FLIGHT:
            outcome = self.wait() or FlushOutcome.FAILED
        return outcome

    # ------------------------------------------------------------------
    def _settle(self) -> None:
        future = self._in_flight
        if future is None or not future.done():
            return
        batch = self._in_flight_batch
        self._in_flight = None
        self._in_flight_batch = ()
        if future.cancelled():
            logger.warning("Asynchronous flush of %d identifiers was cancelled", len(batch))
            self._record(FlushOutcome.FAILED)
            return
        error = future.exception()
        if error is not None:
            logger.warning(
                "Asynchronous flush of %d identifiers failed: %s", len(batch), error, exc_info=error
            )
            self._record(FlushOutcome.FAILED)
            return
        self._conclude(batch, bool(future.result()))

    def _conclude(self, batch: Sequence[int], succeeded: bool) -> FlushOutcome:
        if not succeeded:
            logger.warning("Flush handler reported failure; keeping %d identifiers for the next attempt", len(batch))
            return self._record(FlushOutcome.FAILED)
        # the batch is always a prefix: identifiers are only ever appended
        del self._pending[: len(batch)]
        self._pending_at_attempt = max(0, self._pending_at_attempt - len(batch))
        return self._record(FlushOutcome.FLUSHED)

    def _record(self, outcome: FlushOutcome) -> FlushOutcome:
        self.last_outcome = outcome
        return outcome


__all__ = [
    "AutoflushPolicy",
    "Clock",
    "CountPolicy",
    "FlushHandler",
    "FlushOutcome",
    "FlushScheduler",
    "MANUAL",
    "ManualPolicy",
    "TimePolicy",
]
