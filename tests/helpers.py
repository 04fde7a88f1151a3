from __future__ import annotations

from concurrent.futures import Future
from typing import Dict, List, Mapping, Sequence


class RecordingFlusher:
    """Flush handler that remembers every call and replays scripted results."""

    def __init__(self, results: Sequence[object] = ()) -> None:
        self.calls: List[List[int]] = []
        self.tables: List[Dict[int, object]] = []
        self._results = list(results)

    def flush(self, table: Mapping[int, object], pending: Sequence[int]) -> object:
        self.calls.append(list(pending))
        self.tables.append(dict(table))
        return self._results.pop(0) if self._results else True


class DeferredFlusher:
    """Flush handler that answers with futures the test completes by hand."""

    def __init__(self) -> None:
        self.calls: List[List[int]] = []
        self.futures: List[Future] = []

    def flush(self, table: Mapping[int, object], pending: Sequence[int]) -> Future:
        self.calls.append(list(pending))
        future: Future = Future()
        self.futures.append(future)
        return future


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now
