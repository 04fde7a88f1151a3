from __future__ import annotations

import gc
import logging

import pytest

from helpers import FakeClock, RecordingFlusher
from string_lookup import (
    AssignUnsupportedError,
    ClearUnsupportedError,
    ConfigurationError,
    CountPolicy,
    DeleteUnsupportedError,
    FlushOutcome,
    IdKey,
    LookupStore,
    StoreClosedError,
    StringKey,
    UnsupportedOperationError,
)


@pytest.mark.parametrize(
    "offset, increment, expected",
    [(0, 10, [10, 20]), (1, 5, [6, 11]), (0, 1, [1, 2])],
)
def test_allocation_follows_offset_and_increment(offset: int, increment: int, expected: list) -> None:
    store = LookupStore(offset=offset, increment=increment)
    assert [store.resolve(StringKey("first")), store.resolve(StringKey("second"))] == expected


@pytest.mark.parametrize("offset, expected", [(5, 11), (15, 16)])
def test_seed_raises_offset(offset: int, expected: int) -> None:
    store = LookupStore(offset=offset, init={"foo": 10})
    assert store.resolve(StringKey("foo")) == 10
    assert store.resolve(StringKey("bar")) == expected


def test_seed_producer() -> None:
    store = LookupStore(init=lambda: {"foo": 3, "bar": 1})
    assert store.string_for(3) == "foo"
    assert store.id_for("baz") == 4


def test_round_trip_preserves_text_and_bytes() -> None:
    store = LookupStore()
    text_id = store.id_for("Mozilla/5.0")
    bytes_id = store.id_for(b"Mozilla/5.0")
    assert text_id != bytes_id
    assert store.resolve(IdKey(text_id)) == "Mozilla/5.0"
    assert store.resolve(IdKey(bytes_id)) == b"Mozilla/5.0"
    assert isinstance(store.string_for(bytes_id), bytes)


def test_numeric_looking_strings_are_strings() -> None:
    store = LookupStore(offset=100)
    assert store.id_for("7") == 101
    assert store.string_for(7) is None


def test_repeat_resolution_is_idempotent() -> None:
    store = LookupStore(flush=RecordingFlusher())
    identifier = store.id_for("x")
    pending = store.pending
    assert store.id_for("x") == identifier
    assert store.id_for("x") == identifier
    assert store.pending == pending
    assert len(store) == 1


def test_id_lookup_never_mutates() -> None:
    store = LookupStore(flush=RecordingFlusher())
    assert store.resolve(IdKey(1)) is None
    assert len(store) == 0
    assert store.pending == ()


def test_exists() -> None:
    store = LookupStore()
    assert not store.exists(StringKey("a"))
    assert not store.exists(IdKey(1))
    store.id_for("a")
    assert store.exists(StringKey("a"))
    assert store.exists(IdKey(1))
    assert StringKey("a") in store
    assert IdKey(2) not in store
    assert "a" not in store


def test_iterate_is_ascending_and_restartable() -> None:
    store = LookupStore(increment=10, init={"seeded": 5})
    for value in ["a", "b", "c"]:
        store.id_for(value)
    pairs = store.iterate()
    expected = [(5, "seeded"), (15, "a"), (25, "b"), (35, "c")]
    assert list(pairs) == expected
    assert list(pairs) == expected
    assert list(store) == expected


def test_count_autoflush_resets_batch() -> None:
    flusher = RecordingFlusher()
    store = LookupStore(flush=flusher, autoflush=3)
    assert store.policy == CountPolicy(3)
    for value in ["a", "b"]:
        store.id_for(value)
    assert len(store.pending) == 2
    store.id_for("c")
    assert store.pending == ()
    assert flusher.calls == [[1, 2, 3]]
    assert flusher.tables[0] == {1: "a", 2: "b", 3: "c"}


def test_time_autoflush() -> None:
    clock = FakeClock(0.0)
    flusher = RecordingFlusher()
    store = LookupStore(flush=flusher, autoflush="60s", clock=clock)
    store.id_for("a")
    clock.now = 59.0
    store.id_for("b")
    assert flusher.calls == []
    clock.now = 60.0
    store.id_for("c")
    assert flusher.calls == [[1, 2, 3]]


def test_failed_flush_is_resent() -> None:
    flusher = RecordingFlusher([False, True])
    store = LookupStore(flush=flusher)
    store.id_for("a")
    assert store.flush() is FlushOutcome.FAILED
    assert store.pending == (1,)
    store.id_for("b")
    assert store.flush() is FlushOutcome.FLUSHED
    assert flusher.calls == [[1], [1, 2]]
    assert store.last_outcome is FlushOutcome.FLUSHED


def test_flush_without_handler_is_a_no_op() -> None:
    store = LookupStore()
    store.id_for("a")
    assert store.pending == ()
    assert store.flush() is FlushOutcome.NOTHING_TO_FLUSH


@pytest.mark.parametrize(
    "options",
    [{}, {"flush": RecordingFlusher()}, {"flush": RecordingFlusher(), "autoflush": 1}, {"init": {"a": 1}}],
)
def test_disallowed_mutations(options: dict) -> None:
    store = LookupStore(**options)
    store.id_for("a")
    with pytest.raises(ClearUnsupportedError):
        store.clear()
    with pytest.raises(DeleteUnsupportedError):
        store.delete(StringKey("a"))
    with pytest.raises(DeleteUnsupportedError):
        del store[IdKey(1)]
    with pytest.raises(AssignUnsupportedError):
        store.assign(StringKey("b"), 2)
    with pytest.raises(AssignUnsupportedError):
        store[StringKey("b")] = 2
    with pytest.raises(UnsupportedOperationError):
        store.clear()
    assert len(store) == 1


def test_fast_path_never_allocates() -> None:
    store = LookupStore(flush=RecordingFlusher())
    fast = store.fast_path
    assert fast.by_string("a") is None
    assert fast.get(StringKey("a")) is None
    assert StringKey("a") not in fast
    assert len(store) == 0
    assert store.pending == ()

    identifier = fast.by_string("a") or store.id_for("a")
    assert fast.by_string("a") == identifier
    assert fast.by_id(identifier) == "a"
    assert fast.get(IdKey(identifier)) == "a"
    assert IdKey(identifier) in fast


def test_wrong_key_types() -> None:
    store = LookupStore()
    with pytest.raises(TypeError):
        store.resolve("a")  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        store.exists(1)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        StringKey(1)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        IdKey("1")  # type: ignore[arg-type]


def test_configuration_errors_surface_from_constructor() -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        LookupStore(offset=-1, autoflush="soon", bogus=1)
    assert len(excinfo.value.problems) == 3


def test_close_flushes_once_and_is_idempotent() -> None:
    flusher = RecordingFlusher()
    store = LookupStore(flush=flusher, autoflush=100)
    store.id_for("a")
    assert store.close() is FlushOutcome.FLUSHED
    assert store.close() is FlushOutcome.FLUSHED
    assert flusher.calls == [[1]]
    assert store.closed
    with pytest.raises(StoreClosedError):
        store.id_for("b")


def test_context_manager_flushes_on_error() -> None:
    flusher = RecordingFlusher()
    with pytest.raises(KeyError):
        with LookupStore(flush=flusher) as store:
            store.id_for("a")
            raise KeyError("boom")
    assert flusher.calls == [[1]]
    assert store.closed


def test_failed_final_flush_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    flusher = RecordingFlusher([False])
    store = LookupStore(flush=flusher)
    store.id_for("a")
    with caplog.at_level(logging.WARNING, logger="string_lookup"):
        assert store.close() is FlushOutcome.FAILED
    assert "Final flush did not succeed" in caplog.text


def test_close_closes_flusher() -> None:
    class ClosingFlusher(RecordingFlusher):
        closed = 0

        def close(self) -> None:
            self.closed += 1

    flusher = ClosingFlusher()
    store = LookupStore(flush=flusher)
    store.close()
    store.close()
    assert flusher.closed == 1
    assert flusher.calls == []


def test_resolving_while_iterating() -> None:
    store = LookupStore(init={"a": 1, "b": 2})
    seen = []
    for identifier, value in store.iterate():
        seen.append(identifier)
        store.id_for(value + "-derived")
    assert seen == [1, 2]
    assert list(store.iterate()) == [(1, "a"), (2, "b"), (3, "a-derived"), (4, "b-derived")]


def test_close_keeps_an_outcome_when_final_flush_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    store = LookupStore(flush=RecordingFlusher())
    store.id_for("a")

    def broken() -> FlushOutcome:
        raise RuntimeError("interrupted")

    monkeypatch.setattr(store._scheduler, "finalize", broken)
    with pytest.raises(RuntimeError):
        store.close()
    assert store.close() is FlushOutcome.FAILED
    assert store.closed


def test_unclosed_store_flushes_when_discarded(caplog: pytest.LogCaptureFixture) -> None:
    flusher = RecordingFlusher()
    store = LookupStore(flush=flusher)
    store.id_for("a")
    with caplog.at_level(logging.WARNING, logger="string_lookup"):
        del store
        gc.collect()
    assert flusher.calls == [[1]]
    assert "never closed" in caplog.text


def test_closed_store_does_not_flush_again_when_discarded() -> None:
    flusher = RecordingFlusher([False])
    store = LookupStore(flush=flusher)
    store.id_for("a")
    store.close()
    del store
    gc.collect()
    assert flusher.calls == [[1]]
