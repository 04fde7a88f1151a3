"""Construction options for a lookup store, validated all at once."""
from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ConfigurationError
from .flush import MANUAL, AutoflushPolicy, Clock, CountPolicy, FlushHandler, TimePolicy
from .identifiers import allocation_problems
from .keys import Value

_COUNT_PATTERN = re.compile(r"^([0-9]+)$")
_SECONDS_PATTERN = re.compile(r"^([0-9]+)s$")


@dataclass
class StoreConfig:
    offset: int = 0
    increment: int = 1
    seed: Dict[Value, int] = field(default_factory=dict)
    flush_handler: Optional[FlushHandler] = None
    policy: AutoflushPolicy = MANUAL
    clock: Clock = time.monotonic
    flusher: Any = None

    @classmethod
    def from_options(cls, **options: Any) -> "StoreConfig":
        """Build a config from keyword options, raising one error listing every problem."""

        problems: List[str] = []
        offset = options.pop("offset", 0)
        increment = options.pop("increment", 1)
        problems.extend(allocation_problems(offset, increment))

        seed: Dict[Value, int] = {}
        if "init" in options:
            init = options.pop("init")
            if init is not None:
                seed, seed_problems = _load_seed(init)
                problems.extend(seed_problems)

        flusher = options.pop("flush", None)
        handler: Optional[FlushHandler] = None
        if flusher is not None:
            handler = _flush_handler(flusher)
            if handler is None:
                problems.append(f"Flush must be callable or provide flush(), got {flusher!r}")

        policy = MANUAL
        autoflush = options.pop("autoflush", None)
        if autoflush is not None:
            parsed = parse_autoflush(autoflush)
            if parsed is None:
                problems.append(f"Don't know what to do with autoflush {autoflush!r}")
            elif parsed != MANUAL and flusher is None:
                problems.append("Doesn't make sense to autoflush without flush")
            else:
                policy = parsed

        clock = options.pop("clock", time.monotonic)
        if not callable(clock):
            problems.append(f"Clock must be callable, got {clock!r}")

        if options:
            problems.append(f"Don't know what to do with: {' '.join(sorted(options))}")
        if problems:
            raise ConfigurationError(problems)

        return cls(
            offset=offset,
            increment=increment,
            seed=seed,
            flush_handler=handler,
            policy=policy,
            clock=clock,
            flusher=flusher,
        )


def parse_autoflush(setting: object) -> Optional[AutoflushPolicy]:
    """Turn ``N``, ``"N"`` or ``"Ns"`` into a policy; ``None`` if unrecognised."""

    if isinstance(setting, bool):
        return None
    if isinstance(setting, int):
        if setting < 0:
            return None
        return CountPolicy(setting) if setting else MANUAL
    if not isinstance(setting, str):
        return None
    match = _SECONDS_PATTERN.match(setting)
    if match:
        return TimePolicy(int(match.group(1)))
    match = _COUNT_PATTERN.match(setting)
    if match:
        count = int(match.group(1))
        return CountPolicy(count) if count else MANUAL
    return None


def _flush_handler(flusher: Any) -> Optional[FlushHandler]:
    method = getattr(flusher, "flush", None)
    if callable(method):
        return method
    if callable(flusher):
        return flusher
    return None


def _load_seed(init: Any) -> Tuple[Dict[Value, int], List[str]]:
    if isinstance(init, Mapping):
        table = init
    elif callable(getattr(init, "load", None)):
        table = init.load()
    elif callable(init):
        table = init()
    else:
        return {}, [f"Init must be a mapping, a callable or provide load(), got {init!r}"]

    if table is None:
        return {}, []
    if not isinstance(table, Mapping):
        return {}, [f"Init must produce a mapping of strings to ids, got {type(table).__name__}"]

    problems: List[str] = []
    seed: Dict[Value, int] = {}
    owners: Dict[int, Value] = {}
    for value, identifier in table.items():
        if not isinstance(value, (str, bytes)):
            problems.append(f"Seed key {value!r} is not a string")
            continue
        if isinstance(identifier, bool) or not isinstance(identifier, int) or identifier < 0:
            problems.append(f"Seed id for {value!r} must be a non-negative integer, got {identifier!r}")
            continue
        if identifier in owners:
            problems.append(f"Seed id {identifier} is assigned to both {owners[identifier]!r} and {value!r}")
            continue
        owners[identifier] = value
        seed[value] = identifier
    return seed, problems


__all__ = ["StoreConfig", "parse_autoflush"]
