"""Append-only JSON-lines store for lookup associations."""
from __future__ import annotations

import base64
import gzip
import logging
from pathlib import Path
from typing import IO, Dict, Iterator, List, Mapping, Sequence, Tuple, Union

import orjson

from ..keys import Value

logger = logging.getLogger(__name__)

Record = Dict[str, object]


def encode_record(identifier: int, value: Value) -> bytes:
    if isinstance(value, bytes):
        record: Record = {"id": identifier, "bytes": base64.b64encode(value).decode("ascii")}
    else:
        record = {"id": identifier, "text": value}
    return orjson.dumps(record) + b"\n"


def decode_record(line: bytes) -> Tuple[int, Value]:
    record = orjson.loads(line)
    identifier = record["id"]
    if "bytes" in record:
        return identifier, base64.b64decode(record["bytes"])
    return identifier, record["text"]


class FlatFileBackend:
    """Keep associations in a file with one JSON object per line.

    New associations are only ever appended; a ``.gz`` suffix writes gzip
    members, which read back as one stream.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def _open(self, mode: str) -> IO[bytes]:
        if self.path.suffix == ".gz":
            return gzip.open(self.path, mode)
        return self.path.open(mode)

    def iter_records(self) -> Iterator[Tuple[int, Value]]:
        if not self.path.exists():
            return
        with self._open("rb") as handle:
            for line in handle:
                if line.strip():
                    yield decode_record(line)

    def load(self) -> Mapping[Value, int]:
        table: Dict[Value, int] = {}
        for identifier, value in self.iter_records():
            table[value] = identifier
        logger.debug("Loaded %d associations from %s", len(table), self.path)
        return table

    def flush(self, table: Mapping[int, Value], pending: Sequence[int]) -> bool:
        lines: List[bytes] = [encode_record(identifier, table[identifier]) for identifier in pending]
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._open("ab") as handle:
                handle.writelines(lines)
        except OSError as exc:
            logger.warning("Could not append %d records to %s: %s", len(lines), self.path, exc)
            return False
        return True

    def close(self) -> None:
        """Nothing is held open between calls."""

    def __enter__(self) -> "FlatFileBackend":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


__all__ = ["FlatFileBackend", "decode_record", "encode_record"]
