"""SQLite-backed storage for lookup associations."""
from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple, Union

from ..keys import Value

logger = logging.getLogger(__name__)

Row = Tuple[int, Value]

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SqlBackend:
    """Store associations in an SQLite table ``(id INTEGER PRIMARY KEY, value)``.

    The ``value`` column has no declared type, so ``str`` comes back as
    ``str`` and ``bytes`` as ``bytes``.
    """

    def __init__(self, path: Union[str, Path], table: str = "lookup") -> None:
        if not _TABLE_NAME.match(table):
            raise ValueError(f"Invalid table name {table!r}")
        self._db_path = Path(path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self.table = table
        self._closed = False
        self._init_table()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self._db_path))

    def _init_table(self) -> None:
        conn = self._connect()
        try:
            conn.execute(f"CREATE TABLE IF NOT EXISTS {self.table} (id INTEGER PRIMARY KEY, value)")
            conn.commit()
        finally:
            conn.close()

    def load(self) -> Mapping[Value, int]:
        conn = self._connect()
        try:
            rows = conn.execute(f"SELECT id, value FROM {self.table} ORDER BY id").fetchall()
        finally:
            conn.close()
        table: Dict[Value, int] = {value: identifier for identifier, value in rows}
        logger.debug("Loaded %d associations from %s:%s", len(table), self._db_path, self.table)
        return table

    def flush(self, table: Mapping[int, Value], pending: Sequence[int]) -> bool:
        return self.write_rows(self.rows_for(table, pending))

    @staticmethod
    def rows_for(table: Mapping[int, Value], pending: Sequence[int]) -> List[Row]:
        return [(identifier, table[identifier]) for identifier in pending]

    def write_rows(self, rows: Sequence[Row]) -> bool:
        """Insert *rows* in one transaction; ``False`` if the database refused."""

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            logger.warning("Could not open %s: %s", self._db_path, exc)
            return False
        try:
            with conn:
                conn.executemany(f"INSERT OR REPLACE INTO {self.table} (id, value) VALUES (?, ?)", rows)
        except sqlite3.Error as exc:
            logger.warning("Could not write %d rows to %s:%s: %s", len(rows), self._db_path, self.table, exc)
            return False
        finally:
            conn.close()
        return True

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "SqlBackend":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


__all__ = ["Row", "SqlBackend"]
