"""SQLite storage whose writes complete in the background."""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Mapping, Sequence, Union

from ..keys import Value
from .sql import SqlBackend

logger = logging.getLogger(__name__)


class AsyncSqlBackend(SqlBackend):
    """Like :class:`SqlBackend`, but ``flush`` returns a future.

    Rows are copied on the caller's thread before the write is handed to a
    single worker, so the store may keep growing while the write runs.
    """

    def __init__(self, path: Union[str, Path], table: str = "lookup") -> None:
        super().__init__(path, table)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="string-lookup-sql")

    def flush(self, table: Mapping[int, Value], pending: Sequence[int]) -> "Future[bool]":
        rows = self.rows_for(table, pending)
        logger.debug("Submitting %d rows for background write", len(rows))
        return self._executor.submit(self.write_rows, rows)

    def close(self) -> None:
        if self._closed:
            return
        super().close()
        self._executor.shutdown(wait=True)


__all__ = ["AsyncSqlBackend"]
