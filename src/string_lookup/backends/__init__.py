"""Storage backends that seed and persist a lookup store."""

from .async_sql import AsyncSqlBackend
from .flat_file import FlatFileBackend
from .sql import SqlBackend

__all__ = ["AsyncSqlBackend", "FlatFileBackend", "SqlBackend"]
