"""Convert strings to stable integer identifiers authoritatively and back."""

from .errors import (
    AssignUnsupportedError,
    ClearUnsupportedError,
    ConfigurationError,
    DeleteUnsupportedError,
    LookupInvariantError,
    StoreClosedError,
    StringLookupError,
    UnsupportedOperationError,
)
from .flush import CountPolicy, FlushOutcome, ManualPolicy, TimePolicy
from .keys import IdKey, StringKey
from .store import FastPathView, LookupStore

__version__ = "0.3.0"

__all__ = [
    "AssignUnsupportedError",
    "ClearUnsupportedError",
    "ConfigurationError",
    "CountPolicy",
    "DeleteUnsupportedError",
    "FastPathView",
    "FlushOutcome",
    "IdKey",
    "LookupInvariantError",
    "LookupStore",
    "ManualPolicy",
    "StoreClosedError",
    "StringKey",
    "StringLookupError",
    "TimePolicy",
    "UnsupportedOperationError",
]
