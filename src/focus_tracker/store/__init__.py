from .base import RowBackend
from .database import Database
from .focus_store import FocusStore
from .rest_backend import RestBackend
from .sqlite_backend import SqliteBackend

__all__ = [
    "RowBackend",
    "Database",
    "FocusStore",
    "RestBackend",
    "SqliteBackend",
]
