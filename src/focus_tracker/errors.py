from __future__ import annotations


class FocusTrackerError(Exception):
    pass


class ValidationError(FocusTrackerError, ValueError):
    pass


class NotAuthenticatedError(FocusTrackerError):
    pass


class TimerStateError(FocusTrackerError):
    pass


class StoreError(FocusTrackerError):
    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code


class SchemaMissingError(StoreError):
    """An expected table is absent. Callers degrade to empty results."""


class StoreUnavailableError(SchemaMissingError):
    """The table a write needs is absent, so the write cannot happen at all."""


class StoreWriteError(StoreError):
    pass


class StoreReadError(StoreError):
    pass


MISSING_TABLE_CODE = "42P01"
SCHEMA_CACHE_MISS_CODE = "PGRST205"
MISSING_TABLE_CODES = frozenset({MISSING_TABLE_CODE, SCHEMA_CACHE_MISS_CODE})
FOREIGN_KEY_CODE = "23503"


def looks_like_missing_table(message: str, code: str | None) -> bool:
    if code is not None:
        return code in MISSING_TABLE_CODES
    lowered = message.lower()
    # sqlite errors carry no code
    return "no such table" in lowered or "could not find the table" in lowered
