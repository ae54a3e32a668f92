from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from focus_tracker.errors import (
    FOREIGN_KEY_CODE,
    FocusTrackerError,
    NotAuthenticatedError,
    SchemaMissingError,
    StoreError,
    ValidationError,
)
from focus_tracker.models import SessionRecord
from focus_tracker.notifications import Notifier
from focus_tracker.store.focus_store import FocusStore

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[], Awaitable[None]]

GENERIC_FAILURE = "Your progress might not be saved."
MISSING_TABLE_FAILURE = "The focus_sessions table does not exist in the database. Please contact support."
AUTH_FAILURE = "User authentication error. Please try logging out and back in."
INVALID_DURATION_FAILURE = "The session was too short to record."
DISPLAY_FAILURE = (
    "Your session was saved but the display might not be up to date. Please refresh the page."
)


@dataclass(frozen=True)
class RecordOutcome:
    duration_minutes: int
    record: SessionRecord | None = None
    error: FocusTrackerError | None = None
    callback_error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def describe_record_failure(error: FocusTrackerError) -> str:
    if isinstance(error, SchemaMissingError):
        return MISSING_TABLE_FAILURE
    if isinstance(error, NotAuthenticatedError):
        return AUTH_FAILURE
    if isinstance(error, StoreError) and error.code == FOREIGN_KEY_CODE:
        return AUTH_FAILURE
    if isinstance(error, ValidationError):
        return INVALID_DURATION_FAILURE
    return GENERIC_FAILURE


class SessionRecorder:
    """Turns a finished work phase into a stored session and tells the user how it went.

    ``record`` never raises store failures; they come back inside the outcome.
    The completion callback runs only after a successful write, and its failure
    is reported on its own because the session is already stored.
    """

    def __init__(
        self,
        store: FocusStore,
        notifier: Notifier,
        on_complete: CompletionCallback | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.on_complete = on_complete

    async def record(self, duration_minutes: int) -> RecordOutcome:
        try:
            record = await self.store.record_session(duration_minutes)
        except FocusTrackerError as exc:
            logger.warning("focus session not recorded minutes=%s: %s", duration_minutes, exc)
            self.notifier.notify(
                "Error recording focus session",
                describe_record_failure(exc),
                variant="destructive",
            )
            return RecordOutcome(duration_minutes=duration_minutes, error=exc)

        self.notifier.notify(
            "Focus session completed!",
            f"{duration_minutes} minutes recorded successfully",
        )

        callback_error: Exception | None = None
        if self.on_complete is not None:
            try:
                await self.on_complete()
            except Exception as exc:
                logger.exception("refresh after focus session failed")
                callback_error = exc
                self.notifier.notify("Error updating display", DISPLAY_FAILURE, variant="destructive")

        return RecordOutcome(duration_minutes=duration_minutes, record=record, callback_error=callback_error)
