from __future__ import annotations

from typing import Optional

from .week import WeekWindow


class ChoreCalendarError(Exception):
    """Base class for every failure the scheduler and comment pipeline report."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# PUBLIC_INTERFACE
class ValidationError(ChoreCalendarError):
    """A required field is missing or invalid. Nothing was written."""


# PUBLIC_INTERFACE
class QuotaExceededError(ChoreCalendarError):
    """The weekly cap for the limited category is already reached. Nothing was written."""

    def __init__(
        self,
        week: WeekWindow,
        cap: int,
        label: str = "Make your own",
        message: Optional[str] = None,
    ) -> None:
        super().__init__(message or f"Limit reached: only {cap} '{label}' days allowed per week.")
        self.week = week
        self.cap = cap


# PUBLIC_INTERFACE
class NotFoundError(ChoreCalendarError):
    """The target of an update or delete does not exist."""

    def __init__(self, entity_id: str, kind: str = "Chore") -> None:
        super().__init__(f"{kind} not found")
        self.entity_id = entity_id


# PUBLIC_INTERFACE
class UploadFailedError(ChoreCalendarError):
    """The image host call failed or returned an unusable result."""


# PUBLIC_INTERFACE
class UploadNotConfiguredError(UploadFailedError):
    """A photo was supplied but no image host is configured."""


# PUBLIC_INTERFACE
class StoreUnavailableError(ChoreCalendarError):
    """The persistence backend could not be read or written."""


# PUBLIC_INTERFACE
class RecipeLookupError(ChoreCalendarError):
    """The recipe service could not be reached or answered with an unusable result."""
