from __future__ import annotations


class SubscriptionError(Exception):
    """A live view could not load its snapshot.

    Subscribers only ever see ``message``; the cause stays in the log.
    """

    def __init__(self, message: str = "Failed to load evaluation records") -> None:
        super().__init__(message)
        self.message = message


class WriteError(Exception):
    """A create or delete against the record store failed."""

    def __init__(self, message: str, *, record_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.record_id = record_id


class ValidationError(ValueError):
    pass
