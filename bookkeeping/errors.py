"""
Error taxonomy for the journal engine.

Services raise these; they never catch and hide them. The API
layer maps each class to one HTTP status and rolls back the
request's session, so a failed request changes nothing.
"""


class BookkeepingError(Exception):
    """Base class for every error the journal engine raises on purpose."""


class ValidationError(BookkeepingError, ValueError):
    """
    Bad input: unbalanced entry, missing field, unknown or inactive
    account, malformed line, empty rejection reason.

    Subclasses ValueError so callers that follow the usual
    "raise ValueError on bad input" convention still catch it.
    """


class InvalidStateError(BookkeepingError):
    """The entry's current status does not allow the requested operation."""

    def __init__(self, message: str, status=None):
        super().__init__(message)
        self.status = status


class ForbiddenError(BookkeepingError):
    """The acting user's role does not permit the operation."""


class NotFoundError(BookkeepingError):
    """The referenced journal entry (or user, or account) does not exist."""


class ConflictError(BookkeepingError):
    """
    Optimistic-lock failure.

    The caller presented a version that is no longer current, or
    lost a race to another writer between load and save. The
    engine never retries; the caller must reload and resubmit.
    """

    def __init__(
        self,
        message: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        super().__init__(message)
        self.expected_version = expected_version
        self.actual_version = actual_version
