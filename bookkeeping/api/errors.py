"""
Translation of engine errors into HTTP responses.

Every router catches BookkeepingError, rolls back, and raises
the HTTPException built here. Keeping the mapping in one place
keeps status codes consistent across endpoints.
"""

from fastapi import HTTPException

from bookkeeping.errors import (
    BookkeepingError,
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

STATUS_CODES = {
    ValidationError: 400,
    ForbiddenError: 403,
    NotFoundError: 404,
    InvalidStateError: 409,
    ConflictError: 409,
}


def to_http_exception(error: BookkeepingError) -> HTTPException:
    status_code = 400
    for error_type, code in STATUS_CODES.items():
        if isinstance(error, error_type):
            status_code = code
            break

    detail: dict = {"error": type(error).__name__, "message": str(error)}
    if isinstance(error, ConflictError):
        detail["expected_version"] = error.expected_version
        detail["actual_version"] = error.actual_version
    if isinstance(error, InvalidStateError) and error.status is not None:
        detail["status"] = error.status.value
    return HTTPException(status_code=status_code, detail=detail)
