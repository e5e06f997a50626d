"""HTTP exceptions and the mapping from service error kinds."""
from typing import NoReturn, Optional
from fastapi import HTTPException, status

from raciboard.core import errors


class NotFoundError(HTTPException):
    """Resource not found exception."""

    def __init__(self, detail: Optional[str] = None):
        if detail is None:
            detail = "Resource not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class UnauthorizedError(HTTPException):
    """Unauthorized exception."""

    def __init__(self, detail: Optional[str] = None):
        if detail is None:
            detail = "Not authenticated"
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenError(HTTPException):
    """Forbidden exception."""

    def __init__(self, detail: Optional[str] = None):
        if detail is None:
            detail = "Permission denied"
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ValidationError(HTTPException):
    """Validation exception."""

    def __init__(self, detail: Optional[str] = None):
        if detail is None:
            detail = "Validation error"
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class ConflictError(HTTPException):
    """Conflict exception."""

    def __init__(self, detail: Optional[str] = None):
        if detail is None:
            detail = "Resource conflict"
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


_EXCEPTION_BY_KIND = {
    errors.ValidationError.kind: ValidationError,
    errors.NotFoundError.kind: NotFoundError,
    errors.ForbiddenError.kind: ForbiddenError,
    errors.ConflictError.kind: ConflictError,
}


def raise_for_error(error: errors.DomainError) -> NoReturn:
    """Raise the HTTP exception matching a service error kind."""
    exc_class = _EXCEPTION_BY_KIND.get(error.kind)
    if exc_class is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )
    raise exc_class(error.message)


def unwrap_or_raise(outcome):
    """Return a successful outcome's value, or raise its mapped HTTP exception."""
    if outcome.is_failure:
        raise_for_error(outcome.error)
    return outcome.value
