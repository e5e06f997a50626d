"""Error kinds carried by ``Failure`` outcomes."""
from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class DomainError:
    """Base error value."""

    message: str
    kind: ClassVar[str] = "error"

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ValidationError(DomainError):
    """An entity invariant rejected a value. Retrying unchanged will fail again."""

    kind: ClassVar[str] = "validation"


@dataclass(frozen=True)
class NotFoundError(DomainError):
    """Referenced task, subtask, profile or phase does not exist."""

    kind: ClassVar[str] = "not_found"


@dataclass(frozen=True)
class ForbiddenError(DomainError):
    """Authorization policy denied the action."""

    kind: ClassVar[str] = "forbidden"


@dataclass(frozen=True)
class ConflictError(DomainError):
    """Soft lock or concurrent edit detected. The caller may try later."""

    kind: ClassVar[str] = "conflict"


@dataclass(frozen=True)
class UnexpectedError(DomainError):
    """Runtime fault wrapped at the service boundary."""

    kind: ClassVar[str] = "unexpected"
