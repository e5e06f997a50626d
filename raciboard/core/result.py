"""Two-variant outcome container used instead of raised exceptions.

Every domain and service operation returns either ``Success(value)`` or
``Failure(error)``. Callers branch explicitly::

    outcome = Task.create(...)
    if isinstance(outcome, Failure):
        return outcome
    task = outcome.value

``Failure.unwrap()`` raises, so a failure can never be silently read as a value.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class UnwrapError(RuntimeError):
    """Raised when a value is requested from a failure."""

    def __init__(self, error: Any):
        super().__init__(f"Called unwrap() on a failure: {error!r}")
        self.error = error


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def map(self, fn: Callable[[T], U]) -> "Success[U]":
        return Success(fn(self.value))

    def bind(self, fn: Callable[[T], "Outcome[U, Any]"]) -> "Outcome[U, Any]":
        return fn(self.value)


@dataclass(frozen=True)
class Failure(Generic[E]):
    """Failed outcome carrying an error value."""

    error: E

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True

    def unwrap(self):
        raise UnwrapError(self.error)

    def map(self, fn: Callable[[Any], Any]) -> "Failure[E]":
        return self

    def bind(self, fn: Callable[[Any], Any]) -> "Failure[E]":
        return self


Outcome = Union[Success[T], Failure[E]]
