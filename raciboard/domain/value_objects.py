"""Self-validating primitives shared by every entity.

Construction raises ``ValueError`` on bad input; nothing is clamped.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import List, Union


class PhaseCode(str, Enum):
    """Fixed workflow phases, in workflow order."""

    M = "M"  # Mesurer
    E = "E"  # Exploiter
    D = "D"  # Definir
    A = "A"  # Acquerir
    C = "C"  # Certifier
    A2 = "A2"  # Appliquer
    P = "P"  # Performer

    @classmethod
    def codes(cls) -> List[str]:
        return [member.value for member in cls]


class RaciLetter(str, Enum):
    """Responsible / Accountable / Consulted / Informed."""

    R = "R"
    A = "A"
    C = "C"
    I = "I"  # noqa: E741

    @classmethod
    def letters(cls) -> List[str]:
        return [member.value for member in cls]


# Letters that grant modification rights on a task
MODIFY_LETTERS = frozenset({RaciLetter.R, RaciLetter.A})


@dataclass(frozen=True)
class PriorityLevel:
    """Task priority, an integer from 1 to 5 inclusive."""

    value: int

    MIN = 1
    MAX = 5

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError(f"Invalid priority value: {self.value!r}. Must be an integer.")
        if not self.MIN <= self.value <= self.MAX:
            raise ValueError(
                f"Invalid priority value: {self.value}. Must be between {self.MIN} and {self.MAX}."
            )

    def __int__(self) -> int:
        return self.value


@dataclass(frozen=True)
class Identifier:
    """UUID identity of a task, subtask or user."""

    value: uuid.UUID

    def __post_init__(self):
        if not isinstance(self.value, uuid.UUID):
            raise ValueError(f"Invalid identifier: {self.value!r}")

    @classmethod
    def parse(cls, raw: Union[str, uuid.UUID, "Identifier"]) -> "Identifier":
        """Build an identifier from a UUID, its string form, or another identifier."""
        if isinstance(raw, Identifier):
            return raw
        if isinstance(raw, uuid.UUID):
            return cls(raw)
        try:
            return cls(uuid.UUID(str(raw)))
        except (TypeError, ValueError, AttributeError):
            raise ValueError(f"Invalid UUID format: {raw!r}") from None

    @classmethod
    def new(cls) -> "Identifier":
        return cls(uuid.uuid4())

    def __str__(self) -> str:
        return str(self.value)
