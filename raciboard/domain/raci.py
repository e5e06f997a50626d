"""RACI assignment entity and map building."""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from raciboard.core.errors import ValidationError
from raciboard.core.result import Failure, Outcome, Success
from raciboard.domain.task import IdLike
from raciboard.domain.value_objects import Identifier, RaciLetter

RaciMap = Dict[str, List[uuid.UUID]]


@dataclass
class RaciAssignment:
    """One user's letter on a task or a subtask."""

    entity_id: Identifier
    user_id: Identifier
    letter: RaciLetter

    @classmethod
    def create(
        cls,
        *,
        entity_id: IdLike,
        user_id: IdLike,
        letter: Union[str, RaciLetter],
    ) -> Outcome["RaciAssignment", ValidationError]:
        if not entity_id:
            return Failure(ValidationError("Entity ID is required"))
        if not user_id:
            return Failure(ValidationError("User ID is required"))
        if not letter:
            return Failure(ValidationError("RACI letter is required"))
        try:
            return Success(
                cls(
                    entity_id=Identifier.parse(entity_id),
                    user_id=Identifier.parse(user_id),
                    letter=RaciLetter(letter),
                )
            )
        except ValueError as exc:
            return Failure(ValidationError(str(exc)))

    def update_letter(self, letter: Union[str, RaciLetter]) -> Outcome[None, ValidationError]:
        try:
            self.letter = RaciLetter(letter)
        except ValueError:
            return Failure(
                ValidationError(
                    f"Invalid RACI letter: {letter}. Must be one of: {', '.join(RaciLetter.letters())}"
                )
            )
        return Success(None)


def empty_raci_map() -> RaciMap:
    return {letter.value: [] for letter in RaciLetter}


def build_raci_map(assignments: Iterable[RaciAssignment]) -> RaciMap:
    """Bucket assignments by letter in one pass, preserving input order."""
    raci = empty_raci_map()
    for assignment in assignments:
        raci[assignment.letter.value].append(assignment.user_id.value)
    return raci


def flatten_raci_input(
    raci: Optional[Mapping[str, Iterable[IdLike]]],
) -> List[Tuple[RaciLetter, IdLike]]:
    """Turn a ``{letter: [user, ...]}`` mapping into ordered (letter, user) pairs.

    Letters are visited in R, A, C, I order, so when a user is listed under
    several letters the last one wins once rows are saved with replace semantics.
    """
    if not raci:
        return []
    pairs: List[Tuple[RaciLetter, IdLike]] = []
    for letter in RaciLetter:
        for user_id in raci.get(letter.value) or []:
            pairs.append((letter, user_id))
    return pairs

