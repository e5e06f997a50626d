"""Impacted-profile catalog entries and task associations."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from raciboard.core.errors import ValidationError
from raciboard.core.result import Failure, Outcome, Success
from raciboard.domain.task import IdLike
from raciboard.domain.value_objects import Identifier

PROFILE_CODE_MAX_LENGTH = 8

# End-user roles affected by a task outcome
DEFAULT_PROFILE_CATALOG = (
    ("TEC", "Technicien", "Personnel technique de terrain"),
    ("MAN", "Manager", "Responsable d'équipe"),
    ("DPS", "Délégué à la Protection des Sites", "Responsable de la sécurité des sites"),
    ("DOP", "Directeur Opérationnel de Production", "Responsable des opérations de production"),
    ("DF", "Directeur Filiale", "Directeur de filiale"),
    ("DG", "Directeur Groupe", "Directeur au niveau groupe"),
    ("RH", "Ressources Humaines", "Personnel RH"),
    ("AF", "Administrateur Filiale", "Administrateur au niveau filiale"),
    ("SA", "Super Administrateur", "Administrateur système global"),
)


def _check_code(code: str) -> Optional[ValidationError]:
    if not code or not code.strip():
        return ValidationError("Profile code is required")
    if len(code) > PROFILE_CODE_MAX_LENGTH:
        return ValidationError(
            f"Profile code {code} exceeds {PROFILE_CODE_MAX_LENGTH} characters"
        )
    return None


@dataclass(frozen=True)
class Profile:
    """Catalog entry."""

    code: str
    name: str
    description: Optional[str] = None

    @classmethod
    def create(
        cls,
        *,
        code: str,
        name: str,
        description: Optional[str] = None,
    ) -> Outcome["Profile", ValidationError]:
        code_error = _check_code(code)
        if code_error:
            return Failure(code_error)
        if not name or not name.strip():
            return Failure(ValidationError("Profile name is required"))
        return Success(cls(code=code, name=name, description=description))


@dataclass(frozen=True)
class ProfileAssociation:
    """Link between a task and an impacted profile code."""

    task_id: Identifier
    profile_code: str

    @classmethod
    def create(cls, *, task_id: IdLike, profile_code: str) -> Outcome["ProfileAssociation", ValidationError]:
        code_error = _check_code(profile_code)
        if code_error:
            return Failure(code_error)
        try:
            return Success(cls(task_id=Identifier.parse(task_id), profile_code=profile_code))
        except ValueError as exc:
            return Failure(ValidationError(str(exc)))
