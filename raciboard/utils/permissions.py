"""Pure role and RACI checks used by the task service and the API."""
from typing import Iterable, Optional

from raciboard.core.security import ELEVATED_ROLES, TASK_CREATOR_ROLES
from raciboard.domain.value_objects import MODIFY_LETTERS, RaciLetter


def is_elevated(role: Optional[str], elevated_roles: Iterable[str] = ELEVATED_ROLES) -> bool:
    """Return True for roles that bypass ownership and RACI checks."""
    return role is not None and role in elevated_roles


def can_create_task(role: Optional[str], creator_roles: Iterable[str] = TASK_CREATOR_ROLES) -> bool:
    return role is not None and role in creator_roles


def grants_modification(letter: Optional[RaciLetter]) -> bool:
    """R and A may edit a task; C and I may not."""
    return letter is not None and letter in MODIFY_LETTERS
