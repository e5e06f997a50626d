"""Persistence ports consumed by the task service.

Every method takes the open :class:`~raciboard.db.transaction.Transaction`
as its first argument, so multi-table writes compose into one commit.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple, Union

from raciboard.core.errors import DomainError
from raciboard.core.result import Outcome
from raciboard.db.transaction import Transaction
from raciboard.domain.profile import Profile
from raciboard.domain.raci import RaciAssignment
from raciboard.domain.subtask import SubTask
from raciboard.domain.task import IdLike, Task
from raciboard.domain.value_objects import PhaseCode, RaciLetter


@dataclass
class TaskFilter:
    """Optional equality filters for task lookups."""

    phase_code: Optional[Union[PhaseCode, Sequence[PhaseCode]]] = None
    page_id: Optional[int] = None
    owner_id: Optional[IdLike] = None
    created_by: Optional[IdLike] = None
    profile_code: Optional[str] = None
    search: Optional[str] = None


@dataclass
class SubTaskFilter:
    task_id: Optional[IdLike] = None
    completed: Optional[bool] = None
    search: Optional[str] = None


class TaskRepository(Protocol):
    async def find_by_id(self, tx: Transaction, task_id: IdLike) -> Outcome[Task, DomainError]: ...

    async def find(self, tx: Transaction, filters: Optional[TaskFilter] = None) -> Outcome[List[Task], DomainError]: ...

    async def save(self, tx: Transaction, task: Task) -> Outcome[Task, DomainError]: ...

    async def delete(self, tx: Transaction, task_id: IdLike) -> Outcome[None, DomainError]: ...


class SubTaskRepository(Protocol):
    async def find_by_id(self, tx: Transaction, subtask_id: IdLike) -> Outcome[SubTask, DomainError]: ...

    async def find(
        self, tx: Transaction, filters: Optional[SubTaskFilter] = None
    ) -> Outcome[List[SubTask], DomainError]: ...

    async def find_by_task_id(self, tx: Transaction, task_id: IdLike) -> Outcome[List[SubTask], DomainError]: ...

    async def save(self, tx: Transaction, subtask: SubTask) -> Outcome[SubTask, DomainError]: ...

    async def delete(self, tx: Transaction, subtask_id: IdLike) -> Outcome[None, DomainError]: ...

    async def count_completion(self, tx: Transaction, task_id: IdLike) -> Outcome[Tuple[int, int], DomainError]:
        """Return ``(completed, total)`` subtask counts for a task."""
        ...


class RaciRepository(Protocol):
    async def find_by_task_id(self, tx: Transaction, task_id: IdLike) -> Outcome[List[RaciAssignment], DomainError]: ...

    async def find_by_subtask_id(
        self, tx: Transaction, subtask_id: IdLike
    ) -> Outcome[List[RaciAssignment], DomainError]: ...

    async def find_for_task_user(
        self, tx: Transaction, task_id: IdLike, user_id: IdLike
    ) -> Outcome[Optional[RaciAssignment], DomainError]: ...

    async def save_task_raci(
        self, tx: Transaction, task_id: IdLike, user_id: IdLike, letter: Union[str, RaciLetter]
    ) -> Outcome[RaciAssignment, DomainError]: ...

    async def save_subtask_raci(
        self, tx: Transaction, subtask_id: IdLike, user_id: IdLike, letter: Union[str, RaciLetter]
    ) -> Outcome[RaciAssignment, DomainError]: ...

    async def delete_all_for_task(self, tx: Transaction, task_id: IdLike) -> Outcome[None, DomainError]: ...

    async def delete_all_for_subtask(self, tx: Transaction, subtask_id: IdLike) -> Outcome[None, DomainError]: ...

    async def copy_from_task_to_subtask(
        self, tx: Transaction, task_id: IdLike, subtask_id: IdLike
    ) -> Outcome[int, DomainError]:
        """Copy the task's rows into the subtask's own set; return the row count."""
        ...


class ProfileRepository(Protocol):
    async def find_by_code(self, tx: Transaction, code: str) -> Outcome[Profile, DomainError]: ...

    async def find_all(self, tx: Transaction) -> Outcome[List[Profile], DomainError]: ...

    async def exists_by_code(self, tx: Transaction, code: str) -> Outcome[bool, DomainError]: ...

    async def find_by_task_id(self, tx: Transaction, task_id: IdLike) -> Outcome[List[str], DomainError]: ...

    async def associate_with_task(
        self, tx: Transaction, task_id: IdLike, profile_codes: Sequence[str]
    ) -> Outcome[None, DomainError]: ...

    async def remove_from_task(
        self, tx: Transaction, task_id: IdLike, profile_codes: Optional[Sequence[str]] = None
    ) -> Outcome[None, DomainError]: ...
