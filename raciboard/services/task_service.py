"""Task orchestration service.

Each use case runs inside a single transaction: reads, the authorization
decision and every write share it. Events go out only after the
transaction has committed, and never when it rolled back.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional

from raciboard.core.errors import (
    ConflictError,
    DomainError,
    ForbiddenError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from raciboard.core.result import Failure, Outcome, Success
from raciboard.core.security import ELEVATED_ROLES
from raciboard.db.transaction import Transaction, TransactionAborted, TransactionManager
from raciboard.domain.profile import Profile
from raciboard.domain.raci import build_raci_map, flatten_raci_input
from raciboard.domain.subtask import SubTask
from raciboard.domain.task import IdLike, Task
from raciboard.domain.value_objects import Identifier, PhaseCode, RaciLetter
from raciboard.ports.events import TaskEventPublisher
from raciboard.ports.repositories import (
    ProfileRepository,
    RaciRepository,
    SubTaskRepository,
    TaskFilter,
    TaskRepository,
)
from raciboard.utils.permissions import grants_modification, is_elevated

logger = logging.getLogger(__name__)

MODIFY_DENIED = "Only the task owner, an elevated role or a user with RACI letter R or A can modify this task"
PHASE_DENIED = "Only the task owner or an elevated role can change the task phase"
DELETE_DENIED = "Only the task owner or an elevated role can delete this task"
SUBTASK_DENIED = (
    "Only the subtask creator, the task owner, an elevated role or a user with RACI letter R or A "
    "can modify this subtask"
)

TASK_FIELDS = ("title", "description", "priority", "owner_id", "page_id")


@dataclass(frozen=True)
class TaskLock:
    """Soft edit lock state. Never persisted yet, so always unlocked."""

    locked: bool = False
    locked_by: Optional[Identifier] = None


def _require(tx: Transaction, outcome: Outcome[Any, DomainError]) -> Any:
    """Return the value or roll the transaction back with the failure."""
    if isinstance(outcome, Failure):
        tx.abort(outcome.error)
    return outcome.value


def _parse_user(user_id: IdLike) -> Outcome[Identifier, ValidationError]:
    try:
        return Success(Identifier.parse(user_id))
    except ValueError:
        return Failure(ValidationError(f"Invalid user id: {user_id!r}"))


def _guarded(func: Callable) -> Callable:
    """Convert aborted transactions back into failures and wrap runtime faults."""

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except TransactionAborted as exc:
            return Failure(exc.error)
        except Exception as exc:
            logger.exception("Unexpected error in TaskService.%s", func.__name__)
            return Failure(UnexpectedError(f"Unexpected error in {func.__name__}: {exc}"))

    return wrapper


class TaskService:
    """Use cases for tasks, subtasks, RACI and impacted profiles."""

    def __init__(
        self,
        transactions: TransactionManager,
        task_repository: TaskRepository,
        subtask_repository: SubTaskRepository,
        raci_repository: RaciRepository,
        profile_repository: ProfileRepository,
        events: TaskEventPublisher,
        *,
        elevated_roles: Iterable[str] = ELEVATED_ROLES,
    ):
        self.transactions = transactions
        self.tasks = task_repository
        self.subtasks = subtask_repository
        self.raci = raci_repository
        self.profiles = profile_repository
        self.events = events
        self.elevated_roles: FrozenSet[str] = frozenset(elevated_roles)

    def _emit(self, name: str, *args: Any) -> None:
        try:
            getattr(self.events, name)(*args)
        except Exception:
            logger.warning("Failed to emit %s", name, exc_info=True)

    async def _lock_state(self, task_id: IdLike) -> Outcome[TaskLock, DomainError]:
        return Success(TaskLock())

    async def _check_modify(
        self, tx: Transaction, task: Task, user_id: IdLike, role: Optional[str]
    ) -> Outcome[bool, DomainError]:
        if is_elevated(role, self.elevated_roles):
            return Success(True)
        parsed = _parse_user(user_id)
        if isinstance(parsed, Failure):
            return parsed
        user = parsed.value
        if task.is_owned_by(user):
            return Success(True)

        assignment = await self.raci.find_for_task_user(tx, task.id, user)
        if isinstance(assignment, Failure):
            return assignment
        letter = assignment.value.letter if assignment.value else None
        if not grants_modification(letter):
            return Success(False)

        lock = await self._lock_state(task.id)
        if isinstance(lock, Failure):
            return lock
        if lock.value.locked and lock.value.locked_by != user:
            return Failure(ConflictError(f"Task {task.id} is currently being edited by another user"))
        return Success(True)

    def _is_owner_or_elevated(self, task: Task, user_id: IdLike, role: Optional[str]) -> bool:
        return is_elevated(role, self.elevated_roles) or task.is_owned_by(user_id)

    async def _check_modify_subtask(
        self, tx: Transaction, task: Task, subtask: SubTask, user_id: IdLike, role: Optional[str]
    ) -> Outcome[bool, DomainError]:
        # Creators keep edit rights on their subtask even without R/A on the parent.
        if subtask.is_created_by(user_id):
            return Success(True)
        return await self._check_modify(tx, task, user_id, role)

    async def _authorize_modification(
        self, tx: Transaction, task: Task, user_id: IdLike, role: Optional[str], action: str
    ) -> None:
        allowed = _require(tx, await self._check_modify(tx, task, user_id, role))
        if not allowed:
            logger.info("User %s (%s) denied %s on task %s", user_id, role, action, task.id)
            tx.abort(ForbiddenError(MODIFY_DENIED))

    @_guarded
    async def can_modify_task(self, task_id: IdLike, user_id: IdLike, role: Optional[str]) -> Outcome[bool, DomainError]:
        """Elevated roles, the owner, or a user holding R or A on the task."""
        if is_elevated(role, self.elevated_roles):
            return Success(True)
        async with self.transactions.begin() as tx:
            task = _require(tx, await self.tasks.find_by_id(tx, task_id))
            return _require(tx, await self._check_modify(tx, task, user_id, role))

    @_guarded
    async def can_change_phase(
        self, task_id: IdLike, user_id: IdLike, role: Optional[str]
    ) -> Outcome[bool, DomainError]:
        """Elevated roles or the owner. RACI letters never grant a phase change."""
        if is_elevated(role, self.elevated_roles):
            return Success(True)
        async with self.transactions.begin() as tx:
            task = _require(tx, await self.tasks.find_by_id(tx, task_id))
        return Success(self._is_owner_or_elevated(task, user_id, role))

    @_guarded
    async def can_modify_subtask(
        self, subtask_id: IdLike, user_id: IdLike, role: Optional[str]
    ) -> Outcome[bool, DomainError]:
        """Subtask creator, or anyone allowed to modify the parent task."""
        async with self.transactions.begin() as tx:
            subtask = _require(tx, await self.subtasks.find_by_id(tx, subtask_id))
            task = _require(tx, await self.tasks.find_by_id(tx, subtask.task_id))
            return _require(tx, await self._check_modify_subtask(tx, task, subtask, user_id, role))

    @_guarded
    async def is_task_locked(self, task_id: IdLike) -> Outcome[TaskLock, DomainError]:
        return await self._lock_state(task_id)

    @_guarded
    async def lock_task_for_editing(self, task_id: IdLike, user_id: IdLike, user_name: str) -> Outcome[None, DomainError]:
        """Announce that a user is editing the task. The lock is not stored."""
        self._emit("emit_task_locked", str(task_id), {"id": str(user_id), "name": user_name})
        return Success(None)

    @_guarded
    async def unlock_task_after_editing(self, task_id: IdLike) -> Outcome[None, DomainError]:
        self._emit("emit_task_unlocked", str(task_id))
        return Success(None)

    async def _load_details(self, tx: Transaction, task: Task) -> Dict[str, Any]:
        assignments = _require(tx, await self.raci.find_by_task_id(tx, task.id))
        subtasks = _require(tx, await self.subtasks.find_by_task_id(tx, task.id))
        profile_codes = _require(tx, await self.profiles.find_by_task_id(tx, task.id))

        payload = task.to_dict()
        payload["raci"] = build_raci_map(assignments)
        payload["subtasks"] = [subtask.to_dict() for subtask in subtasks]
        payload["profiles_impacted"] = profile_codes
        return payload

    async def _subtask_payload(self, tx: Transaction, subtask: SubTask) -> Dict[str, Any]:
        assignments = _require(tx, await self.raci.find_by_subtask_id(tx, subtask.id))
        payload = subtask.to_dict()
        payload["raci"] = build_raci_map(assignments)
        return payload

    async def _verify_profiles(self, tx: Transaction, profile_codes: Iterable[str]) -> None:
        for code in profile_codes:
            exists = _require(tx, await self.profiles.exists_by_code(tx, code))
            if not exists:
                tx.abort(NotFoundError(f"Profile {code} not found"))

    async def _write_raci(self, tx: Transaction, task_id: IdLike, raci: Optional[Mapping[str, Any]]) -> None:
        for letter, user_id in flatten_raci_input(raci):
            _require(tx, await self.raci.save_task_raci(tx, task_id, user_id, letter))

    async def _recompute_progress(self, tx: Transaction, task: Task) -> bool:
        """Derive progress from subtask completion. Returns True when it changed."""
        completed, total = _require(tx, await self.subtasks.count_completion(tx, task.id))
        if total == 0:
            return False
        # Integer round half up of 100 * completed / total
        progress = (200 * completed + total) // (2 * total)
        if progress == task.progress:
            return False
        _require(tx, task.update_progress(progress))
        _require(tx, await self.tasks.save(tx, task))
        return True

    async def _load_subtask_and_parent(self, tx: Transaction, subtask_id: IdLike):
        subtask = _require(tx, await self.subtasks.find_by_id(tx, subtask_id))
        task = _require(tx, await self.tasks.find_by_id(tx, subtask.task_id))
        return subtask, task

    async def _authorize_subtask(
        self, tx: Transaction, task: Task, subtask: SubTask, user_id: IdLike, role: Optional[str], action: str
    ) -> None:
        allowed = _require(tx, await self._check_modify_subtask(tx, task, subtask, user_id, role))
        if not allowed:
            logger.info("User %s (%s) denied %s on subtask %s", user_id, role, action, subtask.id)
            tx.abort(ForbiddenError(SUBTASK_DENIED))

    @_guarded
    async def create_task(self, data: Mapping[str, Any], creator_id: IdLike) -> Outcome[Dict[str, Any], DomainError]:
        """Insert a task with its RACI rows and impacted profiles, then emit ``task_created``."""
        profile_codes = list(data.get("profiles_impacted") or [])

        async with self.transactions.begin() as tx:
            await self._verify_profiles(tx, profile_codes)

            task = _require(
                tx,
                Task.create(
                    phase_code=data.get("phase_code"),
                    title=data.get("title"),
                    priority=data.get("priority"),
                    created_by=creator_id,
                    page_id=data.get("page_id"),
                    description=data.get("description"),
                    owner_id=data.get("owner_id"),
                    planned_start=data.get("planned_start"),
                    planned_end=data.get("planned_end"),
                ),
            )
            _require(tx, await self.tasks.save(tx, task))
            await self._write_raci(tx, task.id, data.get("raci"))
            if profile_codes:
                _require(tx, await self.profiles.associate_with_task(tx, task.id, profile_codes))
            payload = await self._load_details(tx, task)

        logger.info("Task %s created by %s", task.id, creator_id)
        self._emit("emit_task_created", payload)
        return Success(payload)

    @_guarded
    async def update_task(
        self, task_id: IdLike, data: Mapping[str, Any], user_id: IdLike, role: Optional[str]
    ) -> Outcome[Dict[str, Any], DomainError]:
        """Apply a partial update. ``progress`` is derived and ignored here."""
        async with self.transactions.begin() as tx:
            task = _require(tx, await self.tasks.find_by_id(tx, task_id))
            await self._authorize_modification(tx, task, user_id, role, "update")

            if "title" in data:
                _require(tx, task.update_title(data["title"]))
            if "description" in data:
                _require(tx, task.update_description(data["description"]))
            if "priority" in data:
                _require(tx, task.update_priority(data["priority"]))
            if "owner_id" in data:
                _require(tx, task.update_owner(data["owner_id"]))
            if "page_id" in data:
                _require(tx, task.update_page(data["page_id"]))
            if "planned_start" in data or "planned_end" in data:
                _require(
                    tx,
                    task.update_planned_dates(
                        data["planned_start"] if "planned_start" in data else task.planned_start,
                        data["planned_end"] if "planned_end" in data else task.planned_end,
                    ),
                )

            phase_code = data.get("phase_code")
            if phase_code is not None and phase_code != task.phase_code:
                if not self._is_owner_or_elevated(task, user_id, role):
                    logger.info("User %s (%s) denied phase change on task %s", user_id, role, task.id)
                    tx.abort(ForbiddenError(PHASE_DENIED))
                _require(tx, task.update_phase(phase_code))

            _require(tx, await self.tasks.save(tx, task))

            if data.get("raci") is not None:
                _require(tx, await self.raci.delete_all_for_task(tx, task.id))
                await self._write_raci(tx, task.id, data["raci"])

            if data.get("profiles_impacted") is not None:
                profile_codes = list(data["profiles_impacted"])
                await self._verify_profiles(tx, profile_codes)
                _require(tx, await self.profiles.remove_from_task(tx, task.id))
                if profile_codes:
                    _require(tx, await self.profiles.associate_with_task(tx, task.id, profile_codes))

            payload = await self._load_details(tx, task)

        logger.info("Task %s updated by %s", task.id, user_id)
        self._emit("emit_task_updated", payload)
        return Success(payload)

    @_guarded
    async def delete_task(self, task_id: IdLike, user_id: IdLike, role: Optional[str]) -> Outcome[None, DomainError]:
        """Owner or elevated role only. Subtasks, RACI rows and profile links go with it."""
        async with self.transactions.begin() as tx:
            task = _require(tx, await self.tasks.find_by_id(tx, task_id))
            if not self._is_owner_or_elevated(task, user_id, role):
                logger.info("User %s (%s) denied delete on task %s", user_id, role, task.id)
                tx.abort(ForbiddenError(DELETE_DENIED))
            _require(tx, await self.tasks.delete(tx, task.id))

        logger.info("Task %s deleted by %s", task.id, user_id)
        self._emit("emit_task_deleted", str(task.id))
        return Success(None)

    @_guarded
    async def get_task_with_details(self, task_id: IdLike) -> Outcome[Dict[str, Any], DomainError]:
        async with self.transactions.begin() as tx:
            task = _require(tx, await self.tasks.find_by_id(tx, task_id))
            return Success(await self._load_details(tx, task))

    @_guarded
    async def list_tasks(self, filters: Optional[TaskFilter] = None) -> Outcome[List[Dict[str, Any]], DomainError]:
        if filters is not None:
            phases = filters.phase_code
            if isinstance(phases, str):
                phases = [phases]
            try:
                for code in phases or []:
                    PhaseCode(code)
                for value in (filters.owner_id, filters.created_by):
                    if value is not None:
                        Identifier.parse(value)
            except ValueError as exc:
                return Failure(ValidationError(str(exc)))

        async with self.transactions.begin() as tx:
            tasks = _require(tx, await self.tasks.find(tx, filters))
        return Success([task.to_dict() for task in tasks])

    @_guarded
    async def create_subtask(
        self, task_id: IdLike, data: Mapping[str, Any], user_id: IdLike, role: Optional[str]
    ) -> Outcome[Dict[str, Any], DomainError]:
        """Insert a subtask and give it its own copy of the parent's RACI rows."""
        async with self.transactions.begin() as tx:
            task = _require(tx, await self.tasks.find_by_id(tx, task_id))
            await self._authorize_modification(tx, task, user_id, role, "create subtask")

            subtask = _require(
                tx,
                SubTask.create(
                    task_id=task.id,
                    title=data.get("title"),
                    created_by=user_id,
                    completed=data.get("completed", False),
                    description=data.get("description"),
                ),
            )
            _require(tx, await self.subtasks.save(tx, subtask))
            copied = _require(tx, await self.raci.copy_from_task_to_subtask(tx, task.id, subtask.id))
            payload = await self._subtask_payload(tx, subtask)

        logger.info("SubTask %s created on task %s with %d RACI rows", subtask.id, task.id, copied)
        self._emit("emit_subtask_updated", payload)
        return Success(payload)

    @_guarded
    async def update_subtask_status(
        self, subtask_id: IdLike, completed: bool, user_id: IdLike, role: Optional[str]
    ) -> Outcome[Dict[str, Any], DomainError]:
        """Set completion and recompute the parent's progress."""
        async with self.transactions.begin() as tx:
            subtask, task = await self._load_subtask_and_parent(tx, subtask_id)
            await self._authorize_modification(tx, task, user_id, role, "update subtask status")

            subtask.set_completed(completed)
            _require(tx, await self.subtasks.save(tx, subtask))
            progress_changed = await self._recompute_progress(tx, task)

            payload = await self._subtask_payload(tx, subtask)
            task_payload = await self._load_details(tx, task) if progress_changed else None

        logger.info("SubTask %s marked completed=%s by %s", subtask.id, subtask.completed, user_id)
        self._emit("emit_subtask_updated", payload)
        if task_payload is not None:
            self._emit("emit_task_updated", task_payload)
        return Success(payload)

    @_guarded
    async def update_subtask(
        self, subtask_id: IdLike, data: Mapping[str, Any], user_id: IdLike, role: Optional[str]
    ) -> Outcome[Dict[str, Any], DomainError]:
        async with self.transactions.begin() as tx:
            subtask, task = await self._load_subtask_and_parent(tx, subtask_id)
            await self._authorize_subtask(tx, task, subtask, user_id, role, "update")

            if "title" in data:
                _require(tx, subtask.update_title(data["title"]))
            if "description" in data:
                _require(tx, subtask.update_description(data["description"]))
            completion_changed = data.get("completed") is not None and bool(data["completed"]) != subtask.completed
            if completion_changed:
                subtask.toggle_completed()

            _require(tx, await self.subtasks.save(tx, subtask))
            progress_changed = completion_changed and await self._recompute_progress(tx, task)

            payload = await self._subtask_payload(tx, subtask)
            task_payload = await self._load_details(tx, task) if progress_changed else None

        logger.info("SubTask %s updated by %s", subtask.id, user_id)
        self._emit("emit_subtask_updated", payload)
        if task_payload is not None:
            self._emit("emit_task_updated", task_payload)
        return Success(payload)

    @_guarded
    async def delete_subtask(
        self, subtask_id: IdLike, user_id: IdLike, role: Optional[str]
    ) -> Outcome[None, DomainError]:
        async with self.transactions.begin() as tx:
            subtask, task = await self._load_subtask_and_parent(tx, subtask_id)
            await self._authorize_subtask(tx, task, subtask, user_id, role, "delete")

            _require(tx, await self.raci.delete_all_for_subtask(tx, subtask.id))
            _require(tx, await self.subtasks.delete(tx, subtask.id))
            progress_changed = await self._recompute_progress(tx, task)
            task_payload = await self._load_details(tx, task) if progress_changed else None

        logger.info("SubTask %s deleted by %s", subtask.id, user_id)
        self._emit("emit_subtask_deleted", str(subtask.id), str(task.id))
        if task_payload is not None:
            self._emit("emit_task_updated", task_payload)
        return Success(None)

    @_guarded
    async def assign_subtask_raci(
        self,
        subtask_id: IdLike,
        target_user_id: IdLike,
        letter: str,
        user_id: IdLike,
        role: Optional[str],
    ) -> Outcome[Dict[str, Any], DomainError]:
        """Set one user's letter on the subtask's own RACI set. The parent set is untouched."""
        try:
            letter = RaciLetter(letter)
        except ValueError:
            return Failure(
                ValidationError(f"Invalid RACI letter: {letter}. Must be one of: {', '.join(RaciLetter.letters())}")
            )

        async with self.transactions.begin() as tx:
            subtask, task = await self._load_subtask_and_parent(tx, subtask_id)
            await self._authorize_subtask(tx, task, subtask, user_id, role, "assign RACI")
            _require(tx, await self.raci.save_subtask_raci(tx, subtask.id, target_user_id, letter))
            payload = await self._subtask_payload(tx, subtask)

        logger.info("User %s set to %s on subtask %s", target_user_id, letter.value, subtask.id)
        self._emit("emit_subtask_updated", payload)
        return Success(payload)

    @_guarded
    async def list_profiles(self) -> Outcome[List[Profile], DomainError]:
        async with self.transactions.begin() as tx:
            return Success(_require(tx, await self.profiles.find_all(tx)))
