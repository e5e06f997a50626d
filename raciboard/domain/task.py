"""Task entity."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Union

from raciboard.core.errors import ValidationError
from raciboard.core.result import Failure, Outcome, Success
from raciboard.domain.value_objects import Identifier, PhaseCode, PriorityLevel
from raciboard.utils.dates import as_utc, utc_now

IdLike = Union[str, uuid.UUID, Identifier]


def _check_planned_dates(start: Optional[datetime], end: Optional[datetime]) -> Optional[ValidationError]:
    if start is not None and end is not None and start > end:
        return ValidationError("Planned start date must be before planned end date")
    return None


def _check_progress(progress: Any) -> Optional[ValidationError]:
    if isinstance(progress, bool) or not isinstance(progress, int):
        return ValidationError(f"Progress must be an integer, got {progress!r}")
    if not 0 <= progress <= 100:
        return ValidationError("Progress must be between 0 and 100")
    return None


@dataclass
class Task:
    """Unit of work placed in a workflow phase.

    Build instances through :meth:`create`; calling the constructor directly
    skips validation. Mutators return an Outcome and leave the task untouched
    when they reject a value.
    """

    id: Identifier
    phase_code: PhaseCode
    title: str
    priority: PriorityLevel
    created_by: Identifier
    progress: int = 0
    page_id: Optional[int] = None
    description: Optional[str] = None
    owner_id: Optional[Identifier] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    planned_start: Optional[datetime] = None
    planned_end: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        phase_code: Union[str, PhaseCode],
        title: str,
        priority: int,
        created_by: IdLike,
        id: Optional[IdLike] = None,
        page_id: Optional[int] = None,
        description: Optional[str] = None,
        owner_id: Optional[IdLike] = None,
        progress: int = 0,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        planned_start: Optional[datetime] = None,
        planned_end: Optional[datetime] = None,
    ) -> Outcome["Task", ValidationError]:
        """Validate every invariant and build a task."""
        if not title or not title.strip():
            return Failure(ValidationError("Task title is required"))
        if not phase_code:
            return Failure(ValidationError("Phase code is required"))
        if not created_by:
            return Failure(ValidationError("Creator is required"))

        progress_error = _check_progress(progress)
        if progress_error:
            return Failure(progress_error)

        planned_start = as_utc(planned_start)
        planned_end = as_utc(planned_end)
        dates_error = _check_planned_dates(planned_start, planned_end)
        if dates_error:
            return Failure(dates_error)

        try:
            now = utc_now()
            task = cls(
                id=Identifier.parse(id) if id is not None else Identifier.new(),
                phase_code=PhaseCode(phase_code),
                title=title,
                priority=PriorityLevel(priority),
                created_by=Identifier.parse(created_by),
                progress=progress,
                page_id=page_id,
                description=description,
                owner_id=Identifier.parse(owner_id) if owner_id is not None else None,
                created_at=as_utc(created_at) or now,
                updated_at=as_utc(updated_at) or now,
                planned_start=planned_start,
                planned_end=planned_end,
            )
        except ValueError as exc:
            return Failure(ValidationError(str(exc)))
        return Success(task)

    def is_owned_by(self, user_id: IdLike) -> bool:
        if self.owner_id is None:
            return False
        try:
            return self.owner_id == Identifier.parse(user_id)
        except ValueError:
            return False

    def _touch(self) -> None:
        self.updated_at = utc_now()

    def update_phase(self, phase_code: Union[str, PhaseCode]) -> Outcome[None, ValidationError]:
        try:
            phase = PhaseCode(phase_code)
        except ValueError:
            return Failure(
                ValidationError(
                    f"Invalid phase code: {phase_code}. Must be one of: {', '.join(PhaseCode.codes())}"
                )
            )
        self.phase_code = phase
        self._touch()
        return Success(None)

    def update_title(self, title: str) -> Outcome[None, ValidationError]:
        if not title or not title.strip():
            return Failure(ValidationError("Task title is required"))
        self.title = title
        self._touch()
        return Success(None)

    def update_description(self, description: Optional[str]) -> Outcome[None, ValidationError]:
        self.description = description
        self._touch()
        return Success(None)

    def update_page(self, page_id: Optional[int]) -> Outcome[None, ValidationError]:
        self.page_id = page_id
        self._touch()
        return Success(None)

    def update_priority(self, priority: int) -> Outcome[None, ValidationError]:
        try:
            level = PriorityLevel(priority)
        except ValueError as exc:
            return Failure(ValidationError(str(exc)))
        self.priority = level
        self._touch()
        return Success(None)

    def update_owner(self, owner_id: Optional[IdLike]) -> Outcome[None, ValidationError]:
        try:
            owner = Identifier.parse(owner_id) if owner_id is not None else None
        except ValueError as exc:
            return Failure(ValidationError(str(exc)))
        self.owner_id = owner
        self._touch()
        return Success(None)

    def update_progress(self, progress: int) -> Outcome[None, ValidationError]:
        """Set the derived progress value. Only progress recomputation calls this."""
        progress_error = _check_progress(progress)
        if progress_error:
            return Failure(progress_error)
        self.progress = progress
        self._touch()
        return Success(None)

    def update_planned_dates(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> Outcome[None, ValidationError]:
        start = as_utc(start)
        end = as_utc(end)
        dates_error = _check_planned_dates(start, end)
        if dates_error:
            return Failure(dates_error)
        self.planned_start = start
        self.planned_end = end
        self._touch()
        return Success(None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id.value,
            "phase_code": self.phase_code.value,
            "page_id": self.page_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "owner_id": self.owner_id.value if self.owner_id else None,
            "progress": self.progress,
            "created_by": self.created_by.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "planned_start": self.planned_start,
            "planned_end": self.planned_end,
        }
