"""SubTask entity."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from raciboard.core.errors import ValidationError
from raciboard.core.result import Failure, Outcome, Success
from raciboard.domain.task import IdLike
from raciboard.domain.value_objects import Identifier
from raciboard.utils.dates import as_utc, utc_now


@dataclass
class SubTask:
    """Checklist item belonging to exactly one task."""

    id: Identifier
    task_id: Identifier
    title: str
    created_by: Identifier
    completed: bool = False
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def create(
        cls,
        *,
        task_id: IdLike,
        title: str,
        created_by: IdLike,
        id: Optional[IdLike] = None,
        completed: bool = False,
        description: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ) -> Outcome["SubTask", ValidationError]:
        if not title or not title.strip():
            return Failure(ValidationError("SubTask title is required"))
        if not task_id:
            return Failure(ValidationError("Task ID is required"))
        if not created_by:
            return Failure(ValidationError("Creator is required"))

        try:
            now = utc_now()
            subtask = cls(
                id=Identifier.parse(id) if id is not None else Identifier.new(),
                task_id=Identifier.parse(task_id),
                title=title,
                created_by=Identifier.parse(created_by),
                completed=bool(completed),
                description=description,
                created_at=as_utc(created_at) or now,
                updated_at=as_utc(updated_at) or now,
            )
        except ValueError as exc:
            return Failure(ValidationError(str(exc)))
        return Success(subtask)

    def is_created_by(self, user_id: IdLike) -> bool:
        try:
            return self.created_by == Identifier.parse(user_id)
        except ValueError:
            return False

    def _touch(self) -> None:
        self.updated_at = utc_now()

    def update_title(self, title: str) -> Outcome[None, ValidationError]:
        if not title or not title.strip():
            return Failure(ValidationError("SubTask title is required"))
        self.title = title
        self._touch()
        return Success(None)

    def update_description(self, description: Optional[str]) -> Outcome[None, ValidationError]:
        self.description = description
        self._touch()
        return Success(None)

    def mark_completed(self) -> None:
        self.completed = True
        self._touch()

    def mark_incomplete(self) -> None:
        self.completed = False
        self._touch()

    def set_completed(self, completed: bool) -> None:
        if completed:
            self.mark_completed()
        else:
            self.mark_incomplete()

    def toggle_completed(self) -> None:
        self.set_completed(not self.completed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id.value,
            "task_id": self.task_id.value,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "created_by": self.created_by.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
