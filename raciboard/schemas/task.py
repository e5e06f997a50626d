"""Task schemas."""
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from raciboard.domain.value_objects import PhaseCode
from raciboard.schemas.subtask import SubTaskResponse


class RaciMapSchema(BaseModel):
    """Users per RACI letter."""

    R: List[UUID] = Field(default_factory=list)
    A: List[UUID] = Field(default_factory=list)
    C: List[UUID] = Field(default_factory=list)
    I: List[UUID] = Field(default_factory=list)  # noqa: E741


class TaskBase(BaseModel):
    """Base task schema."""

    title: str
    description: Optional[str] = None
    page_id: Optional[int] = None
    owner_id: Optional[UUID] = None
    planned_start: Optional[datetime] = None
    planned_end: Optional[datetime] = None


class TaskCreate(TaskBase):
    """Task creation schema."""

    phase_code: PhaseCode
    priority: int
    raci: Optional[RaciMapSchema] = None
    profiles_impacted: List[str] = Field(default_factory=list)


class TaskUpdate(BaseModel):
    """Partial task update. Progress is derived from subtasks and cannot be set."""

    title: Optional[str] = None
    description: Optional[str] = None
    page_id: Optional[int] = None
    owner_id: Optional[UUID] = None
    priority: Optional[int] = None
    phase_code: Optional[PhaseCode] = None
    planned_start: Optional[datetime] = None
    planned_end: Optional[datetime] = None
    raci: Optional[RaciMapSchema] = None
    profiles_impacted: Optional[List[str]] = None


class TaskSummary(TaskBase):
    """Task fields without related collections."""

    id: UUID
    phase_code: PhaseCode
    priority: int
    progress: int
    created_by: UUID
    created_at: datetime
    updated_at: datetime


class TaskDetail(TaskSummary):
    """Task with its RACI map, subtasks and impacted profiles."""

    raci: Dict[str, List[UUID]]
    subtasks: List[SubTaskResponse] = Field(default_factory=list)
    profiles_impacted: List[str] = Field(default_factory=list)


class TaskLockRequest(BaseModel):
    user_name: str


class TaskLockResponse(BaseModel):
    locked: bool
    locked_by: Optional[UUID] = None


class PermissionResponse(BaseModel):
    allowed: bool
