"""SubTask schemas."""
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from raciboard.domain.value_objects import RaciLetter


class SubTaskCreate(BaseModel):
    """SubTask creation schema."""

    title: str
    description: Optional[str] = None
    completed: bool = False


class SubTaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None


class SubTaskStatusUpdate(BaseModel):
    completed: bool


class RaciAssign(BaseModel):
    """Set one user's letter on a subtask."""

    user_id: UUID
    letter: RaciLetter


class SubTaskResponse(BaseModel):
    """SubTask response schema."""

    id: UUID
    task_id: UUID
    title: str
    description: Optional[str] = None
    completed: bool
    created_by: UUID
    created_at: datetime
    updated_at: datetime
    raci: Optional[Dict[str, List[UUID]]] = None
