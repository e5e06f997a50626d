"""Schema modules."""
from raciboard.schemas.subtask import (
    RaciAssign,
    SubTaskCreate,
    SubTaskResponse,
    SubTaskStatusUpdate,
    SubTaskUpdate,
)
from raciboard.schemas.task import (
    PermissionResponse,
    RaciMapSchema,
    TaskCreate,
    TaskDetail,
    TaskLockRequest,
    TaskLockResponse,
    TaskSummary,
    TaskUpdate,
)
from raciboard.schemas.profile import ProfileResponse

__all__ = [
    "RaciAssign",
    "SubTaskCreate",
    "SubTaskResponse",
    "SubTaskStatusUpdate",
    "SubTaskUpdate",
    "PermissionResponse",
    "RaciMapSchema",
    "TaskCreate",
    "TaskDetail",
    "TaskLockRequest",
    "TaskLockResponse",
    "TaskSummary",
    "TaskUpdate",
    "ProfileResponse",
]
