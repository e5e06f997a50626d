"""Tasks API endpoints."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from raciboard.core.exceptions import unwrap_or_raise
from raciboard.dependencies import Caller, get_caller, get_task_service, require_task_creator
from raciboard.domain.value_objects import PhaseCode
from raciboard.ports.repositories import TaskFilter
from raciboard.schemas.subtask import SubTaskCreate, SubTaskResponse
from raciboard.schemas.task import (
    PermissionResponse,
    TaskCreate,
    TaskDetail,
    TaskLockRequest,
    TaskLockResponse,
    TaskSummary,
    TaskUpdate,
)
from raciboard.services.task_service import TaskService

router = APIRouter()


@router.get("", response_model=List[TaskSummary])
async def list_tasks(
    phase_code: Optional[PhaseCode] = None,
    owner_id: Optional[UUID] = None,
    created_by: Optional[UUID] = None,
    page_id: Optional[int] = None,
    profile_code: Optional[str] = None,
    search: Optional[str] = None,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    """List tasks matching the optional filters."""
    filters = TaskFilter(
        phase_code=phase_code,
        owner_id=owner_id,
        created_by=created_by,
        page_id=page_id,
        profile_code=profile_code,
        search=search,
    )
    return unwrap_or_raise(await service.list_tasks(filters))


@router.post("", response_model=TaskDetail, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    caller: Caller = Depends(require_task_creator),
    service: TaskService = Depends(get_task_service),
):
    """Create a task with its RACI matrix and impacted profiles."""
    data = task_in.model_dump(exclude_unset=True)
    return unwrap_or_raise(await service.create_task(data, caller.user_id))


@router.get("/{task_id}", response_model=TaskDetail)
async def get_task(
    task_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    return unwrap_or_raise(await service.get_task_with_details(task_id))


@router.patch("/{task_id}", response_model=TaskDetail)
async def update_task(
    task_id: UUID,
    task_in: TaskUpdate,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    """Partially update a task. RACI and profiles are replaced when present."""
    data = task_in.model_dump(exclude_unset=True)
    return unwrap_or_raise(await service.update_task(task_id, data, caller.user_id, caller.role))


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    unwrap_or_raise(await service.delete_task(task_id, caller.user_id, caller.role))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{task_id}/subtasks", response_model=SubTaskResponse, status_code=status.HTTP_201_CREATED)
async def create_subtask(
    task_id: UUID,
    subtask_in: SubTaskCreate,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    """Add a subtask. It starts with a copy of the task's RACI matrix."""
    data = subtask_in.model_dump()
    return unwrap_or_raise(await service.create_subtask(task_id, data, caller.user_id, caller.role))


@router.get("/{task_id}/permissions/modify", response_model=PermissionResponse)
async def check_modify_permission(
    task_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    allowed = unwrap_or_raise(await service.can_modify_task(task_id, caller.user_id, caller.role))
    return PermissionResponse(allowed=allowed)


@router.get("/{task_id}/permissions/phase", response_model=PermissionResponse)
async def check_phase_permission(
    task_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    allowed = unwrap_or_raise(await service.can_change_phase(task_id, caller.user_id, caller.role))
    return PermissionResponse(allowed=allowed)


@router.get("/{task_id}/lock", response_model=TaskLockResponse)
async def get_task_lock(
    task_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    lock = unwrap_or_raise(await service.is_task_locked(task_id))
    return TaskLockResponse(
        locked=lock.locked,
        locked_by=lock.locked_by.value if lock.locked_by else None,
    )


@router.post("/{task_id}/lock", status_code=status.HTTP_204_NO_CONTENT)
async def lock_task(
    task_id: UUID,
    lock_in: TaskLockRequest,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    """Announce that the caller started editing the task."""
    unwrap_or_raise(await service.lock_task_for_editing(task_id, caller.user_id, lock_in.user_name))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{task_id}/lock", status_code=status.HTTP_204_NO_CONTENT)
async def unlock_task(
    task_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    unwrap_or_raise(await service.unlock_task_after_editing(task_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
