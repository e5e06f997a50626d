"""SubTasks API endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from raciboard.core.exceptions import unwrap_or_raise
from raciboard.dependencies import Caller, get_caller, get_task_service
from raciboard.schemas.subtask import RaciAssign, SubTaskResponse, SubTaskStatusUpdate, SubTaskUpdate
from raciboard.services.task_service import TaskService

router = APIRouter()


@router.patch("/{subtask_id}", response_model=SubTaskResponse)
async def update_subtask(
    subtask_id: UUID,
    subtask_in: SubTaskUpdate,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    data = subtask_in.model_dump(exclude_unset=True)
    return unwrap_or_raise(await service.update_subtask(subtask_id, data, caller.user_id, caller.role))


@router.patch("/{subtask_id}/status", response_model=SubTaskResponse)
async def update_subtask_status(
    subtask_id: UUID,
    status_in: SubTaskStatusUpdate,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    """Toggle completion; the parent task progress follows."""
    return unwrap_or_raise(
        await service.update_subtask_status(subtask_id, status_in.completed, caller.user_id, caller.role)
    )


@router.put("/{subtask_id}/raci", response_model=SubTaskResponse)
async def assign_subtask_raci(
    subtask_id: UUID,
    assign_in: RaciAssign,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    return unwrap_or_raise(
        await service.assign_subtask_raci(
            subtask_id, assign_in.user_id, assign_in.letter, caller.user_id, caller.role
        )
    )


@router.delete("/{subtask_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subtask(
    subtask_id: UUID,
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    unwrap_or_raise(await service.delete_subtask(subtask_id, caller.user_id, caller.role))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
