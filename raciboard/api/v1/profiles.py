"""Impacted profiles API endpoints."""
from typing import List

from fastapi import APIRouter, Depends

from raciboard.core.exceptions import unwrap_or_raise
from raciboard.dependencies import Caller, get_caller, get_task_service
from raciboard.schemas.profile import ProfileResponse
from raciboard.services.task_service import TaskService

router = APIRouter()


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    caller: Caller = Depends(get_caller),
    service: TaskService = Depends(get_task_service),
):
    """Return the impacted-profile catalog."""
    profiles = unwrap_or_raise(await service.list_profiles())
    return [ProfileResponse.model_validate(profile) for profile in profiles]
