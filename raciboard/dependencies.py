"""FastAPI dependencies for caller identity and service wiring."""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from raciboard.core.exceptions import ForbiddenError, UnauthorizedError
from raciboard.crud.profile import profile
from raciboard.crud.raci import raci
from raciboard.crud.subtask import subtask
from raciboard.crud.task import task
from raciboard.database import AsyncSessionLocal
from raciboard.db.transaction import TransactionManager
from raciboard.domain.value_objects import Identifier
from raciboard.ports.events import TaskEventPublisher
from raciboard.services.event_broker import build_event_broker
from raciboard.services.task_service import TaskService
from raciboard.utils.permissions import can_create_task


@dataclass(frozen=True)
class Caller:
    """Identity forwarded by the authenticating gateway."""

    user_id: Identifier
    role: Optional[str]


def build_task_service(
    session_factory: async_sessionmaker[AsyncSession],
    events: TaskEventPublisher,
) -> TaskService:
    """Wire the service with the SQLAlchemy repositories."""
    return TaskService(
        TransactionManager(session_factory),
        task,
        subtask,
        raci,
        profile,
        events,
    )


event_broker = build_event_broker()
task_service = build_task_service(AsyncSessionLocal, event_broker)


def get_task_service() -> TaskService:
    return task_service


async def get_caller(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> Caller:
    """Read the caller identity from gateway headers."""
    if not x_user_id:
        raise UnauthorizedError("Missing X-User-Id header")
    try:
        user_id = Identifier.parse(x_user_id)
    except ValueError:
        raise UnauthorizedError("Invalid X-User-Id header")
    return Caller(user_id=user_id, role=x_user_role or None)


async def require_task_creator(caller: Caller = Depends(get_caller)) -> Caller:
    """Only creator roles may open new tasks."""
    if not can_create_task(caller.role):
        raise ForbiddenError(f"Role {caller.role or 'none'} cannot create tasks")
    return caller
