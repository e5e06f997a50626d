"""Task repository."""
from typing import List, Optional

from sqlalchemy import or_, select

from raciboard.core.errors import DomainError, NotFoundError
from raciboard.core.result import Failure, Outcome, Success
from raciboard.crud.base import CRUDBase, db_outcome
from raciboard.db.transaction import Transaction
from raciboard.domain.task import IdLike, Task
from raciboard.domain.value_objects import Identifier, PhaseCode
from raciboard.models.profile import TaskProfileModel
from raciboard.models.task import TaskModel
from raciboard.ports.repositories import TaskFilter


def task_from_row(row: TaskModel) -> Outcome[Task, DomainError]:
    return Task.create(
        id=row.id,
        phase_code=row.phase_code,
        title=row.title,
        priority=row.priority,
        created_by=row.created_by,
        page_id=row.page_id,
        description=row.description,
        owner_id=row.owner_id,
        progress=row.progress,
        created_at=row.created_at,
        updated_at=row.updated_at,
        planned_start=row.planned_start,
        planned_end=row.planned_end,
    )


class CRUDTask(CRUDBase[TaskModel]):
    """Persistence for Task entities."""

    @db_outcome
    async def find_by_id(self, tx: Transaction, task_id: IdLike) -> Outcome[Task, DomainError]:
        try:
            key = Identifier.parse(task_id).value
        except ValueError:
            return Failure(NotFoundError(f"Task {task_id} not found"))
        row = await self.get(tx, key)
        if row is None:
            return Failure(NotFoundError(f"Task {task_id} not found"))
        return task_from_row(row)

    @db_outcome
    async def find(self, tx: Transaction, filters: Optional[TaskFilter] = None) -> Outcome[List[Task], DomainError]:
        query = select(TaskModel)
        if filters is not None:
            if filters.phase_code is not None:
                if isinstance(filters.phase_code, (str, PhaseCode)):
                    query = query.where(TaskModel.phase_code == PhaseCode(filters.phase_code))
                else:
                    query = query.where(TaskModel.phase_code.in_([PhaseCode(p) for p in filters.phase_code]))
            if filters.page_id is not None:
                query = query.where(TaskModel.page_id == filters.page_id)
            if filters.owner_id is not None:
                query = query.where(TaskModel.owner_id == Identifier.parse(filters.owner_id).value)
            if filters.created_by is not None:
                query = query.where(TaskModel.created_by == Identifier.parse(filters.created_by).value)
            if filters.profile_code:
                query = query.join(TaskProfileModel, TaskProfileModel.task_id == TaskModel.id).where(
                    TaskProfileModel.profile_code == filters.profile_code
                )
            if filters.search:
                pattern = f"%{filters.search}%"
                query = query.where(or_(TaskModel.title.ilike(pattern), TaskModel.description.ilike(pattern)))

        query = query.order_by(TaskModel.priority.asc(), TaskModel.created_at.desc())
        tasks: List[Task] = []
        for row in await self.get_multi(tx, query):
            outcome = task_from_row(row)
            if isinstance(outcome, Failure):
                return outcome
            tasks.append(outcome.value)
        return Success(tasks)

    @db_outcome
    async def save(self, tx: Transaction, task: Task) -> Outcome[Task, DomainError]:
        row = await self.get(tx, task.id.value)
        values = task.to_dict()
        values["phase_code"] = task.phase_code
        if row is None:
            await self.add(tx, TaskModel(**values))
        else:
            for field, value in values.items():
                setattr(row, field, value)
            await tx.session.flush()
        return Success(task)

    @db_outcome
    async def delete(self, tx: Transaction, task_id: IdLike) -> Outcome[None, DomainError]:
        try:
            key = Identifier.parse(task_id).value
        except ValueError:
            return Failure(NotFoundError(f"Task {task_id} not found"))
        removed = await self.remove_where(tx, TaskModel.id == key)
        if not removed:
            return Failure(NotFoundError(f"Task {task_id} not found"))
        return Success(None)


task = CRUDTask(TaskModel)
