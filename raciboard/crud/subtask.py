"""SubTask repository."""
from typing import List, Optional, Tuple

from sqlalchemy import case, func, select

from raciboard.core.errors import DomainError, NotFoundError
from raciboard.core.result import Failure, Outcome, Success
from raciboard.crud.base import CRUDBase, db_outcome
from raciboard.db.transaction import Transaction
from raciboard.domain.subtask import SubTask
from raciboard.domain.task import IdLike
from raciboard.domain.value_objects import Identifier
from raciboard.models.task import SubTaskModel
from raciboard.ports.repositories import SubTaskFilter


def subtask_from_row(row: SubTaskModel) -> Outcome[SubTask, DomainError]:
    return SubTask.create(
        id=row.id,
        task_id=row.task_id,
        title=row.title,
        created_by=row.created_by,
        completed=row.completed,
        description=row.description,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class CRUDSubTask(CRUDBase[SubTaskModel]):
    """Persistence for SubTask entities."""

    async def _to_entities(self, tx: Transaction, query) -> Outcome[List[SubTask], DomainError]:
        subtasks: List[SubTask] = []
        for row in await self.get_multi(tx, query):
            outcome = subtask_from_row(row)
            if isinstance(outcome, Failure):
                return outcome
            subtasks.append(outcome.value)
        return Success(subtasks)

    @db_outcome
    async def find_by_id(self, tx: Transaction, subtask_id: IdLike) -> Outcome[SubTask, DomainError]:
        try:
            key = Identifier.parse(subtask_id).value
        except ValueError:
            return Failure(NotFoundError(f"SubTask {subtask_id} not found"))
        row = await self.get(tx, key)
        if row is None:
            return Failure(NotFoundError(f"SubTask {subtask_id} not found"))
        return subtask_from_row(row)

    @db_outcome
    async def find(
        self, tx: Transaction, filters: Optional[SubTaskFilter] = None
    ) -> Outcome[List[SubTask], DomainError]:
        query = select(SubTaskModel)
        if filters is not None:
            if filters.task_id is not None:
                query = query.where(SubTaskModel.task_id == Identifier.parse(filters.task_id).value)
            if filters.completed is not None:
                query = query.where(SubTaskModel.completed == filters.completed)
            if filters.search:
                query = query.where(SubTaskModel.title.ilike(f"%{filters.search}%"))
        return await self._to_entities(tx, query.order_by(SubTaskModel.created_at.asc()))

    @db_outcome
    async def find_by_task_id(self, tx: Transaction, task_id: IdLike) -> Outcome[List[SubTask], DomainError]:
        query = (
            select(SubTaskModel)
            .where(SubTaskModel.task_id == Identifier.parse(task_id).value)
            .order_by(SubTaskModel.created_at.asc())
        )
        return await self._to_entities(tx, query)

    @db_outcome
    async def save(self, tx: Transaction, subtask: SubTask) -> Outcome[SubTask, DomainError]:
        row = await self.get(tx, subtask.id.value)
        values = subtask.to_dict()
        if row is None:
            await self.add(tx, SubTaskModel(**values))
        else:
            for field, value in values.items():
                setattr(row, field, value)
            await tx.session.flush()
        return Success(subtask)

    @db_outcome
    async def delete(self, tx: Transaction, subtask_id: IdLike) -> Outcome[None, DomainError]:
        try:
            key = Identifier.parse(subtask_id).value
        except ValueError:
            return Failure(NotFoundError(f"SubTask {subtask_id} not found"))
        removed = await self.remove_where(tx, SubTaskModel.id == key)
        if not removed:
            return Failure(NotFoundError(f"SubTask {subtask_id} not found"))
        return Success(None)

    @db_outcome
    async def count_completion(self, tx: Transaction, task_id: IdLike) -> Outcome[Tuple[int, int], DomainError]:
        result = await tx.session.execute(
            select(
                func.count(SubTaskModel.id),
                func.coalesce(func.sum(case((SubTaskModel.completed.is_(True), 1), else_=0)), 0),
            ).where(SubTaskModel.task_id == Identifier.parse(task_id).value)
        )
        total, completed = result.one()
        return Success((int(completed), int(total)))


subtask = CRUDSubTask(SubTaskModel)
