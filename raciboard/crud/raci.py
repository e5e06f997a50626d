"""RACI repository for the task-level and subtask-level sets."""
from typing import List, Optional, Type, Union

from sqlalchemy import select

from raciboard.core.errors import DomainError
from raciboard.core.result import Failure, Outcome, Success
from raciboard.crud.base import CRUDBase, db_outcome
from raciboard.db.transaction import Transaction
from raciboard.domain.raci import RaciAssignment
from raciboard.domain.task import IdLike
from raciboard.domain.value_objects import Identifier, RaciLetter
from raciboard.models.task import SubTaskRaciModel, TaskRaciModel
from raciboard.utils.dates import utc_now

RaciRow = Union[TaskRaciModel, SubTaskRaciModel]


def _entity_column(model: Type[RaciRow]):
    return model.task_id if model is TaskRaciModel else model.subtask_id


class CRUDRaci(CRUDBase[TaskRaciModel]):
    """Both RACI tables behind one repository.

    Rows are unique per (entity, user); saving a letter for an existing
    pair rewrites that row in place.
    """

    def __init__(self):
        super().__init__(TaskRaciModel)

    @staticmethod
    def _to_assignment(model: Type[RaciRow], row: RaciRow) -> Outcome[RaciAssignment, DomainError]:
        return RaciAssignment.create(
            entity_id=getattr(row, _entity_column(model).key),
            user_id=row.user_id,
            letter=row.letter,
        )

    async def _find(
        self, tx: Transaction, model: Type[RaciRow], entity_id: IdLike
    ) -> Outcome[List[RaciAssignment], DomainError]:
        result = await tx.session.execute(
            select(model)
            .where(_entity_column(model) == Identifier.parse(entity_id).value)
            .order_by(model.id.asc())
        )
        assignments: List[RaciAssignment] = []
        for row in result.scalars().all():
            outcome = self._to_assignment(model, row)
            if isinstance(outcome, Failure):
                return outcome
            assignments.append(outcome.value)
        return Success(assignments)

    async def _save(
        self,
        tx: Transaction,
        model: Type[RaciRow],
        entity_id: IdLike,
        user_id: IdLike,
        letter: Union[str, RaciLetter],
    ) -> Outcome[RaciAssignment, DomainError]:
        outcome = RaciAssignment.create(entity_id=entity_id, user_id=user_id, letter=letter)
        if isinstance(outcome, Failure):
            return outcome
        assignment = outcome.value

        entity_column = _entity_column(model)
        result = await tx.session.execute(
            select(model).where(
                entity_column == assignment.entity_id.value,
                model.user_id == assignment.user_id.value,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = model(user_id=assignment.user_id.value, letter=assignment.letter)
            setattr(row, entity_column.key, assignment.entity_id.value)
            tx.session.add(row)
        else:
            current = self._to_assignment(model, row)
            if isinstance(current, Failure):
                return current
            assignment = current.value
            updated = assignment.update_letter(letter)
            if isinstance(updated, Failure):
                return updated
            row.letter = assignment.letter
            row.updated_at = utc_now()
        await tx.session.flush()
        return Success(assignment)

    @db_outcome
    async def find_by_task_id(self, tx: Transaction, task_id: IdLike) -> Outcome[List[RaciAssignment], DomainError]:
        return await self._find(tx, TaskRaciModel, task_id)

    @db_outcome
    async def find_by_subtask_id(
        self, tx: Transaction, subtask_id: IdLike
    ) -> Outcome[List[RaciAssignment], DomainError]:
        return await self._find(tx, SubTaskRaciModel, subtask_id)

    @db_outcome
    async def find_for_task_user(
        self, tx: Transaction, task_id: IdLike, user_id: IdLike
    ) -> Outcome[Optional[RaciAssignment], DomainError]:
        result = await tx.session.execute(
            select(TaskRaciModel).where(
                TaskRaciModel.task_id == Identifier.parse(task_id).value,
                TaskRaciModel.user_id == Identifier.parse(user_id).value,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            return Success(None)
        return self._to_assignment(TaskRaciModel, row)

    @db_outcome
    async def save_task_raci(
        self, tx: Transaction, task_id: IdLike, user_id: IdLike, letter: Union[str, RaciLetter]
    ) -> Outcome[RaciAssignment, DomainError]:
        return await self._save(tx, TaskRaciModel, task_id, user_id, letter)

    @db_outcome
    async def save_subtask_raci(
        self, tx: Transaction, subtask_id: IdLike, user_id: IdLike, letter: Union[str, RaciLetter]
    ) -> Outcome[RaciAssignment, DomainError]:
        return await self._save(tx, SubTaskRaciModel, subtask_id, user_id, letter)

    @db_outcome
    async def delete_all_for_task(self, tx: Transaction, task_id: IdLike) -> Outcome[None, DomainError]:
        await self.remove_where(tx, TaskRaciModel.task_id == Identifier.parse(task_id).value)
        return Success(None)

    @db_outcome
    async def delete_all_for_subtask(self, tx: Transaction, subtask_id: IdLike) -> Outcome[None, DomainError]:
        await self.remove_where(
            tx,
            SubTaskRaciModel.subtask_id == Identifier.parse(subtask_id).value,
            model=SubTaskRaciModel,
        )
        return Success(None)

    @db_outcome
    async def copy_from_task_to_subtask(
        self, tx: Transaction, task_id: IdLike, subtask_id: IdLike
    ) -> Outcome[int, DomainError]:
        source = await self._find(tx, TaskRaciModel, task_id)
        if isinstance(source, Failure):
            return source
        target = Identifier.parse(subtask_id).value
        for assignment in source.value:
            tx.session.add(
                SubTaskRaciModel(
                    subtask_id=target,
                    user_id=assignment.user_id.value,
                    letter=assignment.letter,
                )
            )
        await tx.session.flush()
        return Success(len(source.value))


raci = CRUDRaci()
