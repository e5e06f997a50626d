"""Impacted-profile repository."""
from typing import List, Optional, Sequence

from sqlalchemy import select

from raciboard.core.errors import DomainError, NotFoundError
from raciboard.core.result import Failure, Outcome, Success
from raciboard.crud.base import CRUDBase, db_outcome
from raciboard.db.transaction import Transaction
from raciboard.domain.profile import Profile, ProfileAssociation
from raciboard.domain.task import IdLike
from raciboard.domain.value_objects import Identifier
from raciboard.models.profile import ProfileModel, TaskProfileModel


class CRUDProfile(CRUDBase[ProfileModel]):
    """Catalog lookups and task associations."""

    @db_outcome
    async def find_by_code(self, tx: Transaction, code: str) -> Outcome[Profile, DomainError]:
        row = await self.get(tx, code)
        if row is None:
            return Failure(NotFoundError(f"Profile {code} not found"))
        return Profile.create(code=row.code, name=row.name, description=row.description)

    @db_outcome
    async def find_all(self, tx: Transaction) -> Outcome[List[Profile], DomainError]:
        profiles: List[Profile] = []
        for row in await self.get_multi(tx, select(ProfileModel).order_by(ProfileModel.code)):
            outcome = Profile.create(code=row.code, name=row.name, description=row.description)
            if isinstance(outcome, Failure):
                return outcome
            profiles.append(outcome.value)
        return Success(profiles)

    @db_outcome
    async def exists_by_code(self, tx: Transaction, code: str) -> Outcome[bool, DomainError]:
        result = await tx.session.execute(select(ProfileModel.code).where(ProfileModel.code == code).limit(1))
        return Success(result.scalar_one_or_none() is not None)

    @db_outcome
    async def find_by_task_id(self, tx: Transaction, task_id: IdLike) -> Outcome[List[str], DomainError]:
        result = await tx.session.execute(
            select(TaskProfileModel.profile_code)
            .where(TaskProfileModel.task_id == Identifier.parse(task_id).value)
            .order_by(TaskProfileModel.created_at.asc(), TaskProfileModel.profile_code.asc())
        )
        return Success(list(result.scalars().all()))

    @db_outcome
    async def associate_with_task(
        self, tx: Transaction, task_id: IdLike, profile_codes: Sequence[str]
    ) -> Outcome[None, DomainError]:
        seen = set()
        for code in profile_codes:
            if code in seen:
                continue
            seen.add(code)
            outcome = ProfileAssociation.create(task_id=task_id, profile_code=code)
            if isinstance(outcome, Failure):
                return outcome
            association = outcome.value
            tx.session.add(
                TaskProfileModel(task_id=association.task_id.value, profile_code=association.profile_code)
            )
        await tx.session.flush()
        return Success(None)

    @db_outcome
    async def remove_from_task(
        self, tx: Transaction, task_id: IdLike, profile_codes: Optional[Sequence[str]] = None
    ) -> Outcome[None, DomainError]:
        """Remove the given associations, or all of them when no codes are passed."""
        criteria = [TaskProfileModel.task_id == Identifier.parse(task_id).value]
        if profile_codes is not None:
            criteria.append(TaskProfileModel.profile_code.in_(list(profile_codes)))
        await self.remove_where(tx, *criteria, model=TaskProfileModel)
        return Success(None)


profile = CRUDProfile(ProfileModel)
