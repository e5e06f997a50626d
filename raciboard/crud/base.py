"""Base class for SQLAlchemy-backed repositories."""
import functools
import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql import Select

from raciboard.core.errors import ConflictError, UnexpectedError
from raciboard.core.result import Failure
from raciboard.database import Base
from raciboard.db.transaction import Transaction

ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)


def db_outcome(func):
    """Turn driver errors raised by a repository method into a Failure."""

    @functools.wraps(func)
    async def wrapper(self, tx: Transaction, *args, **kwargs):
        try:
            return await func(self, tx, *args, **kwargs)
        except IntegrityError as exc:
            logger.warning("Integrity error in %s.%s: %s", type(self).__name__, func.__name__, exc.orig)
            return Failure(ConflictError(f"Integrity constraint violated: {exc.orig}"))
        except SQLAlchemyError as exc:
            logger.error("Database error in %s.%s: %s", type(self).__name__, func.__name__, exc)
            return Failure(UnexpectedError(f"Database error: {exc}"))

    return wrapper


class CRUDBase(Generic[ModelType]):
    """Row-level helpers shared by the repositories."""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, tx: Transaction, id: Any) -> Optional[ModelType]:
        return await tx.session.get(self.model, id)

    async def get_multi(self, tx: Transaction, query: Optional[Select] = None) -> List[ModelType]:
        if query is None:
            query = select(self.model)
        result = await tx.session.execute(query)
        return list(result.scalars().all())

    async def add(self, tx: Transaction, db_obj: ModelType) -> ModelType:
        tx.session.add(db_obj)
        await tx.session.flush()
        return db_obj

    async def remove_where(self, tx: Transaction, *criteria, model: Optional[Type[Base]] = None) -> int:
        """Delete matching rows and return how many were removed."""
        result = await tx.session.execute(delete(model or self.model).where(*criteria))
        return result.rowcount or 0
