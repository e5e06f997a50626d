"""Transaction handle passed explicitly to repository methods."""
from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from raciboard.core.errors import DomainError

logger = logging.getLogger(__name__)


class TransactionAborted(Exception):
    """Raised inside a transaction block to roll back with a domain error."""

    def __init__(self, error: DomainError):
        super().__init__(error.message)
        self.error = error


class Transaction:
    """Open unit of work. Exposes the session only."""

    def __init__(self, session: AsyncSession):
        self.id = uuid.uuid4().hex[:12]
        self.session = session

    def abort(self, error: DomainError) -> None:
        """Roll back the enclosing ``begin()`` block with ``error``."""
        raise TransactionAborted(error)


class TransactionManager:
    """Hands out transactions backed by a session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[Transaction]:
        """Commit on normal exit, roll back on any exception, always release the session."""
        async with self._session_factory() as session:
            tx = Transaction(session)
            try:
                async with session.begin():
                    yield tx
            except TransactionAborted as exc:
                logger.debug("Transaction %s rolled back: %s", tx.id, exc.error.message)
                raise
            except Exception:
                logger.warning("Transaction %s rolled back after an error", tx.id)
                raise
