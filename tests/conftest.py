"""Pytest configuration and fixtures."""
import os
import uuid
from typing import Any, Dict, List, Tuple

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_raciboard.db")
os.environ.setdefault("LOG_FORMAT", "text")

from raciboard.database import Base, enable_sqlite_foreign_keys  # noqa: E402
from raciboard.db.transaction import TransactionManager  # noqa: E402
from raciboard.dependencies import build_task_service  # noqa: E402
from raciboard.services.bootstrap_service import ensure_profiles  # noqa: E402
from raciboard.services.event_broker import EventBroker  # noqa: E402
import raciboard.models  # noqa: E402,F401


class RecordingEventBroker(EventBroker):
    """Keeps published events in memory."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def publish(self, event: str, data: Dict[str, Any]) -> None:
        self.events.append((event, data))

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def last(self, name: str) -> Dict[str, Any]:
        for event, data in reversed(self.events):
            if event == name:
                return data
        raise AssertionError(f"No {name} event published")

    def clear(self) -> None:
        self.events.clear()


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Create a fresh SQLite database for each test."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'raciboard.db'}")
    enable_sqlite_foreign_keys(test_engine)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        await ensure_profiles(session)
    return factory


@pytest.fixture
def transactions(session_factory):
    return TransactionManager(session_factory)


@pytest.fixture
def events():
    return RecordingEventBroker()


@pytest.fixture
def task_service(session_factory, events):
    """Task service backed by the SQLAlchemy repositories and a recording broker."""
    return build_task_service(session_factory, events)


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def responsible_id():
    return uuid.uuid4()


@pytest.fixture
def consulted_id():
    return uuid.uuid4()


@pytest.fixture
def outsider_id():
    return uuid.uuid4()


@pytest.fixture
def creator_id():
    return uuid.uuid4()


@pytest.fixture
def task_data(owner_id, responsible_id, consulted_id):
    """Task input with one user per letter R and C."""
    return {
        "phase_code": "D",
        "title": "Deploy the new badge readers",
        "description": "Site north",
        "priority": 2,
        "owner_id": owner_id,
        "raci": {"R": [responsible_id], "C": [consulted_id]},
        "profiles_impacted": ["TEC"],
    }


@pytest_asyncio.fixture
async def created_task(task_service, task_data, creator_id, events):
    """A persisted task; the creation event is cleared."""
    outcome = await task_service.create_task(task_data, creator_id)
    assert outcome.is_success, outcome
    events.clear()
    return outcome.value
