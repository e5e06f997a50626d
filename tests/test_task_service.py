"""Tests for the task orchestration service."""
import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from raciboard.core.errors import ConflictError, ForbiddenError, NotFoundError, UnexpectedError, ValidationError
from raciboard.core.result import Failure, Success
from raciboard.crud.profile import profile as profile_crud
from raciboard.crud.raci import CRUDRaci
from raciboard.crud.subtask import subtask as subtask_crud
from raciboard.crud.task import task as task_crud
from raciboard.db.transaction import TransactionManager
from raciboard.domain.value_objects import Identifier, RaciLetter
from raciboard.models import SubTaskModel, SubTaskRaciModel, TaskModel, TaskProfileModel, TaskRaciModel
from raciboard.ports.repositories import TaskFilter
from raciboard.services.task_service import TaskLock, TaskService


async def count_rows(session_factory, model):
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


class FailingRaciRepository(CRUDRaci):
    """Fails on the second task-level RACI insert."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    async def save_task_raci(self, tx, task_id, user_id, letter):
        self.calls += 1
        if self.calls >= 2:
            return Failure(UnexpectedError("RACI insert failed"))
        return await super().save_task_raci(tx, task_id, user_id, letter)


class ExplodingRaciRepository(CRUDRaci):
    async def save_task_raci(self, tx, task_id, user_id, letter):
        await super().save_task_raci(tx, task_id, user_id, letter)
        raise RuntimeError("connection reset")


def service_with_raci(session_factory, events, raci_repository):
    return TaskService(
        TransactionManager(session_factory),
        task_crud,
        subtask_crud,
        raci_repository,
        profile_crud,
        events,
    )


@pytest.mark.asyncio
async def test_end_to_end_scenario(task_service, events, creator_id):
    """Create, add subtasks, toggle completion and watch progress follow."""
    u1 = uuid.uuid4()
    created = await task_service.create_task(
        {
            "phase_code": "D",
            "title": "Roll out",
            "priority": 2,
            "raci": {"R": [u1]},
            "profiles_impacted": ["TEC"],
        },
        creator_id,
    )

    assert isinstance(created, Success)
    task = created.value
    assert task["progress"] == 0
    assert task["raci"]["R"] == [u1]
    assert task["profiles_impacted"] == ["TEC"]
    assert events.names == ["task_created"]
    assert events.last("task_created")["id"] == task["id"]

    step1 = await task_service.create_subtask(task["id"], {"title": "step1"}, u1, "DEV")
    assert step1.is_success
    assert step1.value["raci"] == {"R": [u1], "A": [], "C": [], "I": []}
    assert step1.value["completed"] is False

    events.clear()
    toggled = await task_service.update_subtask_status(step1.value["id"], True, u1, "DEV")
    assert toggled.is_success
    assert events.names == ["subtask_updated", "task_updated"]
    assert events.last("task_updated")["progress"] == 100

    details = (await task_service.get_task_with_details(task["id"])).value
    assert details["progress"] == 100

    step2 = await task_service.create_subtask(task["id"], {"title": "step2"}, u1, "DEV")
    assert step2.is_success

    events.clear()
    await task_service.update_subtask_status(step2.value["id"], False, u1, "DEV")
    details = (await task_service.get_task_with_details(task["id"])).value
    assert details["progress"] == 50
    assert [s["title"] for s in details["subtasks"]] == ["step1", "step2"]
    assert events.names == ["subtask_updated", "task_updated"]


@pytest.mark.asyncio
async def test_create_task_forces_progress_to_zero(task_service, creator_id):
    """Test that a new task starts at progress 0."""
    outcome = await task_service.create_task(
        {"phase_code": "M", "title": "T", "priority": 1, "progress": 80}, creator_id
    )

    assert outcome.value["progress"] == 0
    assert outcome.value["raci"] == {"R": [], "A": [], "C": [], "I": []}
    assert outcome.value["profiles_impacted"] == []


@pytest.mark.asyncio
async def test_create_task_unknown_profile_fails_fast(task_service, session_factory, events, creator_id):
    """Test creating a task with an unknown profile."""
    outcome = await task_service.create_task(
        {"phase_code": "M", "title": "T", "priority": 1, "profiles_impacted": ["TEC", "XYZ", "ABC"]},
        creator_id,
    )

    assert isinstance(outcome, Failure)
    assert isinstance(outcome.error, NotFoundError)
    assert "XYZ" in outcome.error.message
    assert await count_rows(session_factory, TaskModel) == 0
    assert events.events == []


@pytest.mark.asyncio
async def test_create_task_validation_error(task_service, session_factory, events, creator_id):
    """Test creating a task with an invalid priority."""
    outcome = await task_service.create_task({"phase_code": "D", "title": "T", "priority": 7}, creator_id)

    assert isinstance(outcome.error, ValidationError)
    assert await count_rows(session_factory, TaskModel) == 0
    assert events.events == []


@pytest.mark.asyncio
async def test_create_task_is_atomic_when_raci_insert_fails(session_factory, events, creator_id):
    """Test that a failed RACI insert rolls back task creation."""
    service = service_with_raci(session_factory, events, FailingRaciRepository())

    outcome = await service.create_task(
        {
            "phase_code": "D",
            "title": "T",
            "priority": 2,
            "raci": {"R": [uuid.uuid4()], "A": [uuid.uuid4()]},
            "profiles_impacted": ["TEC"],
        },
        creator_id,
    )

    assert isinstance(outcome, Failure)
    assert outcome.error.message == "RACI insert failed"
    assert await count_rows(session_factory, TaskModel) == 0
    assert await count_rows(session_factory, TaskRaciModel) == 0
    assert await count_rows(session_factory, TaskProfileModel) == 0
    assert events.events == []


@pytest.mark.asyncio
async def test_unexpected_exception_rolls_back_and_is_wrapped(session_factory, events, creator_id):
    """Test wrapping an unexpected exception."""
    service = service_with_raci(session_factory, events, ExplodingRaciRepository())

    outcome = await service.create_task(
        {"phase_code": "D", "title": "T", "priority": 2, "raci": {"R": [uuid.uuid4()]}},
        creator_id,
    )

    assert isinstance(outcome.error, UnexpectedError)
    assert "connection reset" in outcome.error.message
    assert await count_rows(session_factory, TaskModel) == 0
    assert await count_rows(session_factory, TaskRaciModel) == 0
    assert events.events == []


@pytest.mark.asyncio
async def test_consulted_and_informed_cannot_modify(task_service, created_task, creator_id):
    """Test that C and I letters do not grant modification."""
    informed = uuid.uuid4()
    await task_service.update_task(created_task["id"], {"raci": {"I": [informed]}}, creator_id, "CP")

    for user_id in (informed, uuid.uuid4()):
        allowed = await task_service.can_modify_task(created_task["id"], user_id, "DEV")
        assert allowed == Success(False)

    denied = await task_service.update_task(created_task["id"], {"title": "New"}, informed, "DEV")
    assert isinstance(denied.error, ForbiddenError)
    assert "R or A" in denied.error.message


@pytest.mark.asyncio
async def test_consulted_user_denied_update(task_service, created_task, consulted_id, events):
    """Test that a consulted user cannot update a task."""
    outcome = await task_service.update_task(created_task["id"], {"title": "Changed"}, consulted_id, "DEV")

    assert isinstance(outcome.error, ForbiddenError)
    assert events.events == []
    details = (await task_service.get_task_with_details(created_task["id"])).value
    assert details["title"] == created_task["title"]


@pytest.mark.asyncio
async def test_responsible_cannot_change_phase(task_service, created_task, responsible_id):
    """Test that R cannot change the task phase."""
    assert await task_service.can_modify_task(created_task["id"], responsible_id, "DEV") == Success(True)
    assert await task_service.can_change_phase(created_task["id"], responsible_id, "DEV") == Success(False)

    outcome = await task_service.update_task(
        created_task["id"], {"phase_code": "C", "title": "Renamed"}, responsible_id, "DEV"
    )
    assert isinstance(outcome.error, ForbiddenError)
    assert "phase" in outcome.error.message

    details = (await task_service.get_task_with_details(created_task["id"])).value
    assert details["phase_code"] == "D"
    assert details["title"] == created_task["title"]


@pytest.mark.asyncio
async def test_responsible_can_update_fields(task_service, created_task, responsible_id, events):
    """Test that R can update task fields."""
    outcome = await task_service.update_task(
        created_task["id"],
        {"title": "Renamed", "priority": 4, "phase_code": "D"},
        responsible_id,
        "DEV",
    )

    assert outcome.is_success
    assert outcome.value["title"] == "Renamed"
    assert outcome.value["priority"] == 4
    assert events.names == ["task_updated"]


@pytest.mark.asyncio
async def test_owner_and_elevated_roles_change_phase(task_service, created_task, owner_id):
    """Test phase changes by the owner and elevated roles."""
    assert await task_service.can_change_phase(created_task["id"], owner_id, "UF") == Success(True)
    assert await task_service.can_change_phase(created_task["id"], uuid.uuid4(), "RF") == Success(True)

    outcome = await task_service.update_task(created_task["id"], {"phase_code": "A2"}, owner_id, "UF")
    assert outcome.value["phase_code"] == "A2"


@pytest.mark.asyncio
async def test_update_task_ignores_progress(task_service, created_task, owner_id):
    """Test that progress is ignored on update."""
    outcome = await task_service.update_task(created_task["id"], {"progress": 90}, owner_id, None)

    assert outcome.value["progress"] == 0


@pytest.mark.asyncio
async def test_update_task_validation_aborts_everything(task_service, created_task, owner_id, events):
    """Test that a validation failure aborts the whole update."""
    outcome = await task_service.update_task(
        created_task["id"],
        {"title": "Should not stick", "priority": 0, "raci": {"A": [owner_id]}},
        owner_id,
        None,
    )

    assert isinstance(outcome.error, ValidationError)
    details = (await task_service.get_task_with_details(created_task["id"])).value
    assert details["title"] == created_task["title"]
    assert details["raci"] == created_task["raci"]
    assert events.events == []


@pytest.mark.asyncio
async def test_update_planned_dates_partial(task_service, created_task, owner_id):
    """Test updating one planned date."""
    start = datetime(2026, 5, 1, tzinfo=timezone.utc)
    end = datetime(2026, 5, 31, tzinfo=timezone.utc)
    outcome = await task_service.update_task(
        created_task["id"], {"planned_start": start, "planned_end": end}, owner_id, None
    )
    assert outcome.is_success

    rejected = await task_service.update_task(
        created_task["id"], {"planned_start": datetime(2026, 6, 15, tzinfo=timezone.utc)}, owner_id, None
    )
    assert isinstance(rejected.error, ValidationError)

    moved = await task_service.update_task(
        created_task["id"], {"planned_end": datetime(2026, 6, 30, tzinfo=timezone.utc)}, owner_id, None
    )
    assert moved.value["planned_start"] == start
    assert moved.value["planned_end"] == datetime(2026, 6, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_raci_update_replaces_set(task_service, created_task, owner_id, responsible_id, consulted_id):
    """Test replacing the task RACI set."""
    newcomer = uuid.uuid4()
    outcome = await task_service.update_task(
        created_task["id"],
        {"raci": {"A": [responsible_id], "I": [newcomer]}},
        owner_id,
        None,
    )

    assert outcome.value["raci"] == {"R": [], "A": [responsible_id], "C": [], "I": [newcomer]}
    assert consulted_id not in sum(outcome.value["raci"].values(), [])


@pytest.mark.asyncio
async def test_raci_same_user_twice_keeps_one_letter(task_service, session_factory, creator_id):
    """Test that a user listed twice keeps one letter."""
    user = uuid.uuid4()
    outcome = await task_service.create_task(
        {"phase_code": "E", "title": "T", "priority": 3, "raci": {"R": [user], "C": [user]}},
        creator_id,
    )

    assert outcome.value["raci"] == {"R": [], "A": [], "C": [user], "I": []}
    assert await count_rows(session_factory, TaskRaciModel) == 1


@pytest.mark.asyncio
async def test_raci_repository_replaces_letter(transactions, created_task, responsible_id):
    """Test replacing a RACI letter in the repository."""
    repository = CRUDRaci()
    async with transactions.begin() as tx:
        await repository.save_task_raci(tx, created_task["id"], responsible_id, "A")
        await repository.save_task_raci(tx, created_task["id"], responsible_id, RaciLetter.I)

    async with transactions.begin() as tx:
        assignments = (await repository.find_by_task_id(tx, created_task["id"])).value
        single = (await repository.find_for_task_user(tx, created_task["id"], responsible_id)).value

    mine = [a for a in assignments if a.user_id.value == responsible_id]
    assert len(mine) == 1
    assert single.letter is RaciLetter.I


@pytest.mark.asyncio
async def test_update_profiles_replaces_associations(task_service, created_task, owner_id):
    """Test replacing impacted profiles."""
    outcome = await task_service.update_task(
        created_task["id"], {"profiles_impacted": ["MAN", "RH"]}, owner_id, None
    )
    assert sorted(outcome.value["profiles_impacted"]) == ["MAN", "RH"]

    unknown = await task_service.update_task(
        created_task["id"], {"profiles_impacted": ["DG", "NOPE"]}, owner_id, None
    )
    assert isinstance(unknown.error, NotFoundError)

    details = (await task_service.get_task_with_details(created_task["id"])).value
    assert sorted(details["profiles_impacted"]) == ["MAN", "RH"]


@pytest.mark.asyncio
async def test_subtask_raci_is_an_independent_copy(
    task_service, created_task, owner_id, responsible_id, consulted_id
):
    """Test that a subtask gets its own copy of the task RACI."""
    subtask = (
        await task_service.create_subtask(created_task["id"], {"title": "Wire"}, responsible_id, "DEV")
    ).value
    assert subtask["raci"] == created_task["raci"]

    reassigned = await task_service.assign_subtask_raci(subtask["id"], consulted_id, "A", owner_id, None)
    assert reassigned.value["raci"] == {"R": [responsible_id], "A": [consulted_id], "C": [], "I": []}

    task_details = (await task_service.get_task_with_details(created_task["id"])).value
    assert task_details["raci"] == created_task["raci"]

    await task_service.update_task(created_task["id"], {"raci": {"I": [responsible_id]}}, owner_id, None)
    async with task_service.transactions.begin() as tx:
        copied = (await task_service.raci.find_by_subtask_id(tx, subtask["id"])).value
    assert {(a.user_id.value, a.letter) for a in copied} == {
        (responsible_id, RaciLetter.R),
        (consulted_id, RaciLetter.A),
    }


@pytest.mark.asyncio
async def test_create_subtask_requires_modify_rights(task_service, created_task, consulted_id, events):
    """Test creating a subtask without modify rights."""
    outcome = await task_service.create_subtask(created_task["id"], {"title": "x"}, consulted_id, "DEV")

    assert isinstance(outcome.error, ForbiddenError)
    assert events.events == []


@pytest.mark.asyncio
async def test_create_subtask_missing_parent(task_service, owner_id):
    """Test creating a subtask on a missing task."""
    outcome = await task_service.create_subtask(uuid.uuid4(), {"title": "x"}, owner_id, "CP")
    assert isinstance(outcome.error, NotFoundError)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "total, completed, expected",
    [(3, 1, 33), (3, 2, 67), (8, 1, 13), (4, 4, 100), (5, 0, 0), (2, 1, 50)],
)
async def test_progress_is_rounded_ratio(task_service, created_task, owner_id, total, completed, expected):
    """Test the rounded progress ratio."""
    ids = []
    for index in range(total):
        outcome = await task_service.create_subtask(created_task["id"], {"title": f"s{index}"}, owner_id, None)
        ids.append(outcome.value["id"])

    for subtask_id in ids[:completed]:
        await task_service.update_subtask_status(subtask_id, True, owner_id, None)
    await task_service.update_subtask_status(ids[-1], completed == total, owner_id, None)

    details = (await task_service.get_task_with_details(created_task["id"])).value
    assert details["progress"] == expected


@pytest.mark.asyncio
async def test_status_update_without_progress_change_emits_only_subtask_event(
    task_service, created_task, owner_id, events
):
    """Test events when progress does not change."""
    first = (await task_service.create_subtask(created_task["id"], {"title": "a"}, owner_id, None)).value
    events.clear()

    await task_service.update_subtask_status(first["id"], False, owner_id, None)

    assert events.names == ["subtask_updated"]


@pytest.mark.asyncio
async def test_status_update_denied_for_consulted(task_service, created_task, owner_id, consulted_id):
    """Test that a consulted user cannot toggle a subtask."""
    subtask = (await task_service.create_subtask(created_task["id"], {"title": "a"}, owner_id, None)).value

    outcome = await task_service.update_subtask_status(subtask["id"], True, consulted_id, "DEV")

    assert isinstance(outcome.error, ForbiddenError)


@pytest.mark.asyncio
async def test_delete_task_owner_or_elevated_only(
    task_service, session_factory, created_task, owner_id, responsible_id, events
):
    """Test that only the owner or elevated roles delete a task."""
    await task_service.create_subtask(created_task["id"], {"title": "a"}, owner_id, None)
    events.clear()

    denied = await task_service.delete_task(created_task["id"], responsible_id, "DEV")
    assert isinstance(denied.error, ForbiddenError)

    deleted = await task_service.delete_task(created_task["id"], owner_id, "UF")
    assert deleted == Success(None)
    assert events.events == [("task_deleted", {"id": str(created_task["id"])})]

    for model in (TaskModel, SubTaskModel, TaskRaciModel, SubTaskRaciModel, TaskProfileModel):
        assert await count_rows(session_factory, model) == 0

    missing = await task_service.get_task_with_details(created_task["id"])
    assert isinstance(missing.error, NotFoundError)


@pytest.mark.asyncio
async def test_elevated_role_short_circuits(task_service, created_task):
    """Test that elevated roles skip the task lookup."""
    stranger = uuid.uuid4()
    assert await task_service.can_modify_task(created_task["id"], stranger, "CP") == Success(True)
    outcome = await task_service.update_task(created_task["id"], {"title": "By CP"}, stranger, "CP")
    assert outcome.value["title"] == "By CP"


@pytest.mark.asyncio
async def test_missing_task(task_service, owner_id):
    """Test operations on a missing task."""
    assert isinstance((await task_service.update_task(uuid.uuid4(), {}, owner_id, None)).error, NotFoundError)
    assert isinstance((await task_service.delete_task(uuid.uuid4(), owner_id, "CP")).error, NotFoundError)
    assert isinstance((await task_service.can_change_phase("bad-id", owner_id, "DEV")).error, NotFoundError)


@pytest.mark.asyncio
async def test_lock_stub(task_service, created_task, owner_id, events):
    """Test the unlocked lock stub and its events."""
    assert await task_service.is_task_locked(created_task["id"]) == Success(TaskLock(locked=False))

    await task_service.lock_task_for_editing(created_task["id"], owner_id, "Alex")
    await task_service.unlock_task_after_editing(created_task["id"])

    assert events.events == [
        ("task_locked", {"task_id": str(created_task["id"]), "user": {"id": str(owner_id), "name": "Alex"}}),
        ("task_unlocked", {"task_id": str(created_task["id"])}),
    ]


@pytest.mark.asyncio
async def test_lock_held_by_another_user_is_a_conflict(
    task_service, created_task, owner_id, responsible_id, events
):
    """Test that R/A rights turn into a conflict while someone else holds the lock."""
    holder = Identifier.new()

    async def locked_by_holder(task_id):
        return Success(TaskLock(locked=True, locked_by=holder))

    task_service._lock_state = locked_by_holder

    denied = await task_service.update_task(created_task["id"], {"title": "Edited"}, responsible_id, "DEV")
    assert isinstance(denied.error, ConflictError)
    checked = await task_service.can_modify_task(created_task["id"], responsible_id, "DEV")
    assert isinstance(checked.error, ConflictError)
    assert events.events == []

    details = (await task_service.get_task_with_details(created_task["id"])).value
    assert details["title"] == "Deploy the new badge readers"

    assert await task_service.can_modify_task(created_task["id"], owner_id, None) == Success(True)
    assert await task_service.can_modify_task(created_task["id"], responsible_id, "CP") == Success(True)
    by_owner = await task_service.update_task(created_task["id"], {"title": "Edited by owner"}, owner_id, None)
    assert by_owner.is_success
    assert events.names == ["task_updated"]


@pytest.mark.asyncio
async def test_lock_held_by_caller_allows_modification(task_service, created_task, responsible_id):
    """Test that the lock holder keeps their R/A rights."""

    async def locked_by_caller(task_id):
        return Success(TaskLock(locked=True, locked_by=Identifier.parse(responsible_id)))

    task_service._lock_state = locked_by_caller

    assert await task_service.can_modify_task(created_task["id"], responsible_id, "DEV") == Success(True)
    outcome = await task_service.update_task(created_task["id"], {"priority": 1}, responsible_id, "DEV")
    assert outcome.is_success


@pytest.mark.asyncio
async def test_stored_updated_at_matches_payload(task_service, created_task, owner_id):
    """Test that the stored updated_at is the one returned by the update."""
    updated = (await task_service.update_task(created_task["id"], {"priority": 4}, owner_id, None)).value

    details = (await task_service.get_task_with_details(created_task["id"])).value
    assert details["updated_at"] == updated["updated_at"]
    assert updated["updated_at"] >= created_task["updated_at"]


@pytest.mark.asyncio
async def test_replacing_raci_letter_stamps_row(transactions, created_task, responsible_id, session_factory):
    """Test that rewriting a RACI letter stamps the row's updated_at."""
    async with session_factory() as session:
        before = (
            await session.execute(select(TaskRaciModel).where(TaskRaciModel.user_id == responsible_id))
        ).scalar_one()
        stamped = before.updated_at

    async with transactions.begin() as tx:
        outcome = await CRUDRaci().save_task_raci(tx, created_task["id"], responsible_id, "A")
    assert outcome.value.letter is RaciLetter.A

    async with session_factory() as session:
        after = (
            await session.execute(select(TaskRaciModel).where(TaskRaciModel.user_id == responsible_id))
        ).scalar_one()
    assert after.letter is RaciLetter.A
    assert after.updated_at >= stamped


@pytest.mark.asyncio
async def test_list_tasks_filters(task_service, created_task, creator_id):
    """Test listing tasks with filters."""
    await task_service.create_task({"phase_code": "P", "title": "Other", "priority": 5}, creator_id)

    everything = (await task_service.list_tasks()).value
    assert [t["title"] for t in everything] == [created_task["title"], "Other"]

    by_phase = (await task_service.list_tasks(TaskFilter(phase_code="P"))).value
    assert [t["title"] for t in by_phase] == ["Other"]

    by_profile = (await task_service.list_tasks(TaskFilter(profile_code="TEC"))).value
    assert [t["id"] for t in by_profile] == [created_task["id"]]

    by_search = (await task_service.list_tasks(TaskFilter(search="badge"))).value
    assert [t["id"] for t in by_search] == [created_task["id"]]

    invalid = await task_service.list_tasks(TaskFilter(phase_code="Z"))
    assert isinstance(invalid.error, ValidationError)


@pytest.mark.asyncio
async def test_list_profiles(task_service):
    """Test listing the profile catalog."""
    profiles = (await task_service.list_profiles()).value

    assert sorted(p.code for p in profiles) == sorted(["TEC", "MAN", "DPS", "DOP", "DF", "DG", "RH", "AF", "SA"])


@pytest.mark.asyncio
async def test_event_emission_failure_does_not_fail_use_case(session_factory, creator_id):
    """Test that a failing publisher does not fail the use case."""
    class BrokenBroker:
        def __getattr__(self, name):
            def fail(*args):
                raise RuntimeError("transport down")

            return fail

    service = service_with_raci(session_factory, BrokenBroker(), CRUDRaci())
    outcome = await service.create_task({"phase_code": "M", "title": "T", "priority": 1}, creator_id)

    assert outcome.is_success
    assert await count_rows(session_factory, TaskModel) == 1
