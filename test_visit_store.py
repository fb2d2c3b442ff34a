"""
Tests for the in-memory visit store, change notifications and the roster
"""

import pytest

from conftest import local
from visitlog.models.employee import Employee
from visitlog.models.visit import VisitRecord
from visitlog.workers.db_worker.roster_repo import InMemoryRosterDirectory
from visitlog.workers.db_worker.visit_store import (
    DuplicateOpenVisitError,
    InMemoryVisitStore,
    VisitAlreadyClosedError,
    VisitChangeType,
    VisitNotFoundError,
)


def new_record(visitor_id="12345678A", entry_time=None) -> VisitRecord:
    return VisitRecord(
        visitor_id=visitor_id,
        name="Jane Doe",
        entry_time=entry_time or local(2024, 3, 15, 9, 0),
        privacy_policy_accepted=True,
    )


async def test_append_assigns_unique_ids():
    store = InMemoryVisitStore()
    first = await store.append(new_record("1A"))
    second = await store.append(new_record("2B"))

    assert first != second
    assert {r.id for r in await store.query_all()} == {first, second}


async def test_append_rejects_second_open_visit():
    store = InMemoryVisitStore()
    await store.append(new_record())

    with pytest.raises(DuplicateOpenVisitError):
        await store.append(new_record())


async def test_update_exit_unknown_record():
    store = InMemoryVisitStore()

    with pytest.raises(VisitNotFoundError):
        await store.update_exit("missing", local(2024, 3, 15, 10, 0), auto_exit=False)


async def test_exit_time_is_immutable():
    store = InMemoryVisitStore()
    record_id = await store.append(new_record())
    await store.update_exit(record_id, local(2024, 3, 15, 10, 0), auto_exit=False)

    with pytest.raises(VisitAlreadyClosedError):
        await store.update_exit(record_id, local(2024, 3, 15, 11, 0), auto_exit=True)

    closed = (await store.query_by_visitor_id("12345678A"))[0]
    assert closed.exit_time == local(2024, 3, 15, 10, 0)
    assert closed.auto_exit is False


async def test_returned_records_are_copies():
    store = InMemoryVisitStore()
    record_id = await store.append(new_record())

    (await store.query_all())[0].name = "Changed"

    assert store._records[record_id].name == "Jane Doe"


async def test_open_queries_and_date_range():
    store = InMemoryVisitStore()
    open_id = await store.append(new_record("1A", local(2024, 3, 15, 9, 0)))
    closed_id = await store.append(new_record("2B", local(2024, 3, 14, 9, 0)))
    await store.update_exit(closed_id, local(2024, 3, 14, 12, 0), auto_exit=False)

    assert [r.id for r in await store.query_open()] == [open_id]
    assert await store.query_open_by_visitor_id("2B") == []
    in_range = await store.query_by_date_range(local(2024, 3, 14), local(2024, 3, 14, 23, 59))
    assert [r.id for r in in_range] == [closed_id]


async def test_subscribers_receive_create_and_exit_changes():
    store = InMemoryVisitStore()
    changes = []
    unsubscribe = store.subscribe(changes.append)

    record_id = await store.append(new_record())
    await store.update_exit(record_id, local(2024, 3, 15, 10, 0), auto_exit=False)
    unsubscribe()
    await store.append(new_record("2B"))

    assert [c.type for c in changes] == [VisitChangeType.CREATED, VisitChangeType.EXITED]
    assert changes[0].record.id == record_id
    assert changes[1].record.exit_time == local(2024, 3, 15, 10, 0)


async def test_failing_subscriber_does_not_break_writes():
    store = InMemoryVisitStore()

    def broken(change):
        raise RuntimeError("listener bug")

    store.subscribe(broken)
    record_id = await store.append(new_record())

    assert record_id in store._records


@pytest.fixture
def roster():
    return InMemoryRosterDirectory([
        Employee(name="Marta Puig", department="Quality", email="marta@example.com", receives_reports=True),
        Employee(name="Albert Soler", department="Logistics", email="", receives_reports=True),
        Employee(name="Carla Vidal", department="Logistics", email="carla@example.com"),
    ])


async def test_department_lookup_is_case_insensitive(roster):
    assert await roster.department_for("  marta puig ") == "Quality"
    assert await roster.department_for("Nobody") is None
    assert await roster.department_for("") is None


async def test_report_recipients_need_flag_and_email(roster):
    assert await roster.report_recipients() == ["marta@example.com"]
