"""
Shared test fixtures: fixed clock, in-memory store and services
"""

from datetime import datetime, timedelta
from typing import Optional

import pytest

from visitlog.models.visit import GeneralVisit, TransporterVisit, VisitCreate, VisitRecord
from visitlog.services.visit_context import VisitContext
from visitlog.services.visit_lifecycle_manager import VisitLifecycleManager
from visitlog.services.visit_query import VisitQueryService
from visitlog.utils.timeutils import tzinfo_from_name
from visitlog.workers.db_worker.roster_repo import InMemoryRosterDirectory
from visitlog.workers.db_worker.visit_store import InMemoryVisitStore

TZ_NAME = "Europe/Madrid"
TZ = tzinfo_from_name(TZ_NAME)


class FixedClock:
    """Clock that only moves when told to"""

    def __init__(self, current: datetime):
        self.current = current

    @property
    def tz(self):
        return TZ

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


def local(year, month, day, hour=0, minute=0, second=0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=TZ)


def make_visit(visitor_id: str = "12345678A", name: str = "Jane Doe", **overrides) -> VisitCreate:
    data = dict(
        visitor_id=visitor_id,
        name=name,
        company="Acme",
        person_to_visit="Marta Puig",
        department="Quality",
        reason="Audit",
        privacy_policy_accepted=True,
    )
    data.update(overrides)
    return VisitCreate(**data)


def make_transporter(visitor_id: str = "X1234567L", **overrides) -> VisitCreate:
    kind = TransporterVisit(
        haulier_company="Trans Ebre",
        license_plate=" 1234abc ",
        trailer_license_plate="r9876bcd",
    )
    return make_visit(visitor_id=visitor_id, name="Joan Camioner", visit_kind=kind, **overrides)


def seed_record(
    store: InMemoryVisitStore,
    record_id: str,
    visitor_id: str,
    entry_time: datetime,
    exit_time: Optional[datetime] = None,
    auto_exit: bool = False,
    name: str = "Seeded Visitor",
    visit_kind=None,
) -> VisitRecord:
    """Place a record in the store directly, bypassing the append constraint"""
    record = VisitRecord(
        _id=record_id,
        visitor_id=visitor_id,
        name=name,
        company="Acme",
        person_to_visit="Marta Puig",
        department="Quality",
        visit_kind=visit_kind or GeneralVisit(),
        privacy_policy_accepted=True,
        entry_time=entry_time,
        exit_time=exit_time,
        auto_exit=auto_exit,
    )
    store._records[record_id] = record
    return record


@pytest.fixture
def clock():
    return FixedClock(local(2024, 3, 15, 9, 30))


@pytest.fixture
def store():
    return InMemoryVisitStore()


@pytest.fixture
def context(store, clock):
    return VisitContext(store=store, clock=clock, roster=InMemoryRosterDirectory())


@pytest.fixture
def manager(context):
    return VisitLifecycleManager(context)


@pytest.fixture
def query(context):
    return VisitQueryService(context)
