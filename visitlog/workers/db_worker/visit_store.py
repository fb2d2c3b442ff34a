"""
Visit Store - storage contract for visit records

Defines the async interface consumed by the lifecycle manager, the store
error hierarchy, change notifications, and an in-memory backend.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List
from uuid import uuid4

from pydantic import BaseModel

from visitlog.models.visit import VisitRecord

logger = logging.getLogger(__name__)


class VisitStoreError(Exception):
    """Base class for visit store failures"""


class StorageUnavailableError(VisitStoreError):
    """Backing medium rejected or could not complete the operation"""


class VisitNotFoundError(VisitStoreError):
    """Record ID is unknown to the store"""

    def __init__(self, record_id: str):
        super().__init__(f"Visit record not found: {record_id}")
        self.record_id = record_id


class VisitAlreadyClosedError(VisitStoreError):
    """Record already has an exit time"""

    def __init__(self, record_id: str):
        super().__init__(f"Visit record already closed: {record_id}")
        self.record_id = record_id


class DuplicateOpenVisitError(VisitStoreError):
    """Store-level uniqueness constraint on open visits was violated"""

    def __init__(self, visitor_id: str):
        super().__init__(f"Visitor already has an open visit: {visitor_id}")
        self.visitor_id = visitor_id


class VisitChangeType(str, Enum):
    """Change notification types"""
    CREATED = "created"
    EXITED = "exited"


class VisitChange(BaseModel):
    """Change notification delivered to store subscribers"""
    type: VisitChangeType
    record: VisitRecord


VisitListener = Callable[[VisitChange], None]


class VisitStore(ABC):
    """
    Async storage contract for visit records

    Read methods return unordered lists; callers sort. Implementations never
    retry internally.
    """

    def __init__(self):
        self._listeners: List[VisitListener] = []

    def subscribe(self, listener: VisitListener) -> Callable[[], None]:
        """
        Register a change listener

        Args:
            listener: Called with a VisitChange after every successful write

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change_type: VisitChangeType, record: VisitRecord) -> None:
        change = VisitChange(type=change_type, record=record)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.error(f"Visit change listener failed: {e}", exc_info=True)

    @abstractmethod
    async def append(self, record: VisitRecord) -> str:
        """Persist a new record and return its assigned ID"""

    @abstractmethod
    async def update_exit(self, record_id: str, exit_time: datetime, auto_exit: bool) -> None:
        """Set the exit time of an open record"""

    @abstractmethod
    async def query_open_by_visitor_id(self, visitor_id: str) -> List[VisitRecord]:
        """Open records for a canonical visitor ID"""

    @abstractmethod
    async def query_open(self) -> List[VisitRecord]:
        """All open records"""

    @abstractmethod
    async def query_by_visitor_id(self, visitor_id: str) -> List[VisitRecord]:
        """All records (open or closed) for a canonical visitor ID"""

    @abstractmethod
    async def query_all(self) -> List[VisitRecord]:
        """Every record"""

    @abstractmethod
    async def query_by_date_range(self, start: datetime, end: datetime) -> List[VisitRecord]:
        """Records whose entry time falls within [start, end]"""


class InMemoryVisitStore(VisitStore):
    """
    Process-local visit store

    Records are kept in insertion order. The one-open-visit-per-visitor
    constraint is enforced on append, so check-then-append cannot race
    within a single event loop.
    """

    def __init__(self):
        super().__init__()
        self._records: Dict[str, VisitRecord] = {}

    async def append(self, record: VisitRecord) -> str:
        if record.exit_time is None and any(
            r.visitor_id == record.visitor_id and r.exit_time is None
            for r in self._records.values()
        ):
            raise DuplicateOpenVisitError(record.visitor_id)

        record_id = uuid4().hex
        stored = record.model_copy(update={"id": record_id}, deep=True)
        self._records[record_id] = stored
        logger.debug(f"Stored visit {record_id} for {record.visitor_id}")

        self._notify(VisitChangeType.CREATED, stored.model_copy(deep=True))
        return record_id

    async def update_exit(self, record_id: str, exit_time: datetime, auto_exit: bool) -> None:
        current = self._records.get(record_id)
        if current is None:
            raise VisitNotFoundError(record_id)
        if current.exit_time is not None:
            raise VisitAlreadyClosedError(record_id)

        updated = current.model_copy(update={"exit_time": exit_time, "auto_exit": auto_exit})
        self._records[record_id] = updated

        self._notify(VisitChangeType.EXITED, updated.model_copy(deep=True))

    async def query_open_by_visitor_id(self, visitor_id: str) -> List[VisitRecord]:
        return self._select(lambda r: r.visitor_id == visitor_id and r.exit_time is None)

    async def query_open(self) -> List[VisitRecord]:
        return self._select(lambda r: r.exit_time is None)

    async def query_by_visitor_id(self, visitor_id: str) -> List[VisitRecord]:
        return self._select(lambda r: r.visitor_id == visitor_id)

    async def query_all(self) -> List[VisitRecord]:
        return self._select(lambda r: True)

    async def query_by_date_range(self, start: datetime, end: datetime) -> List[VisitRecord]:
        return self._select(lambda r: start <= r.entry_time <= end)

    def _select(self, predicate: Callable[[VisitRecord], bool]) -> List[VisitRecord]:
        # Copies, so callers cannot mutate stored state
        return [r.model_copy(deep=True) for r in self._records.values() if predicate(r)]
