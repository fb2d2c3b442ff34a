"""
Visit Lifecycle Manager - entry/exit state machine for visitors

Per canonical visitor ID a visit is either open (no exit time) or there is
no open visit; entry and exit are the only transitions:
- add_visit: register an entry, refusing a second concurrent open visit
- register_exit: close the most recent open visit
- auto_exit_sweep: close visits left open since a previous day

Operations return a VisitOperationResult instead of raising, so callers can
show the message directly. Only unexpected faults propagate.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from visitlog.models.visit import TransporterVisit, VisitCreate, VisitKind, VisitRecord
from visitlog.services.visit_context import VisitContext
from visitlog.utils.timeutils import end_of_day, start_of_day
from visitlog.workers.db_worker.visit_store import (
    DuplicateOpenVisitError,
    StorageUnavailableError,
    VisitAlreadyClosedError,
    VisitNotFoundError,
)

logger = logging.getLogger(__name__)


class VisitErrorCode(str, Enum):
    """Failure reasons for lifecycle operations"""
    DUPLICATE_ACTIVE_VISIT = "duplicate_active_visit"
    NO_ACTIVE_VISIT = "no_active_visit"
    NOT_FOUND = "not_found"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    PRIVACY_POLICY_NOT_ACCEPTED = "privacy_policy_not_accepted"
    INVALID_VISIT = "invalid_visit"


ERROR_MESSAGES = {
    VisitErrorCode.DUPLICATE_ACTIVE_VISIT: (
        "This visitor already has an active visit. Register the exit before a new entry."
    ),
    VisitErrorCode.NO_ACTIVE_VISIT: "No active visit was found for this ID.",
    VisitErrorCode.NOT_FOUND: "The visit record no longer exists. Reload the visit list.",
    VisitErrorCode.STORAGE_UNAVAILABLE: (
        "The visit log is temporarily unavailable. Nothing was recorded, please try again."
    ),
    VisitErrorCode.PRIVACY_POLICY_NOT_ACCEPTED: (
        "The privacy policy must be accepted before registering an entry."
    ),
    VisitErrorCode.INVALID_VISIT: "An identity document number is required.",
}


class VisitOperationResult(BaseModel):
    """Outcome of a lifecycle operation"""
    success: bool
    message: str
    error: Optional[VisitErrorCode] = None
    record_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def failure(cls, error: VisitErrorCode) -> "VisitOperationResult":
        return cls(success=False, error=error, message=ERROR_MESSAGES[error])


def canonical_id(value: str) -> str:
    """Trimmed, upper-case identity number used for all matching"""
    return value.strip().upper()


def canonical_plate(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    plate = value.strip().upper()
    return plate or None


def _canonical_kind(kind: VisitKind) -> VisitKind:
    if isinstance(kind, TransporterVisit):
        return TransporterVisit(
            haulier_company=kind.haulier_company.strip(),
            license_plate=canonical_plate(kind.license_plate) or "",
            trailer_license_plate=canonical_plate(kind.trailer_license_plate),
        )
    return kind


class VisitLifecycleManager:
    """
    Registers visitor entries and exits against the visit store

    The store is the source of truth: every duplicate check and exit
    selection uses a fresh store read.
    """

    def __init__(self, context: VisitContext):
        """
        Initialize manager

        Args:
            context: Store, clock and roster for this process
        """
        self.store = context.store
        self.clock = context.clock

    async def add_visit(self, visit: VisitCreate) -> VisitOperationResult:
        """
        Register a visitor entry

        Args:
            visit: Entry data from the front-desk form

        Returns:
            Success with the new record ID, or a failure result
        """
        visitor_id = canonical_id(visit.visitor_id)
        if not visitor_id:
            return VisitOperationResult.failure(VisitErrorCode.INVALID_VISIT)

        if not visit.privacy_policy_accepted:
            logger.info(f"Entry refused for {visitor_id}: privacy policy not accepted")
            return VisitOperationResult.failure(VisitErrorCode.PRIVACY_POLICY_NOT_ACCEPTED)

        try:
            open_visits = await self.store.query_open_by_visitor_id(visitor_id)
            if open_visits:
                logger.info(f"Duplicate entry refused for {visitor_id}")
                return VisitOperationResult.failure(VisitErrorCode.DUPLICATE_ACTIVE_VISIT)

            record = VisitRecord(
                visitor_id=visitor_id,
                name=visit.name.strip(),
                company=visit.company.strip(),
                person_to_visit=visit.person_to_visit.strip(),
                department=visit.department.strip(),
                reason=visit.reason,
                visit_kind=_canonical_kind(visit.visit_kind),
                privacy_policy_accepted=True,
                entry_time=self.clock.now(),
                exit_time=None,
                auto_exit=False,
            )
            record_id = await self.store.append(record)

        except DuplicateOpenVisitError:
            # Another entry for the same visitor won the race
            logger.warning(f"Concurrent entry for {visitor_id} rejected by the store")
            return VisitOperationResult.failure(VisitErrorCode.DUPLICATE_ACTIVE_VISIT)
        except StorageUnavailableError as e:
            logger.error(f"Failed to register entry for {visitor_id}: {e}")
            return VisitOperationResult.failure(VisitErrorCode.STORAGE_UNAVAILABLE)

        logger.info(f"Entry registered: {record.name} ({visitor_id}) -> {record_id}")
        return VisitOperationResult(
            success=True,
            message=f"Entry registered for {record.name}.",
            record_id=record_id,
            name=record.name,
        )

    async def register_exit(self, visitor_id: str) -> VisitOperationResult:
        """
        Register a visitor exit

        Closes the open visit with the latest entry time. Equal entry times
        are broken by the greatest record ID; any other open visits for the
        same visitor are left untouched.

        Args:
            visitor_id: Identity number, any case

        Returns:
            Success with the closed record's name, or a failure result
        """
        visitor_id = canonical_id(visitor_id)
        if not visitor_id:
            return VisitOperationResult.failure(VisitErrorCode.INVALID_VISIT)

        try:
            open_visits = await self.store.query_open_by_visitor_id(visitor_id)
            if not open_visits:
                logger.info(f"Exit refused for {visitor_id}: no active visit")
                return VisitOperationResult.failure(VisitErrorCode.NO_ACTIVE_VISIT)

            if len(open_visits) > 1:
                logger.warning(f"{len(open_visits)} open visits for {visitor_id}, closing the latest")

            selected = max(open_visits, key=lambda r: (r.entry_time, r.id or ""))
            exit_time = max(self.clock.now(), selected.entry_time)
            await self.store.update_exit(selected.id, exit_time, auto_exit=False)

        except VisitNotFoundError as e:
            logger.error(f"Exit for {visitor_id} referenced a missing record: {e}")
            return VisitOperationResult.failure(VisitErrorCode.NOT_FOUND)
        except VisitAlreadyClosedError:
            logger.info(f"Visit for {visitor_id} was closed concurrently")
            return VisitOperationResult.failure(VisitErrorCode.NO_ACTIVE_VISIT)
        except StorageUnavailableError as e:
            logger.error(f"Failed to register exit for {visitor_id}: {e}")
            return VisitOperationResult.failure(VisitErrorCode.STORAGE_UNAVAILABLE)

        logger.info(f"Exit registered: {selected.name} ({visitor_id}) -> {selected.id}")
        return VisitOperationResult(
            success=True,
            message=f"Exit registered for {selected.name}.",
            record_id=selected.id,
            name=selected.name,
        )

    async def auto_exit_sweep(self) -> int:
        """
        Close visits forgotten open since a previous day

        Every open visit that started before the start of the current day is
        closed at the end of its entry day with auto_exit set. Running it
        again closes nothing further.

        Returns:
            Number of visits closed

        Raises:
            StorageUnavailableError: If the store cannot be read or written
        """
        now = self.clock.now()
        today_start = start_of_day(now, self.clock.tz)

        closed = 0
        for record in await self.store.query_open():
            if record.entry_time >= today_start:
                continue
            exit_time = self.auto_exit_time(record.entry_time)
            try:
                await self.store.update_exit(record.id, exit_time, auto_exit=True)
            except (VisitAlreadyClosedError, VisitNotFoundError) as e:
                logger.debug(f"Skipping auto-exit of {record.id}: {e}")
                continue
            closed += 1
            logger.info(f"Auto-exit: {record.name} ({record.visitor_id}) closed at {exit_time.isoformat()}")

        if closed:
            logger.info(f"Auto-exit sweep closed {closed} stale visit(s)")
        return closed

    def auto_exit_time(self, entry_time: datetime) -> datetime:
        """Exit time assigned by the sweep: end of the entry day"""
        return end_of_day(entry_time, self.clock.tz)
