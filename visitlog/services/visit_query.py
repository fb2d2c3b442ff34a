"""
Visit Query Service - read-only views over the visit store

Feeds the active-visits screen, the historical records screen and the
returning-visitor autofill.
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from visitlog.models.visit import VisitRecord
from visitlog.services.visit_context import VisitContext
from visitlog.services.visit_lifecycle_manager import canonical_id
from visitlog.utils.timeutils import end_of_day, is_same_day, start_of_day

logger = logging.getLogger(__name__)


def sort_newest_first(records: Iterable[VisitRecord]) -> List[VisitRecord]:
    """Sort by entry time descending (record ID descending on ties)"""
    return sorted(records, key=lambda r: (r.entry_time, r.id or ""), reverse=True)


class VisitQueryService:
    """Filtering and sorting of visit records"""

    def __init__(self, context: VisitContext):
        self.store = context.store
        self.clock = context.clock

    async def active_visits(self) -> List[VisitRecord]:
        """
        Visitors currently on the premises

        Returns:
            Open visits that started today, newest first
        """
        now = self.clock.now()
        open_visits = await self.store.query_open()
        return sort_newest_first(
            r for r in open_visits if is_same_day(r.entry_time, now, self.clock.tz)
        )

    async def filter_by_range(
        self, from_date: Optional[date] = None, to_date: Optional[date] = None
    ) -> List[VisitRecord]:
        """
        Visits whose entry falls within whole days [from_date, to_date]

        Args:
            from_date: First day (inclusive). None returns every record
            to_date: Last day (inclusive). Defaults to from_date

        Returns:
            Matching visits, newest first
        """
        if from_date is None:
            return sort_newest_first(await self.store.query_all())

        start = start_of_day(from_date, self.clock.tz)
        end = end_of_day(to_date or from_date, self.clock.tz)
        if end < start:
            logger.debug(f"Empty range requested: {from_date} .. {to_date}")
            return []

        return sort_newest_first(await self.store.query_by_date_range(start, end))

    async def last_visit(self, visitor_id: str) -> Optional[VisitRecord]:
        """
        Most recent visit for a visitor, used to prefill the entry form

        Args:
            visitor_id: Identity number, any case

        Returns:
            Latest record (open or closed), or None
        """
        visitor_id = canonical_id(visitor_id)
        if not visitor_id:
            return None
        visits = sort_newest_first(await self.store.query_by_visitor_id(visitor_id))
        return visits[0] if visits else None
