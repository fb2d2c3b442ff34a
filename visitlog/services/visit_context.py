"""
Visit Context - explicit wiring of store, roster and clock

Built once per process from settings and handed to the services; nothing
in the visit services reads module-level state.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from visitlog.config.settings import Settings, get_settings
from visitlog.utils.timeutils import Clock, SystemClock
from visitlog.workers.db_worker.roster_repo import (
    InMemoryRosterDirectory,
    MongoRosterRepository,
    RosterDirectory,
)
from visitlog.workers.db_worker.visit_store import InMemoryVisitStore, VisitStore

logger = logging.getLogger(__name__)


@dataclass
class VisitContext:
    """Dependencies shared by the visit services"""

    store: VisitStore
    clock: Clock
    roster: RosterDirectory = field(default_factory=InMemoryRosterDirectory)
    backend: str = "memory"


def build_context(settings: Optional[Settings] = None) -> VisitContext:
    """
    Create the visit context for the configured backend

    Args:
        settings: Optional settings. Defaults to get_settings()

    Returns:
        VisitContext wired to the memory or MongoDB backend
    """
    settings = settings or get_settings()
    clock = SystemClock(settings.timezone)

    if settings.visit_store_backend == "mongodb":
        from visitlog.workers.db_worker.visit_repo import MongoVisitRepository

        logger.info("Using MongoDB visit store")
        return VisitContext(
            store=MongoVisitRepository(),
            clock=clock,
            roster=MongoRosterRepository(),
            backend="mongodb",
        )

    logger.warning("Using in-memory visit store; records are lost on restart")
    return VisitContext(store=InMemoryVisitStore(), clock=clock, backend="memory")
