"""
DB Worker module for visit storage

Provides the store contract, in-memory and MongoDB backends, and the
read-only employee roster
"""

from .mongo_client import MongoDBClient
from .roster_repo import InMemoryRosterDirectory, MongoRosterRepository, RosterDirectory
from .visit_repo import MongoVisitRepository
from .visit_store import (
    DuplicateOpenVisitError,
    InMemoryVisitStore,
    StorageUnavailableError,
    VisitAlreadyClosedError,
    VisitChange,
    VisitChangeType,
    VisitNotFoundError,
    VisitStore,
    VisitStoreError,
)

__all__ = [
    "MongoDBClient",
    "RosterDirectory",
    "InMemoryRosterDirectory",
    "MongoRosterRepository",
    "MongoVisitRepository",
    "VisitStore",
    "InMemoryVisitStore",
    "VisitChange",
    "VisitChangeType",
    "VisitStoreError",
    "StorageUnavailableError",
    "VisitNotFoundError",
    "VisitAlreadyClosedError",
    "DuplicateOpenVisitError",
]
