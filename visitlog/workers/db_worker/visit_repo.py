"""
Visit Repository - MongoDB backend for the visit store

Handles database operations for the visits collection in MongoDB
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError, OperationFailure

from visitlog.models.visit import VisitRecord
from visitlog.workers.db_worker.mongo_client import MongoDBClient
from visitlog.workers.db_worker.visit_store import (
    DuplicateOpenVisitError,
    StorageUnavailableError,
    VisitAlreadyClosedError,
    VisitChangeType,
    VisitNotFoundError,
    VisitStore,
)

logger = logging.getLogger(__name__)


@contextmanager
def _storage_errors(operation: str):
    """Translate driver connectivity/permission failures into StorageUnavailableError"""
    try:
        yield
    except DuplicateKeyError:
        raise
    except (ConnectionFailure, OperationFailure) as e:
        logger.error(f"MongoDB {operation} failed: {e}")
        raise StorageUnavailableError(f"{operation} failed: {e}") from e


def _to_record(doc: Dict[str, Any]) -> VisitRecord:
    doc["_id"] = str(doc["_id"])
    return VisitRecord.model_validate(doc)


def _object_id(record_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(record_id)
    except (InvalidId, TypeError):
        return None


class MongoVisitRepository(VisitStore):
    """Visit store backed by a MongoDB collection"""

    COLLECTION_NAME = "visits"

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        """
        Initialize visit repository

        Args:
            db: Optional database instance. If not provided, uses MongoDBClient.get_database()
        """
        super().__init__()
        self.db = db if db is not None else MongoDBClient.get_database()
        self.collection = self.db[self.COLLECTION_NAME]

    async def ensure_indexes(self) -> None:
        """
        Create indexes for efficient querying

        Indexes:
        - visitor_id: unique among open visits (exit_time null), closes the
          duplicate check-in race at the database level
        - entry_time: descending index for range queries
        - exit_time: index for open-visit lookups
        """
        with _storage_errors("ensure_indexes"):
            await self.collection.create_index(
                "visitor_id",
                name="one_open_visit_per_visitor",
                unique=True,
                partialFilterExpression={"exit_time": {"$type": "null"}},
            )
            await self.collection.create_index([("entry_time", DESCENDING)])
            await self.collection.create_index("exit_time")

    async def append(self, record: VisitRecord) -> str:
        """
        Insert a new visit record

        Raises:
            DuplicateOpenVisitError: If the visitor already has an open visit
            StorageUnavailableError: If the write is rejected
        """
        doc = record.model_dump(by_alias=True, exclude={"id"})

        try:
            with _storage_errors("append"):
                result = await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise DuplicateOpenVisitError(record.visitor_id) from e

        record_id = str(result.inserted_id)
        logger.info(f"Created visit record: {record_id}")

        self._notify(VisitChangeType.CREATED, record.model_copy(update={"id": record_id}))
        return record_id

    async def update_exit(self, record_id: str, exit_time: datetime, auto_exit: bool) -> None:
        """
        Close an open visit

        Raises:
            VisitNotFoundError: If record_id is unknown
            VisitAlreadyClosedError: If the visit already has an exit time
            StorageUnavailableError: If the write is rejected
        """
        oid = _object_id(record_id)
        if oid is None:
            raise VisitNotFoundError(record_id)

        with _storage_errors("update_exit"):
            updated = await self.collection.find_one_and_update(
                {"_id": oid, "exit_time": None},
                {"$set": {"exit_time": exit_time, "auto_exit": auto_exit}},
                return_document=ReturnDocument.AFTER,
            )
            if updated is None:
                existing = await self.collection.find_one({"_id": oid}, {"_id": 1})
                if existing is None:
                    raise VisitNotFoundError(record_id)
                raise VisitAlreadyClosedError(record_id)

        self._notify(VisitChangeType.EXITED, _to_record(updated))

    async def query_open_by_visitor_id(self, visitor_id: str) -> List[VisitRecord]:
        return await self._find({"visitor_id": visitor_id, "exit_time": None})

    async def query_open(self) -> List[VisitRecord]:
        return await self._find({"exit_time": None})

    async def query_by_visitor_id(self, visitor_id: str) -> List[VisitRecord]:
        return await self._find({"visitor_id": visitor_id})

    async def query_all(self) -> List[VisitRecord]:
        return await self._find({})

    async def query_by_date_range(self, start: datetime, end: datetime) -> List[VisitRecord]:
        return await self._find({"entry_time": {"$gte": start, "$lte": end}})

    async def _find(self, query: Dict[str, Any]) -> List[VisitRecord]:
        records = []
        with _storage_errors("find"):
            async for doc in self.collection.find(query):
                records.append(_to_record(doc))
        return records
