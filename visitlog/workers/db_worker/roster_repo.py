"""
Roster Repository - read-only employee directory

Supplies department autofill for the person being visited and the list of
report recipients. Roster administration lives outside this service.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, OperationFailure

from visitlog.models.employee import Employee
from visitlog.workers.db_worker.mongo_client import MongoDBClient
from visitlog.workers.db_worker.visit_store import StorageUnavailableError

logger = logging.getLogger(__name__)


def _recipients(employees: Iterable[Employee]) -> List[str]:
    return [e.email for e in employees if e.receives_reports and e.email]


class RosterDirectory(ABC):
    """Employee directory lookups"""

    @abstractmethod
    async def list_employees(self) -> List[Employee]:
        """All employees, sorted by name"""

    async def department_for(self, person_name: str) -> Optional[str]:
        """
        Department of the named employee

        Args:
            person_name: Employee name (case-insensitive)

        Returns:
            Department name, or None if the person is not in the roster
        """
        wanted = person_name.strip().lower()
        if not wanted:
            return None
        for employee in await self.list_employees():
            if employee.name.lower() == wanted:
                return employee.department
        return None

    async def report_recipients(self) -> List[str]:
        """E-mail addresses of employees flagged to receive visit reports"""
        return _recipients(await self.list_employees())


class InMemoryRosterDirectory(RosterDirectory):
    """Roster held in process memory"""

    def __init__(self, employees: Optional[Iterable[Employee]] = None):
        self._employees = list(employees or [])

    async def list_employees(self) -> List[Employee]:
        return sorted(self._employees, key=lambda e: e.name.lower())


class MongoRosterRepository(RosterDirectory):
    """Roster backed by the employees collection"""

    COLLECTION_NAME = "employees"

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None):
        self.db = db if db is not None else MongoDBClient.get_database()
        self.collection = self.db[self.COLLECTION_NAME]

    async def list_employees(self) -> List[Employee]:
        employees = []
        try:
            async for doc in self.collection.find({}).sort("name", 1):
                doc["_id"] = str(doc["_id"])
                employees.append(Employee.model_validate(doc))
        except (ConnectionFailure, OperationFailure) as e:
            logger.error(f"Failed to load employee roster: {e}")
            raise StorageUnavailableError(f"roster lookup failed: {e}") from e
        return employees
