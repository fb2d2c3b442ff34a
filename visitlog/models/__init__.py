"""
Data models
"""

from visitlog.models.employee import Employee
from visitlog.models.visit import (
    GeneralVisit,
    TransporterVisit,
    VisitCreate,
    VisitExitRequest,
    VisitKind,
    VisitRecord,
    VisitStatus,
)

__all__ = [
    "Employee",
    "GeneralVisit",
    "TransporterVisit",
    "VisitCreate",
    "VisitExitRequest",
    "VisitKind",
    "VisitRecord",
    "VisitStatus",
]
