"""
Visit services: lifecycle state machine and read-only queries
"""

from visitlog.services.visit_context import VisitContext, build_context
from visitlog.services.visit_lifecycle_manager import (
    VisitErrorCode,
    VisitLifecycleManager,
    VisitOperationResult,
    canonical_id,
)
from visitlog.services.visit_query import VisitQueryService

__all__ = [
    "VisitContext",
    "build_context",
    "VisitErrorCode",
    "VisitLifecycleManager",
    "VisitOperationResult",
    "VisitQueryService",
    "canonical_id",
]
