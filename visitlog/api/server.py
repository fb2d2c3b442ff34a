"""
FastAPI server for the visit log

Provides REST endpoints for the front desk (entry/exit), the active and
historical visit views, CSV exports and e-mailed reports
"""

import logging
from datetime import date, datetime
from typing import List, Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from visitlog import __version__
from visitlog.api.middleware.audit_logger import audit_log_middleware
from visitlog.api.middleware.rate_limiter import RateLimiter, rate_limit_middleware
from visitlog.config.settings import Settings, get_settings
from visitlog.models.visit import VisitCreate, VisitExitRequest, VisitRecord, VisitStatus
from visitlog.services.visit_context import VisitContext, build_context
from visitlog.services.visit_lifecycle_manager import (
    VisitErrorCode,
    VisitLifecycleManager,
    VisitOperationResult,
)
from visitlog.services.visit_query import VisitQueryService
from visitlog.utils.csv_exporter import (
    ACTIVE_EXPORT_FILENAME,
    RANGE_EXPORT_FILENAME,
    EmptyExportSet,
    VisitCSVExporter,
    derive_status,
)
from visitlog.workers.db_worker.visit_store import StorageUnavailableError
from visitlog.workers.mail_worker.report_mailer import (
    ReportDispatchGateway,
    SMTPReportDispatcher,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    VisitErrorCode.DUPLICATE_ACTIVE_VISIT: 409,
    VisitErrorCode.NO_ACTIVE_VISIT: 404,
    VisitErrorCode.NOT_FOUND: 404,
    VisitErrorCode.STORAGE_UNAVAILABLE: 503,
    VisitErrorCode.PRIVACY_POLICY_NOT_ACCEPTED: 422,
    VisitErrorCode.INVALID_VISIT: 422,
}


# Request/Response Models
class VisitResponse(VisitRecord):
    """Visit record with its derived status"""
    status: VisitStatus


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    timestamp: datetime
    version: str
    store_backend: str


class ReportRequest(BaseModel):
    """Request to e-mail a visit report"""
    scope: Literal["active", "range"] = "active"
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    recipients: Optional[List[str]] = None
    subject: Optional[str] = None
    sender_label: Optional[str] = None


class ReportResponse(BaseModel):
    """Report dispatch outcome"""
    message: str
    recipients: List[str]
    rows: int


def to_response(record: VisitRecord) -> VisitResponse:
    return VisitResponse(**record.model_dump(), status=derive_status(record))


def raise_for_result(result: VisitOperationResult) -> None:
    """Map a failed lifecycle result onto an HTTP error"""
    if result.success:
        return
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(result.error, 400),
        detail={"error": result.error.value, "message": result.message},
    )


def csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Dependencies
def get_context(request: Request) -> VisitContext:
    return request.app.state.context


def get_manager(request: Request) -> VisitLifecycleManager:
    return request.app.state.manager


def get_query(request: Request) -> VisitQueryService:
    return request.app.state.query


def get_exporter(request: Request) -> VisitCSVExporter:
    return request.app.state.exporter


def get_dispatcher(request: Request) -> ReportDispatchGateway:
    return request.app.state.dispatcher


async def load_visits(manager: VisitLifecycleManager = Depends(get_manager)) -> None:
    """Close stale visits before any visit list is read"""
    await manager.auto_exit_sweep()


def create_app(
    context: Optional[VisitContext] = None,
    dispatcher: Optional[ReportDispatchGateway] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application

    Args:
        context: Visit context. Defaults to the configured backend
        dispatcher: Report gateway. Defaults to SMTP delivery
        settings: Settings. Defaults to get_settings()

    Returns:
        Configured FastAPI app
    """
    settings = settings or get_settings()
    context = context or build_context(settings)

    app = FastAPI(
        title="Visit Log API",
        description="Front-desk visitor entry/exit registration and visit records",
        version=__version__,
    )

    app.state.settings = settings
    app.state.context = context
    app.state.manager = VisitLifecycleManager(context)
    app.state.query = VisitQueryService(context)
    app.state.exporter = VisitCSVExporter(context.clock.tz, settings.csv_datetime_format)
    app.state.dispatcher = dispatcher or SMTPReportDispatcher(settings)
    app.state.rate_limiter = RateLimiter(settings.rate_limit_per_minute)

    @app.on_event("startup")
    async def startup_event():
        """Prepare the backing store"""
        ensure_indexes = getattr(context.store, "ensure_indexes", None)
        if ensure_indexes is not None:
            await ensure_indexes()
            logger.info("Visit store indexes ensured")
        logger.info(f"Visit log API started ({context.backend} store)")

    @app.on_event("shutdown")
    async def shutdown_event():
        if context.backend == "mongodb":
            from visitlog.workers.db_worker.mongo_client import MongoDBClient

            await MongoDBClient.close()

    @app.exception_handler(StorageUnavailableError)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError):
        logger.error(f"Storage unavailable on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=503,
            content={
                "detail": {
                    "error": VisitErrorCode.STORAGE_UNAVAILABLE.value,
                    "message": "The visit log is temporarily unavailable, please try again.",
                }
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Rate limiting middleware (per client host)
    app.middleware("http")(rate_limit_middleware)

    # Audit logging middleware (logs all mutating requests)
    app.middleware("http")(audit_log_middleware)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """Service status and store backend"""
        status = "healthy"
        if context.backend == "mongodb":
            from visitlog.workers.db_worker.mongo_client import MongoDBClient

            if not await MongoDBClient.health_check():
                status = "degraded"

        return HealthResponse(
            status=status,
            timestamp=datetime.utcnow(),
            version=__version__,
            store_backend=context.backend,
        )

    @app.post("/visits", response_model=VisitOperationResult, status_code=201, tags=["Visits"])
    async def add_visit(
        visit: VisitCreate,
        ctx: VisitContext = Depends(get_context),
        manager: VisitLifecycleManager = Depends(get_manager),
    ):
        """
        Register a visitor entry

        A blank department is filled from the employee roster when the
        person being visited is known.
        """
        if not visit.department.strip() and visit.person_to_visit.strip():
            department = await ctx.roster.department_for(visit.person_to_visit)
            if department:
                visit = visit.model_copy(update={"department": department})

        result = await manager.add_visit(visit)
        raise_for_result(result)
        return result

    @app.post("/visits/exit", response_model=VisitOperationResult, tags=["Visits"])
    async def register_exit(
        exit_request: VisitExitRequest,
        manager: VisitLifecycleManager = Depends(get_manager),
    ):
        """Register a visitor exit by identity number"""
        result = await manager.register_exit(exit_request.visitor_id)
        raise_for_result(result)
        return result

    @app.get(
        "/visits/active",
        response_model=List[VisitResponse],
        response_model_by_alias=False,
        dependencies=[Depends(load_visits)],
        tags=["Visits"],
    )
    async def active_visits(query: VisitQueryService = Depends(get_query)):
        """Visitors currently on the premises, newest first"""
        return [to_response(r) for r in await query.active_visits()]

    @app.get(
        "/visits",
        response_model=List[VisitResponse],
        response_model_by_alias=False,
        dependencies=[Depends(load_visits)],
        tags=["Visits"],
    )
    async def list_visits(
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        query: VisitQueryService = Depends(get_query),
    ):
        """Historical visits for whole days [from_date, to_date], newest first"""
        return [to_response(r) for r in await query.filter_by_range(from_date, to_date)]

    @app.get(
        "/visits/last/{visitor_id}",
        response_model=VisitResponse,
        response_model_by_alias=False,
        tags=["Visits"],
    )
    async def last_visit(visitor_id: str, query: VisitQueryService = Depends(get_query)):
        """Most recent visit of a returning visitor, for form autofill"""
        record = await query.last_visit(visitor_id)
        if record is None:
            raise HTTPException(status_code=404, detail="No previous visit for this ID")
        return to_response(record)

    @app.get("/visits/export", dependencies=[Depends(load_visits)], tags=["Export"])
    async def export_visits(
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        query: VisitQueryService = Depends(get_query),
        exporter: VisitCSVExporter = Depends(get_exporter),
    ):
        """Download historical visits as CSV"""
        records = await query.filter_by_range(from_date, to_date)
        export = exporter.build_export(records, RANGE_EXPORT_FILENAME)
        if isinstance(export, EmptyExportSet):
            raise HTTPException(status_code=404, detail=export.message)
        return csv_response(export.content, export.filename)

    @app.get("/visits/active/export", dependencies=[Depends(load_visits)], tags=["Export"])
    async def export_active_visits(
        query: VisitQueryService = Depends(get_query),
        exporter: VisitCSVExporter = Depends(get_exporter),
    ):
        """Download active visits as CSV"""
        export = exporter.build_export(await query.active_visits(), ACTIVE_EXPORT_FILENAME)
        if isinstance(export, EmptyExportSet):
            raise HTTPException(status_code=404, detail=export.message)
        return csv_response(export.content, export.filename)

    @app.post(
        "/reports/send",
        response_model=ReportResponse,
        dependencies=[Depends(load_visits)],
        tags=["Export"],
    )
    async def send_report(
        report: ReportRequest,
        ctx: VisitContext = Depends(get_context),
        query: VisitQueryService = Depends(get_query),
        exporter: VisitCSVExporter = Depends(get_exporter),
        gateway: ReportDispatchGateway = Depends(get_dispatcher),
    ):
        """
        E-mail a CSV report

        Recipients default to the employees flagged to receive reports.
        """
        recipients = report.recipients
        if recipients is None:
            recipients = await ctx.roster.report_recipients()
        if not recipients:
            raise HTTPException(status_code=400, detail="No report recipients configured")

        if report.scope == "active":
            records = await query.active_visits()
            filename = ACTIVE_EXPORT_FILENAME
        else:
            records = await query.filter_by_range(report.from_date, report.to_date)
            filename = RANGE_EXPORT_FILENAME

        export = exporter.build_export(records, filename, recipients)
        if isinstance(export, EmptyExportSet):
            raise HTTPException(status_code=404, detail=export.message)

        result = await gateway.dispatch(
            export.content,
            export.recipients,
            report.subject or settings.report_subject,
            report.sender_label or settings.report_sender_label,
        )
        if not result.success:
            raise HTTPException(status_code=502, detail=result.error or result.message)

        return ReportResponse(message=result.message, recipients=export.recipients, rows=export.row_count)

    return app
