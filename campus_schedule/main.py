"""FastAPI application — entry point for the campus scheduling service."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from campus_schedule.api.deps import Services, build_services, get_services
from campus_schedule.api.resources import ROUTERS
from campus_schedule.core.config import MAX_TERM_WEEKS, Settings, get_settings
from campus_schedule.core.exceptions import (
    AdvisoryUnavailableError,
    AppError,
    ResourceNotFoundError,
)
from campus_schedule.core.logging import configure_logging
from campus_schedule.domain.events import ScheduleChanged
from campus_schedule.domain.models import (
    AnalysisRequest,
    AnalysisResponse,
    ConflictReport,
    ReportResponse,
    Snapshot,
)
from campus_schedule.repos.memory import ScheduleStore, seed_sample_data
from campus_schedule.services.advisor import advise
from campus_schedule.services.calendar import session_dates
from campus_schedule.services.conflicts import detect_in_snapshot

logger = logging.getLogger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


def create_app(
    settings: Settings | None = None, store: ScheduleStore | None = None
) -> FastAPI:
    """Build the application with its own store, bus and handlers."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    services = build_services(settings, store)
    if settings.seed_sample_data:
        seed_sample_data(services.store)
        services.handlers.refresh()

    app = FastAPI(title=settings.project_name)
    app.state.services = services
    app.add_exception_handler(AppError, app_error_handler)
    for router in ROUTERS:
        app.include_router(router)
    app.include_router(_conflict_routes())
    return app


def _conflict_routes() -> APIRouter:
    router = APIRouter(tags=["conflicts"])

    @router.post("/conflicts/detect", response_model=ReportResponse)
    def detect(
        snapshot: Snapshot,
        term_weeks: int | None = Query(default=None, ge=1, le=MAX_TERM_WEEKS),
        services: Services = Depends(get_services),
    ) -> ReportResponse:
        """Detect conflicts in a posted snapshot, without touching the store."""
        if term_weeks is None:
            term_weeks = services.settings.term_weeks
        conflicts = detect_in_snapshot(snapshot, term_weeks=term_weeks)
        return ReportResponse.from_report(ConflictReport.from_conflicts(conflicts))

    @router.get("/conflicts", response_model=ReportResponse)
    def latest_report(services: Services = Depends(get_services)) -> ReportResponse:
        """Return the conflict report for the stored schedule."""
        report = services.reports.latest() or services.handlers.refresh()
        return ReportResponse.from_report(report)

    @router.post("/conflicts/analyze", response_model=AnalysisResponse)
    def analyze(
        analysis: AnalysisRequest | None = None,
        services: Services = Depends(get_services),
    ) -> AnalysisResponse:
        """Stored-schedule report plus an advisory narrative when available."""
        report = services.handlers.refresh()
        response = AnalysisResponse(report=ReportResponse.from_report(report))
        priorities = analysis.constraint_priorities if analysis else None
        try:
            response.advisory = advise(
                report, services.store.snapshot(), services.settings, priorities
            )
        except AdvisoryUnavailableError as exc:
            logger.info("Returning report without advisory: %s", exc.message)
            response.advisory_error = exc.message
        return response

    @router.get("/events/{event_id}/sessions", response_model=list[date])
    def list_sessions(
        event_id: str, services: Services = Depends(get_services)
    ) -> list[date]:
        """Concrete dates on which a stored event takes place."""
        event = services.store.events.get(event_id)
        if event is None:
            raise ResourceNotFoundError("Event", event_id)
        term_start = services.settings.term_start
        if term_start is None:
            raise AppError("term_start is not configured", status_code=409)
        try:
            return session_dates(event, term_start)
        except ValueError as exc:
            raise AppError(str(exc), status_code=422) from exc

    @router.post("/sample-data", status_code=201)
    def load_sample_data(services: Services = Depends(get_services)) -> dict:
        """Replace the stored entities with the sample term."""
        seed_sample_data(services.store)
        services.bus.publish(ScheduleChanged(entity="SampleData", action="loaded"))
        store = services.store
        return {
            "careers": len(store.careers),
            "modules": len(store.modules),
            "groups": len(store.groups),
            "courses": len(store.courses),
            "teachers": len(store.teachers),
            "classrooms": len(store.classrooms),
            "events": len(store.events),
        }

    return router


app = create_app()
