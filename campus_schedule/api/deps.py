"""Collaborators shared by the route handlers of one application."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from campus_schedule.core.config import Settings
from campus_schedule.domain.bus import EventBus
from campus_schedule.domain.handlers import HandlerRegistry
from campus_schedule.repos.memory import ConflictReportRepository, ScheduleStore


@dataclass
class Services:
    settings: Settings
    store: ScheduleStore
    bus: EventBus
    reports: ConflictReportRepository
    handlers: HandlerRegistry


def build_services(settings: Settings, store: ScheduleStore | None = None) -> Services:
    bus = EventBus()
    store = store if store is not None else ScheduleStore()
    reports = ConflictReportRepository()
    handlers = HandlerRegistry(
        bus=bus,
        store=store,
        report_repo=reports,
        term_weeks=settings.term_weeks,
    )
    return Services(
        settings=settings, store=store, bus=bus, reports=reports, handlers=handlers
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
