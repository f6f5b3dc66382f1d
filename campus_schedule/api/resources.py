"""CRUD routes for the entities behind the administration screens."""

# No postponed annotations: route request models are closure locals.

import uuid
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from campus_schedule.api.deps import Services, get_services
from campus_schedule.core.exceptions import ResourceNotFoundError
from campus_schedule.domain.events import ScheduleChanged
from campus_schedule.domain.models import (
    Career,
    CareerRequest,
    Classroom,
    ClassroomRequest,
    Course,
    CourseRequest,
    EventRequest,
    Group,
    GroupRequest,
    Module,
    ModuleRequest,
    ScheduleEvent,
    Teacher,
    TeacherRequest,
)
from campus_schedule.repos.memory import Repository
from campus_schedule.services.calendar import weeks_for_dates

# (payload, id, services) -> stored entity
Converter = Callable[[BaseModel, str, Services], BaseModel]


def _copy_fields(model: type[BaseModel]) -> Converter:
    def convert(payload: BaseModel, item_id: str, services: Services) -> BaseModel:
        return model(**payload.model_dump(exclude={"id"}), id=item_id)

    return convert


def _to_event(payload: EventRequest, item_id: str, services: Services) -> ScheduleEvent:
    start_week, end_week = payload.start_week, payload.end_week
    if start_week is None or end_week is None:
        term_start = services.settings.term_start
        if term_start is None:
            raise HTTPException(
                status_code=422,
                detail="start_date/end_date need a configured term_start",
            )
        try:
            start_week, end_week = weeks_for_dates(
                term_start, payload.start_date, payload.end_date
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    return ScheduleEvent(
        id=item_id,
        course_id=payload.course_id,
        teacher_id=payload.teacher_id,
        classroom_id=payload.classroom_id,
        day=payload.day,
        start_time=payload.start_time,
        end_time=payload.end_time,
        start_week=start_week,
        end_week=end_week,
    )


def crud_router(
    *,
    prefix: str,
    label: str,
    request_model: type[BaseModel],
    response_model: type[BaseModel],
    repo_of: Callable[[Services], Repository],
    convert: Converter,
) -> APIRouter:
    """Build list/create/get/replace/delete routes for one entity type.

    Every write publishes ``ScheduleChanged`` so the stored conflict report
    is refreshed.
    """
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])

    def _get_or_404(repo: Repository, item_id: str) -> BaseModel:
        item = repo.get(item_id)
        if item is None:
            raise ResourceNotFoundError(label, item_id)
        return item

    @router.get("", response_model=list[response_model])
    def list_items(services: Services = Depends(get_services)):
        return repo_of(services).list_all()

    @router.post("", response_model=response_model, status_code=201)
    def create_item(
        payload: request_model,  # type: ignore[valid-type]
        services: Services = Depends(get_services),
    ):
        repo = repo_of(services)
        item_id = payload.id or str(uuid.uuid4())
        if item_id in repo:
            raise HTTPException(
                status_code=409, detail=f"{label} with id {item_id} already exists"
            )
        item = convert(payload, item_id, services)
        repo.add(item)
        services.bus.publish(ScheduleChanged(entity=label, entity_id=item_id, action="created"))
        return item

    @router.get("/{item_id}", response_model=response_model)
    def get_item(item_id: str, services: Services = Depends(get_services)):
        return _get_or_404(repo_of(services), item_id)

    @router.put("/{item_id}", response_model=response_model)
    def replace_item(
        item_id: str,
        payload: request_model,  # type: ignore[valid-type]
        services: Services = Depends(get_services),
    ):
        repo = repo_of(services)
        _get_or_404(repo, item_id)
        item = convert(payload, item_id, services)
        repo.add(item)
        services.bus.publish(ScheduleChanged(entity=label, entity_id=item_id, action="updated"))
        return item

    @router.delete("/{item_id}", status_code=204)
    def delete_item(item_id: str, services: Services = Depends(get_services)) -> Response:
        repo = repo_of(services)
        _get_or_404(repo, item_id)
        repo.delete(item_id)
        services.bus.publish(ScheduleChanged(entity=label, entity_id=item_id, action="deleted"))
        return Response(status_code=204)

    return router


ROUTERS = [
    crud_router(
        prefix="/careers",
        label="Career",
        request_model=CareerRequest,
        response_model=Career,
        repo_of=lambda s: s.store.careers,
        convert=_copy_fields(Career),
    ),
    crud_router(
        prefix="/modules",
        label="Module",
        request_model=ModuleRequest,
        response_model=Module,
        repo_of=lambda s: s.store.modules,
        convert=_copy_fields(Module),
    ),
    crud_router(
        prefix="/groups",
        label="Group",
        request_model=GroupRequest,
        response_model=Group,
        repo_of=lambda s: s.store.groups,
        convert=_copy_fields(Group),
    ),
    crud_router(
        prefix="/courses",
        label="Course",
        request_model=CourseRequest,
        response_model=Course,
        repo_of=lambda s: s.store.courses,
        convert=_copy_fields(Course),
    ),
    crud_router(
        prefix="/teachers",
        label="Teacher",
        request_model=TeacherRequest,
        response_model=Teacher,
        repo_of=lambda s: s.store.teachers,
        convert=_copy_fields(Teacher),
    ),
    crud_router(
        prefix="/classrooms",
        label="Classroom",
        request_model=ClassroomRequest,
        response_model=Classroom,
        repo_of=lambda s: s.store.classrooms,
        convert=_copy_fields(Classroom),
    ),
    crud_router(
        prefix="/events",
        label="Event",
        request_model=EventRequest,
        response_model=ScheduleEvent,
        repo_of=lambda s: s.store.events,
        convert=_to_event,
    ),
]
