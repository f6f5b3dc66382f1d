"""Domain events emitted when the stored schedule changes."""

from __future__ import annotations

from pydantic import BaseModel

from campus_schedule.domain.models import ConflictKind


class ScheduleChanged(BaseModel):
    """Fired after any entity referenced by the schedule is written."""

    entity: str
    entity_id: str | None = None
    action: str


class ConflictsDetected(BaseModel):
    """Fired when a refreshed report contains at least one conflict."""

    conflict_count: int
    counts: dict[ConflictKind, int]
