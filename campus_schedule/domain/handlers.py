"""Domain event handlers — wired up when the application is built."""

from __future__ import annotations

import logging

from campus_schedule.domain.bus import EventBus
from campus_schedule.domain.events import ConflictsDetected, ScheduleChanged
from campus_schedule.domain.models import ConflictReport
from campus_schedule.repos.memory import ConflictReportRepository, ScheduleStore
from campus_schedule.services.conflicts import detect_in_snapshot

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Keeps the stored conflict report in step with the stored schedule."""

    def __init__(
        self,
        bus: EventBus,
        store: ScheduleStore,
        report_repo: ConflictReportRepository,
        term_weeks: int,
    ) -> None:
        self.bus = bus
        self.store = store
        self.report_repo = report_repo
        self.term_weeks = term_weeks
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(ScheduleChanged, self.on_schedule_changed)
        self.bus.subscribe(ConflictsDetected, self.on_conflicts_detected)

    def refresh(self) -> ConflictReport:
        """Run the detector over the stored schedule and keep the result."""
        conflicts = detect_in_snapshot(self.store.snapshot(), term_weeks=self.term_weeks)
        report = ConflictReport.from_conflicts(conflicts)
        self.report_repo.save(report)
        return report

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_schedule_changed(self, event: ScheduleChanged) -> None:
        report = self.refresh()
        logger.info(
            "Schedule %s %s (%s): %d conflicts",
            event.entity,
            event.action,
            event.entity_id or "-",
            len(report.conflicts),
        )
        if report.conflicts:
            self.bus.publish(
                ConflictsDetected(
                    conflict_count=len(report.conflicts),
                    counts=report.counts,
                )
            )

    def on_conflicts_detected(self, event: ConflictsDetected) -> None:
        summary = ", ".join(f"{kind}={count}" for kind, count in event.counts.items())
        logger.warning("Stored schedule has %d conflicts: %s", event.conflict_count, summary)
