"""Calendar planning: drag projects onto days, write them back on exit."""
from __future__ import annotations

import asyncio
import logging
from datetime import date

from fieldjobs.application.cache import ProjectCache
from fieldjobs.core import lifecycle
from fieldjobs.core.clock import Clock
from fieldjobs.core.errors import BackendError, TransitionError
from fieldjobs.core.schema import ProjectStatus
from fieldjobs.domain import FlushReport, PendingAssignments
from fieldjobs.infrastructure import Notifier, ProjectBackend

logger = logging.getLogger(__name__)

ASSIGN_FAILED_MESSAGE = "Projekt sa nepodarilo naplánovať"
UNASSIGN_FAILED_MESSAGE = "Nepodarilo sa zrušiť naplánovanie projektu"
FLUSH_FAILED_MESSAGE = "Nepodarilo sa uložiť naplánovanie projektu"


class SchedulingService:
    """Assignments are local until ``flush``; unassignments are written immediately."""

    def __init__(self, backend: ProjectBackend, cache: ProjectCache, clock: Clock, notifier: Notifier) -> None:
        self._backend = backend
        self._cache = cache
        self._clock = clock
        self._notifier = notifier

    def assign_to_date(self, pending: PendingAssignments, project_id: str, day: date) -> bool:
        if project_id not in self._cache:
            logger.warning("Cannot plan project %s, it is not cached", project_id)
            self._notifier.notify(ASSIGN_FAILED_MESSAGE, "error", screen="planning")
            return False

        try:
            self._cache.upsert_optimistic(
                project_id,
                lambda item: item.with_project(lifecycle.assign(item.project, day)),
            )
        except TransitionError as exc:
            logger.warning("Cannot plan project %s: %s", project_id, exc)
            self._notifier.notify(ASSIGN_FAILED_MESSAGE, "error", screen="planning")
            return False

        pending.record(project_id, day)
        return True

    async def unassign(self, pending: PendingAssignments, project_id: str) -> bool:
        item = self._cache.get(project_id)
        if item is None:
            logger.warning("Cannot unplan project %s, it is not cached", project_id)
            self._notifier.notify(UNASSIGN_FAILED_MESSAGE, "error", screen="planning")
            return False

        try:
            lifecycle.unassign(item.project)
        except TransitionError as exc:
            logger.warning("Cannot unplan project %s: %s", project_id, exc)
            self._notifier.notify(UNASSIGN_FAILED_MESSAGE, "error", screen="planning")
            return False

        try:
            updated = await self._backend.update_record_status(project_id, lifecycle.unassign_fields())
        except BackendError as exc:
            logger.error("Unplanning project %s failed: %s", project_id, exc)
            self._notifier.notify(UNASSIGN_FAILED_MESSAGE, "error", screen="planning")
            return False

        pending.discard(project_id)
        current = self._cache.get(project_id) or item
        self._cache.upsert_confirmed(project_id, current.with_project(updated))
        return True

    async def flush(self, pending: PendingAssignments) -> FlushReport:
        """Write every pending assignment, applying the date-arrival rule.

        Records are written concurrently; one failure rolls back only that
        record.  Flushed entries leave the set even when the flush is cancelled.
        """

        entries = pending.snapshot()
        report = FlushReport()
        today = self._clock.today()
        try:
            await asyncio.gather(
                *(self._flush_one(project_id, day, today, report) for project_id, day in entries.items())
            )
        finally:
            for project_id, day in entries.items():
                if pending.get(project_id) == day:
                    pending.discard(project_id)

        if entries:
            logger.info(
                "Flushed planning session %s: %d updated, %d failed, %d skipped",
                pending.session_id or "-",
                len(report.updated),
                len(report.failed),
                len(report.skipped),
            )
        return report

    async def _flush_one(self, project_id: str, day: date, today: date, report: FlushReport) -> None:
        if project_id not in self._cache:
            logger.warning("Skipping flush of project %s, it is no longer cached", project_id)
            report.skipped.append(project_id)
            return

        try:
            updated = await self._backend.update_record_status(project_id, lifecycle.date_arrival_fields(day, today))
        except BackendError as exc:
            logger.error("Saving planned date of project %s failed: %s", project_id, exc)
            self._cache.rollback(project_id)
            self._notifier.notify(FLUSH_FAILED_MESSAGE, "error", screen="planning")
            report.failed[project_id] = str(exc)
            return

        current = self._cache.get(project_id)
        if current is not None:
            self._cache.upsert_confirmed(
                project_id,
                current.with_project(updated),
                notify=updated.status == ProjectStatus.IN_PROGRESS,
            )
        report.updated[project_id] = updated.status


__all__ = ["SchedulingService"]
