"""Direct status changes and deletion of projects."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fieldjobs.application.cache import ProjectCache
from fieldjobs.core.clock import Clock
from fieldjobs.core.errors import BackendError
from fieldjobs.core.lifecycle import spawns_successor, status_change_fields, successor_fields
from fieldjobs.core.schema import ProjectStatus, ProjectType, ProjectWithRelations
from fieldjobs.infrastructure import Notifier, ProjectBackend

logger = logging.getLogger(__name__)

STATUS_FAILED_MESSAGE = "Nepodarilo sa zmeniť stav projektu"
SUCCESSOR_CREATED_MESSAGE = "Bol vytvorený nový projekt typu: {type}"
SUCCESSOR_FAILED_MESSAGE = "Nepodarilo sa vytvoriť nový projekt"
DELETED_MESSAGE = "Projekt bol úspešne odstránený"
DELETE_FAILED_MESSAGE = "Projekt sa nepodarilo odstrániť"


@dataclass(slots=True)
class StatusChange:
    project_id: str
    ok: bool
    status: ProjectStatus | None = None
    error: str | None = None
    successor: ProjectWithRelations | None = None
    successor_error: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            "project_id": self.project_id,
            "ok": self.ok,
            "status": self.status.value if self.status else None,
            "error": self.error,
            "successor_id": self.successor.id if self.successor else None,
            "successor_type": self.successor.project.type if self.successor else None,
            "successor_error": self.successor_error,
        }


class LifecycleService:
    def __init__(
        self,
        backend: ProjectBackend,
        cache: ProjectCache,
        clock: Clock,
        notifier: Notifier,
        *,
        successor_type: str = ProjectType.CLEANING.value,
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._clock = clock
        self._notifier = notifier
        self._successor_type = successor_type

    async def change_status(
        self,
        project_id: str,
        new_status: ProjectStatus,
        *,
        successor_type: str | None = None,
    ) -> StatusChange:
        """Write a user-picked status, then mirror it into the cache.

        Nothing is applied locally before the backend accepts the change.
        Completing an inspection opens one follow-up project for the same client.
        """

        item = self._cache.get(project_id)
        if item is None:
            logger.warning("Status change skipped, project %s is not cached", project_id)
            self._notifier.notify(STATUS_FAILED_MESSAGE, "error")
            return StatusChange(project_id, ok=False, error="project not found")

        fields = status_change_fields(item.project, new_status, self._clock.today())
        try:
            updated = await self._backend.update_record_status(project_id, fields)
        except BackendError as exc:
            logger.error("Changing status of project %s to %s failed: %s", project_id, new_status.value, exc)
            self._notifier.notify(STATUS_FAILED_MESSAGE, "error")
            return StatusChange(project_id, ok=False, error=str(exc))

        # decided against the freshest snapshot so a concurrent completion spawns only once
        current = self._cache.get(project_id) or item
        spawn = spawns_successor(current.project, new_status)
        self._cache.upsert_confirmed(project_id, current.with_project(updated), notify=True)
        result = StatusChange(project_id, ok=True, status=updated.status)

        if spawn:
            await self._create_successor(current, successor_type or self._successor_type, result)
        return result

    async def _create_successor(self, item: ProjectWithRelations, successor_type: str, result: StatusChange) -> None:
        try:
            created = await self._backend.create_record(successor_fields(item.project, successor_type))
        except BackendError as exc:
            logger.error("Creating follow-up project for %s failed: %s", item.id, exc)
            self._notifier.notify(SUCCESSOR_FAILED_MESSAGE, "error")
            result.successor_error = str(exc)
            return

        successor = ProjectWithRelations(project=created, client=item.client)
        self._cache.add(successor)
        self._notifier.notify(SUCCESSOR_CREATED_MESSAGE.format(type=created.type), "info")
        logger.info("Created %s project %s after completing %s", created.type, created.id, item.id)
        result.successor = successor

    async def delete_project(self, project_id: str) -> bool:
        entry = self._cache.entry(project_id)
        if entry is None:
            logger.warning("Delete skipped, project %s is not cached", project_id)
            return False
        self._cache.remove(project_id)

        try:
            await self._backend.delete_record(project_id)
        except BackendError as exc:
            logger.error("Deleting project %s failed: %s", project_id, exc)
            self._cache.restore(project_id, entry)
            self._notifier.notify(DELETE_FAILED_MESSAGE, "error")
            return False

        self._notifier.notify(DELETED_MESSAGE, "success")
        return True


__all__ = ["LifecycleService", "StatusChange"]
