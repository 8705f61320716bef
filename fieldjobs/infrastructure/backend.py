"""Infrastructure layer for project persistence."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Protocol
from uuid import uuid4

from pydantic import ValidationError

from fieldjobs.core.clock import Clock
from fieldjobs.core.errors import BackendError
from fieldjobs.core.queries import ProjectQuery
from fieldjobs.core.schema import Client, Project, ProjectWithRelations
from fieldjobs.domain import LockOutcome, lease_is_active


class ProjectBackend(Protocol):
    """Remote operations the project core relies on.

    Every method raises :class:`BackendError` when the request fails.
    """

    async def lock_record(self, record_id: str, holder_id: str, holder_name: str) -> LockOutcome:
        """Atomically take the lease when it is free or expired."""

    async def unlock_record(self, record_id: str, holder_id: str) -> None:
        """Clear the lease when ``holder_id`` holds it; otherwise do nothing."""

    async def renew_lock(self, record_id: str, holder_id: str, new_expiry: datetime) -> bool:
        """Extend the lease when ``holder_id`` still holds it."""

    async def update_record_status(self, record_id: str, fields: dict[str, Any]) -> Project: ...

    async def create_record(self, fields: dict[str, Any]) -> Project: ...

    async def delete_record(self, record_id: str) -> None: ...

    async def fetch_projects(
        self,
        query: ProjectQuery,
        *,
        today: date,
        updated_since: datetime | None = None,
    ) -> list[ProjectWithRelations]: ...


class InMemoryProjectBackend:
    """Process-local backend used for development and tests.

    No method awaits between reading and writing a row, so each call is atomic
    on the event loop, the same guarantee the database procedures give.
    """

    def __init__(self, clock: Clock, *, lease_ttl: timedelta = timedelta(minutes=5)) -> None:
        self._clock = clock
        self._lease_ttl = lease_ttl
        self._projects: dict[str, ProjectWithRelations] = {}
        self._clients: dict[str, Client] = {}
        self._failures: dict[str, list[Exception]] = {}
        self.calls: list[tuple[str, str]] = []

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _enter(self, operation: str, record_id: str = "") -> None:
        self.calls.append((operation, record_id))
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _require(self, record_id: str) -> ProjectWithRelations:
        item = self._projects.get(record_id)
        if item is None:
            raise BackendError(f"project {record_id} not found")
        return item

    def _store(self, item: ProjectWithRelations, project: Project) -> Project:
        self._projects[project.id] = item.with_project(project)
        return project

    # ------------------------------------------------------------------
    # lease procedures
    # ------------------------------------------------------------------
    async def lock_record(self, record_id: str, holder_id: str, holder_name: str) -> LockOutcome:
        self._enter("lock_record", record_id)
        item = self._require(record_id)
        project = item.project
        now = self._clock.now()

        if lease_is_active(project, now) and project.locked_by != holder_id:
            return LockOutcome(
                locked=False,
                lock_expires_at=project.lock_expires_at,
                locked_by_name=project.locked_by_name,
            )

        expires_at = now + self._lease_ttl
        self._store(
            item,
            project.model_copy(
                update={
                    "locked_by": holder_id,
                    "locked_by_name": holder_name,
                    "locked_at": now,
                    "lock_expires_at": expires_at,
                }
            ),
        )
        return LockOutcome(locked=True, lock_expires_at=expires_at, locked_by_name=holder_name)

    async def unlock_record(self, record_id: str, holder_id: str) -> None:
        self._enter("unlock_record", record_id)
        item = self._require(record_id)
        if item.project.locked_by != holder_id:
            return
        self._store(
            item,
            item.project.model_copy(
                update={"locked_by": None, "locked_by_name": None, "locked_at": None, "lock_expires_at": None}
            ),
        )

    async def renew_lock(self, record_id: str, holder_id: str, new_expiry: datetime) -> bool:
        self._enter("renew_lock", record_id)
        item = self._require(record_id)
        if item.project.locked_by != holder_id:
            return False
        self._store(item, item.project.model_copy(update={"lock_expires_at": new_expiry}))
        return True

    # ------------------------------------------------------------------
    # row CRUD
    # ------------------------------------------------------------------
    async def update_record_status(self, record_id: str, fields: dict[str, Any]) -> Project:
        self._enter("update_record_status", record_id)
        item = self._require(record_id)
        row = {**item.project.to_row(), **fields, "updated_at": self._clock.now()}
        try:
            project = Project.model_validate(row)
        except ValidationError as exc:
            raise BackendError(f"invalid update for project {record_id}: {exc}") from exc
        return self._store(item, project)

    async def create_record(self, fields: dict[str, Any]) -> Project:
        self._enter("create_record")
        client = self._clients.get(str(fields.get("client_id") or ""))
        if client is None:
            raise BackendError(f"client {fields.get('client_id')} not found")
        now = self._clock.now()
        row = {**fields, "id": str(uuid4()), "created_at": now, "updated_at": now}
        try:
            project = Project.model_validate(row)
        except ValidationError as exc:
            raise BackendError(f"invalid project: {exc}") from exc
        self._projects[project.id] = ProjectWithRelations(project=project, client=client)
        return project

    async def delete_record(self, record_id: str) -> None:
        self._enter("delete_record", record_id)
        self._require(record_id)
        del self._projects[record_id]

    async def fetch_projects(
        self,
        query: ProjectQuery,
        *,
        today: date,
        updated_since: datetime | None = None,
    ) -> list[ProjectWithRelations]:
        self._enter("fetch_projects", query.name)
        items = [item for item in self._projects.values() if query.matches(item.project, today)]
        if updated_since is not None:
            items = [
                item
                for item in items
                if item.project.updated_at is not None and item.project.updated_at > updated_since
            ]
        return items

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def seed(self, *items: ProjectWithRelations) -> None:
        for item in items:
            self._projects[item.id] = item
            self._clients[item.client.id] = item.client

    def add_client(self, client: Client) -> None:
        self._clients[client.id] = client

    def project(self, record_id: str) -> Project | None:
        item = self._projects.get(record_id)
        return item.project if item else None

    def projects(self) -> list[Project]:
        return [item.project for item in self._projects.values()]

    def fail_next(self, operation: str, error: Exception | None = None) -> None:
        """Make the next call to ``operation`` raise ``error`` (a BackendError by default)."""

        self._failures.setdefault(operation, []).append(error or BackendError(f"{operation} failed"))

    def calls_for(self, operation: str) -> list[str]:
        return [record_id for name, record_id in self.calls if name == operation]

    def reset(self) -> None:
        self._projects.clear()
        self._clients.clear()
        self._failures.clear()
        self.calls.clear()
