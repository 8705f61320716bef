"""Local record cache shared by every screen of one device.

Entries are frozen snapshots keyed by project id.  Optimistic writes tag an
entry as pending and remember the last value the backend confirmed, so a
failed write can be rolled back.  Confirmed writes compare before they store:
an identical value produces no change event and no notification.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable, Iterable

from fieldjobs.core.clock import Clock
from fieldjobs.core.errors import BackendError
from fieldjobs.core.queries import ProjectFilters, ProjectQuery, apply_filters, date_key, extract_cities
from fieldjobs.core.schema import ProjectStatus, ProjectWithRelations
from fieldjobs.infrastructure import Notifier, ProjectBackend

logger = logging.getLogger(__name__)

Listener = Callable[[str, "ProjectWithRelations | None"], None]

UPDATED_MESSAGE = "Projekt bol úspešne aktualizovaný"
ADDED_MESSAGE = "Projekt bol úspešne pridaný"
FETCH_FAILED_MESSAGE = "Nepodarilo sa načítať projekty"


class EntryState(str, Enum):
    CONFIRMED = "confirmed"
    PENDING_LOCAL = "pending_local"


@dataclass(slots=True)
class CacheEntry:
    value: ProjectWithRelations
    state: EntryState = EntryState.CONFIRMED
    confirmed: ProjectWithRelations | None = None

    @property
    def pending(self) -> bool:
        return self.state == EntryState.PENDING_LOCAL


class ProjectCache:
    def __init__(
        self,
        backend: ProjectBackend,
        clock: Clock,
        notifier: Notifier,
        *,
        freshness: timedelta = timedelta(minutes=5),
    ) -> None:
        self._backend = backend
        self._clock = clock
        self._notifier = notifier
        self._freshness = freshness
        self._entries: dict[str, CacheEntry] = {}
        self._fetched_at: dict[str, datetime] = {}
        self._cursors: dict[str, datetime] = {}
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def get(self, project_id: str) -> ProjectWithRelations | None:
        entry = self._entries.get(project_id)
        return entry.value if entry else None

    def entry(self, project_id: str) -> CacheEntry | None:
        return self._entries.get(project_id)

    def values(self) -> list[ProjectWithRelations]:
        return [entry.value for entry in self._entries.values()]

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for change events; returns the unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, project_id: str, value: ProjectWithRelations | None) -> None:
        for listener in list(self._listeners):
            listener(project_id, value)

    def upsert_optimistic(
        self,
        project_id: str,
        mutator: Callable[[ProjectWithRelations], ProjectWithRelations],
    ) -> ProjectWithRelations | None:
        """Apply ``mutator`` locally and mark the entry as not yet confirmed.

        Exceptions raised by ``mutator`` propagate and leave the entry as it was.
        """

        entry = self._entries.get(project_id)
        if entry is None:
            logger.warning("Optimistic update skipped, project %s is not cached", project_id)
            return None

        updated = mutator(entry.value)
        if not entry.pending:
            entry.confirmed = entry.value
        entry.state = EntryState.PENDING_LOCAL
        if updated != entry.value:
            entry.value = updated
            self._emit(project_id, updated)
        return updated

    def upsert_confirmed(self, project_id: str, value: ProjectWithRelations, *, notify: bool = False) -> bool:
        """Store a value the backend has confirmed; returns whether anything changed."""

        entry = self._entries.get(project_id)
        if entry is not None and entry.value == value:
            entry.state = EntryState.CONFIRMED
            entry.confirmed = value
            return False

        self._entries[project_id] = CacheEntry(value=value, state=EntryState.CONFIRMED, confirmed=value)
        self._emit(project_id, value)
        if notify:
            self._notifier.notify(UPDATED_MESSAGE, "success")
        return True

    def apply_lock_fields(self, project_id: str, **fields: object) -> None:
        """Copy lease columns into the entry without touching its pending state."""

        entry = self._entries.get(project_id)
        if entry is None:
            return
        if not entry.pending:
            self.upsert_confirmed(project_id, entry.value.with_fields(**fields))
            return
        if entry.confirmed is not None:
            entry.confirmed = entry.confirmed.with_fields(**fields)
        entry.value = entry.value.with_fields(**fields)
        self._emit(project_id, entry.value)

    def add(self, value: ProjectWithRelations) -> None:
        self._entries[value.id] = CacheEntry(value=value, state=EntryState.CONFIRMED, confirmed=value)
        self._emit(value.id, value)
        self._notifier.notify(ADDED_MESSAGE, "success")

    def remove(self, project_id: str) -> ProjectWithRelations | None:
        entry = self._entries.pop(project_id, None)
        if entry is None:
            return None
        self._emit(project_id, None)
        self.invalidate()
        return entry.value

    def restore(self, project_id: str, entry: CacheEntry) -> None:
        """Put back an entry taken out by ``remove``, pending tag and snapshot included."""

        self._entries[project_id] = entry
        self._emit(project_id, entry.value)

    def rollback(self, project_id: str) -> bool:
        """Return a pending entry to its last confirmed snapshot."""

        entry = self._entries.get(project_id)
        if entry is None or not entry.pending:
            return False

        if entry.confirmed is None:
            del self._entries[project_id]
            self._emit(project_id, None)
            return True

        changed = entry.value != entry.confirmed
        entry.value = entry.confirmed
        entry.state = EntryState.CONFIRMED
        if changed:
            self._emit(project_id, entry.value)
        return True

    def _merge_fetched(self, item: ProjectWithRelations) -> bool:
        entry = self._entries.get(item.id)
        if entry is not None and entry.pending:
            # keep the local edit visible; the fetched row becomes its rollback target
            entry.confirmed = item
            return False
        return self.upsert_confirmed(item.id, item)

    # ------------------------------------------------------------------
    # remote reads
    # ------------------------------------------------------------------
    def invalidate(self, query_name: str | None = None) -> None:
        if query_name is None:
            self._fetched_at.clear()
        else:
            self._fetched_at.pop(query_name, None)

    def is_fresh(self, query: ProjectQuery) -> bool:
        stamp = self._fetched_at.get(query.name)
        return stamp is not None and self._clock.now() - stamp < self._freshness

    def _matching(self, query: ProjectQuery, today: date) -> list[ProjectWithRelations]:
        return [entry.value for entry in self._entries.values() if query.matches(entry.value.project, today)]

    def _advance_cursor(self, query: ProjectQuery, items: Iterable[ProjectWithRelations]) -> None:
        stamps = [item.project.updated_at for item in items if item.project.updated_at is not None]
        current = self._cursors.get(query.name)
        if current is not None:
            stamps.append(current)
        if stamps:
            self._cursors[query.name] = max(stamps)

    async def bulk_fetch(self, query: ProjectQuery, *, force: bool = False) -> list[ProjectWithRelations]:
        """Read-through fetch of every project covered by ``query``."""

        today = self._clock.today()
        cached = self._matching(query, today)
        if not force and cached and self.is_fresh(query):
            logger.debug("Serving %d cached projects for %s", len(cached), query.name)
            return cached

        try:
            items = await self._backend.fetch_projects(query, today=today)
        except BackendError as exc:
            logger.error("Fetching projects for %s failed: %s", query.name, exc)
            self._notifier.notify(FETCH_FAILED_MESSAGE, "error")
            return cached

        for item in items:
            self._merge_fetched(item)
        self._fetched_at[query.name] = self._clock.now()
        self._advance_cursor(query, items)
        logger.info("Fetched %d projects for %s", len(items), query.name)
        return self._matching(query, today)

    async def sync(self, query: ProjectQuery) -> int:
        """Pull rows changed since the last fetch; returns how many entries changed."""

        cursor = self._cursors.get(query.name)
        try:
            items = await self._backend.fetch_projects(query, today=self._clock.today(), updated_since=cursor)
        except BackendError as exc:
            logger.error("Syncing projects for %s failed: %s", query.name, exc)
            self._notifier.notify(FETCH_FAILED_MESSAGE, "error")
            return 0

        changed = sum(1 for item in items if self._merge_fetched(item))
        self._advance_cursor(query, items)
        if cursor is None:
            self._fetched_at[query.name] = self._clock.now()
        if changed:
            logger.info("Synced %d changed projects for %s", changed, query.name)
        return changed

    # ------------------------------------------------------------------
    # derived views
    # ------------------------------------------------------------------
    def by_status(self, status: ProjectStatus) -> list[ProjectWithRelations]:
        items = [item for item in self.values() if item.project.status == status]
        return sorted(items, key=lambda item: date_key(item.project.scheduled_date))

    def scheduled_before(self, day: date) -> list[ProjectWithRelations]:
        """New projects whose requested date is on or before ``day``."""

        items = [
            item
            for item in self.values()
            if item.project.status == ProjectStatus.NEW
            and item.project.scheduled_date is not None
            and item.project.scheduled_date <= day
        ]
        return sorted(items, key=lambda item: date_key(item.project.scheduled_date))

    def assigned_on(self, day: date) -> list[ProjectWithRelations]:
        items = [
            item
            for item in self.values()
            if item.project.status == ProjectStatus.SCHEDULED and item.project.start_date == day
        ]
        return sorted(items, key=lambda item: date_key(item.project.start_date))

    def unassigned(self) -> list[ProjectWithRelations]:
        return self.by_status(ProjectStatus.NEW)

    def filtered(self, filters: ProjectFilters) -> list[ProjectWithRelations]:
        return apply_filters(self.values(), filters)

    def cities(self) -> list[str]:
        return extract_cities(self.values())


__all__ = ["CacheEntry", "EntryState", "ProjectCache"]
