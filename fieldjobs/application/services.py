"""Process-wide wiring of the project services."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import uuid4

from fieldjobs.application.cache import ProjectCache
from fieldjobs.application.leases import LeaseManager
from fieldjobs.application.lifecycle import LifecycleService
from fieldjobs.application.scheduling import SchedulingService
from fieldjobs.core.clock import Clock, SystemClock
from fieldjobs.core.queries import ProjectQuery, build_queries
from fieldjobs.core.settings import Settings
from fieldjobs.domain import FlushReport, PendingAssignments
from fieldjobs.infrastructure import (
    InMemoryProjectBackend,
    NotificationCenter,
    ProjectBackend,
    SupabaseProjectBackend,
)
from fieldjobs.workers.lease_renewal import AsyncioScheduler, LeaseSession, Scheduler

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    clock: Clock
    backend: ProjectBackend
    notifications: NotificationCenter
    cache: ProjectCache
    leases: LeaseManager
    lifecycle: LifecycleService
    scheduling: SchedulingService
    queries: dict[str, ProjectQuery] = field(default_factory=build_queries)
    _sessions: dict[str, PendingAssignments] = field(default_factory=dict, repr=False)
    _edit_sessions: dict[str, LeaseSession] = field(default_factory=dict, repr=False)

    # ------------------------------------------------------------------
    # planning sessions
    # ------------------------------------------------------------------
    def open_planning_session(self) -> PendingAssignments:
        pending = PendingAssignments(session_id=uuid4().hex)
        self._sessions[pending.session_id] = pending
        return pending

    def planning_session(self, session_id: str) -> PendingAssignments:
        """Return the session or raise ``KeyError``."""

        return self._sessions[session_id]

    async def close_planning_session(self, session_id: str) -> FlushReport:
        pending = self._sessions[session_id]
        try:
            return await self.scheduling.flush(pending)
        finally:
            self._sessions.pop(session_id, None)

    # ------------------------------------------------------------------
    # edit sessions
    # ------------------------------------------------------------------
    def lease_session(
        self,
        record_id: str,
        holder_id: str,
        holder_name: str,
        *,
        scheduler: Scheduler | None = None,
    ) -> LeaseSession:
        return LeaseSession(
            self.leases,
            record_id,
            holder_id,
            holder_name,
            scheduler or AsyncioScheduler(),
            interval_seconds=self.settings.lease_renew_seconds,
        )

    async def open_edit_session(
        self,
        record_id: str,
        holder_id: str,
        holder_name: str,
        *,
        scheduler: Scheduler | None = None,
    ) -> LeaseSession:
        """Start a renewing lease; the session is kept only when the lease was granted."""

        session = self.lease_session(record_id, holder_id, holder_name, scheduler=scheduler)
        await session.start()
        if session.held:
            self._edit_sessions[session.session_id] = session
        return session

    def edit_session(self, session_id: str) -> LeaseSession:
        """Return the session or raise ``KeyError``."""

        return self._edit_sessions[session_id]

    async def close_edit_session(self, session_id: str) -> None:
        session = self._edit_sessions.pop(session_id)
        await session.stop()

    async def aclose(self) -> None:
        """Flush open planning sessions, release edit leases and close the backend."""

        for session_id in list(self._sessions):
            await self.close_planning_session(session_id)
        for session_id in list(self._edit_sessions):
            await self.close_edit_session(session_id)
        close = getattr(self.backend, "close", None)
        if close is not None:
            await close()


def build_services(
    settings: Settings | None = None,
    *,
    clock: Clock | None = None,
    backend: ProjectBackend | None = None,
) -> Services:
    settings = settings or Settings.from_env()
    clock = clock or SystemClock()
    if backend is None:
        if settings.supabase_configured:
            backend = SupabaseProjectBackend.from_settings(settings)
            logger.info("Using Supabase backend at %s", settings.supabase_url)
        else:
            backend = InMemoryProjectBackend(clock, lease_ttl=settings.lease_ttl)
            logger.info("Supabase is not configured, using the in-memory backend")

    notifications = NotificationCenter(clock)
    cache = ProjectCache(backend, clock, notifications, freshness=settings.cache_ttl)
    return Services(
        settings=settings,
        clock=clock,
        backend=backend,
        notifications=notifications,
        cache=cache,
        leases=LeaseManager(backend, clock, notifications, lease_ttl=settings.lease_ttl, cache=cache),
        lifecycle=LifecycleService(backend, cache, clock, notifications, successor_type=settings.successor_type),
        scheduling=SchedulingService(backend, cache, clock, notifications),
        queries=build_queries(settings.planning_horizon_days),
    )


_services: Services | None = None


def get_services() -> Services:
    """Return the singleton services for the process, building them on first use."""

    global _services
    if _services is None:
        _services = build_services()
    return _services


def configure_services(services: Services) -> None:
    global _services
    _services = services


def reset_services() -> None:
    """Forget the singleton (used in tests)."""

    global _services
    _services = None
