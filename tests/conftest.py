from __future__ import annotations

import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fieldjobs.application import build_services, reset_services
from fieldjobs.core.schema import Client, Project, ProjectStatus, ProjectWithRelations, ServiceObject, UserProfile
from fieldjobs.core.settings import Settings
from fieldjobs.infrastructure import InMemoryProjectBackend

T0 = datetime(2024, 3, 5, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = T0, today: date | None = None) -> None:
        self.current = now
        self._today = today

    def now(self) -> datetime:
        return self.current

    def today(self) -> date:
        return self._today or self.current.date()

    def advance(self, **delta: float) -> None:
        self.current = self.current + timedelta(**delta)

    def set_today(self, day: date) -> None:
        self._today = day


class ManualTimer:
    def __init__(self, interval: float, callback) -> None:
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def call_every(self, interval_seconds: float, callback) -> ManualTimer:
        timer = ManualTimer(interval_seconds, callback)
        self.timers.append(timer)
        return timer

    async def tick(self) -> None:
        for timer in list(self.timers):
            if not timer.cancelled:
                await timer.callback()


def make_project(
    project_id: str = "p1",
    *,
    status: ProjectStatus = ProjectStatus.NEW,
    type: str = "Montáž",
    client_id: str = "c1",
    client_name: str = "Ján Novák",
    city: str | None = "Žilina",
    users: tuple[str, ...] = (),
    updated_at: datetime | None = T0,
    **fields,
) -> ProjectWithRelations:
    project = Project(
        id=project_id,
        client_id=client_id,
        type=type,
        status=status,
        updated_at=updated_at,
        **fields,
    )
    client = Client(id=client_id, name=client_name, phone="+421 900 111 222", city=city)
    objects = (ServiceObject(id=f"o-{project_id}", client_id=client_id, address="Hlavná 1", city=city),) if city else ()
    profiles = tuple(UserProfile(id=user_id, name=user_id.upper()) for user_id in users)
    return ProjectWithRelations(project=project, client=client, users=profiles, objects=objects)


@pytest.fixture(autouse=True)
def reset_state():
    reset_services()
    yield
    reset_services()


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def backend(clock) -> InMemoryProjectBackend:
    return InMemoryProjectBackend(clock)


@pytest.fixture()
def services(clock, backend):
    return build_services(Settings(), clock=clock, backend=backend)


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


def seed(services, *items: ProjectWithRelations) -> None:
    """Put ``items`` in the backend and, confirmed, in the cache."""

    services.backend.seed(*items)
    for item in items:
        services.cache.upsert_confirmed(item.id, item)
