"""Named bulk queries and the client-side filters applied to cached projects.

Each :class:`ProjectQuery` knows how to express itself as PostgREST parameters
for the remote backend and as a predicate for the in-memory backend and the
cache, so both sides agree on which rows a query covers.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from fieldjobs.core.schema import Project, ProjectStatus, ProjectWithRelations

ACTIVE = "active"
PLANNED = "planned"
ALL = "all"


@dataclass(frozen=True, slots=True)
class ProjectQuery:
    name: str
    horizon_days: int = 30

    def horizon(self, today: date) -> date:
        return today + timedelta(days=self.horizon_days)

    def matches(self, project: Project, today: date) -> bool:
        if self.name == ACTIVE:
            if project.status in (ProjectStatus.IN_PROGRESS, ProjectStatus.PAUSED):
                return True
            return project.status == ProjectStatus.SCHEDULED and project.start_date == today
        if self.name == PLANNED:
            horizon = self.horizon(today)
            if project.status == ProjectStatus.NEW:
                return project.scheduled_date is not None and project.scheduled_date <= horizon
            if project.status == ProjectStatus.SCHEDULED:
                return project.start_date is not None and project.start_date <= horizon
            return False
        return True

    def postgrest_params(self, today: date) -> dict[str, str]:
        if self.name == ACTIVE:
            return {
                "or": (
                    f"(state.eq.{ProjectStatus.IN_PROGRESS.value},"
                    f"state.eq.{ProjectStatus.PAUSED.value},"
                    f"and(state.eq.{ProjectStatus.SCHEDULED.value},start_date.eq.{today.isoformat()}))"
                ),
                "order": "created_at.desc",
            }
        if self.name == PLANNED:
            horizon = self.horizon(today).isoformat()
            return {
                "or": (
                    f"(and(state.eq.{ProjectStatus.NEW.value},scheduled_date.lte.{horizon}),"
                    f"and(state.eq.{ProjectStatus.SCHEDULED.value},start_date.lte.{horizon}))"
                ),
                "order": "scheduled_date.asc",
            }
        return {"order": "created_at.desc"}


ACTIVE_PROJECTS = ProjectQuery(ACTIVE)
PLANNED_PROJECTS = ProjectQuery(PLANNED)
ALL_PROJECTS = ProjectQuery(ALL)



def build_queries(horizon_days: int = 30) -> dict[str, ProjectQuery]:
    """Named queries, with the planned query looking ``horizon_days`` ahead."""

    queries = (ACTIVE_PROJECTS, ProjectQuery(PLANNED, horizon_days=horizon_days), ALL_PROJECTS)
    return {query.name: query for query in queries}


QUERIES: dict[str, ProjectQuery] = build_queries()


@dataclass(slots=True)
class ProjectFilters:
    types: list[str] = field(default_factory=list)
    statuses: list[str] = field(default_factory=list)
    users: list[str] = field(default_factory=list)
    cities: list[str] = field(default_factory=list)
    date_from: date | None = None
    date_to: date | None = None
    search_query: str = ""

    @property
    def is_empty(self) -> bool:
        return not (
            self.types
            or self.statuses
            or self.users
            or self.cities
            or self.date_from
            or self.date_to
            or self.search_query
        )


def date_key(value: date | None) -> str:
    """Sort key treating missing dates as the empty string."""

    return value.isoformat() if value else ""


def apply_filters(projects: Iterable[ProjectWithRelations], filters: ProjectFilters) -> list[ProjectWithRelations]:
    results = list(projects)
    if filters.is_empty:
        return results

    if filters.types:
        results = [p for p in results if p.project.type in filters.types]
    if filters.statuses:
        results = [p for p in results if p.project.status.value in filters.statuses]
    if filters.users:
        results = [p for p in results if any(user.id in filters.users for user in p.users)]
    if filters.cities:
        results = [p for p in results if any(obj.city in filters.cities for obj in p.objects if obj.city)]
    if filters.date_from:
        results = [
            p for p in results if p.project.scheduled_date and p.project.scheduled_date >= filters.date_from
        ]
    if filters.date_to:
        results = [p for p in results if p.project.scheduled_date and p.project.scheduled_date <= filters.date_to]
    if filters.search_query:
        keyword = filters.search_query.strip().lower()
        results = [p for p in results if _matches_search(p, keyword)]
    return results


def _matches_search(item: ProjectWithRelations, keyword: str) -> bool:
    if keyword in item.client.name.lower():
        return True
    if item.client.phone and keyword in item.client.phone.lower():
        return True
    return any(
        (obj.city and keyword in obj.city.lower()) or (obj.address and keyword in obj.address.lower())
        for obj in item.objects
    )


def extract_cities(projects: Iterable[ProjectWithRelations]) -> list[str]:
    cities = {obj.city for item in projects for obj in item.objects if obj.city}
    return sorted(cities)
