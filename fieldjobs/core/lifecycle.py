"""Project lifecycle rules.

Everything here is pure: functions take a project snapshot and return the new
snapshot or the fields that should be written to the backend.  The services in
:mod:`fieldjobs.application` decide when those writes happen.
"""
from __future__ import annotations

from datetime import date

from fieldjobs.core.errors import TransitionError
from fieldjobs.core.schema import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Project,
    ProjectStatus,
    ProjectType,
)

ASSIGNABLE_STATUSES = frozenset({ProjectStatus.NEW, ProjectStatus.SCHEDULED})


def assign(project: Project, day: date) -> Project:
    """Plan ``project`` for ``day``; dragging a planned project again re-targets it."""

    if project.status not in ASSIGNABLE_STATUSES:
        raise TransitionError(project.status, ProjectStatus.SCHEDULED)
    return project.model_copy(update={"status": ProjectStatus.SCHEDULED, "start_date": day})


def unassign(project: Project) -> Project:
    if project.status != ProjectStatus.SCHEDULED:
        raise TransitionError(project.status, ProjectStatus.NEW)
    return project.model_copy(update={"status": ProjectStatus.NEW, "start_date": None})


def date_arrival_status(day: date, today: date) -> ProjectStatus:
    """Status a planned project takes once its planning screen is left.

    Days are compared as calendar dates only; a project planned for today stays
    planned, one planned for a past day is already running.
    """

    return ProjectStatus.IN_PROGRESS if day < today else ProjectStatus.SCHEDULED


def date_arrival_fields(day: date, today: date) -> dict[str, object]:
    return {"state": date_arrival_status(day, today).value, "start_date": day.isoformat()}


def unassign_fields() -> dict[str, object]:
    return {"state": ProjectStatus.NEW.value, "start_date": None}


def status_change_fields(project: Project, new_status: ProjectStatus, today: date) -> dict[str, object]:
    """Fields written when a user picks ``new_status`` directly.

    Dates follow the status: going back to new clears the work dates, starting
    work from new stamps a start date, finishing stamps a completion date and
    reopening a finished project clears it again.
    """

    old_status = project.status
    start_date = project.start_date
    completion_date = project.completion_date

    if new_status != old_status:
        if new_status == ProjectStatus.NEW:
            start_date = None
            completion_date = None
        elif new_status in ACTIVE_STATUSES:
            if old_status == ProjectStatus.NEW:
                start_date = start_date or today
            elif old_status in TERMINAL_STATUSES:
                completion_date = None
        elif new_status in TERMINAL_STATUSES and old_status not in TERMINAL_STATUSES:
            completion_date = completion_date or today

    return {
        "state": new_status.value,
        "start_date": start_date.isoformat() if start_date else None,
        "completion_date": completion_date.isoformat() if completion_date else None,
    }


def spawns_successor(project: Project, new_status: ProjectStatus) -> bool:
    """Completing an inspection opens exactly one follow-up project."""

    return (
        project.type == ProjectType.SURVEY.value
        and new_status == ProjectStatus.COMPLETED
        and project.status != ProjectStatus.COMPLETED
    )


def successor_fields(project: Project, successor_type: str) -> dict[str, object]:
    return {
        "client_id": project.client_id,
        "type": successor_type,
        "state": ProjectStatus.NEW.value,
        "scheduled_date": None,
        "start_date": None,
        "completion_date": None,
        "note": None,
    }


__all__ = [
    "ASSIGNABLE_STATUSES",
    "assign",
    "unassign",
    "date_arrival_status",
    "date_arrival_fields",
    "unassign_fields",
    "status_change_fields",
    "spawns_successor",
    "successor_fields",
]
