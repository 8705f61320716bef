from __future__ import annotations

from datetime import date

import pytest

from conftest import make_project
from fieldjobs.core import lifecycle
from fieldjobs.core.errors import TransitionError
from fieldjobs.core.schema import Project, ProjectStatus, ProjectType

TODAY = date(2024, 3, 5)


def test_project_reads_and_writes_state_column():
    project = Project.model_validate(
        {"id": "p1", "client_id": "c1", "type": "Montáž", "state": "Prebieha", "start_date": "2024-03-01"}
    )
    assert project.status is ProjectStatus.IN_PROGRESS
    assert project.start_date == date(2024, 3, 1)

    row = project.to_row()
    assert row["state"] == "Prebieha"
    assert row["start_date"] == "2024-03-01"
    assert "status" not in row


def test_assign_moves_new_project_to_scheduled():
    project = make_project(status=ProjectStatus.NEW).project

    planned = lifecycle.assign(project, date(2024, 3, 10))

    assert planned.status is ProjectStatus.SCHEDULED
    assert planned.start_date == date(2024, 3, 10)
    assert project.status is ProjectStatus.NEW


def test_assign_retargets_scheduled_project():
    project = make_project(status=ProjectStatus.SCHEDULED, start_date=date(2024, 3, 8)).project

    planned = lifecycle.assign(project, date(2024, 3, 12))

    assert planned.start_date == date(2024, 3, 12)


@pytest.mark.parametrize(
    "status",
    [ProjectStatus.IN_PROGRESS, ProjectStatus.PAUSED, ProjectStatus.COMPLETED, ProjectStatus.CANCELLED],
)
def test_assign_rejects_started_or_finished_projects(status):
    project = make_project(status=status).project
    with pytest.raises(TransitionError):
        lifecycle.assign(project, TODAY)


def test_unassign_returns_project_to_new():
    project = make_project(status=ProjectStatus.SCHEDULED, start_date=date(2024, 3, 8)).project

    result = lifecycle.unassign(project)

    assert result.status is ProjectStatus.NEW
    assert result.start_date is None


def test_unassign_requires_scheduled_project():
    with pytest.raises(TransitionError):
        lifecycle.unassign(make_project(status=ProjectStatus.NEW).project)


def test_date_arrival_compares_calendar_days():
    assert lifecycle.date_arrival_status(date(2024, 3, 4), TODAY) is ProjectStatus.IN_PROGRESS
    assert lifecycle.date_arrival_status(TODAY, TODAY) is ProjectStatus.SCHEDULED
    assert lifecycle.date_arrival_status(date(2024, 3, 10), TODAY) is ProjectStatus.SCHEDULED


def test_date_arrival_fields_use_wire_values():
    assert lifecycle.date_arrival_fields(date(2024, 3, 10), date(2024, 3, 15)) == {
        "state": "Prebieha",
        "start_date": "2024-03-10",
    }
    assert lifecycle.unassign_fields() == {"state": "Nový", "start_date": None}


def test_status_change_to_new_clears_work_dates():
    project = make_project(
        status=ProjectStatus.COMPLETED,
        start_date=date(2024, 2, 1),
        completion_date=date(2024, 2, 3),
    ).project

    fields = lifecycle.status_change_fields(project, ProjectStatus.NEW, TODAY)

    assert fields == {"state": "Nový", "start_date": None, "completion_date": None}


def test_starting_new_project_stamps_start_date():
    project = make_project(status=ProjectStatus.NEW).project

    fields = lifecycle.status_change_fields(project, ProjectStatus.IN_PROGRESS, TODAY)

    assert fields["start_date"] == "2024-03-05"
    assert fields["completion_date"] is None


def test_starting_new_project_keeps_existing_start_date():
    project = make_project(status=ProjectStatus.NEW, start_date=date(2024, 3, 1)).project

    fields = lifecycle.status_change_fields(project, ProjectStatus.PAUSED, TODAY)

    assert fields["start_date"] == "2024-03-01"


def test_reopening_finished_project_clears_completion_date():
    project = make_project(
        status=ProjectStatus.COMPLETED,
        start_date=date(2024, 2, 1),
        completion_date=date(2024, 2, 3),
    ).project

    fields = lifecycle.status_change_fields(project, ProjectStatus.IN_PROGRESS, TODAY)

    assert fields == {"state": "Prebieha", "start_date": "2024-02-01", "completion_date": None}


def test_finishing_project_stamps_completion_date():
    project = make_project(status=ProjectStatus.IN_PROGRESS, start_date=date(2024, 3, 1)).project

    fields = lifecycle.status_change_fields(project, ProjectStatus.CANCELLED, TODAY)

    assert fields == {"state": "Zrušený", "start_date": "2024-03-01", "completion_date": "2024-03-05"}


def test_only_completed_inspection_spawns_successor():
    survey = make_project(type=ProjectType.SURVEY.value, status=ProjectStatus.IN_PROGRESS).project
    done_survey = make_project(type=ProjectType.SURVEY.value, status=ProjectStatus.COMPLETED).project
    install = make_project(type=ProjectType.INSTALLATION.value, status=ProjectStatus.IN_PROGRESS).project

    assert lifecycle.spawns_successor(survey, ProjectStatus.COMPLETED)
    assert not lifecycle.spawns_successor(survey, ProjectStatus.CANCELLED)
    assert not lifecycle.spawns_successor(done_survey, ProjectStatus.COMPLETED)
    assert not lifecycle.spawns_successor(install, ProjectStatus.COMPLETED)


def test_successor_fields_keep_client_and_reset_dates():
    survey = make_project(
        "p2",
        type=ProjectType.SURVEY.value,
        status=ProjectStatus.IN_PROGRESS,
        client_id="c9",
        start_date=date(2024, 3, 1),
    ).project

    fields = lifecycle.successor_fields(survey, ProjectType.CLEANING.value)

    assert fields["client_id"] == "c9"
    assert fields["type"] == "Čistenie"
    assert fields["state"] == "Nový"
    assert fields["start_date"] is None
    assert fields["completion_date"] is None
