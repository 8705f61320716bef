from __future__ import annotations

import asyncio
from datetime import date

from conftest import make_project, seed
from fieldjobs.application import EntryState
from fieldjobs.core.schema import ProjectStatus
from fieldjobs.domain import PendingAssignments


def test_assign_is_local_until_flush(services, clock):
    clock.set_today(date(2024, 3, 5))
    seed(services, make_project("p1", status=ProjectStatus.NEW))
    pending = PendingAssignments()

    assert services.scheduling.assign_to_date(pending, "p1", date(2024, 3, 10))

    cached = services.cache.get("p1").project
    assert cached.status is ProjectStatus.SCHEDULED
    assert cached.start_date == date(2024, 3, 10)
    assert services.cache.entry("p1").state is EntryState.PENDING_LOCAL
    assert services.backend.calls_for("update_record_status") == []
    assert pending.get("p1") == date(2024, 3, 10)

    report = asyncio.run(services.scheduling.flush(pending))

    stored = services.backend.project("p1")
    assert stored.status is ProjectStatus.SCHEDULED
    assert stored.start_date == date(2024, 3, 10)
    assert report.updated == {"p1": ProjectStatus.SCHEDULED}
    assert services.cache.entry("p1").state is EntryState.CONFIRMED
    assert len(pending) == 0


def test_flush_of_past_day_starts_the_project(services, clock):
    clock.set_today(date(2024, 3, 15))
    seed(services, make_project("p1", status=ProjectStatus.NEW))
    pending = PendingAssignments()
    services.scheduling.assign_to_date(pending, "p1", date(2024, 3, 10))

    report = asyncio.run(services.scheduling.flush(pending))

    stored = services.backend.project("p1")
    assert stored.status is ProjectStatus.IN_PROGRESS
    assert stored.start_date == date(2024, 3, 10)
    assert report.updated == {"p1": ProjectStatus.IN_PROGRESS}
    assert services.cache.get("p1").project.status is ProjectStatus.IN_PROGRESS
    assert services.notifications.messages("success") == ["Projekt bol úspešne aktualizovaný"]


def test_unassign_discards_pending_entry(services):
    seed(services, make_project("p1", status=ProjectStatus.SCHEDULED, start_date=date(2024, 3, 8)))
    pending = PendingAssignments()
    services.scheduling.assign_to_date(pending, "p1", date(2024, 3, 12))

    assert asyncio.run(services.scheduling.unassign(pending, "p1"))

    stored = services.backend.project("p1")
    assert stored.status is ProjectStatus.NEW
    assert stored.start_date is None
    assert "p1" not in pending
    assert services.cache.get("p1").project.status is ProjectStatus.NEW
    assert services.cache.entry("p1").state is EntryState.CONFIRMED

    report = asyncio.run(services.scheduling.flush(pending))
    assert report.updated == {}
    assert services.backend.calls_for("update_record_status") == ["p1"]


def test_failed_unassign_keeps_pending_entry(services):
    seed(services, make_project("p1", status=ProjectStatus.NEW))
    pending = PendingAssignments()
    services.scheduling.assign_to_date(pending, "p1", date(2024, 3, 12))
    services.backend.fail_next("update_record_status")

    assert not asyncio.run(services.scheduling.unassign(pending, "p1"))

    assert pending.get("p1") == date(2024, 3, 12)
    assert services.cache.get("p1").project.status is ProjectStatus.SCHEDULED
    assert services.notifications.messages("error") == ["Nepodarilo sa zrušiť naplánovanie projektu"]


def test_unassign_requires_planned_project(services):
    seed(services, make_project("p1", status=ProjectStatus.IN_PROGRESS))

    assert not asyncio.run(services.scheduling.unassign(PendingAssignments(), "p1"))
    assert services.backend.calls_for("update_record_status") == []


def test_assign_rejects_illegal_status(services):
    seed(services, make_project("p1", status=ProjectStatus.COMPLETED))
    pending = PendingAssignments()

    assert not services.scheduling.assign_to_date(pending, "p1", date(2024, 3, 10))

    assert len(pending) == 0
    assert services.cache.entry("p1").state is EntryState.CONFIRMED
    assert services.notifications.messages("error") == ["Projekt sa nepodarilo naplánovať"]


def test_assign_unknown_project(services):
    pending = PendingAssignments()

    assert not services.scheduling.assign_to_date(pending, "missing", date(2024, 3, 10))
    assert len(pending) == 0


def test_failed_flush_rolls_back_only_that_project(services):
    seed(
        services,
        make_project("p1", status=ProjectStatus.NEW),
        make_project("p2", status=ProjectStatus.NEW),
    )
    pending = PendingAssignments()
    services.scheduling.assign_to_date(pending, "p1", date(2024, 3, 10))
    services.scheduling.assign_to_date(pending, "p2", date(2024, 3, 11))
    services.backend.fail_next("update_record_status")

    report = asyncio.run(services.scheduling.flush(pending))

    assert list(report.failed) == ["p1"]
    assert report.updated == {"p2": ProjectStatus.SCHEDULED}
    assert not report.ok
    assert services.cache.get("p1").project.status is ProjectStatus.NEW
    assert services.cache.get("p1").project.start_date is None
    assert services.cache.entry("p1").state is EntryState.CONFIRMED
    assert services.backend.project("p2").start_date == date(2024, 3, 11)
    assert len(pending) == 0


def test_flush_skips_projects_no_longer_cached(services):
    seed(services, make_project("p1", status=ProjectStatus.NEW))
    pending = PendingAssignments()
    services.scheduling.assign_to_date(pending, "p1", date(2024, 3, 10))
    services.cache.remove("p1")

    report = asyncio.run(services.scheduling.flush(pending))

    assert report.skipped == ["p1"]
    assert services.backend.calls_for("update_record_status") == []
    assert len(pending) == 0


def test_planning_session_close_flushes(services):
    seed(services, make_project("p1", status=ProjectStatus.NEW))
    pending = services.open_planning_session()
    services.scheduling.assign_to_date(pending, "p1", date(2024, 3, 10))

    report = asyncio.run(services.close_planning_session(pending.session_id))

    assert report.updated == {"p1": ProjectStatus.SCHEDULED}
    assert report.as_dict()["updated"] == {"p1": "Naplánovaný"}
    assert services.backend.project("p1").status is ProjectStatus.SCHEDULED
