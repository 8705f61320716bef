from __future__ import annotations

from fastapi import APIRouter, HTTPException

from fieldjobs.application import Services, get_services
from fieldjobs.core.schema import ProjectStatus
from fieldjobs.domain import PendingAssignments
from fieldjobs.routes.projects import parse_day, serialise_project

router = APIRouter(prefix="/planning/sessions", tags=["planning"])


def _session(services: Services, session_id: str) -> PendingAssignments:
    try:
        return services.planning_session(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="planning session not found") from exc


def _pending_payload(pending: PendingAssignments) -> dict[str, str]:
    return {project_id: day.isoformat() for project_id, day in pending.snapshot().items()}


@router.post("")
async def open_session() -> dict:
    pending = get_services().open_planning_session()
    return {"session_id": pending.session_id}


@router.get("/{session_id}")
async def get_session(session_id: str) -> dict:
    pending = _session(get_services(), session_id)
    return {"session_id": session_id, "pending": _pending_payload(pending)}


@router.post("/{session_id}/assign")
async def assign_project(session_id: str, payload: dict) -> dict:
    services = get_services()
    pending = _session(services, session_id)
    project_id = payload.get("project_id")
    if not project_id:
        raise HTTPException(status_code=400, detail="project_id is required")
    day = parse_day(payload.get("day"))
    if project_id not in services.cache:
        raise HTTPException(status_code=404, detail="project not found")

    if not services.scheduling.assign_to_date(pending, project_id, day):
        raise HTTPException(status_code=400, detail="project cannot be planned")
    return {
        "project": serialise_project(services.cache.get(project_id)),
        "pending": _pending_payload(pending),
    }


@router.post("/{session_id}/unassign")
async def unassign_project(session_id: str, payload: dict) -> dict:
    services = get_services()
    pending = _session(services, session_id)
    project_id = payload.get("project_id")
    if not project_id:
        raise HTTPException(status_code=400, detail="project_id is required")
    item = services.cache.get(project_id)
    if item is None:
        raise HTTPException(status_code=404, detail="project not found")
    if item.project.status != ProjectStatus.SCHEDULED:
        raise HTTPException(status_code=400, detail="project is not planned")

    unassigned = await services.scheduling.unassign(pending, project_id)
    return {"unassigned": unassigned, "pending": _pending_payload(pending)}


@router.delete("/{session_id}")
async def close_session(session_id: str) -> dict:
    services = get_services()
    _session(services, session_id)
    report = await services.close_planning_session(session_id)
    return {"session_id": session_id, **report.as_dict()}
