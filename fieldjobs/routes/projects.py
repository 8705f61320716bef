from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from fieldjobs.application import get_services
from fieldjobs.core.queries import ALL, ProjectFilters
from fieldjobs.core.schema import ProjectStatus, ProjectWithRelations

router = APIRouter(prefix="/projects", tags=["projects"])


def serialise_project(item: ProjectWithRelations) -> dict[str, Any]:
    row = item.project.to_row()
    row["client"] = item.client.model_dump(mode="json", by_alias=True)
    row["users"] = [user.model_dump(mode="json") for user in item.users]
    row["objects"] = [obj.model_dump(mode="json", by_alias=True) for obj in item.objects]
    return row


def parse_status(value: object) -> ProjectStatus:
    try:
        return ProjectStatus(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"unknown status: {value}") from exc


def parse_day(value: object, name: str = "day") -> date:
    if not value:
        raise HTTPException(status_code=400, detail=f"{name} is required")
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"{name} must be YYYY-MM-DD") from exc


@router.get("")
async def list_projects(
    status: str | None = Query(default=None),
    query: str = Query(default=ALL),
    force: bool = Query(default=False),
) -> dict:
    services = get_services()
    project_query = services.queries.get(query)
    if project_query is None:
        raise HTTPException(status_code=400, detail=f"unknown query: {query}")
    items = await services.cache.bulk_fetch(project_query, force=force)
    if status:
        wanted = parse_status(status)
        items = [item for item in items if item.project.status == wanted]
    return {"items": [serialise_project(item) for item in items]}


@router.post("/search")
async def search_projects(payload: dict) -> dict:
    filters = ProjectFilters(
        types=list(payload.get("types") or []),
        statuses=list(payload.get("statuses") or []),
        users=list(payload.get("users") or []),
        cities=list(payload.get("cities") or []),
        date_from=parse_day(payload["date_from"], "date_from") if payload.get("date_from") else None,
        date_to=parse_day(payload["date_to"], "date_to") if payload.get("date_to") else None,
        search_query=str(payload.get("search_query") or ""),
    )
    items = get_services().cache.filtered(filters)
    return {"items": [serialise_project(item) for item in items]}


@router.post("/sync")
async def sync_projects(payload: dict) -> dict:
    name = payload.get("query") or ALL
    services = get_services()
    project_query = services.queries.get(name)
    if project_query is None:
        raise HTTPException(status_code=400, detail=f"unknown query: {name}")
    changed = await services.cache.sync(project_query)
    return {"query": name, "changed": changed}


@router.get("/assigned")
async def list_assigned(day: str = Query(...)) -> dict:
    items = get_services().cache.assigned_on(parse_day(day))
    return {"items": [serialise_project(item) for item in items]}


@router.get("/unassigned")
async def list_unassigned(until: str | None = Query(default=None)) -> dict:
    cache = get_services().cache
    items = cache.scheduled_before(parse_day(until, "until")) if until else cache.unassigned()
    return {"items": [serialise_project(item) for item in items]}


@router.get("/cities")
async def list_cities() -> dict:
    return {"items": get_services().cache.cities()}


@router.get("/{project_id}")
async def get_project(project_id: str) -> dict:
    item = get_services().cache.get(project_id)
    if item is None:
        raise HTTPException(status_code=404, detail="project not found")
    return serialise_project(item)


@router.post("/{project_id}/status")
async def change_project_status(project_id: str, payload: dict) -> dict:
    if not payload.get("status"):
        raise HTTPException(status_code=400, detail="status is required")
    new_status = parse_status(payload["status"])
    services = get_services()
    if project_id not in services.cache:
        raise HTTPException(status_code=404, detail="project not found")
    result = await services.lifecycle.change_status(
        project_id,
        new_status,
        successor_type=payload.get("successor_type") or None,
    )
    return result.as_dict()


@router.delete("/{project_id}")
async def delete_project(project_id: str) -> dict:
    services = get_services()
    if project_id not in services.cache:
        raise HTTPException(status_code=404, detail="project not found")
    deleted = await services.lifecycle.delete_project(project_id)
    return {"project_id": project_id, "deleted": deleted}
