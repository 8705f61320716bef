from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from fieldjobs.application import get_services
from fieldjobs.domain import LeaseGranted

router = APIRouter(prefix="/projects", tags=["leases"])


@router.post("/{project_id}/lease")
async def acquire_lease(project_id: str, payload: dict) -> dict:
    holder_id = payload.get("holder_id")
    holder_name = payload.get("holder_name")
    if not holder_id or not holder_name:
        raise HTTPException(status_code=400, detail="holder_id and holder_name are required")

    result = await get_services().leases.acquire(project_id, str(holder_id), str(holder_name))
    if not isinstance(result, LeaseGranted):
        raise HTTPException(
            status_code=409,
            detail={"granted": False, "expires_at": None, "locked_by_name": result.holder_name},
        )
    return {
        "granted": True,
        "expires_at": result.expires_at.isoformat() if result.expires_at else None,
        "locked_by_name": holder_name,
    }


@router.put("/{project_id}/lease")
async def renew_lease(project_id: str, payload: dict) -> dict:
    holder_id = payload.get("holder_id")
    if not holder_id:
        raise HTTPException(status_code=400, detail="holder_id is required")
    renewed = await get_services().leases.renew(project_id, str(holder_id))
    return {"renewed": renewed}


@router.delete("/{project_id}/lease")
async def release_lease(project_id: str, holder_id: str = Query(...)) -> dict:
    await get_services().leases.release(project_id, holder_id)
    return {"released": True}


editing_router = APIRouter(prefix="/editing-sessions", tags=["leases"])


@editing_router.post("")
async def open_editing_session(payload: dict) -> dict:
    project_id = payload.get("project_id")
    holder_id = payload.get("holder_id")
    holder_name = payload.get("holder_name")
    if not project_id or not holder_id or not holder_name:
        raise HTTPException(status_code=400, detail="project_id, holder_id and holder_name are required")

    session = await get_services().open_edit_session(str(project_id), str(holder_id), str(holder_name))
    result = session.result
    if not isinstance(result, LeaseGranted):
        raise HTTPException(
            status_code=409,
            detail={"granted": False, "expires_at": None, "locked_by_name": getattr(result, "holder_name", None)},
        )
    return {
        "session_id": session.session_id,
        "granted": True,
        "expires_at": result.expires_at.isoformat() if result.expires_at else None,
    }


@editing_router.get("/{session_id}")
async def get_editing_session(session_id: str) -> dict:
    try:
        session = get_services().edit_session(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="editing session not found") from exc
    return {
        "session_id": session_id,
        "project_id": session.record_id,
        "held": session.held,
        "renew_failures": session.renew_failures,
    }


@editing_router.delete("/{session_id}")
async def close_editing_session(session_id: str) -> dict:
    try:
        await get_services().close_edit_session(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="editing session not found") from exc
    return {"session_id": session_id, "released": True}
