from __future__ import annotations

from fastapi import APIRouter, Query

from fieldjobs.application import get_services

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(screen: str | None = Query(default=None)) -> dict:
    items = get_services().notifications.active(screen)
    return {"items": [item.as_dict() for item in items]}


@router.delete("/{notification_id}")
async def dismiss_notification(notification_id: str) -> dict:
    get_services().notifications.remove(notification_id)
    return {"removed": notification_id}
