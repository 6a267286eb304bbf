from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from jobchat.api.deps import get_core
from jobchat.core import ClientCore
from jobchat.schemas.notification import NavigationTarget, RouteResponse
from jobchat.services.inbox import unread_notification_count
from jobchat.services.notification_dispatcher import route

router = APIRouter()


def route_response(target: NavigationTarget) -> RouteResponse:
    return RouteResponse(kind=target.kind, target_id=target.target_id, path=target.path)


@router.post("/route", response_model=RouteResponse)
async def route_payload(payload: Any = Body(default=None)):
    """Resolve where a push payload leads, without side effects."""
    return route_response(route(payload))


@router.post("/open", response_model=RouteResponse)
async def open_notification(payload: Any = Body(default=None), core: ClientCore = Depends(get_core)):
    """Handle a notification tap: mark it read if needed and navigate."""
    target = await core.notifications.handle_tap(payload)
    return route_response(target)


@router.get("/unread-count")
async def unread_count(core: ClientCore = Depends(get_core)):
    return {"unread_count": await unread_notification_count(core.api)}


@router.post("/read-all")
async def mark_all_read(core: ClientCore = Depends(get_core)):
    res = await core.api.mark_all_notifications_as_read()
    if not res.success:
        raise HTTPException(status_code=502, detail=res.error)
    return {"message": res.message or "All notifications marked as read"}
