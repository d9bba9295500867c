"""Event announcement endpoints, including the public listing."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..auth.models import AuthContext
from ..auth.rbac import Permission, PermissionChecker
from ..db import events as event_store
from ..errors import MVCPError
from ._helpers import http_error

router = APIRouter(tags=["Events"])

_manage_events = PermissionChecker(Permission.MANAGE_EVENTS)


class EventData(BaseModel):
    title: str
    description: str = ""
    event_date: datetime
    location: str = ""
    image_url: Optional[str] = None
    status: str = "draft"


@router.get("/api/public/events")
async def public_events():
    """Published events whose day has not passed. No authentication."""
    return event_store.list_public_events()


@router.get("/api/events")
async def list_events(_: AuthContext = Depends(_manage_events)):
    """All events for management; published events past retention are pruned."""
    return event_store.list_events()


@router.post("/api/events")
async def add_event(body: EventData, _: AuthContext = Depends(_manage_events)):
    try:
        return event_store.add_event(body.model_dump())
    except MVCPError as e:
        raise http_error(e)


@router.put("/api/events/{event_id}")
async def update_event(event_id: str, body: EventData, _: AuthContext = Depends(_manage_events)):
    try:
        return event_store.update_event(event_id, body.model_dump())
    except MVCPError as e:
        raise http_error(e)


@router.delete("/api/events/{event_id}")
async def delete_event(event_id: str, _: AuthContext = Depends(_manage_events)):
    event_store.delete_event(event_id)
    return {"status": "deleted", "event_id": event_id}
