"""Event announcements."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from ..config import get_event_retention_days
from ..errors import NotFoundError, ValidationError
from .core import connect, execute, fetch_dicts, fetch_one_dict
from .helpers import new_id

logger = logging.getLogger(__name__)

EVENT_STATUSES = ("draft", "published")

_EVENT_SELECT = """
    SELECT event_id, title, description, event_date, location, image_url, status
    FROM events
"""


def _parse_event_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(f"event_date must be ISO 8601, got {value!r}") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _validate_event(data: dict[str, Any]) -> dict[str, Any]:
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("Event title is required")
    status = data.get("status") or "draft"
    if status not in EVENT_STATUSES:
        raise ValidationError(f"Unknown event status: {status!r}")
    return {
        "title": title,
        "description": data.get("description") or "",
        "event_date": _parse_event_date(data.get("event_date")).isoformat(),
        "location": data.get("location") or "",
        "image_url": data.get("image_url"),
        "status": status,
    }


def _sorted_by_date(events: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(events, key=lambda e: _parse_event_date(e["event_date"]))


def list_events(now: datetime | None = None) -> list[dict[str, Any]]:
    """Drafts plus published events not older than the retention period.

    Published events past retention are deleted as a side effect.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = timedelta(days=get_event_retention_days())

    con = connect()
    try:
        events = fetch_dicts(execute(con, _EVENT_SELECT))
        expired = [
            e["event_id"]
            for e in events
            if e["status"] != "draft" and now - _parse_event_date(e["event_date"]) > cutoff
        ]
        if expired:
            for event_id in expired:
                execute(con, "DELETE FROM events WHERE event_id = :event_id", {"event_id": event_id})
            con.commit()
            logger.info("Pruned %d expired events", len(expired))
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()

    return _sorted_by_date([e for e in events if e["event_id"] not in expired])


def list_public_events(now: datetime | None = None) -> list[dict[str, Any]]:
    """Published events still visible: an event stays up for the whole day it starts."""
    now = now or datetime.now(timezone.utc)
    con = connect()
    try:
        events = fetch_dicts(execute(con, _EVENT_SELECT + " WHERE status = 'published'"))
    finally:
        con.close()
    visible = [e for e in events if now < _parse_event_date(e["event_date"]) + timedelta(days=1)]
    return _sorted_by_date(visible)


def get_event(event_id: str) -> dict[str, Any] | None:
    con = connect()
    try:
        return fetch_one_dict(execute(con, _EVENT_SELECT + " WHERE event_id = :event_id", {"event_id": event_id}))
    finally:
        con.close()


def add_event(data: dict[str, Any]) -> dict[str, Any]:
    event = _validate_event(data)
    event["event_id"] = new_id("evt")
    con = connect()
    try:
        execute(
            con,
            """INSERT INTO events (event_id, title, description, event_date, location, image_url, status)
               VALUES (:event_id, :title, :description, :event_date, :location, :image_url, :status)""",
            event,
        )
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
    return event


def update_event(event_id: str, data: dict[str, Any]) -> dict[str, Any]:
    event = _validate_event(data)
    event["event_id"] = event_id
    con = connect()
    try:
        cur = execute(
            con,
            """UPDATE events SET title = :title, description = :description, event_date = :event_date,
                   location = :location, image_url = :image_url, status = :status
               WHERE event_id = :event_id""",
            event,
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"Event {event_id} not found")
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
    return event


def delete_event(event_id: str) -> None:
    con = connect()
    try:
        execute(con, "DELETE FROM events WHERE event_id = :event_id", {"event_id": event_id})
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
