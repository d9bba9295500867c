"""Shared documents (resources) stored as base64 blobs."""

import base64
import binascii
import logging
from typing import Any

from ..config import get_max_resource_bytes
from ..errors import ValidationError
from .core import connect, execute, fetch_dicts, fetch_one_dict
from .helpers import _utc_now_iso, new_id

logger = logging.getLogger(__name__)


def list_resources() -> list[dict[str, Any]]:
    """Resource metadata, newest upload first. Content is not included."""
    con = connect()
    try:
        cur = execute(
            con,
            "SELECT resource_id, name, content_type, size, uploaded_at FROM resources ORDER BY uploaded_at DESC",
        )
        return fetch_dicts(cur)
    finally:
        con.close()


def get_resource(resource_id: str) -> dict[str, Any] | None:
    """Resource including its base64 content."""
    con = connect()
    try:
        cur = execute(
            con,
            """SELECT resource_id, name, content_type, size, data_b64, uploaded_at
               FROM resources WHERE resource_id = :resource_id""",
            {"resource_id": resource_id},
        )
        return fetch_one_dict(cur)
    finally:
        con.close()


def add_resource(name: str, content_type: str, data_b64: str) -> dict[str, Any]:
    """Store a document. The payload must be valid base64 within the size limit."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Resource name is required")
    try:
        raw = base64.b64decode(data_b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Resource content must be base64 encoded") from exc

    limit = get_max_resource_bytes()
    if len(raw) > limit:
        raise ValidationError(f"Resource exceeds the {limit} byte limit")

    resource = {
        "resource_id": new_id("res"),
        "name": name,
        "content_type": content_type or "application/octet-stream",
        "size": len(raw),
        "uploaded_at": _utc_now_iso(),
    }
    con = connect()
    try:
        execute(
            con,
            """INSERT INTO resources (resource_id, name, content_type, size, data_b64, uploaded_at)
               VALUES (:resource_id, :name, :content_type, :size, :data_b64, :uploaded_at)""",
            {**resource, "data_b64": data_b64},
        )
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
    logger.info("Stored resource %s (%d bytes)", resource["resource_id"], resource["size"])
    return resource


def delete_resource(resource_id: str) -> None:
    con = connect()
    try:
        execute(con, "DELETE FROM resources WHERE resource_id = :resource_id", {"resource_id": resource_id})
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
