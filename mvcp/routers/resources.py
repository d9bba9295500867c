"""Shared document endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..auth.models import AuthContext
from ..auth.rbac import Permission, PermissionChecker
from ..db import resources as resource_store
from ..errors import MVCPError
from ._helpers import http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/resources", tags=["Resources"])


class ResourceUpload(BaseModel):
    name: str
    content_type: str = "application/octet-stream"
    data_b64: str


@router.get("")
async def list_resources(_: AuthContext = Depends(PermissionChecker(Permission.READ_RESOURCES))):
    """Document metadata, newest upload first."""
    return resource_store.list_resources()


@router.get("/{resource_id}")
async def get_resource(resource_id: str, _: AuthContext = Depends(PermissionChecker(Permission.READ_RESOURCES))):
    """Document including its base64 content."""
    resource = resource_store.get_resource(resource_id)
    if resource is None:
        raise HTTPException(status_code=404, detail="Resource not found")
    return resource


@router.post("")
async def upload_resource(
    body: ResourceUpload,
    _: AuthContext = Depends(PermissionChecker(Permission.MANAGE_RESOURCES)),
):
    try:
        return resource_store.add_resource(body.name, body.content_type, body.data_b64)
    except MVCPError as e:
        raise http_error(e)


@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: str,
    _: AuthContext = Depends(PermissionChecker(Permission.MANAGE_RESOURCES)),
):
    resource_store.delete_resource(resource_id)
    return {"status": "deleted", "resource_id": resource_id}
