"""Region, group, district and cell endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..auth.models import AuthContext
from ..auth.rbac import Permission, PermissionChecker, scope_for
from ..constants import CELL_CATEGORIES, CELL_STATUSES, REGIONS
from ..db import hierarchy
from ..errors import MVCPError
from ._helpers import ensure_in_scope, http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/hierarchy", tags=["Hierarchy"])

_read_cells = PermissionChecker(Permission.READ_CELLS)
_manage_hierarchy = PermissionChecker(Permission.MANAGE_HIERARCHY)
_manage_cells = PermissionChecker(Permission.MANAGE_CELLS)


# --- Pydantic Models ---

class GroupData(BaseModel):
    region: str
    name: str


class DistrictData(BaseModel):
    group_id: str
    name: str


class CellData(BaseModel):
    district_id: str
    cell_name: str
    cell_category: str
    leader_name: str
    leader_contact: Optional[str] = None
    status: str = "Active"


# --- Reference lists ---

@router.get("/regions")
async def get_regions(_: AuthContext = Depends(_read_cells)):
    return {"regions": REGIONS, "cell_categories": CELL_CATEGORIES, "cell_statuses": CELL_STATUSES}


# --- Groups ---

@router.get("/groups")
async def list_groups(
    region: Optional[str] = Query(default=None),
    _: AuthContext = Depends(_read_cells),
):
    return hierarchy.list_groups(region)


@router.post("/groups")
async def add_group(body: GroupData, _: AuthContext = Depends(_manage_hierarchy)):
    try:
        return hierarchy.add_group(body.region, body.name)
    except MVCPError as e:
        raise http_error(e)


@router.put("/groups/{group_id}")
async def update_group(group_id: str, body: GroupData, _: AuthContext = Depends(_manage_hierarchy)):
    try:
        return hierarchy.update_group(group_id, body.region, body.name)
    except MVCPError as e:
        raise http_error(e)


@router.delete("/groups/{group_id}")
async def delete_group(group_id: str, _: AuthContext = Depends(_manage_hierarchy)):
    try:
        hierarchy.delete_group(group_id)
    except MVCPError as e:
        raise http_error(e)
    return {"status": "deleted", "group_id": group_id}


# --- Districts ---

@router.get("/districts")
async def list_districts(
    group_id: Optional[str] = Query(default=None),
    _: AuthContext = Depends(_read_cells),
):
    return hierarchy.list_districts(group_id)


@router.post("/districts")
async def add_district(body: DistrictData, _: AuthContext = Depends(_manage_hierarchy)):
    try:
        return hierarchy.add_district(body.group_id, body.name)
    except MVCPError as e:
        raise http_error(e)


@router.put("/districts/{district_id}")
async def update_district(district_id: str, body: DistrictData, _: AuthContext = Depends(_manage_hierarchy)):
    try:
        return hierarchy.update_district(district_id, body.group_id, body.name)
    except MVCPError as e:
        raise http_error(e)


@router.delete("/districts/{district_id}")
async def delete_district(district_id: str, _: AuthContext = Depends(_manage_hierarchy)):
    try:
        hierarchy.delete_district(district_id)
    except MVCPError as e:
        raise http_error(e)
    return {"status": "deleted", "district_id": district_id}


# --- Tree ---

@router.get("/tree")
async def get_tree(user: AuthContext = Depends(_read_cells)):
    """Region > group > district > cells tree within the caller's scope."""
    return hierarchy.get_hierarchy_tree(scope_for(user))


# --- Cells ---

@router.get("/cells")
async def list_cells(user: AuthContext = Depends(_read_cells)):
    """Cells within the caller's scope."""
    return hierarchy.list_cells(scope_for(user))


@router.post("/cells")
async def add_cell(body: CellData, user: AuthContext = Depends(_manage_cells)):
    ensure_in_scope(user, hierarchy.get_district(body.district_id), "District")
    try:
        return hierarchy.add_cell(body.model_dump())
    except MVCPError as e:
        raise http_error(e)


@router.put("/cells/{cell_id}")
async def update_cell(cell_id: str, body: CellData, user: AuthContext = Depends(_manage_cells)):
    ensure_in_scope(user, hierarchy.get_cell(cell_id), "Cell")
    ensure_in_scope(user, hierarchy.get_district(body.district_id), "District")
    try:
        return hierarchy.update_cell(cell_id, body.model_dump())
    except MVCPError as e:
        raise http_error(e)


@router.delete("/cells/{cell_id}")
async def delete_cell(cell_id: str, user: AuthContext = Depends(_manage_cells)):
    ensure_in_scope(user, hierarchy.get_cell(cell_id), "Cell")
    hierarchy.delete_cell(cell_id)
    return {"status": "deleted", "cell_id": cell_id}
