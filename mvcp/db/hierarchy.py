"""Groups, districts and cells.

Entities are keyed by opaque ids; children reference their parent by id
and names are resolved by join at read time, so a rename touches one row.
"""

import logging
from typing import Any

from ..auth.models import Scope
from ..constants import CELL_CATEGORIES, CELL_STATUSES, REGIONS
from ..errors import ConflictError, NotFoundError, ValidationError
from .core import connect, execute, fetch_dicts, fetch_one_dict
from .helpers import _utc_now_iso, new_id, scope_clause

logger = logging.getLogger(__name__)

_DISTRICT_SELECT = """
    SELECT d.district_id, d.name, d.group_id, g.name AS group_name, g.region
    FROM districts d
    JOIN cell_groups g ON g.group_id = d.group_id
"""

_CELL_SELECT = """
    SELECT c.cell_id, c.cell_name, c.cell_category, c.leader_name, c.leader_contact,
           c.status, c.district_id, d.name AS district, d.group_id, g.name AS "group", g.region
    FROM cells c
    JOIN districts d ON d.district_id = c.district_id
    JOIN cell_groups g ON g.group_id = d.group_id
"""


def _check_region(region: str) -> None:
    if region not in REGIONS:
        raise ValidationError(f"Unknown region: {region!r}")


def _require_name(name: str, what: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError(f"{what} name is required")
    return name


# --- Groups ---


def list_groups(region: str | None = None) -> list[dict[str, Any]]:
    """Groups, optionally for one region, sorted by region then name."""
    con = connect()
    try:
        query = "SELECT group_id, region, name FROM cell_groups"
        params: dict[str, Any] = {}
        if region:
            query += " WHERE region = :region"
            params["region"] = region
        query += " ORDER BY region, name"
        return fetch_dicts(execute(con, query, params))
    finally:
        con.close()


def get_group(group_id: str) -> dict[str, Any] | None:
    con = connect()
    try:
        cur = execute(
            con,
            "SELECT group_id, region, name FROM cell_groups WHERE group_id = :group_id",
            {"group_id": group_id},
        )
        return fetch_one_dict(cur)
    finally:
        con.close()


def _group_name_taken(con, region: str, name: str, exclude_id: str | None = None) -> bool:
    cur = execute(
        con,
        """SELECT 1 FROM cell_groups
           WHERE region = :region AND lower(name) = lower(:name)
             AND (:exclude_id IS NULL OR group_id != :exclude_id)""",
        {"region": region, "name": name, "exclude_id": exclude_id},
    )
    return cur.fetchone() is not None


def add_group(region: str, name: str) -> dict[str, Any]:
    """Create a group. Names are unique per region, case-insensitively."""
    _check_region(region)
    name = _require_name(name, "Group")

    con = connect()
    try:
        if _group_name_taken(con, region, name):
            raise ConflictError(f"A group named {name!r} already exists in {region}")
        group_id = new_id("grp")
        execute(
            con,
            """INSERT INTO cell_groups (group_id, region, name, created_at)
               VALUES (:group_id, :region, :name, :created_at)""",
            {"group_id": group_id, "region": region, "name": name, "created_at": _utc_now_iso()},
        )
        con.commit()
        logger.info("Created group %s (%s / %s)", group_id, region, name)
        return {"group_id": group_id, "region": region, "name": name}
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()


def update_group(group_id: str, region: str, name: str) -> dict[str, Any]:
    """Rename or move a group.

    Districts, cells, reports and pastors follow automatically since they
    hold the group id.
    """
    _check_region(region)
    name = _require_name(name, "Group")

    con = connect()
    try:
        cur = execute(
            con,
            "SELECT region, name FROM cell_groups WHERE group_id = :group_id",
            {"group_id": group_id},
        )
        if cur.fetchone() is None:
            raise NotFoundError(f"Group {group_id} not found")
        if _group_name_taken(con, region, name, exclude_id=group_id):
            raise ConflictError(f"A group named {name!r} already exists in {region}")

        execute(
            con,
            "UPDATE cell_groups SET region = :region, name = :name WHERE group_id = :group_id",
            {"group_id": group_id, "region": region, "name": name},
        )
        # Pastors store their region directly; keep it aligned with the group
        execute(
            con,
            "UPDATE users SET region = :region WHERE group_id = :group_id",
            {"group_id": group_id, "region": region},
        )
        con.commit()
        logger.info("Updated group %s -> %s / %s", group_id, region, name)
        return {"group_id": group_id, "region": region, "name": name}
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()


def delete_group(group_id: str) -> None:
    """Delete an empty group. Missing groups are ignored."""
    con = connect()
    try:
        cur = execute(
            con,
            "SELECT 1 FROM districts WHERE group_id = :group_id LIMIT 1",
            {"group_id": group_id},
        )
        if cur.fetchone() is not None:
            raise ConflictError("Cannot delete a group that still contains districts")
        execute(con, "DELETE FROM cell_groups WHERE group_id = :group_id", {"group_id": group_id})
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()


# --- Districts ---


def list_districts(group_id: str | None = None) -> list[dict[str, Any]]:
    """Districts with resolved group name and region, sorted region/group/name."""
    con = connect()
    try:
        query = _DISTRICT_SELECT
        params: dict[str, Any] = {}
        if group_id:
            query += " WHERE d.group_id = :group_id"
            params["group_id"] = group_id
        query += " ORDER BY g.region, g.name, d.name"
        return fetch_dicts(execute(con, query, params))
    finally:
        con.close()


def get_district(district_id: str) -> dict[str, Any] | None:
    con = connect()
    try:
        cur = execute(con, _DISTRICT_SELECT + " WHERE d.district_id = :district_id", {"district_id": district_id})
        return fetch_one_dict(cur)
    finally:
        con.close()


def _require_group(con, group_id: str) -> None:
    cur = execute(con, "SELECT 1 FROM cell_groups WHERE group_id = :group_id", {"group_id": group_id})
    if cur.fetchone() is None:
        raise NotFoundError(f"Group {group_id} not found")


def add_district(group_id: str, name: str) -> dict[str, Any]:
    name = _require_name(name, "District")
    con = connect()
    try:
        _require_group(con, group_id)
        district_id = new_id("dist")
        execute(
            con,
            """INSERT INTO districts (district_id, group_id, name, created_at)
               VALUES (:district_id, :group_id, :name, :created_at)""",
            {"district_id": district_id, "group_id": group_id, "name": name, "created_at": _utc_now_iso()},
        )
        con.commit()
        logger.info("Created district %s in group %s", district_id, group_id)
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
    return get_district(district_id)


def update_district(district_id: str, group_id: str, name: str) -> dict[str, Any]:
    name = _require_name(name, "District")
    con = connect()
    try:
        _require_group(con, group_id)
        cur = execute(
            con,
            "UPDATE districts SET group_id = :group_id, name = :name WHERE district_id = :district_id",
            {"district_id": district_id, "group_id": group_id, "name": name},
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"District {district_id} not found")
        # Pastors attached to the district follow it to its new group
        execute(
            con,
            """UPDATE users SET group_id = :group_id,
                   region = (SELECT region FROM cell_groups WHERE group_id = :group_id)
               WHERE district_id = :district_id""",
            {"district_id": district_id, "group_id": group_id},
        )
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
    return get_district(district_id)


def delete_district(district_id: str) -> None:
    """Delete a district with no cells and no reports. Missing districts are ignored."""
    con = connect()
    try:
        cur = execute(
            con,
            "SELECT 1 FROM cells WHERE district_id = :district_id LIMIT 1",
            {"district_id": district_id},
        )
        if cur.fetchone() is not None:
            raise ConflictError("Cannot delete a district that still contains cells")
        cur = execute(
            con,
            "SELECT 1 FROM reports WHERE district_id = :district_id LIMIT 1",
            {"district_id": district_id},
        )
        if cur.fetchone() is not None:
            raise ConflictError("Cannot delete a district that has submitted reports")
        execute(con, "DELETE FROM districts WHERE district_id = :district_id", {"district_id": district_id})
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()


# --- Cells ---


def _validate_cell(data: dict[str, Any]) -> dict[str, Any]:
    cell = {
        "district_id": data.get("district_id"),
        "cell_name": _require_name(data.get("cell_name", ""), "Cell"),
        "cell_category": data.get("cell_category"),
        "leader_name": _require_name(data.get("leader_name", ""), "Leader"),
        "leader_contact": data.get("leader_contact"),
        "status": data.get("status") or "Active",
    }
    if cell["cell_category"] not in CELL_CATEGORIES:
        raise ValidationError(f"Unknown cell category: {cell['cell_category']!r}")
    if cell["status"] not in CELL_STATUSES:
        raise ValidationError(f"Unknown cell status: {cell['status']!r}")
    return cell


def list_cells(scope=None) -> list[dict[str, Any]]:
    """Cells visible within a pastor's scope (all cells when scope is None)."""
    clause, params = scope_clause(scope, "g.region", "d.group_id", "c.district_id")
    con = connect()
    try:
        query = _CELL_SELECT + " WHERE 1=1" + clause + " ORDER BY g.region, g.name, d.name, c.cell_name"
        return fetch_dicts(execute(con, query, params))
    finally:
        con.close()


def get_cell(cell_id: str) -> dict[str, Any] | None:
    con = connect()
    try:
        return fetch_one_dict(execute(con, _CELL_SELECT + " WHERE c.cell_id = :cell_id", {"cell_id": cell_id}))
    finally:
        con.close()


def _require_district(con, district_id: str | None) -> None:
    cur = execute(con, "SELECT 1 FROM districts WHERE district_id = :district_id", {"district_id": district_id})
    if cur.fetchone() is None:
        raise NotFoundError(f"District {district_id} not found")


def add_cell(data: dict[str, Any]) -> dict[str, Any]:
    cell = _validate_cell(data)
    con = connect()
    try:
        _require_district(con, cell["district_id"])
        cell_id = new_id("cell")
        execute(
            con,
            """INSERT INTO cells (cell_id, district_id, cell_name, cell_category,
                                  leader_name, leader_contact, status, created_at)
               VALUES (:cell_id, :district_id, :cell_name, :cell_category,
                       :leader_name, :leader_contact, :status, :created_at)""",
            {**cell, "cell_id": cell_id, "created_at": _utc_now_iso()},
        )
        con.commit()
        logger.info("Created cell %s (%s)", cell_id, cell["cell_name"])
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
    return get_cell(cell_id)


def update_cell(cell_id: str, data: dict[str, Any]) -> dict[str, Any]:
    cell = _validate_cell(data)
    con = connect()
    try:
        _require_district(con, cell["district_id"])
        cur = execute(
            con,
            """UPDATE cells SET district_id = :district_id, cell_name = :cell_name,
                   cell_category = :cell_category, leader_name = :leader_name,
                   leader_contact = :leader_contact, status = :status
               WHERE cell_id = :cell_id""",
            {**cell, "cell_id": cell_id},
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"Cell {cell_id} not found")
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()
    return get_cell(cell_id)


def delete_cell(cell_id: str) -> None:
    """Delete a cell. Its past reports keep the cell name they were filed under."""
    con = connect()
    try:
        execute(con, "DELETE FROM cells WHERE cell_id = :cell_id", {"cell_id": cell_id})
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()


# --- Tree ---


def get_hierarchy_tree(scope=None) -> list[dict[str, Any]]:
    """Region > group > district > cells tree within a pastor's scope.

    Every region in scope appears, in the fixed region order, even when it
    has no groups yet; empty groups and districts are kept too.
    """
    con = connect()
    try:
        # A district scope also carries its group, so region and group are enough here
        group_scope = None if scope is None else Scope(region=scope.region, group_id=scope.group_id)
        group_clause, group_params = scope_clause(group_scope, "g.region", "g.group_id", "g.group_id")
        groups = fetch_dicts(
            execute(
                con,
                "SELECT g.group_id, g.region, g.name FROM cell_groups g WHERE 1=1" + group_clause + " ORDER BY g.name",
                group_params,
            )
        )
        district_clause, district_params = scope_clause(scope, "g.region", "d.group_id", "d.district_id")
        districts = fetch_dicts(
            execute(con, _DISTRICT_SELECT + " WHERE 1=1" + district_clause + " ORDER BY d.name", district_params)
        )
        cell_clause, cell_params = scope_clause(scope, "g.region", "d.group_id", "c.district_id")
        cells = fetch_dicts(
            execute(con, _CELL_SELECT + " WHERE 1=1" + cell_clause + " ORDER BY c.cell_name", cell_params)
        )
    finally:
        con.close()

    cells_by_district: dict[str, list[dict[str, Any]]] = {}
    for cell in cells:
        cells_by_district.setdefault(cell["district_id"], []).append(cell)

    districts_by_group: dict[str, list[dict[str, Any]]] = {}
    for district in districts:
        districts_by_group.setdefault(district["group_id"], []).append(
            {
                "district_id": district["district_id"],
                "name": district["name"],
                "cells": cells_by_district.get(district["district_id"], []),
            }
        )

    groups_by_region: dict[str, list[dict[str, Any]]] = {}
    for group in groups:
        groups_by_region.setdefault(group["region"], []).append(
            {
                "group_id": group["group_id"],
                "name": group["name"],
                "districts": districts_by_group.get(group["group_id"], []),
            }
        )

    regions = REGIONS if scope is None or scope.region is None else [scope.region]
    return [{"region": region, "groups": groups_by_region.get(region, [])} for region in regions]
