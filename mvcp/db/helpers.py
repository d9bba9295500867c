"""Shared helper functions for the db package."""

import uuid
from datetime import UTC, datetime


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def new_id(prefix: str) -> str:
    """Opaque stable identifier, e.g. ``grp_3f2a9c1b0d4e``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def scope_clause(scope, region_col: str, group_col: str, district_col: str) -> tuple[str, dict]:
    """SQL fragment (with leading AND) restricting rows to a pastor's scope."""
    clauses = []
    params: dict = {}
    if scope is None:
        return "", params
    if scope.region is not None:
        clauses.append(f"{region_col} = :scope_region")
        params["scope_region"] = scope.region
    if scope.group_id is not None:
        clauses.append(f"{group_col} = :scope_group_id")
        params["scope_group_id"] = scope.group_id
    if scope.district_id is not None:
        clauses.append(f"{district_col} = :scope_district_id")
        params["scope_district_id"] = scope.district_id
    if not clauses:
        return "", params
    return " AND " + " AND ".join(clauses), params
