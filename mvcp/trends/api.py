"""
Trend Analysis API Router

Attendance trends scoped to the calling pastor.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.models import AuthContext, UserRole
from ..auth.rbac import Permission, PermissionChecker, RoleChecker, scope_for
from ..constants import REGIONS
from .engine import GROUPING_FIELDS
from .queries import get_region_drilldown, get_regional_trends, get_trends

router = APIRouter(prefix="/api/trends", tags=["Trends"])

_read_trends = PermissionChecker(Permission.READ_TRENDS)


@router.get("")
async def api_trends(
    group_by: str = Query(default="region", description="region, group, district, cell_name or all"),
    window_weeks: int | None = Query(default=None, ge=2, le=52, description="Rolling window in weeks (even)"),
    region: str | None = Query(default=None, description="Restrict to one region"),
    user: AuthContext = Depends(_read_trends),
):
    """
    Get attendance trends grouped by a hierarchy level.

    Use group_by=all for a single overall trend.
    """
    field = None if group_by == "all" else group_by
    if field is not None and field not in GROUPING_FIELDS:
        raise HTTPException(status_code=400, detail=f"Unknown grouping field: {group_by}")
    try:
        return get_trends(scope_for(user), group_by=field, window_weeks=window_weeks, region=region)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/regional")
async def api_regional_trends(user: AuthContext = Depends(RoleChecker(UserRole.NATIONAL_COORDINATOR))):
    """
    Get the regional trend panel. National coordinators only.

    Returns each region's trend plus red (decline) and orange (stagnation) zones.
    """
    return get_regional_trends(scope_for(user))


@router.get("/regions/{region}/drilldown")
async def api_region_drilldown(region: str, user: AuthContext = Depends(_read_trends)):
    """
    Get underperforming groups, districts and cells within one region.
    """
    if region not in REGIONS:
        raise HTTPException(status_code=404, detail=f"Unknown region: {region}")
    scope = scope_for(user)
    if scope.region is not None and scope.region != region:
        raise HTTPException(status_code=403, detail="Region outside your scope")
    return get_region_drilldown(region, scope=scope)
