"""Dashboard endpoint: headline stats and chart series for the caller's scope."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from .. import summary
from ..auth.models import AuthContext, UserRole
from ..auth.rbac import Permission, PermissionChecker, scope_for
from ..constants import REGIONS
from ..db import hierarchy, reports as report_store

router = APIRouter(tags=["Dashboard"])


@router.get("/api/dashboard")
async def get_dashboard(
    start: Optional[date] = Query(default=None, description="First meeting date (inclusive)"),
    end: Optional[date] = Query(default=None, description="Last meeting date (inclusive)"),
    region: Optional[str] = Query(default=None, description="Restrict to one region"),
    user: AuthContext = Depends(PermissionChecker(Permission.READ_DASHBOARD)),
):
    """
    Aggregated dashboard data.

    National coordinators also get the per-region summary and cell
    status counts; a region filter adds the per-group summary.
    """
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")

    scope = scope_for(user)
    in_range = report_store.get_reports(scope, start=start, end=end)
    reports = [r for r in in_range if r["region"] == region] if region else in_range

    data = {
        "stats": summary.compute_report_stats(reports),
        "demographics": summary.demographics(reports),
        "members_by_region": summary.members_by_region(in_range),
        "attendance_over_time": summary.attendance_over_time(reports),
        "visits_over_time": summary.visits_over_time(reports),
        "program_participation": summary.program_participation(reports),
        "testimonies": summary.poignant_testimonies(reports),
        "new_members": summary.new_members(reports),
    }

    if user.role == UserRole.NATIONAL_COORDINATOR:
        cells = hierarchy.list_cells(scope)
        if region:
            cells = [c for c in cells if c["region"] == region]
        data["summary_by_region"] = summary.summarize_by(in_range, "region", keys=REGIONS)
        data["cell_status_counts"] = summary.cell_status_counts(cells)
    if region:
        data["summary_by_group"] = summary.summarize_by(reports, "group")
    return data
