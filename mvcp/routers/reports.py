"""Cell report endpoints."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ..auth.models import AuthContext
from ..auth.rbac import Permission, PermissionChecker, scope_for
from ..db import hierarchy, reports as report_store
from ..errors import MVCPError
from ._helpers import ensure_in_scope, http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["Reports"])


# --- Pydantic Models ---

class InvitedPerson(BaseModel):
    name: str
    contact: Optional[str] = None
    address: Optional[str] = None


class VisitMade(BaseModel):
    name: str
    subject: Optional[str] = None
    need: Optional[str] = None


class ReportSubmission(BaseModel):
    cell_date: date
    district_id: str
    cell_id: Optional[str] = None
    cell_name: str
    cell_category: str = ""
    leader_name: str
    leader_contact: Optional[str] = None
    registered_men: int = Field(0, ge=0)
    registered_women: int = Field(0, ge=0)
    registered_children: int = Field(0, ge=0)
    attendees: int = Field(0, ge=0)
    invited_people: list[InvitedPerson] = []
    visit_schedule: Optional[str] = None
    visits_made: list[VisitMade] = []
    bible_study: int = Field(0, ge=0)
    miracle_hour: int = Field(0, ge=0)
    sunday_service_attendance: int = Field(0, ge=0)
    evangelism_outing: Optional[str] = None
    poignant_testimony: Optional[str] = None
    message: Optional[str] = None


# --- Endpoints ---

@router.post("")
async def submit_report(
    body: ReportSubmission,
    user: AuthContext = Depends(PermissionChecker(Permission.SUBMIT_REPORTS)),
):
    """Submit a weekly cell report for a district within the caller's scope."""
    ensure_in_scope(user, hierarchy.get_district(body.district_id), "District")
    try:
        return report_store.submit_report(body.model_dump())
    except MVCPError as e:
        raise http_error(e)


@router.get("")
async def list_reports(
    start: Optional[date] = Query(default=None, description="First meeting date (inclusive)"),
    end: Optional[date] = Query(default=None, description="Last meeting date (inclusive)"),
    region: Optional[str] = Query(default=None, description="Restrict to one region"),
    user: AuthContext = Depends(PermissionChecker(Permission.READ_REPORTS)),
):
    """Reports within the caller's scope, newest submission first."""
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")
    reports = report_store.get_reports(scope_for(user), start=start, end=end, region=region)
    return {"reports": reports, "count": len(reports)}


@router.get("/{report_id}")
async def get_report(
    report_id: str,
    user: AuthContext = Depends(PermissionChecker(Permission.READ_REPORTS)),
):
    return ensure_in_scope(user, report_store.get_report(report_id), "Report")


@router.delete("/{report_id}")
async def delete_report(
    report_id: str,
    user: AuthContext = Depends(PermissionChecker(Permission.DELETE_REPORTS)),
):
    try:
        report_store.delete_report(report_id)
    except MVCPError as e:
        raise http_error(e)
    logger.info("Report %s deleted by %s", report_id, user.user_id)
    return {"status": "deleted", "report_id": report_id}
