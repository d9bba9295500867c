"""Featured testimony endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..auth.models import AuthContext
from ..auth.rbac import Permission, PermissionChecker
from ..db import reports as report_store
from ..errors import MVCPError
from ._helpers import http_error

router = APIRouter(tags=["Testimonies"])

_feature = PermissionChecker(Permission.FEATURE_TESTIMONIES)


class FeatureRequest(BaseModel):
    report_id: str


def _public_view(report: dict | None) -> dict | None:
    if report is None:
        return None
    return {
        "report_id": report["report_id"],
        "testimony": report["poignant_testimony"],
        "cell_name": report["cell_name"],
        "region": report["region"],
        "cell_date": report["cell_date"],
    }


@router.get("/api/public/testimony")
async def public_testimony():
    """The featured testimony, or a random one when none is featured."""
    featured = report_store.get_featured_testimony()
    if featured is not None:
        return {"featured": True, "testimony": _public_view(featured)}
    return {"featured": False, "testimony": _public_view(report_store.get_random_testimony())}


@router.get("/api/testimonies/featured")
async def get_featured(_: AuthContext = Depends(_feature)):
    return {"testimony": _public_view(report_store.get_featured_testimony())}


@router.put("/api/testimonies/featured")
async def feature_testimony(body: FeatureRequest, _: AuthContext = Depends(_feature)):
    try:
        report_store.set_featured_testimony(body.report_id)
    except MVCPError as e:
        raise http_error(e)
    return {"status": "featured", "report_id": body.report_id}


@router.delete("/api/testimonies/featured")
async def unfeature_testimony(_: AuthContext = Depends(_feature)):
    report_store.unfeature_testimony()
    return {"status": "unfeatured"}
