"""
Trend Query Functions

Reads attendance from the Report Store and runs it through the trend
engine for the dashboard panels.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any

from ..config import get_trend_window_weeks
from ..db.reports import get_attendance_records
from .engine import TrendResult, as_reference_instant, compute_trends_report, rank_underperforming

logger = logging.getLogger(__name__)


def _window_start(reference: datetime, window_weeks: int) -> str:
    """Earliest meeting date that can fall inside the window."""
    return (reference.date() - timedelta(days=window_weeks * 7)).isoformat()


def _ranked(trends: dict[str, TrendResult]) -> list[dict[str, Any]]:
    return [{"name": name, **result.to_dict()} for name, result in rank_underperforming(trends)]


def get_trends(
    scope=None,
    group_by: str | None = "region",
    now: datetime | date | None = None,
    window_weeks: int | None = None,
    region: str | None = None,
) -> dict[str, Any]:
    """
    Classify attendance within a pastor's scope.

    Args:
        scope: Caller's hierarchy scope (None for the whole network)
        group_by: Grouping field, or None for one overall trend
        now: Reference instant (default: current UTC time)
        window_weeks: Rolling window (default: TREND_WINDOW_WEEKS)
        region: Optional extra region filter

    Returns:
        Dict with the window, reference instant, per-key trends and the
        count of skipped records
    """
    window_weeks = window_weeks or get_trend_window_weeks()
    reference = as_reference_instant(now)
    records = get_attendance_records(scope, start=_window_start(reference, window_weeks), region=region)
    report = compute_trends_report(records, window_weeks=window_weeks, group_by=group_by, now=reference)

    return {
        "window_weeks": report.window_weeks,
        "as_of": report.now.isoformat(),
        "group_by": group_by,
        "trends": {key: result.to_dict() for key, result in report.trends.items()},
        "skipped": report.skipped,
    }


def get_regional_trends(
    scope=None,
    now: datetime | date | None = None,
    window_weeks: int | None = None,
) -> dict[str, Any]:
    """
    Regional trend panel: every region's trend plus the red (declining)
    and orange (stagnating) zones, worst first.
    """
    window_weeks = window_weeks or get_trend_window_weeks()
    reference = as_reference_instant(now)
    records = get_attendance_records(scope, start=_window_start(reference, window_weeks))
    trends = compute_trends_report(records, window_weeks=window_weeks, group_by="region", now=reference).trends

    ranked = _ranked(trends)
    return {
        "window_weeks": window_weeks,
        "as_of": reference.isoformat(),
        "trends": {key: result.to_dict() for key, result in trends.items()},
        "red_zones": [item for item in ranked if item["status"] == "decline"],
        "orange_zones": [item for item in ranked if item["status"] == "stagnation"],
    }


def get_region_drilldown(
    region: str,
    now: datetime | date | None = None,
    window_weeks: int | None = None,
    scope=None,
) -> dict[str, Any]:
    """
    Rank the underperforming groups, districts and cells of one region.

    Each list holds only declining or stagnating entries, sorted by
    percent change ascending.
    """
    window_weeks = window_weeks or get_trend_window_weeks()
    reference = as_reference_instant(now)
    records = get_attendance_records(scope, start=_window_start(reference, window_weeks), region=region)

    levels = {"groups": "group", "districts": "district", "cells": "cell_name"}
    result: dict[str, Any] = {"region": region, "window_weeks": window_weeks, "as_of": reference.isoformat()}
    for label, field in levels.items():
        trends = compute_trends_report(records, window_weeks=window_weeks, group_by=field, now=reference).trends
        result[label] = _ranked(trends)

    logger.debug(
        "Drill-down for %s: %d groups, %d districts, %d cells flagged",
        region,
        len(result["groups"]),
        len(result["districts"]),
        len(result["cells"]),
    )
    return result
