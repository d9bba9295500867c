"""
Trend Analysis Module

Classifies cell attendance over a rolling window as growth, stagnation,
decline or neutral, per region, group, district or cell.

Query helpers that read the Report Store live in ``mvcp.trends.queries``.
"""

from .engine import (
    DEFAULT_WINDOW_WEEKS,
    GROUPING_FIELDS,
    STAGNATION_BAND,
    AttendanceRecord,
    TrendReport,
    TrendResult,
    TrendStatus,
    as_reference_instant,
    classify_change,
    compute_trends,
    compute_trends_report,
    rank_underperforming,
)

__all__ = [
    "DEFAULT_WINDOW_WEEKS",
    "GROUPING_FIELDS",
    "STAGNATION_BAND",
    "AttendanceRecord",
    "TrendReport",
    "TrendResult",
    "TrendStatus",
    "as_reference_instant",
    "classify_change",
    "compute_trends",
    "compute_trends_report",
    "rank_underperforming",
]
