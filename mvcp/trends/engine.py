"""Attendance trend classification.

Pure-function module: no DB or I/O dependencies. Callers hand in
records already scoped to what the requesting pastor may see; the
engine re-applies its own rolling window and classifies each group's
recent attendance against the preceding period.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_WEEKS = 8

# Percent change strictly beyond this band counts as growth/decline
STAGNATION_BAND = 5.0

# Fixed change reported when a group had no baseline but has recent activity
NEW_ACTIVITY_CHANGE = 100.0

GROUPING_FIELDS = ("region", "group", "district", "cell_name")

# Key used when the caller asks for one ungrouped trend
UNGROUPED_KEY = "all"

_SECONDS_PER_DAY = 86400


class TrendStatus(str, Enum):
    """Direction of a group's attendance over the window."""

    GROWTH = "growth"
    STAGNATION = "stagnation"
    DECLINE = "decline"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class AttendanceRecord:
    """One cell meeting as seen by the trend engine."""

    occurred_on: date
    total_present: int
    region: str = ""
    group: str = ""
    district: str = ""
    cell_name: str = ""


@dataclass(frozen=True)
class TrendResult:
    """Classification of one group key."""

    percent_change: float | None  # None iff status is NEUTRAL
    status: TrendStatus

    def to_dict(self) -> dict[str, Any]:
        return {"change": self.percent_change, "status": self.status.value}


@dataclass
class TrendReport:
    """compute_trends output plus the bookkeeping callers may log or display."""

    trends: dict[str, TrendResult]
    skipped: int
    window_weeks: int
    now: datetime


def as_reference_instant(now: datetime | date | None) -> datetime:
    """UTC-aware reference instant; a bare date means midnight UTC."""
    if now is None:
        return datetime.now(timezone.utc)
    if isinstance(now, datetime):
        return now if now.tzinfo else now.replace(tzinfo=timezone.utc)
    return datetime(now.year, now.month, now.day, tzinfo=timezone.utc)


def _parse_occurred_on(value: Any) -> date | None:
    """Meeting date as a calendar date, or None when unreadable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _field(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def _occurred_on(record: Any) -> date | None:
    raw = _field(record, "occurred_on")
    if raw is None:
        # Report rows carry the meeting date as cell_date
        raw = _field(record, "cell_date")
    return _parse_occurred_on(raw)


def _validate_window(window_weeks: int) -> None:
    if not isinstance(window_weeks, int) or window_weeks <= 0 or window_weeks % 2:
        raise ValueError(f"window_weeks must be a positive even integer, got {window_weeks!r}")


def classify_change(recent_avg: float, previous_avg: float) -> TrendResult:
    """Turn the two half-window averages into a TrendResult."""
    if previous_avg > 0:
        change = (recent_avg - previous_avg) / previous_avg * 100
        if change > STAGNATION_BAND:
            status = TrendStatus.GROWTH
        elif change < -STAGNATION_BAND:
            status = TrendStatus.DECLINE
        else:
            status = TrendStatus.STAGNATION
        return TrendResult(percent_change=change, status=status)

    if recent_avg > 0:
        # Approximation: any activity after an empty baseline reads as +100%
        return TrendResult(percent_change=NEW_ACTIVITY_CHANGE, status=TrendStatus.GROWTH)

    return TrendResult(percent_change=None, status=TrendStatus.NEUTRAL)


def _half_average(weeks: dict[int, list[int]], week_range: range) -> float:
    """Mean of weekly means over the weeks in range that have samples."""
    total = 0.0
    count = 0
    for week_index in week_range:
        samples = weeks.get(week_index)
        if not samples:
            continue
        total += sum(samples) / len(samples)
        count += 1
    return total / count if count else 0.0


def bucket_by_week(
    records: Iterable[Any],
    window_weeks: int,
    group_by: str | None,
    now: datetime,
) -> tuple[dict[str, dict[int, list[int]]], int]:
    """Group total_present values by (group key, week index).

    Returns the buckets and the number of records skipped for an
    unreadable meeting date.
    """
    window_days = window_weeks * 7
    buckets: dict[str, dict[int, list[int]]] = {}
    skipped = 0

    for record in records:
        occurred_on = _occurred_on(record)
        if occurred_on is None:
            skipped += 1
            continue

        meeting = datetime(occurred_on.year, occurred_on.month, occurred_on.day, tzinfo=timezone.utc)
        diff_days = (now - meeting).total_seconds() / _SECONDS_PER_DAY
        if diff_days < 0 or diff_days > window_days:
            continue

        if group_by is None:
            key = UNGROUPED_KEY
        else:
            value = _field(record, group_by)
            if not value:
                continue
            key = str(value)

        week_index = math.floor(diff_days) // 7
        total_present = _field(record, "total_present", 0) or 0
        buckets.setdefault(key, {}).setdefault(week_index, []).append(int(total_present))

    return buckets, skipped


def compute_trends_report(
    records: Iterable[Any],
    window_weeks: int = DEFAULT_WINDOW_WEEKS,
    group_by: str | None = "region",
    now: datetime | date | None = None,
) -> TrendReport:
    """Classify attendance trends per group key.

    Args:
        records: AttendanceRecord instances or report dicts with
            occurred_on (or cell_date), total_present and the grouping field.
        window_weeks: Rolling window, split into equal recent/previous halves.
        group_by: One of GROUPING_FIELDS, or None for a single "all" group.
        now: Reference instant (default: current UTC time).

    Returns:
        TrendReport with one TrendResult per key seen inside the window.
    """
    _validate_window(window_weeks)
    if group_by is not None and group_by not in GROUPING_FIELDS:
        raise ValueError(f"Unknown grouping field: {group_by!r}")

    reference = as_reference_instant(now)
    buckets, skipped = bucket_by_week(records, window_weeks, group_by, reference)
    if skipped:
        logger.warning("Skipped %d records with unreadable meeting date", skipped)

    half = window_weeks // 2
    trends: dict[str, TrendResult] = {}
    for key, weeks in buckets.items():
        recent_avg = _half_average(weeks, range(0, half))
        previous_avg = _half_average(weeks, range(half, window_weeks))
        trends[key] = classify_change(recent_avg, previous_avg)

    return TrendReport(trends=trends, skipped=skipped, window_weeks=window_weeks, now=reference)


def compute_trends(
    records: Iterable[Any],
    window_weeks: int = DEFAULT_WINDOW_WEEKS,
    group_by: str | None = "region",
    now: datetime | date | None = None,
) -> dict[str, TrendResult]:
    """Mapping of group key to TrendResult. See compute_trends_report."""
    return compute_trends_report(records, window_weeks, group_by, now).trends


def rank_underperforming(trends: Mapping[str, TrendResult]) -> list[tuple[str, TrendResult]]:
    """Declining and stagnating keys, worst percent change first."""
    flagged = [
        (key, result)
        for key, result in trends.items()
        if result.status in (TrendStatus.DECLINE, TrendStatus.STAGNATION)
    ]
    # Only decline and stagnation remain, and both always carry a percent_change
    flagged.sort(key=lambda item: item[1].percent_change)
    return flagged
