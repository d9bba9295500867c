"""Dashboard aggregations over report dicts as returned by the Report Store.

All functions are pure: the caller fetches reports (already scoped and
date-filtered) and hands them in.
"""

from collections.abc import Callable, Iterable
from datetime import date, timedelta
from typing import Any

from .constants import CELL_STATUSES

_PROGRAMS = (
    ("bible_study", "Étude Biblique"),
    ("miracle_hour", "Heure de Miracle"),
    ("sunday_service_attendance", "Culte Dominical"),
)


def _registered(report: dict[str, Any]) -> int:
    return report["registered_men"] + report["registered_women"] + report["registered_children"]


def _cell_key(report: dict[str, Any]) -> str:
    return f"{report['region']}-{report['group']}-{report['district']}-{report['cell_name']}"


def latest_report_per_cell(reports: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Most recent report (by meeting date) for each region/group/district/cell path."""
    latest: dict[str, dict[str, Any]] = {}
    for report in reports:
        key = _cell_key(report)
        current = latest.get(key)
        if current is None or report["cell_date"] > current["cell_date"]:
            latest[key] = report
    return list(latest.values())


def compute_report_stats(reports: list[dict[str, Any]]) -> dict[str, int]:
    """Headline figures for the dashboard cards.

    totalMembers counts registered members from each cell's latest
    report only, so weekly reports of one cell are not summed.
    """
    if not reports:
        return {
            "totalReports": 0,
            "totalPresentSum": 0,
            "avgAttendance": 0,
            "newMembers": 0,
            "totalVisits": 0,
            "totalMembers": 0,
        }

    total_reports = len(reports)
    total_present = sum(r["total_present"] for r in reports)
    return {
        "totalReports": total_reports,
        "totalPresentSum": total_present,
        "avgAttendance": int(total_present / total_reports + 0.5),
        "newMembers": sum(len(r.get("invited_people") or []) for r in reports),
        "totalVisits": sum(len(r.get("visits_made") or []) for r in reports),
        "totalMembers": sum(_registered(r) for r in latest_report_per_cell(reports)),
    }


def summarize_by(
    reports: Iterable[dict[str, Any]],
    field: str,
    keys: Iterable[str] | None = None,
) -> list[dict[str, Any]]:
    """Per-key report count and participation totals.

    ``keys`` pre-seeds rows (e.g. every region) so empty ones still
    appear; reports whose key is not among them are then ignored.
    """
    def empty() -> dict[str, int]:
        return {"reportsCount": 0, "totalPresent": 0, "bibleStudy": 0, "miracleHour": 0, "sundayService": 0}

    fixed = keys is not None
    rows: dict[str, dict[str, int]] = {key: empty() for key in keys} if fixed else {}

    for report in reports:
        key = report.get(field) or "N/A"
        if key not in rows:
            if fixed:
                continue
            rows[key] = empty()
        row = rows[key]
        row["reportsCount"] += 1
        row["totalPresent"] += report["total_present"]
        row["bibleStudy"] += report["bible_study"]
        row["miracleHour"] += report["miracle_hour"]
        row["sundayService"] += report["sunday_service_attendance"]

    return [{"name": name, **values} for name, values in rows.items()]


def _week_start(value: str) -> date:
    day = date.fromisoformat(value[:10])
    return day - timedelta(days=day.weekday())


def weekly_series(
    reports: Iterable[dict[str, Any]],
    value: Callable[[dict[str, Any]], int],
) -> list[dict[str, Any]]:
    """Sum of value(report) per Monday-anchored week, oldest week first."""
    weeks: dict[date, dict[str, int]] = {}
    for report in reports:
        bucket = weeks.setdefault(_week_start(report["cell_date"]), {"value": 0, "count": 0})
        bucket["value"] += value(report)
        bucket["count"] += 1
    return [{"week_start": start.isoformat(), **weeks[start]} for start in sorted(weeks)]


def attendance_over_time(reports: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    return weekly_series(reports, lambda r: r["total_present"])


def visits_over_time(reports: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    return weekly_series(reports, lambda r: len(r.get("visits_made") or []))


def program_participation(reports: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Totals for the three church programs; programs with no participation are dropped."""
    totals = {field: 0 for field, _ in _PROGRAMS}
    for report in reports:
        for field, _ in _PROGRAMS:
            totals[field] += report[field]
    return [{"name": label, "participation": totals[field]} for field, label in _PROGRAMS if totals[field] > 0]


def demographics(reports: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Registered men/women/children across each cell's latest report."""
    men = women = children = 0
    for report in latest_report_per_cell(reports):
        men += report["registered_men"]
        women += report["registered_women"]
        children += report["registered_children"]
    slices = [("Hommes", men), ("Femmes", women), ("Enfants", children)]
    return [{"name": name, "value": value} for name, value in slices if value > 0]


def members_by_region(reports: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Registered members per region from each cell's latest report, largest first."""
    regions: dict[str, dict[str, int]] = {}
    for report in latest_report_per_cell(reports):
        row = regions.setdefault(report["region"], {"men": 0, "women": 0, "children": 0})
        row["men"] += report["registered_men"]
        row["women"] += report["registered_women"]
        row["children"] += report["registered_children"]

    rows = [
        {"region": region, **counts, "total": counts["men"] + counts["women"] + counts["children"]}
        for region, counts in regions.items()
    ]
    rows = [row for row in rows if row["total"] > 0]
    rows.sort(key=lambda row: row["total"], reverse=True)
    return rows


def new_members(reports: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Invited people across reports, most recent meeting first."""
    people = [
        {
            **person,
            "region": report["region"],
            "cell_date": report["cell_date"],
            "leader_name": report["leader_name"],
        }
        for report in reports
        for person in report.get("invited_people") or []
    ]
    people.sort(key=lambda p: p["cell_date"], reverse=True)
    return people


def poignant_testimonies(reports: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Reports with a non-blank testimony, newest submission first."""
    found = [r for r in reports if (r.get("poignant_testimony") or "").strip()]
    found.sort(key=lambda r: r["submitted_at"], reverse=True)
    return found


def cell_status_counts(cells: Iterable[dict[str, Any]]) -> dict[str, int]:
    """Number of cells in each status; unknown statuses are not counted."""
    counts = {status: 0 for status in CELL_STATUSES}
    for cell in cells:
        if cell.get("status") in counts:
            counts[cell["status"]] += 1
    return counts
