"""Report Store: weekly cell reports and their invited people / visits.

Reports reference their district (and cell, when filed against a known
cell) by id. Region, group, district and cell names are resolved at
read time so hierarchy renames show up without rewriting reports.
"""

import logging
import random
from datetime import date
from typing import Any

from ..errors import NotFoundError, ValidationError
from ..trends.engine import AttendanceRecord
from .core import connect, execute, executemany, fetch_dicts, fetch_one_dict
from .helpers import _utc_now_iso, new_id, scope_clause

logger = logging.getLogger(__name__)

FEATURED_TESTIMONY_KEY = "featured_testimony_id"

_COUNT_FIELDS = (
    "registered_men",
    "registered_women",
    "registered_children",
    "attendees",
    "bible_study",
    "miracle_hour",
    "sunday_service_attendance",
)

_REPORT_SELECT = """
    SELECT r.report_id, r.cell_date, r.district_id, r.cell_id,
           COALESCE(c.cell_name, r.cell_name) AS cell_name,
           r.cell_category, r.leader_name, r.leader_contact,
           r.registered_men, r.registered_women, r.registered_children,
           r.attendees, r.absentees, r.total_present, r.visit_schedule,
           r.bible_study, r.miracle_hour, r.sunday_service_attendance,
           r.evangelism_outing, r.poignant_testimony, r.message, r.submitted_at,
           d.name AS district, d.group_id, g.name AS "group", g.region
    FROM reports r
    JOIN districts d ON d.district_id = r.district_id
    JOIN cell_groups g ON g.group_id = d.group_id
    LEFT JOIN cells c ON c.cell_id = r.cell_id
"""

# sqlite's default host parameter limit is 999
_IN_CHUNK = 500


def _parse_date(value: Any, field: str) -> str:
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value)[:10]).isoformat()
    except ValueError as exc:
        raise ValidationError(f"{field} must be an ISO date, got {value!r}") from exc


def _non_negative(data: dict[str, Any], field: str) -> int:
    try:
        value = int(data.get(field) or 0)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer") from exc
    if value < 0:
        raise ValidationError(f"{field} cannot be negative")
    return value


def prepare_report(data: dict[str, Any]) -> dict[str, Any]:
    """Validate a submitted report and compute derived attendance figures.

    absentees = registered - attendees
    total_present = attendees + number of invited people
    """
    for field in ("cell_date", "district_id", "cell_name", "leader_name"):
        if not data.get(field):
            raise ValidationError(f"{field} is required")

    report = {field: _non_negative(data, field) for field in _COUNT_FIELDS}
    registered = report["registered_men"] + report["registered_women"] + report["registered_children"]
    if report["attendees"] > registered:
        raise ValidationError("Attendees cannot exceed registered members")

    invited = list(data.get("invited_people") or [])
    visits = list(data.get("visits_made") or [])

    report.update(
        {
            "cell_date": _parse_date(data["cell_date"], "cell_date"),
            "district_id": data["district_id"],
            "cell_id": data.get("cell_id"),
            "cell_name": data["cell_name"].strip(),
            "cell_category": data.get("cell_category") or "",
            "leader_name": data["leader_name"].strip(),
            "leader_contact": data.get("leader_contact"),
            "absentees": registered - report["attendees"],
            "total_present": report["attendees"] + len(invited),
            "visit_schedule": data.get("visit_schedule"),
            "evangelism_outing": data.get("evangelism_outing"),
            "poignant_testimony": data.get("poignant_testimony"),
            "message": data.get("message"),
        }
    )
    return {"report": report, "invited_people": invited, "visits_made": visits}


def _resolve_cell_id(con, report: dict[str, Any]) -> str | None:
    """Cell the report belongs to.

    A given cell_id must name a cell of the report's district. Without
    one, the registered cell with the same name in that district is
    used, if any.
    """
    if report["cell_id"]:
        cur = execute(
            con,
            "SELECT district_id FROM cells WHERE cell_id = :cell_id",
            {"cell_id": report["cell_id"]},
        )
        row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"Cell {report['cell_id']} not found")
        if row[0] != report["district_id"]:
            raise ValidationError(f"Cell {report['cell_id']} does not belong to district {report['district_id']}")
        return report["cell_id"]

    cur = execute(
        con,
        """SELECT cell_id FROM cells
           WHERE district_id = :district_id AND lower(cell_name) = lower(:cell_name)""",
        {"district_id": report["district_id"], "cell_name": report["cell_name"]},
    )
    row = cur.fetchone()
    return row[0] if row else None


def submit_report(data: dict[str, Any], submitted_at: str | None = None) -> dict[str, Any]:
    """Store a new report. Returns ``{"report_id": ...}``."""
    prepared = prepare_report(data)
    report = prepared["report"]
    report_id = new_id("rpt")

    con = connect()
    try:
        cur = execute(
            con,
            "SELECT 1 FROM districts WHERE district_id = :district_id",
            {"district_id": report["district_id"]},
        )
        if cur.fetchone() is None:
            raise NotFoundError(f"District {report['district_id']} not found")
        report["cell_id"] = _resolve_cell_id(con, report)

        execute(
            con,
            """INSERT INTO reports (
                 report_id, cell_date, district_id, cell_id, cell_name, cell_category,
                 leader_name, leader_contact, registered_men, registered_women,
                 registered_children, attendees, absentees, total_present,
                 visit_schedule, bible_study, miracle_hour, sunday_service_attendance,
                 evangelism_outing, poignant_testimony, message, submitted_at
               ) VALUES (
                 :report_id, :cell_date, :district_id, :cell_id, :cell_name, :cell_category,
                 :leader_name, :leader_contact, :registered_men, :registered_women,
                 :registered_children, :attendees, :absentees, :total_present,
                 :visit_schedule, :bible_study, :miracle_hour, :sunday_service_attendance,
                 :evangelism_outing, :poignant_testimony, :message, :submitted_at
               )""",
            {**report, "report_id": report_id, "submitted_at": submitted_at or _utc_now_iso()},
        )
        executemany(
            con,
            """INSERT INTO report_invited_people (report_id, name, contact, address)
               VALUES (:report_id, :name, :contact, :address)""",
            [
                {
                    "report_id": report_id,
                    "name": person.get("name", ""),
                    "contact": person.get("contact"),
                    "address": person.get("address"),
                }
                for person in prepared["invited_people"]
            ],
        )
        executemany(
            con,
            """INSERT INTO report_visits (report_id, name, subject, need)
               VALUES (:report_id, :name, :subject, :need)""",
            [
                {
                    "report_id": report_id,
                    "name": visit.get("name", ""),
                    "subject": visit.get("subject"),
                    "need": visit.get("need"),
                }
                for visit in prepared["visits_made"]
            ],
        )
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()

    logger.info("Stored report %s for %s on %s", report_id, report["cell_name"], report["cell_date"])
    return {"report_id": report_id}


def _attach_children(con, reports: list[dict[str, Any]]) -> list[dict[str, Any]]:
    by_id = {r["report_id"]: r for r in reports}
    for report in reports:
        report["invited_people"] = []
        report["visits_made"] = []

    ids = list(by_id)
    for start in range(0, len(ids), _IN_CHUNK):
        chunk = ids[start:start + _IN_CHUNK]
        placeholders = ",".join("?" for _ in chunk)
        cur = execute(
            con,
            f"SELECT report_id, name, contact, address FROM report_invited_people "
            f"WHERE report_id IN ({placeholders}) ORDER BY id",
            chunk,
        )
        for report_id, name, contact, address in cur.fetchall():
            by_id[report_id]["invited_people"].append({"name": name, "contact": contact, "address": address})

        cur = execute(
            con,
            f"SELECT report_id, name, subject, need FROM report_visits "
            f"WHERE report_id IN ({placeholders}) ORDER BY id",
            chunk,
        )
        for report_id, name, subject, need in cur.fetchall():
            by_id[report_id]["visits_made"].append({"name": name, "subject": subject, "need": need})
    return reports


def get_report(report_id: str) -> dict[str, Any] | None:
    con = connect()
    try:
        report = fetch_one_dict(execute(con, _REPORT_SELECT + " WHERE r.report_id = :report_id", {"report_id": report_id}))
        if report is None:
            return None
        return _attach_children(con, [report])[0]
    finally:
        con.close()


def _select_reports(
    con,
    scope=None,
    start: str | None = None,
    end: str | None = None,
    region: str | None = None,
) -> list[dict[str, Any]]:
    clause, params = scope_clause(scope, "g.region", "d.group_id", "r.district_id")
    query = _REPORT_SELECT + " WHERE 1=1" + clause
    if start:
        query += " AND r.cell_date >= :start"
        params["start"] = _parse_date(start, "start")
    if end:
        query += " AND r.cell_date <= :end"
        params["end"] = _parse_date(end, "end")
    if region:
        query += " AND g.region = :region"
        params["region"] = region
    query += " ORDER BY r.submitted_at DESC"
    return fetch_dicts(execute(con, query, params))


def get_reports(scope=None, start: str | None = None, end: str | None = None, region: str | None = None) -> list[dict[str, Any]]:
    """Reports within scope whose meeting date lies in [start, end], newest submission first."""
    con = connect()
    try:
        return _attach_children(con, _select_reports(con, scope, start, end, region))
    finally:
        con.close()


def get_attendance_records(
    scope=None,
    start: str | None = None,
    end: str | None = None,
    region: str | None = None,
) -> list[AttendanceRecord]:
    """Trend-engine view of the reports within scope and date range."""
    con = connect()
    try:
        rows = _select_reports(con, scope, start, end, region)
    finally:
        con.close()

    return [
        AttendanceRecord(
            occurred_on=date.fromisoformat(row["cell_date"]),
            total_present=row["total_present"],
            region=row["region"],
            group=row["group"],
            district=row["district"],
            cell_name=row["cell_name"],
        )
        for row in rows
    ]


def delete_report(report_id: str) -> None:
    con = connect()
    try:
        execute(con, "DELETE FROM report_invited_people WHERE report_id = :report_id", {"report_id": report_id})
        execute(con, "DELETE FROM report_visits WHERE report_id = :report_id", {"report_id": report_id})
        cur = execute(con, "DELETE FROM reports WHERE report_id = :report_id", {"report_id": report_id})
        if cur.rowcount == 0:
            raise NotFoundError(f"Report {report_id} not found")
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()


# --- Testimonies ---


def set_featured_testimony(report_id: str) -> None:
    con = connect()
    try:
        cur = execute(con, "SELECT 1 FROM reports WHERE report_id = :report_id", {"report_id": report_id})
        if cur.fetchone() is None:
            raise NotFoundError(f"Report {report_id} not found")
        execute(
            con,
            """INSERT INTO app_settings (key, value) VALUES (:key, :value)
               ON CONFLICT(key) DO UPDATE SET value = :value""",
            {"key": FEATURED_TESTIMONY_KEY, "value": report_id},
        )
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()


def unfeature_testimony() -> None:
    con = connect()
    try:
        execute(con, "DELETE FROM app_settings WHERE key = :key", {"key": FEATURED_TESTIMONY_KEY})
        con.commit()
    except Exception:
        con.rollback()
        raise
    finally:
        con.close()


def get_featured_testimony() -> dict[str, Any] | None:
    """Featured report, or None when nothing is featured or it was deleted."""
    con = connect()
    try:
        cur = execute(con, "SELECT value FROM app_settings WHERE key = :key", {"key": FEATURED_TESTIMONY_KEY})
        row = cur.fetchone()
    finally:
        con.close()
    if not row or not row[0]:
        return None
    return get_report(row[0])


def get_random_testimony(rng: random.Random | None = None) -> dict[str, Any] | None:
    """A random report carrying a non-blank poignant testimony."""
    con = connect()
    try:
        cur = execute(
            con,
            "SELECT report_id FROM reports WHERE trim(COALESCE(poignant_testimony, '')) != '' ORDER BY report_id",
        )
        ids = [row[0] for row in cur.fetchall()]
    finally:
        con.close()
    if not ids:
        return None
    return get_report((rng or random).choice(ids))
