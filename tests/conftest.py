import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so `import mvcp` works when tests run from any CWD/import mode.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
PROJECT_ROOT_STR = str(PROJECT_ROOT)
if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)


@pytest.fixture(autouse=True)
def use_test_db(tmp_path, monkeypatch):
    """Use a temporary database for each test."""
    import mvcp.db as db_module
    import mvcp.db.core as db_core

    monkeypatch.delenv("DATABASE_PATH", raising=False)
    monkeypatch.delenv("ENV", raising=False)

    test_db = tmp_path / "test_mvcp.db"
    monkeypatch.setattr(db_core, "DB_PATH", test_db)

    # Initialize the schema (connect() already sets WAL mode)
    db_module.init_db()

    # Verify WAL mode is active to prevent 'database locked' errors
    import sqlite3

    con = sqlite3.connect(test_db, timeout=30)
    mode = con.execute("PRAGMA journal_mode").fetchone()[0]
    con.close()
    assert mode == "wal", f"Expected WAL journal mode, got {mode}"

    yield

    # Cleanup - close any lingering connections
    if test_db.exists():
        try:
            test_db.unlink()
        except PermissionError:
            pass  # Windows/locked file handling


@pytest.fixture
def network():
    """Two regions: Littoral (one group, two districts, two cells) and Zou (one group, one district)."""
    from mvcp.db import hierarchy

    littoral = hierarchy.add_group("Littoral", "Groupe Cotonou")
    cotonou_1 = hierarchy.add_district(littoral["group_id"], "Cotonou 1")
    cotonou_2 = hierarchy.add_district(littoral["group_id"], "Cotonou 2")
    zou = hierarchy.add_group("Zou", "Groupe Abomey")
    abomey_1 = hierarchy.add_district(zou["group_id"], "Abomey 1")

    cell_a = hierarchy.add_cell(
        {
            "district_id": cotonou_1["district_id"],
            "cell_name": "Cellule Akpakpa",
            "cell_category": "Mixte",
            "leader_name": "Koffi",
        }
    )
    cell_b = hierarchy.add_cell(
        {
            "district_id": cotonou_2["district_id"],
            "cell_name": "Cellule Fidjrossè",
            "cell_category": "Jeunes",
            "leader_name": "Afi",
            "status": "En implantation",
        }
    )
    return {
        "littoral": littoral,
        "zou": zou,
        "cotonou_1": cotonou_1,
        "cotonou_2": cotonou_2,
        "abomey_1": abomey_1,
        "cell_a": cell_a,
        "cell_b": cell_b,
    }


@pytest.fixture
def submit():
    """Factory submitting a report with sensible defaults; keyword overrides win."""
    from mvcp.db import reports

    def _submit(district_id, cell_date, **overrides):
        data = {
            "cell_date": cell_date,
            "district_id": district_id,
            "cell_name": "Cellule Akpakpa",
            "cell_category": "Mixte",
            "leader_name": "Koffi",
            "registered_men": 5,
            "registered_women": 5,
            "registered_children": 2,
            "attendees": 10,
            "invited_people": [],
            "visits_made": [],
            "bible_study": 4,
            "miracle_hour": 3,
            "sunday_service_attendance": 8,
        }
        data.update(overrides)
        submitted_at = data.pop("submitted_at", None)
        return reports.submit_report(data, submitted_at=submitted_at)["report_id"]

    return _submit
