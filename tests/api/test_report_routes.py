"""Tests for the report, dashboard and testimony routers.

A standalone FastAPI app mounts the routers; require_auth is overridden
to inject an AuthContext for the role under test.
"""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from mvcp.auth.middleware import require_auth
from mvcp.auth.models import AuthContext, UserRole
from mvcp.db import reports as report_store
from mvcp.routers import dashboard, reports, testimonies


def _make_app(auth_ctx: AuthContext | None = None) -> FastAPI:
    app = FastAPI()
    app.include_router(reports.router)
    app.include_router(dashboard.router)
    app.include_router(testimonies.router)
    if auth_ctx is not None:
        app.dependency_overrides[require_auth] = lambda: auth_ctx
    return app


def _client(auth_ctx: AuthContext | None = None) -> TestClient:
    return TestClient(_make_app(auth_ctx), raise_server_exceptions=False)


def _national() -> AuthContext:
    return AuthContext(user_id="nat", email="nat@mvcp.org", role=UserRole.NATIONAL_COORDINATOR, auth_method="bearer")


def _district_pastor(network, district="cotonou_1") -> AuthContext:
    return AuthContext(
        user_id="dp",
        email="dp@mvcp.org",
        role=UserRole.DISTRICT_PASTOR,
        region="Littoral",
        group_id=network["littoral"]["group_id"],
        district_id=network[district]["district_id"],
        auth_method="bearer",
    )


def _body(district_id: str, **overrides) -> dict:
    body = {
        "cell_date": "2024-05-05",
        "district_id": district_id,
        "cell_name": "Cellule Akpakpa",
        "cell_category": "Mixte",
        "leader_name": "Koffi",
        "registered_men": 3,
        "registered_women": 4,
        "registered_children": 1,
        "attendees": 6,
        "invited_people": [{"name": "Sèna"}],
        "visits_made": [{"name": "Yao", "subject": "Prière"}],
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class TestReportRoutes:
    def test_requires_auth(self):
        assert _client().get("/api/reports").status_code == 401

    def test_submit_in_own_district(self, network):
        client = _client(_district_pastor(network))
        resp = client.post("/api/reports", json=_body(network["cotonou_1"]["district_id"]))
        assert resp.status_code == 200

        report = report_store.get_report(resp.json()["report_id"])
        assert report["absentees"] == 2
        assert report["total_present"] == 7

    def test_submit_outside_scope_forbidden(self, network):
        client = _client(_district_pastor(network))
        resp = client.post("/api/reports", json=_body(network["abomey_1"]["district_id"]))
        assert resp.status_code == 403

    def test_submit_unknown_district(self, network):
        resp = _client(_national()).post("/api/reports", json=_body("dist_missing"))
        assert resp.status_code == 404

    def test_attendees_over_registered_is_bad_request(self, network):
        client = _client(_national())
        resp = client.post("/api/reports", json=_body(network["cotonou_1"]["district_id"], attendees=9))
        assert resp.status_code == 400

    def test_negative_count_is_unprocessable(self, network):
        client = _client(_national())
        resp = client.post("/api/reports", json=_body(network["cotonou_1"]["district_id"], bible_study=-1))
        assert resp.status_code == 422

    def test_list_is_scoped(self, network, submit):
        submit(network["cotonou_1"]["district_id"], "2024-05-05")
        submit(network["cotonou_2"]["district_id"], "2024-05-05")
        submit(network["abomey_1"]["district_id"], "2024-05-05")

        scoped = _client(_district_pastor(network)).get("/api/reports").json()
        assert scoped["count"] == 1
        assert _client(_national()).get("/api/reports").json()["count"] == 3

    def test_list_date_range(self, network, submit):
        submit(network["cotonou_1"]["district_id"], "2024-05-01")
        submit(network["cotonou_1"]["district_id"], "2024-05-20")

        resp = _client(_national()).get("/api/reports", params={"start": "2024-05-10", "end": "2024-05-31"})
        assert [r["cell_date"] for r in resp.json()["reports"]] == ["2024-05-20"]

    def test_list_reversed_range_is_bad_request(self):
        resp = _client(_national()).get("/api/reports", params={"start": "2024-06-01", "end": "2024-05-01"})
        assert resp.status_code == 400

    def test_get_outside_scope_forbidden(self, network, submit):
        report_id = submit(network["abomey_1"]["district_id"], "2024-05-05")
        assert _client(_district_pastor(network)).get(f"/api/reports/{report_id}").status_code == 403

    def test_get_missing(self):
        assert _client(_national()).get("/api/reports/rpt_missing").status_code == 404

    def test_submit_with_cell_of_other_district(self, network):
        body = _body(network["cotonou_1"]["district_id"], cell_id=network["cell_b"]["cell_id"])
        assert _client(_national()).post("/api/reports", json=body).status_code == 400

    def test_submit_with_unknown_cell(self, network):
        body = _body(network["cotonou_1"]["district_id"], cell_id="cell_doesnotexist")
        assert _client(_national()).post("/api/reports", json=body).status_code == 404

    def test_delete_missing(self):
        assert _client(_national()).delete("/api/reports/rpt_missing").status_code == 404

    def test_delete_is_national_only(self, network, submit):
        report_id = submit(network["cotonou_1"]["district_id"], "2024-05-05")
        assert _client(_district_pastor(network)).delete(f"/api/reports/{report_id}").status_code == 403
        assert _client(_national()).delete(f"/api/reports/{report_id}").status_code == 200
        assert report_store.get_report(report_id) is None


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class TestDashboardRoute:
    def test_national_dashboard(self, network, submit):
        submit(network["cotonou_1"]["district_id"], "2024-05-05", invited_people=[{"name": "A"}])
        submit(network["abomey_1"]["district_id"], "2024-05-06", cell_name="Cellule Goho")

        data = _client(_national()).get("/api/dashboard").json()
        assert data["stats"]["totalReports"] == 2
        assert data["stats"]["newMembers"] == 1
        assert data["cell_status_counts"]["Active"] == 1
        assert data["cell_status_counts"]["En implantation"] == 1
        by_region = {row["name"]: row for row in data["summary_by_region"]}
        assert by_region["Zou"]["reportsCount"] == 1
        assert by_region["Alibori"]["reportsCount"] == 0
        assert "summary_by_group" not in data

    def test_region_filter_adds_group_summary(self, network, submit):
        submit(network["cotonou_1"]["district_id"], "2024-05-05")
        submit(network["abomey_1"]["district_id"], "2024-05-06")

        data = _client(_national()).get("/api/dashboard", params={"region": "Littoral"}).json()
        assert data["stats"]["totalReports"] == 1
        assert data["summary_by_group"] == [
            {
                "name": "Groupe Cotonou",
                "reportsCount": 1,
                "totalPresent": 10,
                "bibleStudy": 4,
                "miracleHour": 3,
                "sundayService": 8,
            }
        ]

    def test_pastor_dashboard_is_scoped_without_national_panels(self, network, submit):
        submit(network["cotonou_1"]["district_id"], "2024-05-05")
        submit(network["abomey_1"]["district_id"], "2024-05-06")

        data = _client(_district_pastor(network)).get("/api/dashboard").json()
        assert data["stats"]["totalReports"] == 1
        assert "summary_by_region" not in data
        assert "cell_status_counts" not in data


# ---------------------------------------------------------------------------
# Testimonies
# ---------------------------------------------------------------------------


class TestTestimonyRoutes:
    def test_public_testimony_without_auth(self, network, submit):
        report_id = submit(network["cotonou_1"]["district_id"], "2024-05-05", poignant_testimony="Guérison")

        resp = _client().get("/api/public/testimony")
        assert resp.status_code == 200
        assert resp.json()["featured"] is False
        assert resp.json()["testimony"]["report_id"] == report_id

    def test_public_testimony_empty(self):
        assert _client().get("/api/public/testimony").json() == {"featured": False, "testimony": None}

    def test_feature_flow(self, network, submit):
        report_id = submit(network["cotonou_1"]["district_id"], "2024-05-05", poignant_testimony="Guérison")
        client = _client(_national())

        assert client.put("/api/testimonies/featured", json={"report_id": report_id}).status_code == 200
        public = client.get("/api/public/testimony").json()
        assert public["featured"] is True
        assert public["testimony"]["testimony"] == "Guérison"

        assert client.delete("/api/testimonies/featured").status_code == 200
        assert client.get("/api/testimonies/featured").json() == {"testimony": None}

    def test_feature_missing_report(self):
        resp = _client(_national()).put("/api/testimonies/featured", json={"report_id": "rpt_missing"})
        assert resp.status_code == 404

    def test_feature_is_national_only(self, network):
        resp = _client(_district_pastor(network)).put("/api/testimonies/featured", json={"report_id": "x"})
        assert resp.status_code == 403
