"""Tests for the DB-backed trend queries and the /api/trends router."""

from datetime import UTC, date, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from mvcp.auth.middleware import require_auth
from mvcp.auth.models import AuthContext, Scope, UserRole
from mvcp.trends.api import router as trends_router
from mvcp.trends.queries import get_region_drilldown, get_regional_trends, get_trends

NOW = datetime(2024, 6, 3, 12, 0, tzinfo=UTC)


def _week(week: int) -> date:
    """Meeting date landing in the given week index relative to NOW."""
    return NOW.date() - timedelta(days=7 * week + 1)


def _seed_weeks(submit, district_id, weeks, attendees, **overrides):
    for week in weeks:
        submit(district_id, _week(week), attendees=attendees, **overrides)


def _seed_network_trends(network, submit):
    """Littoral declines (Cotonou 1 sharply, Cotonou 2 flat); Zou grows."""
    c1, c2 = network["cotonou_1"]["district_id"], network["cotonou_2"]["district_id"]
    abomey = network["abomey_1"]["district_id"]
    _seed_weeks(submit, c1, range(0, 4), 4, cell_name="Cellule Akpakpa")
    _seed_weeks(submit, c1, range(4, 8), 10, cell_name="Cellule Akpakpa")
    _seed_weeks(submit, c2, range(0, 8), 8, cell_name="Cellule Fidjrossè")
    _seed_weeks(submit, abomey, range(0, 4), 10, cell_name="Cellule Goho")
    _seed_weeks(submit, abomey, range(4, 8), 5, cell_name="Cellule Goho")


# ---------------------------------------------------------------------------
# Query functions
# ---------------------------------------------------------------------------


class TestTrendQueries:
    def test_get_trends_by_region(self, network, submit):
        _seed_network_trends(network, submit)
        result = get_trends(now=NOW)

        assert result["window_weeks"] == 8
        assert result["trends"]["Zou"] == {"change": 100.0, "status": "growth"}
        assert result["trends"]["Littoral"]["status"] == "decline"
        assert result["skipped"] == 0

    def test_get_trends_respects_scope(self, network, submit):
        _seed_network_trends(network, submit)
        result = get_trends(Scope(region="Zou"), now=NOW)
        assert set(result["trends"]) == {"Zou"}

    def test_get_trends_ignores_old_reports(self, network, submit):
        submit(network["abomey_1"]["district_id"], _week(20), attendees=10)
        assert get_trends(now=NOW)["trends"] == {}

    def test_window_from_environment(self, network, submit, monkeypatch):
        monkeypatch.setenv("TREND_WINDOW_WEEKS", "4")
        _seed_network_trends(network, submit)
        result = get_trends(now=NOW)
        assert result["window_weeks"] == 4
        # Weeks 4-7 fall outside a 4-week window; Zou is flat over weeks 0-3
        assert result["trends"]["Zou"]["status"] == "stagnation"

    def test_regional_zones(self, network, submit):
        _seed_network_trends(network, submit)
        result = get_regional_trends(now=NOW)

        assert [z["name"] for z in result["red_zones"]] == ["Littoral"]
        assert result["orange_zones"] == []
        assert result["red_zones"][0]["change"] < -5

    def test_drilldown_ranks_worst_first(self, network, submit):
        _seed_network_trends(network, submit)
        result = get_region_drilldown("Littoral", now=NOW)

        assert [g["name"] for g in result["groups"]] == ["Groupe Cotonou"]
        assert [d["name"] for d in result["districts"]] == ["Cotonou 1", "Cotonou 2"]
        assert [c["name"] for c in result["cells"]] == ["Cellule Akpakpa", "Cellule Fidjrossè"]
        assert result["cells"][0]["change"] == pytest.approx(-60.0)
        assert result["cells"][1]["status"] == "stagnation"

    def test_drilldown_of_growing_region_is_empty(self, network, submit):
        _seed_network_trends(network, submit)
        result = get_region_drilldown("Zou", now=NOW)
        assert result["groups"] == result["districts"] == result["cells"] == []


# ---------------------------------------------------------------------------
# /api/trends
# ---------------------------------------------------------------------------


def _client(auth_ctx: AuthContext) -> TestClient:
    app = FastAPI()
    app.include_router(trends_router)
    app.dependency_overrides[require_auth] = lambda: auth_ctx
    return TestClient(app, raise_server_exceptions=False)


def _ctx(role: UserRole, region=None) -> AuthContext:
    return AuthContext(user_id="u-1", email="u@mvcp.org", role=role, region=region, auth_method="bearer")


class TestTrendRoutes:
    def test_group_by_all(self, network, submit):
        submit(network["abomey_1"]["district_id"], date.today() - timedelta(days=1), attendees=5)
        data = _client(_ctx(UserRole.NATIONAL_COORDINATOR)).get("/api/trends", params={"group_by": "all"}).json()
        assert data["trends"] == {"all": {"change": 100.0, "status": "growth"}}

    def test_unknown_group_by(self):
        resp = _client(_ctx(UserRole.NATIONAL_COORDINATOR)).get("/api/trends", params={"group_by": "leader"})
        assert resp.status_code == 400

    def test_odd_window_is_bad_request(self):
        resp = _client(_ctx(UserRole.NATIONAL_COORDINATOR)).get("/api/trends", params={"window_weeks": 5})
        assert resp.status_code == 400

    def test_regional_panel_is_national_only(self):
        assert _client(_ctx(UserRole.REGIONAL_PASTOR, "Zou")).get("/api/trends/regional").status_code == 403
        resp = _client(_ctx(UserRole.NATIONAL_COORDINATOR)).get("/api/trends/regional")
        assert resp.status_code == 200
        assert resp.json()["red_zones"] == []

    def test_drilldown_scope(self):
        regional = _client(_ctx(UserRole.REGIONAL_PASTOR, "Zou"))
        assert regional.get("/api/trends/regions/Zou/drilldown").status_code == 200
        assert regional.get("/api/trends/regions/Mono/drilldown").status_code == 403
        assert regional.get("/api/trends/regions/Atlantis/drilldown").status_code == 404
